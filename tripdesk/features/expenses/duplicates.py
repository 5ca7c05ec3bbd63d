from __future__ import annotations

from .types import DuplicateGroup, ExpenseItem

REASON_EXACT = "תאריך, סכום ומטבע זהים"
REASON_SIMILAR_AMOUNT = "תאריך וקטגוריה זהים עם סכום דומה"
REASON_SAME_DESCRIPTION = "תיאור וסכום זהים"
REASON_SAME_ILS_AMOUNT = 'סכום בש"ח זהה באותו תאריך (מטבעות שונים)'

SIMILAR_AMOUNT_RATIO = 0.05
ILS_AMOUNT_TOLERANCE = 1.0


def _similar_amounts(first: float, second: float) -> bool:
    largest = max(first, second)
    if largest == 0:
        return False
    return abs(first - second) / largest < SIMILAR_AMOUNT_RATIO


def _normalized_description(expense: ExpenseItem) -> str:
    return (expense.description or "").strip().lower()


def match_reason(first: ExpenseItem, second: ExpenseItem) -> str | None:
    """The first rule that marks the pair as duplicates, checked in order."""
    same_date = first.expense_date == second.expense_date
    if same_date and first.amount == second.amount and first.currency == second.currency:
        return REASON_EXACT
    if same_date and first.category == second.category and _similar_amounts(first.amount, second.amount):
        return REASON_SIMILAR_AMOUNT
    if (
        first.description
        and second.description
        and _normalized_description(first) == _normalized_description(second)
        and first.amount == second.amount
    ):
        return REASON_SAME_DESCRIPTION
    if (
        same_date
        and abs(first.amount_in_ils - second.amount_in_ils) < ILS_AMOUNT_TOLERANCE
        and first.currency != second.currency
    ):
        return REASON_SAME_ILS_AMOUNT
    return None


def find_duplicate_groups(expenses: list[ExpenseItem]) -> list[DuplicateGroup]:
    """Group each expense with the later ones it matches.

    An expense joins at most one group. Matching is against the group's first
    expense only, so membership is not transitive.
    """
    groups: list[DuplicateGroup] = []
    checked: set[str] = set()

    for index, anchor in enumerate(expenses):
        if anchor.id in checked:
            continue
        members = [anchor]
        reasons: list[str] = []
        for candidate in expenses[index + 1 :]:
            if candidate.id in checked:
                continue
            reason = match_reason(anchor, candidate)
            if reason is None:
                continue
            members.append(candidate)
            checked.add(candidate.id)
            if reason not in reasons:
                reasons.append(reason)

        if len(members) > 1:
            checked.add(anchor.id)
            groups.append(DuplicateGroup(expenses=members, reason=", ".join(reasons)))
    return groups
