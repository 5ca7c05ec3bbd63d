from __future__ import annotations

from .duplicates import find_duplicate_groups, match_reason
from .types import DuplicateCheckInput, DuplicateCheckResult, DuplicateGroup, ExpenseItem

__all__ = [
    "DuplicateCheckInput",
    "DuplicateCheckResult",
    "DuplicateGroup",
    "ExpenseItem",
    "find_duplicate_groups",
    "match_reason",
]
