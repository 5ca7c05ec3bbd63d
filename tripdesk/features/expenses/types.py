from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ExpenseItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    expense_date: str
    category: str = ""
    description: str | None = None
    amount: float
    currency: str
    amount_in_ils: float = 0.0


class DuplicateGroup(BaseModel):
    expenses: list[ExpenseItem]
    reason: str


class DuplicateCheckInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    expenses: list[ExpenseItem] = Field(default_factory=list, max_length=5000)


class DuplicateCheckResult(BaseModel):
    groups: list[DuplicateGroup]
    duplicate_count: int
