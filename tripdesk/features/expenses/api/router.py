from __future__ import annotations

import logging

from fastapi import APIRouter

from ..duplicates import find_duplicate_groups
from ..types import DuplicateCheckInput, DuplicateCheckResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.post("/duplicates", response_model=DuplicateCheckResult)
async def check_duplicates(payload: DuplicateCheckInput) -> DuplicateCheckResult:
    groups = find_duplicate_groups(payload.expenses)
    if groups:
        logger.info("Found %d duplicate group(s) in %d expense(s).", len(groups), len(payload.expenses))
    return DuplicateCheckResult(
        groups=groups,
        duplicate_count=sum(len(group.expenses) for group in groups),
    )
