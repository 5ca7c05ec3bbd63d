from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel

NoticeLevel = Literal["info", "success", "warning", "error"]

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notice(BaseModel):
    level: NoticeLevel
    message: str


class NoticeLog:
    """User-facing messages produced by one operation.

    Each notice is mirrored to the logger so nothing the user sees is
    missing from the server log.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self.items: list[Notice] = []

    def _add(self, level: NoticeLevel, message: str, *, detail: str | None = None) -> None:
        self.items.append(Notice(level=level, message=message))
        if detail:
            self._logger.log(_LOG_LEVELS[level], "%s (%s)", message, detail)
        else:
            self._logger.log(_LOG_LEVELS[level], "%s", message)

    def info(self, message: str) -> None:
        self._add("info", message)

    def success(self, message: str) -> None:
        self._add("success", message)

    def warning(self, message: str, *, detail: str | None = None) -> None:
        self._add("warning", message, detail=detail)

    def error(self, message: str, *, detail: str | None = None) -> None:
        self._add("error", message, detail=detail)

    def of_level(self, level: NoticeLevel) -> list[Notice]:
        return [item for item in self.items if item.level == level]

    def __len__(self) -> int:
        return len(self.items)
