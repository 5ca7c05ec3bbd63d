from __future__ import annotations


class PolicyImportError(Exception):
    """Base exception for policy-rule import operations."""


class ImportFormatError(PolicyImportError):
    pass


class ExtractionError(PolicyImportError):
    """The remote document extraction failed or found nothing."""


class NoValidRulesError(PolicyImportError):
    pass
