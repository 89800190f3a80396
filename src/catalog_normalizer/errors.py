"""
Exception hierarchy for the catalog normalizer.

Only batch-level problems are raised. Row and variant problems (missing
handle, orphan variation, unparseable number, invalid variant) are logged and
counted in ParseStats instead, so one bad row never aborts an import.
"""


class CatalogError(Exception):
    """Base exception for the catalog normalizer."""
    pass


class EmptyInputError(CatalogError):
    """Input text is empty or has no identifiable header row."""
    pass


class HeaderValidationError(CatalogError):
    """Required columns for the selected platform are missing."""

    def __init__(self, platform: str, missing: list):
        self.platform = platform
        self.missing = list(missing)
        super().__init__(
            f"Invalid {platform} CSV headers. Missing fields: {', '.join(self.missing)}"
        )


class CombinationLimitError(CatalogError):
    """Option domains would expand into more variants than allowed."""

    def __init__(self, total: int, limit: int, context: str = ""):
        self.total = total
        self.limit = limit
        where = f" for {context}" if context else ""
        super().__init__(
            f"Variant combinations{where} exceed the limit: {total} > {limit}"
        )


class UnsupportedPlatformError(CatalogError):
    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform}")


class InvariantViolationError(CatalogError):
    """
    A finalized product broke a model invariant (e.g. no variants).

    This cannot happen after finalization and indicates a bug.
    """
    pass
