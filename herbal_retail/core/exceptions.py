class CommissionError(Exception):
    """Base error for the commission batch."""


class FetchError(CommissionError):
    """Reading one of the batch inputs failed; nothing was written."""

    def __init__(self, source: str, cause: Exception = None):
        self.source = source
        self.cause = cause
        super().__init__(f"Failed to fetch {source}: {cause}")


class WriteError(CommissionError):
    """The bulk upsert of computed rows failed and was rolled back."""

    def __init__(self, cause: Exception = None):
        self.cause = cause
        super().__init__(f"Failed to save commissions: {cause}")
