"""Custom exception classes for billing and receipt generation.

Provides domain-specific exceptions for clear error handling and reporting.
"""


class ReceiptError(Exception):
    """Base exception for ledger and receipt errors."""

    pass


class ValidationError(ReceiptError):
    """Reading consistency violated (e.g. new meter value below old one).

    Attributes:
        fields: Names of the offending field(s), e.g. ("elec_new", "elec_old")
    """

    def __init__(self, message: str, fields: tuple[str, ...] = ()):
        self.message = message
        self.fields = fields
        super().__init__(message)


class FontError(ReceiptError):
    """Base exception for typeface acquisition errors."""

    def __init__(self, message: str, asset_path: str):
        self.message = message
        self.asset_path = asset_path
        super().__init__(message)


class FetchError(FontError):
    """Font asset could not be retrieved (missing file, network, non-2xx status)."""

    def __init__(self, message: str, asset_path: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, asset_path)


class FormatError(FontError):
    """Retrieved bytes are not a supported outline-font binary."""

    def __init__(self, message: str, asset_path: str, signature: str = ""):
        self.signature = signature
        super().__init__(message, asset_path)


class RepositoryError(ReceiptError):
    """Ledger persistence error (unreadable or corrupt store)."""

    pass


__all__ = [
    "ReceiptError",
    "ValidationError",
    "FontError",
    "FetchError",
    "FormatError",
    "RepositoryError",
]
