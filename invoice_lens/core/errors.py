"""
Exceptions raised by the extraction service.

Hierarchy:
    InvoiceLensError (base)
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   └── CorruptedFileError
    ├── ExtractionError            (retried by the extraction client)
    │   ├── TransportError
    │   ├── EmptyResponseError
    │   └── UnparseableResponseError
    ├── DocumentExtractionError
    └── HistoryEntryNotFoundError

Every error carries the HTTP status the API answers with and whether
the user can usefully try again.
"""


class InvoiceLensError(Exception):
    """
    Base exception for all service errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(InvoiceLensError):
    """Raised when an upload or request body cannot be used."""
    status_code = 400


class UnsupportedFileTypeError(InputError):
    """
    Raised when an upload is neither a PDF nor an image.

    Example:
        >>> raise UnsupportedFileTypeError("notes.docx", "application/msword")
    """
    status_code = 415

    def __init__(self, filename: str, content_type: str | None = None):
        message = f"Unsupported file type: '{filename}'"
        details = {"filename": filename, "content_type": content_type}
        super().__init__(message, details)


class CorruptedFileError(InputError):
    """Raised when a PDF or image cannot be decoded."""
    status_code = 422

    def __init__(self, filename: str, reason: str):
        message = f"Could not read file: '{filename}'"
        super().__init__(message, {"filename": filename, "reason": reason})


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================

class ExtractionError(InvoiceLensError):
    """Base class for one failed page extraction attempt."""
    status_code = 502
    retryable = True


class TransportError(ExtractionError):
    """Network failure or non-success HTTP status from the model endpoint."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        details = {}
        if status is not None:
            details["status"] = status
        if body:
            details["body"] = body[:500]
        super().__init__(message, details)
        self.status = status


class EmptyResponseError(ExtractionError):
    """The model stream closed without producing any text."""

    def __init__(self, message: str = "No text was extracted from the image"):
        super().__init__(message)


class UnparseableResponseError(ExtractionError):
    """The model answered, but nothing in the answer maps to an invoice field."""


class DocumentExtractionError(InvoiceLensError):
    """Every page of a document resolved to an empty record."""
    status_code = 422
    retryable = True

    def __init__(
        self,
        message: str = "Failed to extract any information from the document",
        details: dict | None = None,
    ):
        super().__init__(message, details)


class HistoryEntryNotFoundError(InvoiceLensError):
    status_code = 404

    def __init__(self, entry_id: int):
        super().__init__(f"History entry not found: {entry_id}", {"entry_id": entry_id})
