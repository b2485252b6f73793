"""
Shared exceptions for the signing pipeline.
"""


class SigningError(Exception):
    """Base class for failures that abort signed PDF generation."""

    pass


class DocumentFetchError(SigningError):
    """Raised when the original PDF cannot be downloaded."""

    pass


class PDFDecodeError(SigningError):
    """Raised when PDF bytes cannot be parsed into a document."""

    pass


class RenderError(SigningError):
    """Raised when the composited PDF cannot be serialized."""

    pass


class PublishError(SigningError):
    """Raised when the rendered PDF cannot be uploaded to blob storage."""

    pass


class ImageDecodeError(Exception):
    """Raised when signature image data is neither PNG nor JPEG."""

    pass
