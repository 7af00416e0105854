from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class UnauthorizedError(AppError):
    pass


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class PayloadTooLargeError(ValidationError):
    pass


class UnsupportedMediaTypeError(ValidationError):
    pass


class UploadsPendingError(ValidationError):
    """Send attempted while attachments are still uploading."""


class UploadFailedError(AppError):
    """Transient I/O failure while storing or transferring attachment bytes."""
