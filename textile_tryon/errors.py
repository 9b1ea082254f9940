"""Error kinds raised by the try-on collaborators and pipeline.

Every error carries a stable ``code`` that ends up in the ``error_code`` of a
failed outcome and that the API layer maps to an HTTP status.
"""


class TryOnError(Exception):
    """Base class for all try-on failures."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TryOnError):
    """A profile, garment, photo, primary image or result does not exist."""

    code = "NOT_FOUND"


class ForbiddenError(TryOnError):
    """The entity exists but belongs to another user profile."""

    code = "FORBIDDEN"


class InvalidRequestError(TryOnError):
    """The caller asked for something unsupported, e.g. an unknown model."""

    code = "VALIDATION_ERROR"


class RemoteServiceError(TryOnError):
    """The image generation API answered with an error or an unusable body."""

    code = "REMOTE_SERVICE_ERROR"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ImageFetchError(TryOnError):
    """A source image could not be downloaded."""

    code = "IMAGE_FETCH_ERROR"

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class StorageError(TryOnError):
    """Writing or deleting a stored image failed."""

    code = "STORAGE_ERROR"
