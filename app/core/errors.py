class SegmentServiceError(Exception):
    """Base class for errors raised by the service and storage layers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SegmentServiceError):
    """A referenced user, segment or report does not exist."""

    status_code = 404

    def __init__(self, message: str, missing_slugs: list[str] | None = None):
        super().__init__(message)
        self.missing_slugs = missing_slugs or []


class ConflictError(SegmentServiceError):
    """A uniqueness constraint rejected the write."""

    status_code = 409


class InvalidInputError(SegmentServiceError):
    status_code = 400


class StorageError(SegmentServiceError):
    """Any other persistence failure."""

    status_code = 500
