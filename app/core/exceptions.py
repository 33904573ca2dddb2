from fastapi import HTTPException, status


class StorefrontError(HTTPException):
    """Base for domain errors; FastAPI renders them as {"detail": ...}."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class InvalidRequest(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ProductUnavailable(NotFound):
    default_detail = "Product not found or inactive"


class InsufficientStock(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Insufficient stock"


class InvalidStatus(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid status"


class InvalidStatusTransition(InvalidStatus):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Status transition not allowed"


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class Conflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"
