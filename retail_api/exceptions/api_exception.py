"""API exception module."""
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
    ):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidArgumentError(APIException):
    """A report parameter is outside its domain (bad date, month, threshold...)."""

    def __init__(self, detail: str = "Invalid argument"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class BackingStoreError(APIException):
    """The relational store is unreachable or a query failed."""

    def __init__(self, detail: str = "Backing store unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
