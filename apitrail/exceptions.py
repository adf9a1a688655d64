"""Application error taxonomy."""

from typing import Any


class AppError(Exception):
    """
    Base exception for request-handling failures.

    Carries the HTTP status and a machine-readable code so the API layer
    can answer with a structured body.
    """

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result: dict[str, Any] = {
            "detail": self.message,
            "code": self.code,
        }
        if self.details:
            result["details"] = self.details
        return result


class ItemNotFoundError(AppError):
    """Raised when an item ID doesn't exist."""

    def __init__(self, item_id: int):
        super().__init__(
            message=f"Item not found: {item_id}",
            code="ITEM_NOT_FOUND",
            status_code=404,
            details={"item_id": item_id},
        )


class ItemAlreadyExistsError(AppError):
    """Raised when creating an item whose name is taken."""

    def __init__(self, name: str):
        super().__init__(
            message="Item already exists",
            code="ITEM_ALREADY_EXISTS",
            status_code=409,
            details={"name": name},
        )


class ItemOwnershipError(AppError):
    """Raised when a user modifies an item created by someone else."""

    def __init__(self, item_id: int):
        super().__init__(
            message="You can only modify your own items",
            code="ITEM_NOT_OWNED",
            status_code=403,
            details={"item_id": item_id},
        )
