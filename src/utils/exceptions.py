"""Base error type shared by the booking, inference and retrieval packages."""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Error with a machine-readable code and structured details.

    Subclasses set ``default_code``; an explicit ``error_code`` overrides it.
    ``to_dict`` is what the API puts in error responses and what structured
    logs attach.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code
        details: Additional error context
    """

    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }
