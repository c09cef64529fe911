"""Exception hierarchy for the assistant inference pipeline.

Domain failures (bookings not found, policy rules) are not raised from here;
they are recovered at the tool bridge. These exceptions cover configuration,
upstream model failures, session memory and the per-turn state machine.
"""

from typing import Any, Dict, List, Optional

from src.utils.exceptions import ServiceError


class InferenceError(ServiceError):
    """Base exception for inference pipeline errors."""

    default_code = "INFERENCE_ERROR"


class ConfigurationError(InferenceError):
    """Raised when assistant configuration is invalid or missing.

    Attributes:
        missing_keys: List of missing configuration keys
    """

    default_code = "CONFIG_ERROR"

    def __init__(
        self,
        message: str,
        missing_keys: Optional[List[str]] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.missing_keys = missing_keys or []
        details = details or {}
        if self.missing_keys:
            details["missing_keys"] = self.missing_keys
        super().__init__(message, error_code, details)


class LLMError(InferenceError):
    """Raised when the upstream chat model fails after retries.

    The only error allowed to end a streamed reply early; callers see the
    stream stop without the completion marker.

    Attributes:
        status_code: HTTP status code from the provider, when known
        provider: Name of the LLM provider (e.g., "openai")
        model: Model name that was being used
    """

    default_code = "LLM_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.status_code = status_code
        self.provider = provider
        self.model = model
        context = {"status_code": status_code, "provider": provider, "model": model}
        details = {**(details or {}), **{k: v for k, v in context.items() if v is not None}}
        super().__init__(message, error_code, details)


class SessionError(InferenceError):
    """Raised for an empty chat id or message.

    A missing session is not an error; sessions are created lazily.
    """

    default_code = "SESSION_ERROR"

    def __init__(self, message: str, session_id: Optional[str] = None) -> None:
        self.session_id = session_id
        super().__init__(message, details={"session_id": session_id} if session_id else None)


class TurnStateError(InferenceError):
    """Raised on an illegal conversation turn state transition."""

    default_code = "TURN_STATE_ERROR"

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Illegal turn transition {current} -> {target}",
            details={"current": current, "target": target},
        )


class InferenceTimeoutError(InferenceError):
    """Raised when a non-streaming turn exceeds ``timeout_seconds``."""

    default_code = "TIMEOUT_ERROR"

    def __init__(
        self,
        message: str,
        timeout_seconds: float,
        session_id: Optional[str] = None
    ) -> None:
        self.timeout_seconds = timeout_seconds
        details: Dict[str, Any] = {"timeout_seconds": timeout_seconds}
        if session_id:
            details["session_id"] = session_id
        super().__init__(message, details=details)
