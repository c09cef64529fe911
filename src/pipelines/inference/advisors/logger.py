"""Request and response logging advisor."""

from typing import Optional

from ..logging import log_token_usage
from .base import Advisor, BlockingPolicy
from .models import AdvisedRequest, AdvisedResponse


class LoggingAdvisor(Advisor):
    """Logs the user request on the way in and the full reply on the way out.

    The chain normally holds two instances: one outermost (order 0) and one
    innermost (order 1000), so the logged request and reply are the ones
    before and after the other advisors touch them. For streams the reply is
    logged once, after the last fragment.
    """

    order = 0

    def __init__(
        self,
        order: Optional[int] = None,
        blocking_policy: Optional[BlockingPolicy] = None,
        max_logged_chars: int = 500
    ):
        super().__init__(order=order, blocking_policy=blocking_policy)
        self.max_logged_chars = max_logged_chars

    @property
    def name(self) -> str:
        return f"{self.__class__.__name__}[{self.order}]"

    def before(self, request: AdvisedRequest) -> AdvisedRequest:
        self.logger.info(
            f"User request: {self._clip(request.user_text)}",
            extra={"extra_fields": {
                "session_id": request.session_id,
                "advisor_order": self.order,
                "history_messages": len(request.history),
                "passages": len(request.passages),
            }}
        )
        return request

    def observe(self, request: AdvisedRequest, response: AdvisedResponse) -> None:
        metadata = response.metadata
        self.logger.info(
            f"Model: {metadata.model or 'unknown'}, assistant message: {self._clip(response.text)}, "
            f"prompt tokens: {metadata.prompt_tokens}, completion tokens: "
            f"{metadata.completion_tokens}, total tokens: {metadata.total_tokens}",
            extra={"extra_fields": {
                "session_id": request.session_id,
                "advisor_order": self.order,
            }}
        )
        if metadata.total_tokens:
            log_token_usage(
                self.logger,
                metadata.model,
                metadata.prompt_tokens,
                metadata.completion_tokens,
            )

    def _clip(self, text: str) -> str:
        if len(text) <= self.max_logged_chars:
            return text
        return text[:self.max_logged_chars] + "..."
