"""LLM client for the assistant.

Wraps a LangChain chat model with tool binding, retry with exponential
backoff, and async streaming of ``AIMessageChunk`` objects.
"""

import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Optional, Sequence

import openai
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.tools import BaseTool
from langchain_openai import ChatOpenAI

from ..config import LLMConfig
from ..exceptions import ConfigurationError, LLMError
from ..logging import get_inference_logger, log_async_inference_operation


logger = get_inference_logger(__name__)

# Provider errors that a retry cannot fix
NON_RETRYABLE_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
    openai.NotFoundError,
)


class LLMClient:
    """Chat model client with retry logic and tool-aware streaming.

    Attributes:
        config: LLM configuration
        chat_model: LangChain chat model (created from config unless injected)
    """

    def __init__(self, config: LLMConfig, chat_model: Optional[BaseChatModel] = None):
        self.config = config
        self.chat_model = chat_model
        self._initialized = chat_model is not None

    @property
    def model_name(self) -> str:
        return self.config.model_name

    def initialize(self) -> None:
        """Create the OpenAI chat model.

        Raises:
            ConfigurationError: If the API key is missing or the client cannot be built
        """
        if self._initialized:
            return

        if not self.config.api_key or not self.config.api_key.strip():
            raise ConfigurationError(
                "OpenAI API key is required but not provided",
                missing_keys=["api_key"],
                error_code="MISSING_API_KEY"
            )

        try:
            self.chat_model = ChatOpenAI(
                model=self.config.model_name,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                max_retries=0,
                stream_usage=True,
            )
        except Exception as e:
            raise ConfigurationError(
                f"Failed to initialize OpenAI client: {str(e)}",
                error_code="CLIENT_INIT_ERROR",
                details={"error": str(e)}
            ) from e

        self._initialized = True

    def _runnable(self, tools: Sequence[BaseTool]):
        if not self._initialized:
            raise ConfigurationError(
                "LLM client must be initialized before use",
                error_code="CLIENT_NOT_INITIALIZED"
            )
        if tools:
            return self.chat_model.bind_tools(list(tools))
        return self.chat_model

    @log_async_inference_operation("llm_invoke", logger)
    async def ainvoke(
        self,
        messages: Sequence[BaseMessage],
        tools: Sequence[BaseTool] = ()
    ) -> AIMessage:
        """Invoke the model once, retrying transient failures.

        Raises:
            ConfigurationError: If client is not initialized
            LLMError: If the call fails after all retries
        """
        runnable = self._runnable(tools)
        max_retries = self.config.max_retries

        for attempt in range(max_retries + 1):
            try:
                return await runnable.ainvoke(list(messages))
            except (ConfigurationError, LLMError):
                raise
            except Exception as e:
                if not self._should_retry(e, attempt):
                    raise self._to_llm_error(e, attempt + 1) from e
                await self._backoff(attempt, e)

    async def astream(
        self,
        messages: Sequence[BaseMessage],
        tools: Sequence[BaseTool] = ()
    ) -> AsyncIterator[AIMessageChunk]:
        """Stream response chunks.

        Failures before the first chunk are retried; once output has been
        yielded a failure is raised as ``LLMError`` immediately, since the
        caller has already forwarded part of the reply.

        Raises:
            ConfigurationError: If client is not initialized
            LLMError: If streaming fails
        """
        runnable = self._runnable(tools)
        max_retries = self.config.max_retries

        for attempt in range(max_retries + 1):
            received = 0
            try:
                async with aclosing(runnable.astream(list(messages))) as stream:
                    async for chunk in stream:
                        received += 1
                        yield chunk
                return
            except (ConfigurationError, LLMError):
                raise
            except Exception as e:
                if received or not self._should_retry(e, attempt):
                    raise self._to_llm_error(e, attempt + 1, chunks_received=received) from e
                await self._backoff(attempt, e)

    def _should_retry(self, error: Exception, attempt: int) -> bool:
        if isinstance(error, NON_RETRYABLE_ERRORS):
            return False
        return attempt < self.config.max_retries

    async def _backoff(self, attempt: int, error: Exception) -> None:
        delay = (2 ** attempt) * self.config.retry_base_delay
        logger.warning(
            f"LLM call failed (attempt {attempt + 1}), retrying in {delay:.1f}s: {error}",
            extra={"extra_fields": {
                "attempt": attempt + 1,
                "delay_seconds": delay,
                "error_type": type(error).__name__
            }}
        )
        await asyncio.sleep(delay)

    def _to_llm_error(self, error: Exception, attempts: int, chunks_received: int = 0) -> LLMError:
        return LLMError(
            f"LLM API call failed after {attempts} attempt(s): {str(error)}",
            status_code=getattr(error, "status_code", None),
            provider=self.config.provider,
            model=self.config.model_name,
            error_code="MAX_RETRIES_EXCEEDED" if attempts > 1 else "LLM_ERROR",
            details={
                "attempts": attempts,
                "chunks_received": chunks_received,
                "last_error": str(error)
            }
        )
