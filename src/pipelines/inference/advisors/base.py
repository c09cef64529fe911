"""Advisor chain primitives.

An advisor wraps every model invocation. The chain sorts advisors by
``order`` (stable for ties); the lowest order is outermost, so it sees the
request first and the response last. Requests are immutable and rewritten
with ``dataclasses.replace``; ``context`` is a dict shared by every advisor
for the duration of one turn.
"""

import asyncio
import contextvars
from concurrent.futures import ThreadPoolExecutor
from contextlib import aclosing
from functools import partial
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Sequence

from ..logging import InferenceLoggerMixin
from .aggregator import MessageAggregator
from .models import AdvisedRequest, AdvisedResponse


CallNext = Callable[[AdvisedRequest], Awaitable[AdvisedResponse]]
StreamNext = Callable[[AdvisedRequest], AsyncIterator[AdvisedResponse]]


class BlockingPolicy:
    """Decides where an advisor's blocking pre-call work runs.

    With ``protect=True`` the work is moved to a bounded thread pool so the
    event loop keeps serving other sessions; otherwise it runs inline.
    """

    def __init__(self, protect: bool = True, max_workers: int = 4):
        self.protect = protect
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    async def run(self, func: Callable[..., Any], *args: Any) -> Any:
        if not self.protect:
            return func(*args)

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="advisor"
            )
        loop = asyncio.get_running_loop()
        context = contextvars.copy_context()
        return await loop.run_in_executor(self._executor, partial(context.run, func, *args))

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None


class Advisor(InferenceLoggerMixin):
    """Base advisor.

    Subclasses override ``before`` to rewrite the request (may block; runs
    under the blocking policy) and ``observe`` to react to the complete
    response. For streams ``observe`` is called once, after the last
    fragment, and only if the stream finished normally.
    """

    order: int = 0

    def __init__(
        self,
        order: Optional[int] = None,
        blocking_policy: Optional[BlockingPolicy] = None
    ):
        if order is not None:
            self.order = order
        self.blocking_policy = blocking_policy or BlockingPolicy(protect=False)

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def before(self, request: AdvisedRequest) -> AdvisedRequest:
        return request

    def observe(self, request: AdvisedRequest, response: AdvisedResponse) -> None:
        return None

    async def around_call(self, request: AdvisedRequest, next_call: CallNext) -> AdvisedResponse:
        request = await self.blocking_policy.run(self.before, request)
        response = await next_call(request)
        self.observe(request, response)
        return response

    async def around_stream(
        self, request: AdvisedRequest, next_stream: StreamNext
    ) -> AsyncIterator[AdvisedResponse]:
        request = await self.blocking_policy.run(self.before, request)
        aggregator = MessageAggregator()
        on_complete = partial(self.observe, request)

        async with aclosing(aggregator.aggregate(next_stream(request), on_complete)) as responses:
            async for response in responses:
                yield response


class AdvisorChain:
    """Ordered advisors around a terminal model call."""

    def __init__(
        self,
        advisors: Sequence[Advisor],
        call_terminal: CallNext,
        stream_terminal: StreamNext
    ):
        self.advisors: List[Advisor] = sorted(advisors, key=lambda a: a.order)
        self._call_terminal = call_terminal
        self._stream_terminal = stream_terminal

    @property
    def names(self) -> List[str]:
        return [a.name for a in self.advisors]

    async def call(self, request: AdvisedRequest) -> AdvisedResponse:
        return await self._next_call(0, request)

    def stream(self, request: AdvisedRequest) -> AsyncIterator[AdvisedResponse]:
        return self._next_stream(0, request)

    async def _next_call(self, index: int, request: AdvisedRequest) -> AdvisedResponse:
        if index == len(self.advisors):
            return await self._call_terminal(request)
        return await self.advisors[index].around_call(
            request, partial(self._next_call, index + 1)
        )

    def _next_stream(self, index: int, request: AdvisedRequest) -> AsyncIterator[AdvisedResponse]:
        if index == len(self.advisors):
            return self._stream_terminal(request)
        return self.advisors[index].around_stream(
            request, partial(self._next_stream, index + 1)
        )
