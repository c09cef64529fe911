"""Side-channel aggregation of streamed responses."""

from contextlib import aclosing
from typing import AsyncIterator, Callable, List, Optional

from .models import AdvisedResponse, ResponseMetadata


class MessageAggregator:
    """Collects fragments of a streamed reply while passing them through.

    Fragments are forwarded unmodified and without delay. When the source
    stream is exhausted, ``on_complete`` receives one response holding the
    concatenated text and merged metadata. If the stream fails or is closed
    early, ``on_complete`` is not called.
    """

    def __init__(self) -> None:
        self._parts: List[str] = []
        self.metadata = ResponseMetadata()
        self.context: dict = {}
        self.completed = False

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def add(self, response: AdvisedResponse) -> None:
        if response.text:
            self._parts.append(response.text)
        if not response.metadata.is_empty:
            self.metadata = self.metadata.merge(response.metadata)
        if response.context:
            self.context.update(response.context)

    def result(self) -> AdvisedResponse:
        return AdvisedResponse(text=self.text, metadata=self.metadata, context=dict(self.context))

    async def aggregate(
        self,
        responses: AsyncIterator[AdvisedResponse],
        on_complete: Optional[Callable[[AdvisedResponse], None]] = None
    ) -> AsyncIterator[AdvisedResponse]:
        async with aclosing(responses) as source:
            async for response in source:
                self.add(response)
                yield response

        self.completed = True
        if on_complete is not None:
            on_complete(self.result())
