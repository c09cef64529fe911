"""Tests for the advisor chain and the built-in advisors."""

import logging
import threading
from contextlib import aclosing
from unittest.mock import Mock

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from src.pipelines.inference.advisors import (
    AdvisedRequest,
    AdvisedResponse,
    Advisor,
    AdvisorChain,
    BlockingPolicy,
    LoggingAdvisor,
    MemoryAdvisor,
    MessageAggregator,
    ResponseMetadata,
    RetrievalAdvisor,
)
from src.pipelines.inference.conversation import ConversationStore
from src.pipelines.retrieval import KnowledgePassage, RetrievalUnavailableError
from src.utils.logging import AmbientContextFilter, log_context


class RecordingAdvisor(Advisor):
    """Appends its name to a shared trace on the way in and out."""

    def __init__(self, label, order, trace, blocking_policy=None):
        super().__init__(order=order, blocking_policy=blocking_policy)
        self.label = label
        self.trace = trace
        self.observed = []

    def before(self, request):
        self.trace.append(f"before:{self.label}")
        return request.with_updates(user_text=request.user_text + f"|{self.label}")

    def observe(self, request, response):
        self.trace.append(f"after:{self.label}")
        self.observed.append(response)


def make_request(**overrides):
    values = {"session_id": "chat-1", "user_text": "hello"}
    values.update(overrides)
    return AdvisedRequest(**values)


def terminal_pair(fragments=("Hel", "lo"), seen=None, fail_after=None):
    """Build call/stream terminals that record the request they receive."""
    seen = seen if seen is not None else []

    async def call_terminal(request):
        seen.append(request)
        return AdvisedResponse(text="".join(fragments), metadata=ResponseMetadata(model="m", total_tokens=3))

    async def stream_terminal(request):
        seen.append(request)
        for i, fragment in enumerate(fragments):
            if fail_after is not None and i == fail_after:
                raise RuntimeError("model went away")
            yield AdvisedResponse(text=fragment)
        yield AdvisedResponse(metadata=ResponseMetadata(model="m", prompt_tokens=2, completion_tokens=1, total_tokens=3))

    return call_terminal, stream_terminal, seen


async def collect(stream):
    async with aclosing(stream) as responses:
        return [r async for r in responses]


class TestAdvisorChain:
    """Test ordering and delegation."""

    def test_advisors_sorted_by_order_stable(self):
        trace = []
        call_terminal, stream_terminal, _ = terminal_pair()
        advisors = [
            RecordingAdvisor("c", 300, trace),
            RecordingAdvisor("a", 100, trace),
            RecordingAdvisor("b1", 200, trace),
            RecordingAdvisor("b2", 200, trace),
        ]

        chain = AdvisorChain(advisors, call_terminal, stream_terminal)

        assert [a.label for a in chain.advisors] == ["a", "b1", "b2", "c"]

    @pytest.mark.asyncio
    async def test_call_runs_outermost_first(self):
        trace = []
        call_terminal, stream_terminal, seen = terminal_pair()
        chain = AdvisorChain(
            [RecordingAdvisor("inner", 200, trace), RecordingAdvisor("outer", 100, trace)],
            call_terminal,
            stream_terminal,
        )

        response = await chain.call(make_request())

        assert response.text == "Hello"
        assert trace == ["before:outer", "before:inner", "after:inner", "after:outer"]
        assert seen[0].user_text == "hello|outer|inner"

    @pytest.mark.asyncio
    async def test_stream_passes_fragments_and_observes_once(self):
        trace = []
        call_terminal, stream_terminal, _ = terminal_pair(fragments=("a", "b", "c"))
        advisor = RecordingAdvisor("only", 100, trace)
        chain = AdvisorChain([advisor], call_terminal, stream_terminal)

        responses = await collect(chain.stream(make_request()))

        assert [r.text for r in responses] == ["a", "b", "c", ""]
        assert trace == ["before:only", "after:only"]
        assert advisor.observed[0].text == "abc"
        assert advisor.observed[0].metadata.total_tokens == 3

    @pytest.mark.asyncio
    async def test_stream_failure_skips_observe(self):
        trace = []
        call_terminal, stream_terminal, _ = terminal_pair(fragments=("a", "b"), fail_after=1)
        chain = AdvisorChain([RecordingAdvisor("only", 100, trace)], call_terminal, stream_terminal)

        with pytest.raises(RuntimeError):
            await collect(chain.stream(make_request()))

        assert trace == ["before:only"]

    @pytest.mark.asyncio
    async def test_empty_chain_reaches_terminal(self):
        call_terminal, stream_terminal, seen = terminal_pair()
        chain = AdvisorChain([], call_terminal, stream_terminal)

        assert (await chain.call(make_request())).text == "Hello"
        assert len(seen) == 1


class TestBlockingPolicy:
    """Test where advisor pre-call work runs."""

    @pytest.mark.asyncio
    async def test_protected_work_runs_on_pool(self):
        policy = BlockingPolicy(protect=True, max_workers=2)
        try:
            name = await policy.run(lambda: threading.current_thread().name)
        finally:
            policy.shutdown()

        assert name.startswith("advisor")

    @pytest.mark.asyncio
    async def test_protected_work_sees_log_context(self):
        policy = BlockingPolicy(protect=True, max_workers=1)

        def tagged_fields():
            record = logging.LogRecord("test", logging.INFO, __file__, 1, "hi", (), None)
            AmbientContextFilter().filter(record)
            return getattr(record, "extra_fields", None)

        try:
            with log_context(session_id="chat-7"):
                fields = await policy.run(tagged_fields)
        finally:
            policy.shutdown()

        assert fields == {"session_id": "chat-7"}

    @pytest.mark.asyncio
    async def test_unprotected_work_runs_inline(self):
        policy = BlockingPolicy(protect=False)

        name = await policy.run(lambda: threading.current_thread().name)

        assert name == threading.current_thread().name


class TestMessageAggregator:
    """Test side-channel aggregation."""

    @pytest.mark.asyncio
    async def test_aggregate_forwards_and_completes(self):
        completed = []
        _, stream_terminal, _ = terminal_pair(fragments=("x", "y"))
        aggregator = MessageAggregator()

        forwarded = await collect(aggregator.aggregate(stream_terminal(make_request()), completed.append))

        assert [r.text for r in forwarded] == ["x", "y", ""]
        assert aggregator.completed
        assert completed[0].text == "xy"
        assert completed[0].metadata.model == "m"

    @pytest.mark.asyncio
    async def test_early_close_does_not_complete(self):
        completed = []
        _, stream_terminal, _ = terminal_pair(fragments=("x", "y", "z"))
        aggregator = MessageAggregator()

        async with aclosing(aggregator.aggregate(stream_terminal(make_request()), completed.append)) as stream:
            async for _ in stream:
                break

        assert not aggregator.completed
        assert completed == []


class TestMemoryAdvisor:
    """Test history injection and exchange recording."""

    @pytest.mark.asyncio
    async def test_history_injected_and_exchange_recorded(self):
        store = ConversationStore()
        store.append_exchange("chat-1", "earlier question", "earlier answer")
        call_terminal, stream_terminal, seen = terminal_pair(fragments=("Sure", "!"))
        chain = AdvisorChain([MemoryAdvisor(store)], call_terminal, stream_terminal)

        await collect(chain.stream(make_request(user_text="cancel please")))

        history = seen[0].history
        assert [type(m) for m in history] == [HumanMessage, AIMessage]
        assert [t.content for t in store.get("chat-1")] == [
            "earlier question", "earlier answer", "cancel please", "Sure!"
        ]

    @pytest.mark.asyncio
    async def test_retrieve_size_limits_history(self):
        store = ConversationStore()
        for i in range(5):
            store.append_exchange("chat-1", f"q{i}", f"a{i}")
        call_terminal, stream_terminal, seen = terminal_pair()
        chain = AdvisorChain([MemoryAdvisor(store, retrieve_size=3)], call_terminal, stream_terminal)

        await chain.call(make_request())

        assert [m.content for m in seen[0].history] == ["a3", "q4", "a4"]

    @pytest.mark.asyncio
    async def test_failed_stream_leaves_memory_untouched(self):
        store = ConversationStore()
        call_terminal, stream_terminal, _ = terminal_pair(fragments=("a", "b"), fail_after=1)
        chain = AdvisorChain([MemoryAdvisor(store)], call_terminal, stream_terminal)

        with pytest.raises(RuntimeError):
            await collect(chain.stream(make_request()))

        assert store.get("chat-1") == []

    @pytest.mark.asyncio
    async def test_cancelled_stream_leaves_memory_untouched(self):
        store = ConversationStore()
        call_terminal, stream_terminal, _ = terminal_pair(fragments=("a", "b", "c"))
        chain = AdvisorChain([MemoryAdvisor(store)], call_terminal, stream_terminal)

        async with aclosing(chain.stream(make_request())) as stream:
            async for _ in stream:
                break

        assert store.get("chat-1") == []

    def test_invalid_retrieve_size(self):
        with pytest.raises(ValueError):
            MemoryAdvisor(ConversationStore(), retrieve_size=0)


class TestRetrievalAdvisor:
    """Test grounding passages and degradation."""

    @pytest.mark.asyncio
    async def test_passages_attached(self):
        retriever = Mock()
        retriever.search.return_value = [KnowledgePassage(content="Cancel up to 48 hours before.", score=0.9)]
        call_terminal, stream_terminal, seen = terminal_pair()
        chain = AdvisorChain([RetrievalAdvisor(retriever)], call_terminal, stream_terminal)
        request = make_request(user_text="can I cancel?", system_template="Be nice.")

        await chain.call(request)

        assert seen[0].passages[0].content == "Cancel up to 48 hours before."
        assert "Cancel up to 48 hours before." in seen[0].system_prompt()
        assert request.context["retrieved_passages"] == 1
        retriever.search.assert_called_once_with("can I cancel?")

    @pytest.mark.asyncio
    async def test_unavailable_retrieval_degrades(self, caplog):
        retriever = Mock()
        retriever.search.side_effect = RetrievalUnavailableError("index offline", query="q")
        call_terminal, stream_terminal, seen = terminal_pair()
        chain = AdvisorChain([RetrievalAdvisor(retriever)], call_terminal, stream_terminal)

        with caplog.at_level(logging.WARNING):
            response = await chain.call(make_request(system_template="Be nice."))

        assert response.text == "Hello"
        assert seen[0].passages == ()
        assert seen[0].system_prompt() == "Be nice."
        assert any("answering without context" in r.getMessage() for r in caplog.records)


class TestLoggingAdvisor:
    """Test request and response logging."""

    @pytest.mark.asyncio
    async def test_logs_request_and_reply(self, caplog):
        call_terminal, stream_terminal, _ = terminal_pair(fragments=("Your ", "booking"))
        chain = AdvisorChain(
            [LoggingAdvisor(order=0), LoggingAdvisor(order=1000)], call_terminal, stream_terminal
        )

        with caplog.at_level(logging.INFO):
            await collect(chain.stream(make_request(user_text="status of 101?")))

        messages = [r.getMessage() for r in caplog.records]
        assert sum("User request: status of 101?" in m for m in messages) == 2
        assert sum("assistant message: Your booking" in m for m in messages) == 2
        assert chain.names == ["LoggingAdvisor[0]", "LoggingAdvisor[1000]"]

    def test_long_text_clipped(self):
        advisor = LoggingAdvisor(max_logged_chars=5)

        assert advisor._clip("abcdefgh") == "abcde..."
