"""Test doubles and builders shared by the unit tests."""

import json
from datetime import date
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessageChunk
from langchain_core.messages.utils import message_chunk_to_message

from src.core.booking import (
    Booking,
    BookingClass,
    BookingStore,
    Customer,
)


TODAY = date(2026, 3, 10)


def text_chunk(text: str) -> AIMessageChunk:
    return AIMessageChunk(content=text)


def tool_call_chunk(name: str, args: Dict[str, Any], call_id: str = "call_1", index: int = 0) -> AIMessageChunk:
    return AIMessageChunk(
        content="",
        tool_call_chunks=[{
            "name": name,
            "args": json.dumps(args),
            "id": call_id,
            "index": index,
        }],
    )


def usage_chunk(input_tokens: int, output_tokens: int, model: str = "gpt-4o-mini") -> AIMessageChunk:
    return AIMessageChunk(
        content="",
        usage_metadata={
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        },
        response_metadata={"model_name": model},
    )


class ScriptedLLMClient:
    """Stands in for LLMClient; each model round replays the next scripted chunk list.

    A round may also be an exception instance, which is raised when that
    round is requested.
    """

    def __init__(self, rounds: List[Any], model_name: str = "gpt-4o-mini"):
        self.rounds = list(rounds)
        self.model_name = model_name
        self.requests: List[list] = []
        self.bound_tools: List[list] = []
        self.initialized = False

    def initialize(self) -> None:
        self.initialized = True

    def _next_round(self, messages, tools) -> List[AIMessageChunk]:
        self.requests.append(list(messages))
        self.bound_tools.append(list(tools))
        if not self.rounds:
            return [text_chunk("")]
        round_ = self.rounds.pop(0)
        if isinstance(round_, Exception):
            raise round_
        return round_

    async def astream(self, messages, tools=()):
        for chunk in self._next_round(messages, tools):
            yield chunk

    async def ainvoke(self, messages, tools=()):
        chunks = self._next_round(messages, tools)
        gathered: Optional[AIMessageChunk] = None
        for chunk in chunks:
            gathered = chunk if gathered is None else gathered + chunk
        return message_chunk_to_message(gathered)


def make_store(entries) -> BookingStore:
    """Build a store from ``(number, name, flight_date, status)`` tuples."""
    store = BookingStore()
    customers: Dict[str, Customer] = {}
    for number, name, flight_date, status in entries:
        customer = customers.get(name)
        if customer is None:
            customer = store.add_customer(Customer(name=name))
            customers[name] = customer
        store.add_booking(Booking(
            booking_number=number,
            date=flight_date,
            customer=customer,
            status=status,
            origin="Berlin",
            destination="Lisbon",
            booking_class=BookingClass.ECONOMY,
        ))
    return store
