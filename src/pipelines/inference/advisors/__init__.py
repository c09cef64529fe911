"""Advisor chain wrapped around every model invocation."""

from .aggregator import MessageAggregator
from .base import Advisor, AdvisorChain, BlockingPolicy
from .logger import LoggingAdvisor
from .memory import MemoryAdvisor
from .models import AdvisedRequest, AdvisedResponse, ResponseMetadata
from .retrieval import RetrievalAdvisor

__all__ = [
    "Advisor",
    "AdvisorChain",
    "AdvisedRequest",
    "AdvisedResponse",
    "BlockingPolicy",
    "LoggingAdvisor",
    "MemoryAdvisor",
    "MessageAggregator",
    "ResponseMetadata",
    "RetrievalAdvisor",
]
