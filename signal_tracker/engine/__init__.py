"""Engine components: fetch, extract, dedup and notify."""

from .classifier import CandidateClassifier, ClassifierVerdict
from .dedup import DedupStore
from .fetcher import FetchRequest, FetchResponse, Fetcher
from .thread_pool import ThreadPoolManager

__all__ = [
    "CandidateClassifier",
    "ClassifierVerdict",
    "DedupStore",
    "FetchRequest",
    "FetchResponse",
    "Fetcher",
    "ThreadPoolManager",
]
