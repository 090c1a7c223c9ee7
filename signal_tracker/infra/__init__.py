"""Infra layer utilities (storage, egress resources, UA rotation)."""

from .resource_pool import ProbeSummary, ResourceHandle, ResourcePool, parse_endpoint
from .storage import CandidateStore, SQLiteStore
from .ua_pool import UserAgentPool

__all__ = [
    "CandidateStore",
    "ProbeSummary",
    "ResourceHandle",
    "ResourcePool",
    "SQLiteStore",
    "UserAgentPool",
    "parse_endpoint",
]
