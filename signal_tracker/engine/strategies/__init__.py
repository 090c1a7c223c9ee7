"""Acquisition strategies and the chain that orders them."""

from .chain import ChainEntry, ChainOutcome, Strategy, StrategyChain
from .sources import (
    STRATEGY_REGISTRY,
    AuthenticatedProfileStrategy,
    BaseStrategy,
    CareerPageStrategy,
    CustomSearchStrategy,
    JobsApiStrategy,
    WebsiteNewsStrategy,
    build_chain,
)

__all__ = [
    "AuthenticatedProfileStrategy",
    "BaseStrategy",
    "CareerPageStrategy",
    "ChainEntry",
    "ChainOutcome",
    "CustomSearchStrategy",
    "JobsApiStrategy",
    "STRATEGY_REGISTRY",
    "Strategy",
    "StrategyChain",
    "WebsiteNewsStrategy",
    "build_chain",
]
