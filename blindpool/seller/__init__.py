"""Seller side: launching auctions through the CCA factory."""

from .launch_handler import (
    DURATION_OPTIONS,
    LaunchHandler,
    LaunchParams,
    build_auction_config,
    uniform_steps,
)

__all__ = [
    "DURATION_OPTIONS",
    "LaunchHandler",
    "LaunchParams",
    "build_auction_config",
    "uniform_steps",
]
