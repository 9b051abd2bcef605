"""Bidder side: plain and blind bid placement."""

from .bid_handler import BidHandler

__all__ = ["BidHandler"]
