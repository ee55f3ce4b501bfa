"""Sherd record viewer: hierarchical aggregation and filtered search."""

__version__ = "0.1.0"
