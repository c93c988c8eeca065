"""Stranger Chat: pairs anonymous visitors into two-party chat rooms."""

__version__ = "1.0.0"
