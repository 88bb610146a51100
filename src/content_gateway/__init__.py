"""Authenticated, credit-metered gateway for generative content requests."""

__version__ = "0.1.0"
