"""Pingboard - health probing dashboard for generative-AI providers."""

__version__ = "0.1.0"
