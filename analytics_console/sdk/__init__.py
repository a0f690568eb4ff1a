"""
SDK for the analytics console.

Provides client wrappers that record usage events as they happen.
"""

from .openai_client import TrackedOpenAI

__all__ = ["TrackedOpenAI"]
