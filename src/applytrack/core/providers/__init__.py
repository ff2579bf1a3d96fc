"""Generative-text provider adapters."""

from .gemini import call_gemini
from .openrouter import call_openrouter

__all__ = ["call_gemini", "call_openrouter"]
