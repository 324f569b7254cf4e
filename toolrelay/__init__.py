"""
toolrelay - resilient LLM access with text-protocol tool calling.

This package provides a key-rotating, retrying client for OpenAI-compatible
completion endpoints, and a tool-calling loop that lets any plain chat model
invoke registered Python callables through a simple textual call syntax.
"""

__version__ = "0.1.0"
