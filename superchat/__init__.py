"""SuperChat - chat client backend for OpenAI-compatible completion services."""

__version__ = "1.0.0"
