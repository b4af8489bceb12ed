"""
Completion Client Factory - builds the configured client instance.
"""

from typing import Any, Optional

from .client import CompletionClient


def create_completion_client(
    config: Any,
    credential: Optional[str] = None,
    **kwargs
) -> CompletionClient:
    """
    Create a completion client from settings.

    Args:
        config: Settings object with ``llm_base_url``, ``llm_timeout``, ``llm_credential``
            and ``log_llm_calls``
        credential: Overrides the configured credential (e.g. a persisted user token)
        **kwargs: Passed through to CompletionClient (e.g. ``transport``)

    Returns:
        CompletionClient instance; without any credential it sends the sentinel value
    """
    base_url = getattr(config, "llm_base_url", None)
    if not base_url:
        raise ValueError("llm_base_url must be configured")

    return CompletionClient(
        base_url=base_url,
        credential=credential or config.llm_credential,
        timeout=config.llm_timeout,
        log_calls=getattr(config, "log_llm_calls", True),
        **kwargs
    )
