"""
Model Catalog - refreshes the model list and groups it by vendor for display.
"""

import logging
from typing import Dict, List

from ..llm.base import CompletionProvider
from .session_store import SessionStore

logger = logging.getLogger(__name__)

OTHER_GROUP = "Other"

MISTRAL_PREFIXES = (
    "mistral-", "open-mistral", "open-mixtral", "pixtral-", "ministral-", "codestral-",
)

GROUP_ORDER = [
    "OpenAI GPT", "DeepSeek", "Mistral", "Llama", "Qwen", "Google", "Amazon Nova", OTHER_GROUP,
]


def vendor_group(model: str) -> str:
    """Vendor group name for a model id."""
    if "gpt" in model:
        return "OpenAI GPT"
    if model.startswith("deepseek-"):
        return "DeepSeek"
    if model.startswith(MISTRAL_PREFIXES):
        return "Mistral"
    if model.startswith("llama-"):
        return "Llama"
    if model.startswith("qwen"):
        return "Qwen"
    if model == "gemini":
        return "Google"
    if model.startswith("nova-"):
        return "Amazon Nova"
    return OTHER_GROUP


def group_models(models: List[str]) -> Dict[str, List[str]]:
    """
    Group model ids by vendor.

    Models are sorted inside each group; empty groups are left out and the
    remaining ones follow GROUP_ORDER.
    """
    grouped: Dict[str, List[str]] = {}
    for model in sorted(set(models)):
        grouped.setdefault(vendor_group(model), []).append(model)
    return {name: grouped[name] for name in GROUP_ORDER if name in grouped}


async def refresh_models(store: SessionStore, client: CompletionProvider) -> List[str]:
    """
    Fetch the model list and cache it on the store.

    An empty result leaves the cached list alone. Errors propagate and also
    leave it alone.
    """
    client.set_credential(store.credential)
    models = await client.list_models()

    if not models:
        logger.warning("Model list came back empty, keeping the cached list")
        return store.available_models

    store.set_available_models(models)
    logger.info(f"Model list refreshed: {len(models)} models")
    return store.available_models
