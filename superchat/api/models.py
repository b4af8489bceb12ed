"""
Model API endpoints - the cached model list grouped by vendor.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status

from ..core.model_catalog import group_models, refresh_models
from ..core.session_store import SessionStore
from ..llm.base import CompletionProvider
from ..llm.errors import SuperChatError
from ..models import ModelList
from .deps import get_client, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/models", tags=["models"])


def _model_list(store: SessionStore) -> ModelList:
    return ModelList(
        models=store.available_models,
        groups=group_models(store.available_models),
        selected_model=store.selected_model,
    )


@router.get("", response_model=ModelList)
async def list_models(store: SessionStore = Depends(get_store)):
    return _model_list(store)


@router.post("/refresh", response_model=ModelList)
async def refresh(
    store: SessionStore = Depends(get_store),
    client: CompletionProvider = Depends(get_client),
):
    """
    Fetch the model list from the completion service.

    Raises:
        HTTPException 502: the service failed; the cached list is kept
    """
    try:
        await refresh_models(store, client)
    except SuperChatError as e:
        logger.warning(f"Model refresh failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch models: {e}"
        )
    return _model_list(store)
