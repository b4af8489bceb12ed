"""
Preference API endpoints - model, credential, temperature and system prompt.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status

from ..core.logging_config import mask_credential
from ..core.session_store import SessionStore
from ..models import Preferences, PreferencesUpdate
from .deps import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/preferences", tags=["preferences"])


def _preferences(store: SessionStore) -> Preferences:
    return Preferences(
        selected_model=store.selected_model,
        credential=mask_credential(store.credential) if store.has_credential else "",
        has_credential=store.has_credential,
        temperature=store.temperature,
        system_prompt=store.system_prompt,
    )


@router.get("", response_model=Preferences)
async def get_preferences(store: SessionStore = Depends(get_store)):
    """Current preferences; the credential is masked."""
    return _preferences(store)


@router.patch("", response_model=Preferences)
async def update_preferences(
    update: PreferencesUpdate,
    store: SessionStore = Depends(get_store),
):
    """
    Update the given preferences; omitted fields are unchanged.

    An empty credential clears it, so requests go out with the sentinel.
    """
    try:
        if update.selected_model is not None:
            await store.set_selected_model(update.selected_model)
        if update.credential is not None:
            await store.set_credential(update.credential)
        if update.temperature is not None:
            await store.set_temperature(update.temperature)
        if update.system_prompt is not None:
            await store.set_system_prompt(update.system_prompt)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )

    logger.info(
        "Preferences updated",
        extra={"extra_fields": {"fields": sorted(update.model_dump(exclude_none=True).keys())}}
    )
    return _preferences(store)
