"""User preference and usage statistics endpoints."""

from fastapi import APIRouter, Depends

from ..core import get_logger
from ..models.api import PreferencesResponse, PreferencesUpdate, StatisticsResponse
from ..services.container import AppContainer
from .dependencies import get_container

router = APIRouter(tags=["Preferences"])
logger = get_logger(__name__)


@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(container: AppContainer = Depends(get_container)):
    return PreferencesResponse(preferences=await container.store.get_preferences())


@router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    body: PreferencesUpdate,
    container: AppContainer = Depends(get_container),
):
    """
    Partially update preferences.

    Changing the level drops cached results for every level.
    """
    preferences = await container.store.save_preferences(level=body.level, enabled=body.enabled)
    logger.info("Preferences updated", level=preferences.level.value, enabled=preferences.enabled)
    return PreferencesResponse(preferences=preferences)


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(container: AppContainer = Depends(get_container)):
    return StatisticsResponse(statistics=await container.store.get_statistics())
