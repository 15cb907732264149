"""Health check endpoints."""

from fastapi import APIRouter, Depends

from .. import __version__
from ..core import get_logger
from ..models.api import HealthResponse
from ..services.container import AppContainer
from .dependencies import get_container

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(container: AppContainer = Depends(get_container)):
    """
    Health check endpoint that verifies system status.

    Returns:
        Health status including provider availability and cache/pool statistics
    """
    provider_available = await container.provider.is_available()

    # Cached results are still served without a provider
    status = "healthy" if provider_available else "degraded"

    cache_stats = container.cache.stats()
    pool_stats = container.pool.stats()

    logger.info(
        "Health check completed",
        status=status,
        provider=container.provider.name,
        provider_available=provider_available,
    )

    return HealthResponse(
        status=status,
        version=__version__,
        environment=container.settings.environment,
        provider=container.provider.name,
        provider_available=provider_available,
        cache=cache_stats,
        pool=pool_stats,
        active_test_sessions=container.leveling.active_sessions,
        message="Health check completed" if provider_available else "Text generation is unavailable"
    )
