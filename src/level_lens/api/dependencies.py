"""Request-scoped access to the application container."""

from fastapi import Request

from ..services.container import AppContainer


def get_container(request: Request) -> AppContainer:
    """Return the container built during application startup."""
    return request.app.state.container
