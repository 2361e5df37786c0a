"""
FastAPI dependencies for Concierge API.

Provides dependency injection for routes.
"""

from typing import Optional

from concierge.di import Container

# Global container (initialized in main.py)
_container: Optional[Container] = None


def get_container() -> Container:
    """
    Get DI container instance.

    Returns:
        Container instance

    Raises:
        RuntimeError: If container not initialized
    """
    if _container is None:
        raise RuntimeError("Container not initialized")
    return _container


def set_container(container: Optional[Container]) -> None:
    """
    Set DI container (called from main.py, reset by tests).

    Args:
        container: Container instance to set globally
    """
    global _container
    _container = container
