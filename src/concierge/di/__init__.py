"""
Dependency injection.
"""

from concierge.di.container import Container

__all__ = ["Container"]
