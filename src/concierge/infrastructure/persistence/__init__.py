"""
Persistence infrastructure (PostgreSQL connection pool).
"""

from concierge.infrastructure.persistence.database import (
    Database,
    normalize_database_url,
)

__all__ = ["Database", "normalize_database_url"]
