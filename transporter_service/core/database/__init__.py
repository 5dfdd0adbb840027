"""Database foundation: declarative base, filters, repository."""

from transporter_service.core.database.base import (
    Base,
    IntegerPKMixin,
    JSONType,
    TimestampMixin,
    utcnow,
)
from transporter_service.core.database.exceptions import NotFoundError, RepositoryError
from transporter_service.core.database.filters import (
    CollectionFilter,
    EqualityFilter,
    FilterGroup,
    OnBeforeAfter,
    OrderBy,
    StatementFilter,
)
from transporter_service.core.database.repository import BaseRepository, SearchResult

__all__ = [
    "Base",
    "BaseRepository",
    "CollectionFilter",
    "EqualityFilter",
    "FilterGroup",
    "IntegerPKMixin",
    "JSONType",
    "NotFoundError",
    "OnBeforeAfter",
    "OrderBy",
    "RepositoryError",
    "SearchResult",
    "StatementFilter",
    "TimestampMixin",
    "utcnow",
]
