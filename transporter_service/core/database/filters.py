"""Composable WHERE / ORDER BY clauses for job listings.

Each filter takes a ``Select`` and returns a narrowed one, so a search can
be assembled from request parameters one clause at a time:

    stmt = select(TransporterJob)
    stmt = EqualityFilter(TransporterJob.state, "queued").apply(stmt)
    stmt = OrderBy(TransporterJob.created_at, "desc").apply(stmt)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import Select, false

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.orm import InstrumentedAttribute

SortOrder = Literal["asc", "desc"]


class StatementFilter(ABC):
    @abstractmethod
    def apply(self, statement: Select[Any]) -> Select[Any]: ...


class EqualityFilter(StatementFilter):
    """``column = value``."""

    def __init__(self, field: InstrumentedAttribute[Any], value: Any):
        self.field = field
        self.value = value

    def apply(self, statement: Select[Any]) -> Select[Any]:
        return statement.where(self.field == self.value)


class CollectionFilter(StatementFilter):
    """``column IN (...)``; an empty collection matches no rows."""

    def __init__(self, field: InstrumentedAttribute[Any], values: Iterable[Any]):
        self.field = field
        self.values = list(values)

    def apply(self, statement: Select[Any]) -> Select[Any]:
        if not self.values:
            return statement.where(false())
        return statement.where(self.field.in_(self.values))


class OnBeforeAfter(StatementFilter):
    """Inclusive timestamp window; either bound may be open.

    Bounds are compared as given, so callers convert them to the
    column's zone (UTC for every timestamp in this schema) first.
    """

    def __init__(
        self,
        field: InstrumentedAttribute[Any],
        *,
        on_or_after: datetime | None = None,
        on_or_before: datetime | None = None,
    ):
        self.field = field
        self.on_or_after = on_or_after
        self.on_or_before = on_or_before

    def apply(self, statement: Select[Any]) -> Select[Any]:
        if self.on_or_after is not None:
            statement = statement.where(self.field >= self.on_or_after)
        if self.on_or_before is not None:
            statement = statement.where(self.field <= self.on_or_before)
        return statement


class OrderBy(StatementFilter):
    """Sort by one column, then by primary key so pages are stable."""

    def __init__(
        self,
        field: InstrumentedAttribute[Any],
        sort_order: SortOrder = "asc",
        *,
        tiebreaker: InstrumentedAttribute[Any] | None = None,
    ):
        self.field = field
        self.sort_order = sort_order
        self.tiebreaker = tiebreaker

    def apply(self, statement: Select[Any]) -> Select[Any]:
        direction = "desc" if self.sort_order == "desc" else "asc"
        statement = statement.order_by(getattr(self.field, direction)())
        if self.tiebreaker is not None:
            statement = statement.order_by(getattr(self.tiebreaker, direction)())
        return statement


class FilterGroup(StatementFilter):
    """Apply filters in sequence (AND)."""

    def __init__(self, filters: Sequence[StatementFilter]):
        self.filters = list(filters)

    def apply(self, statement: Select[Any]) -> Select[Any]:
        for clause in self.filters:
            statement = clause.apply(statement)
        return statement


__all__ = [
    "CollectionFilter",
    "EqualityFilter",
    "FilterGroup",
    "OnBeforeAfter",
    "OrderBy",
    "SortOrder",
    "StatementFilter",
]
