"""Search criteria and ordering for transporter job listings.

Builds filters from untrusted request parameters. Only allow-listed keys
become conditions; an unknown order column falls back to ``created_at``;
an unparsable date range is dropped rather than reported.

Example:
    query = SearchQueryBuilder().build(
        {"state": "failure", "account_id": "7", "order": "account:asc"}
    )
    stmt = query.apply(select(TransporterJob))
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect

from transporter_service.core.database import (
    EqualityFilter,
    FilterGroup,
    OnBeforeAfter,
    OrderBy,
)
from transporter_service.infra.tasks.jobs.models import TYPE_SUFFIX, Account, TransporterJob

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.orm import InstrumentedAttribute

    from transporter_service.core.database import StatementFilter
    from transporter_service.core.database.filters import SortOrder

logger = logging.getLogger(__name__)

SEARCH_FIELDS: tuple[str, ...] = ("priority", "target", "type", "state", "account_id")
ACCOUNT_ORDER_KEY = "account"
DEFAULT_ORDER_COLUMN = "created_at"


@dataclass(slots=True)
class JobSearchQuery:
    """Filters and ordering produced by ``SearchQueryBuilder``.

    Attributes:
        criteria: Column name -> required value
        updated_at_range: Inclusive (from, to) bounds in UTC, if any
        order_column: Column to sort by
        order_direction: "asc" or "desc"
        requires_account_join: Whether ``order_column`` lives on accounts
    """

    criteria: dict[str, Any] = field(default_factory=dict)
    updated_at_range: tuple[datetime, datetime] | None = None
    order_column: InstrumentedAttribute[Any] = TransporterJob.created_at
    order_direction: SortOrder = "desc"
    requires_account_join: bool = False

    def filters(self) -> list[StatementFilter]:
        result: list[StatementFilter] = [
            EqualityFilter(getattr(TransporterJob, name), value)
            for name, value in self.criteria.items()
        ]
        if self.updated_at_range is not None:
            start, end = self.updated_at_range
            result.append(
                OnBeforeAfter(TransporterJob.updated_at, on_or_after=start, on_or_before=end)
            )
        result.append(
            OrderBy(self.order_column, self.order_direction, tiebreaker=TransporterJob.id)
        )
        return result

    def apply(self, statement: Select[Any]) -> Select[Any]:
        if self.requires_account_join:
            statement = statement.join(Account, TransporterJob.account_id == Account.id)
        return FilterGroup(self.filters()).apply(statement)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _normalize_type(value: str) -> str:
    name = value.strip()
    name = name[0].upper() + name[1:]
    return name if name.endswith(TYPE_SUFFIX) else name + TYPE_SUFFIX


def _to_utc(value: datetime) -> datetime:
    # Naive input is local time
    return value.astimezone().astimezone(UTC)


def _end_of_day(value: datetime) -> datetime:
    local = value.astimezone()
    return local.replace(hour=23, minute=59, second=59, microsecond=999999)


class SearchQueryBuilder:
    """Turns a request parameter mapping into a ``JobSearchQuery``.

    Recognized keys: ``priority``, ``target``, ``type``, ``state``,
    ``account_id``, ``updated_at_from``, ``updated_at_to`` and ``order``
    (``"column"`` or ``"column:asc"``). Everything else is ignored.
    """

    def build(self, params: Mapping[str, Any]) -> JobSearchQuery:
        column, direction, join = self.order_by(params.get("order"))
        return JobSearchQuery(
            criteria=self.criteria(params),
            updated_at_range=self.updated_at_range(params),
            order_column=column,
            order_direction=direction,
            requires_account_join=join,
        )

    def criteria(self, params: Mapping[str, Any]) -> dict[str, Any]:
        criteria: dict[str, Any] = {}
        for name in SEARCH_FIELDS:
            value = params.get(name)
            if _is_blank(value):
                continue

            if name == "account_id":
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    logger.debug("Ignoring non-numeric account_id", extra={"value": str(value)})
                    continue
            elif name == "type":
                value = _normalize_type(str(value))
            else:
                value = str(value).strip()

            criteria[name] = value
        return criteria

    def updated_at_range(self, params: Mapping[str, Any]) -> tuple[datetime, datetime] | None:
        """Parse ``updated_at_from``/``updated_at_to`` as local times.

        The upper bound is the end of its day, defaulting to the end of the
        lower bound's day. Any parse error drops the whole range.
        """
        start_value = params.get("updated_at_from")
        if _is_blank(start_value):
            return None

        end_value = params.get("updated_at_to")
        try:
            start = datetime.fromisoformat(str(start_value).strip())
            end = start if _is_blank(end_value) else datetime.fromisoformat(str(end_value).strip())
        except ValueError:
            logger.debug(
                "Ignoring invalid updated_at range",
                extra={"updated_at_from": str(start_value), "updated_at_to": str(end_value)},
            )
            return None

        return _to_utc(start), _to_utc(_end_of_day(end))

    def order_by(self, order: Any) -> tuple[InstrumentedAttribute[Any], SortOrder, bool]:
        """Resolve ``"column[:direction]"`` to an allow-listed column.

        Returns:
            (column, direction, requires_account_join)
        """
        parts = str(order or "").split(":")
        name = parts[0].strip()
        direction: SortOrder = "asc" if len(parts) > 1 and parts[1] == "asc" else "desc"

        if name == ACCOUNT_ORDER_KEY:
            return Account.username, direction, True

        columns = inspect(TransporterJob).columns
        if name not in columns:
            name = DEFAULT_ORDER_COLUMN
        return getattr(TransporterJob, name), direction, False


__all__ = ["JobSearchQuery", "SEARCH_FIELDS", "SearchQueryBuilder"]
