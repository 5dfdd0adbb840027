"""Errors raised by repositories instead of raw SQLAlchemy results."""

from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """A repository operation could not be completed."""


class NotFoundError(RepositoryError):
    """No row of ``model_name`` has primary key ``key``."""

    def __init__(self, model_name: str, key: Any) -> None:
        self.model_name = model_name
        self.key = key
        super().__init__(f"{model_name} {key!r} does not exist")
