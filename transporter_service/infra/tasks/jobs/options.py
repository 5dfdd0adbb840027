"""Typed option sets for each transporter job variant.

Options are persisted as a plain JSON mapping. Each variant parses that
mapping into its own pydantic model at the store boundary, typecasting the
known keys while keeping any unknown keys as-is (``extra="allow"``).

Example:
    opts = UploadOptions.model_validate({"package": "/tmp/abc.itmsp", "delete": "1"})
    opts.delete        # True
    opts.target()      # "abc"
    opts.to_mapping()  # {"package": "/tmp/abc.itmsp", "delete": True}
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

PACKAGE_SUFFIX = ".itmsp"


def to_bool(value: Any) -> Any:
    """Typecast form-style boolean values.

    Strings are true only for ``"true"`` and ``"1"``; integers only for ``1``.
    Anything else is returned unchanged.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value in ("true", "1")
    if isinstance(value, int):
        return value == 1
    return value


class JobOptions(BaseModel):
    """Base option set: no known keys, everything passed through."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    def target(self) -> str | None:
        """Short label for what the job operates on."""
        return None

    def to_mapping(self) -> dict[str, Any]:
        """Flatten back to the persisted mapping, keeping only keys that were given."""
        return self.model_dump(mode="json", exclude_unset=True)

    @classmethod
    def typecast(cls, options: dict[str, Any] | None) -> dict[str, Any]:
        return cls.model_validate(options or {}).to_mapping()


class PackageOptions(JobOptions):
    package: str | None = None
    package_id: str | None = None

    def target(self) -> str | None:
        if self.package_id:
            return str(self.package_id)
        if self.package:
            name = PurePath(self.package).name
            return name.removesuffix(PACKAGE_SUFFIX)
        return None


class UploadOptions(PackageOptions):
    transport: str | None = None
    rate: int | None = None
    delete: bool | None = None
    batch: bool | None = None
    log_history: bool | None = None
    success: str | None = None
    failure: str | None = None

    @field_validator("delete", "batch", "log_history", mode="before")
    @classmethod
    def _cast_booleans(cls, value: Any) -> Any:
        return to_bool(value)

    @field_validator("rate", mode="before")
    @classmethod
    def _cast_rate(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class VerifyOptions(PackageOptions):
    verify_assets: bool | None = None

    @field_validator("verify_assets", mode="before")
    @classmethod
    def _cast_booleans(cls, value: Any) -> Any:
        return to_bool(value)


class SchemaOptions(JobOptions):
    type: str | None = None
    version: str | None = None

    def target(self) -> str | None:
        if not (self.type or self.version):
            return None
        return f"{self.type or ''}-{self.version or ''}"


class LookupOptions(JobOptions):
    vendor_id: str | None = None
    apple_id: str | None = None
    destination: str | None = None

    def target(self) -> str | None:
        return self.vendor_id or self.apple_id


class StatusOptions(JobOptions):
    vendor_id: str | None = None

    def target(self) -> str | None:
        return self.vendor_id


class ProvidersOptions(JobOptions):
    pass


__all__ = [
    "JobOptions",
    "LookupOptions",
    "PackageOptions",
    "ProvidersOptions",
    "SchemaOptions",
    "StatusOptions",
    "UploadOptions",
    "VerifyOptions",
    "to_bool",
]
