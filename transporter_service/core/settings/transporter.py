"""Transporter tool and job log settings.

Environment variables use TRANSPORTER_ prefix.
Example: TRANSPORTER_OUTPUT_LOG_DIRECTORY=/var/log/transporter
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransporterSettings(BaseSettings):
    """Where the iTMSTransporter binary lives and where job logs are written."""

    output_log_directory: Path = Field(
        default=Path("."),
        description="Directory holding one '{job id}.log' file per job.",
    )

    path: Path | None = Field(
        default=None,
        description="Directory containing the iTMSTransporter executable. Uses PATH when unset.",
    )

    executable: str = Field(
        default="iTMSTransporter",
        min_length=1,
        description="Name of the transporter executable.",
    )

    print_stdout: bool = Field(
        default=True,
        description="Echo the tool's stdout to the console. The job log always gets it.",
    )

    print_stderr: bool = Field(
        default=True,
        description="Echo the tool's stderr to the console. The job log always gets it.",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def executable_path(self) -> str:
        """Full path to the executable, or the bare name for PATH lookup."""
        if self.path is None:
            return self.executable
        return str(self.path / self.executable)

    model_config = SettingsConfigDict(
        env_prefix="TRANSPORTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
