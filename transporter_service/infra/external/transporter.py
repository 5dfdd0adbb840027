"""Adapter for Apple's iTMSTransporter command line tool.

Jobs hand the adapter a command (``"Upload"``, ``"Lookup"``, ...) and their
options; the adapter turns that into an ``iTMSTransporter -m <mode>`` call,
streams the tool's output into the job log while it runs, and reports the
exit status. The log always receives both streams; ``print_stdout`` and
``print_stderr`` only control echoing to the console.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import logging
from pathlib import Path
import sys
from typing import Any, BinaryIO, Protocol, TextIO

from transporter_service.core.settings import TransporterSettings, get_transporter_settings

logger = logging.getLogger(__name__)

MODES: dict[str, str] = {
    "Upload": "upload",
    "Verify": "verify",
    "Schema": "generateSchema",
    "Lookup": "lookupMetadata",
    "Status": "statusAll",
    "Providers": "provider",
}

# option key -> command line flag
VALUE_FLAGS: tuple[tuple[str, str], ...] = (
    ("username", "-u"),
    ("password", "-p"),
    ("shortname", "-s"),
    ("itc_provider", "-itc_provider"),
    ("package", "-f"),
    ("vendor_id", "-vendor_id"),
    ("apple_id", "-apple_id"),
    ("transport", "-t"),
    ("rate", "-k"),
    ("destination", "-destination"),
    ("success", "-success"),
    ("failure", "-failure"),
)

# option key -> flag emitted when the option is true
SWITCH_FLAGS: tuple[tuple[str, str], ...] = (
    ("delete", "-delete"),
    ("batch", "-batch"),
    ("log_history", "-loghistory"),
)

CHUNK_SIZE = 4096

REDACTED = "********"


class TransporterError(Exception):
    """Raised when the transporter tool cannot be run or exits non-zero."""

    def __init__(self, message: str, *, command: str, exit_status: int | None = None) -> None:
        self.command = command
        self.exit_status = exit_status
        super().__init__(message)


class TransporterRunner(Protocol):
    """Runs one transporter command for a job."""

    async def run(self, command: str, options: Mapping[str, Any]) -> Any: ...


def build_arguments(command: str, options: Mapping[str, Any]) -> list[str]:
    """Translate a job command and its options into tool arguments.

    Raises:
        TransporterError: ``command`` has no transporter mode.
    """
    mode = MODES.get(command)
    if mode is None:
        raise TransporterError(f"Unknown transporter command: {command}", command=command)

    args = ["-m", mode]
    for key, flag in VALUE_FLAGS:
        value = options.get(key)
        if value not in (None, ""):
            args.extend([flag, str(value)])
    for key, flag in SWITCH_FLAGS:
        if options.get(key) is True:
            args.append(flag)

    # Asset verification is on unless explicitly turned off
    if command == "Verify" and options.get("verify_assets") is False:
        args.append("-disableAssetVerification")

    if command == "Schema":
        if options.get("version"):
            args.extend(["-schemaVersion", str(options["version"])])
        if options.get("type"):
            args.extend(["-schemaType", str(options["type"])])

    return args


def redact(args: list[str]) -> list[str]:
    """Copy of ``args`` safe to log."""
    redacted = list(args)
    for index, arg in enumerate(redacted[:-1]):
        if arg == "-p":
            redacted[index + 1] = REDACTED
    return redacted


class ITMSTransporter:
    """Runs iTMSTransporter as a subprocess.

    Usage:
        runner = ITMSTransporter()
        result = await runner.run("Upload", {"username": "...", "package": "/x.itmsp"})
        # {"command": "Upload", "exit_status": 0}
    """

    def __init__(self, settings: TransporterSettings | None = None) -> None:
        self._settings = settings or get_transporter_settings()

    async def run(self, command: str, options: Mapping[str, Any]) -> dict[str, Any]:
        args = build_arguments(command, options)
        executable = self._settings.executable_path
        log_path = Path(options["log"]) if options.get("log") else None

        logger.info(
            "Running transporter",
            extra={"command": command, "argv": [executable, *redact(args)]},
        )

        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(
                "Failed to start transporter",
                extra={"command": command, "executable": executable, "error": str(e)},
            )
            raise TransporterError(
                f"Cannot execute {executable}: {e}", command=command
            ) from e

        assert proc.stdout is not None and proc.stderr is not None
        stderr = bytearray()
        log_file = self._open_log(log_path)
        try:
            await asyncio.gather(
                self._pump(
                    proc.stdout,
                    log_file,
                    echo=sys.stdout if self._settings.print_stdout else None,
                ),
                self._pump(
                    proc.stderr,
                    log_file,
                    echo=sys.stderr if self._settings.print_stderr else None,
                    capture=stderr,
                ),
            )
            await proc.wait()
        finally:
            if log_file is not None:
                log_file.close()

        if proc.returncode != 0:
            error_msg = stderr.decode(errors="replace").strip() or "Unknown error"
            logger.error(
                "Transporter failed",
                extra={"command": command, "returncode": proc.returncode, "stderr": error_msg},
            )
            raise TransporterError(
                f"{command} failed with exit status {proc.returncode}: {error_msg}",
                command=command,
                exit_status=proc.returncode,
            )

        logger.info("Transporter finished", extra={"command": command})
        return {"command": command, "exit_status": proc.returncode}

    @staticmethod
    def _open_log(log_path: Path | None) -> BinaryIO | None:
        if log_path is None:
            return None
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return log_path.open("ab")

    @staticmethod
    async def _pump(
        stream: asyncio.StreamReader,
        log_file: BinaryIO | None,
        *,
        echo: TextIO | None = None,
        capture: bytearray | None = None,
    ) -> None:
        """Copy ``stream`` into the job log as it arrives so readers can tail it."""
        while chunk := await stream.read(CHUNK_SIZE):
            if log_file is not None:
                log_file.write(chunk)
                log_file.flush()
            if echo is not None:
                echo.write(chunk.decode(errors="replace"))
                echo.flush()
            if capture is not None:
                capture.extend(chunk)


__all__ = [
    "MODES",
    "ITMSTransporter",
    "TransporterError",
    "TransporterRunner",
    "build_arguments",
    "redact",
]
