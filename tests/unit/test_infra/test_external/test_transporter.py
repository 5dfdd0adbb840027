"""Tests for the iTMSTransporter command line adapter."""

from __future__ import annotations

import asyncio
import stat
import sys

import pytest

from transporter_service.core.settings import TransporterSettings
from transporter_service.infra.external import ITMSTransporter, TransporterError
from transporter_service.infra.external.transporter import build_arguments, redact


def test_upload_arguments_follow_flag_order():
    args = build_arguments(
        "Upload",
        {
            "password": "p",
            "username": "u",
            "package": "/x/abc.itmsp",
            "rate": 500,
            "transport": "Aspera",
            "log": "/tmp/1.log",
            "delete": True,
            "shortname": "",
        },
    )

    assert args == [
        "-m", "upload",
        "-u", "u",
        "-p", "p",
        "-f", "/x/abc.itmsp",
        "-t", "Aspera",
        "-k", "500",
        "-delete",
    ]  # fmt: skip


def test_schema_arguments():
    args = build_arguments("Schema", {"type": "strict", "version": "film5.0"})

    assert args == ["-m", "generateSchema", "-schemaVersion", "film5.0", "-schemaType", "strict"]


@pytest.mark.parametrize(
    ("command", "mode"),
    [
        ("Verify", "verify"),
        ("Lookup", "lookupMetadata"),
        ("Status", "statusAll"),
        ("Providers", "provider"),
    ],
)
def test_modes(command, mode):
    assert build_arguments(command, {})[:2] == ["-m", mode]


@pytest.mark.parametrize(
    ("option", "flag"),
    [("delete", "-delete"), ("batch", "-batch"), ("log_history", "-loghistory")],
)
def test_upload_switches_only_when_true(option, flag):
    assert build_arguments("Upload", {option: True})[2:] == [flag]
    assert build_arguments("Upload", {option: False}) == ["-m", "upload"]


@pytest.mark.parametrize(("option", "flag"), [("success", "-success"), ("failure", "-failure")])
def test_upload_result_directories(option, flag):
    assert build_arguments("Upload", {option: "/done"})[2:] == [flag, "/done"]


def test_verify_assets_disabled_only_when_false():
    assert build_arguments("Verify", {"verify_assets": False})[2:] == ["-disableAssetVerification"]
    assert build_arguments("Verify", {"verify_assets": True}) == ["-m", "verify"]
    assert build_arguments("Verify", {}) == ["-m", "verify"]



def test_lookup_arguments():
    args = build_arguments("Lookup", {"apple_id": "123", "destination": "/tmp/out"})

    assert args == ["-m", "lookupMetadata", "-apple_id", "123", "-destination", "/tmp/out"]


def test_unknown_command_raises():
    with pytest.raises(TransporterError) as exc_info:
        build_arguments("Transporter", {})

    assert exc_info.value.command == "Transporter"


def test_redact_hides_password():
    assert redact(["-u", "u", "-p", "secret", "-f", "x"]) == ["-u", "u", "-p", "********", "-f", "x"]
    assert redact(["-p"]) == ["-p"]


def test_executable_path():
    assert TransporterSettings().executable_path == "iTMSTransporter"
    settings = TransporterSettings(path="/opt/itms/bin", executable="iTMSTransporter")
    assert settings.executable_path == "/opt/itms/bin/iTMSTransporter"


# ============================================================================
# Subprocess execution
# ============================================================================

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script")


@pytest.fixture
def fake_tool(tmp_path):
    """Write an executable script standing in for iTMSTransporter."""

    def _write(body: str) -> TransporterSettings:
        script = tmp_path / "fake-transporter"
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(script.stat().st_mode | stat.S_IEXEC)
        return TransporterSettings(path=tmp_path, executable="fake-transporter")

    return _write


@posix_only
async def test_run_appends_output_to_log(fake_tool, tmp_path):
    settings = fake_tool('echo "args: $*"\necho "warning" >&2\nexit 0')
    log_path = tmp_path / "logs" / "1.log"
    log_path.parent.mkdir()
    log_path.write_bytes(b"earlier\n")

    result = await ITMSTransporter(settings).run(
        "Lookup", {"vendor_id": "V1", "log": str(log_path)}
    )

    assert result == {"command": "Lookup", "exit_status": 0}
    lines = log_path.read_text().splitlines()
    assert lines[0] == "earlier"
    assert sorted(lines[1:]) == ["args: -m lookupMetadata -vendor_id V1", "warning"]


@posix_only
async def test_run_raises_on_non_zero_exit(fake_tool):
    settings = fake_tool('echo "bad credentials" >&2\nexit 3')

    with pytest.raises(TransporterError) as exc_info:
        await ITMSTransporter(settings).run("Providers", {})

    assert exc_info.value.exit_status == 3
    assert "bad credentials" in str(exc_info.value)


@posix_only
async def test_print_flags_only_control_console_echo(fake_tool, tmp_path, capsys):
    settings = fake_tool('echo "out"\necho "err" >&2').model_copy(
        update={"print_stdout": True, "print_stderr": False}
    )
    log_path = tmp_path / "2.log"

    await ITMSTransporter(settings).run("Providers", {"log": str(log_path)})

    assert sorted(log_path.read_text().splitlines()) == ["err", "out"]
    captured = capsys.readouterr()
    assert "out" in captured.out
    assert "err" not in captured.err


@posix_only
async def test_log_is_readable_while_tool_runs(fake_tool, tmp_path):
    settings = fake_tool('echo "started"\nsleep 2\necho "done"')
    log_path = tmp_path / "3.log"

    run = asyncio.create_task(
        ITMSTransporter(settings).run("Providers", {"log": str(log_path)})
    )
    for _ in range(100):
        if log_path.exists() and log_path.read_bytes():
            break
        await asyncio.sleep(0.05)
    mid_run = log_path.read_bytes()
    finished_early = run.done()
    await run

    assert mid_run == b"started\n"
    assert not finished_early
    assert log_path.read_bytes() == b"started\ndone\n"


async def test_missing_executable(tmp_path):
    settings = TransporterSettings(path=tmp_path, executable="does-not-exist")

    with pytest.raises(TransporterError) as exc_info:
        await ITMSTransporter(settings).run("Providers", {})

    assert exc_info.value.exit_status is None
