import pytest

from flaglight import FlagControl
from flaglight.cli import build_parser, main, run
from flaglight.storage import MemoryCredentialStore, MemorySelectionStore

from conftest import TOKEN, DEVICE_A


@pytest.fixture
def stored_control(http, sleeper):
    return FlagControl(
        credential_store=MemoryCredentialStore(TOKEN),
        selection_store=MemorySelectionStore([DEVICE_A["id"]]),
        http_client=http,
        sleep=sleeper,
    )


def test_parser():
    args = build_parser().parse_args(["-v", "flag", "red", "--initial"])
    assert args.verbose
    assert (args.command, args.name, args.initial) == ("flag", "red", True)

    args = build_parser().parse_args(["select", "a", "b"])
    assert args.ids == ["a", "b"]

    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.asyncio
async def test_select(control, selection_store, capsys):
    args = build_parser().parse_args(["select", "b", "a"])

    assert await run(args, control) == 0
    assert selection_store.get() == {"a", "b"}
    assert "a, b" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_flag(stored_control, api, capsys):
    args = build_parser().parse_args(["flag", "yellow"])

    assert await run(args, stored_control) == 0
    assert api.calls[-1] == ("PUT", f"/v1/lights/{DEVICE_A['id']}/state")
    assert "applied" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_race_flag_without_token(control, api, capsys):
    args = build_parser().parse_args(["race-flag", "RED"])

    assert await run(args, control) == 1
    assert api.requests == []
    assert "disconnected" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_devices(stored_control, capsys):
    args = build_parser().parse_args(["devices"])

    assert await run(args, stored_control) == 0
    out = capsys.readouterr().out
    assert "Left Lamp" in out
    assert "Right Lamp" in out
    assert "offline" in out


@pytest.mark.asyncio
async def test_status_with_rejected_token(stored_control, api, capsys):
    api.queue(401)
    args = build_parser().parse_args(["status"])

    assert await run(args, stored_control) == 1
    out = capsys.readouterr().out
    assert "invalid_credential" in out
    assert "Invalid LIFX API token" in out


def test_main_reports_bad_config(tmp_path, capsys):
    assert main(["-c", str(tmp_path / "missing.yaml"), "status"]) == 1
    assert "Config file not found" in capsys.readouterr().err
