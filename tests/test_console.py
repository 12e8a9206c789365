"""Tests for console.py: argument parsing, helpers, and CLI dispatch."""

import argparse
import json
from unittest.mock import patch

import pytest

from sony.audiocontrol import CommandRequest
from sony.audiocontrol.console import _config, auto_params, main, parser, run_request, run_state

# --- Helper functions ---


def test_auto_params_list():
    assert auto_params('[{"output": ""}]') == [{"output": ""}]


def test_auto_params_object_is_wrapped():
    assert auto_params('{"status": "active"}') == [{"status": "active"}]


def test_auto_params_invalid():
    with pytest.raises(ValueError):
        auto_params("{nope")


# --- Argument parsing ---


def test_parse_state_minimal():
    args = parser.parse_args(["state", "--host", "192.168.1.1"])
    assert args.subcommand == "state"
    assert args.host == "192.168.1.1"
    assert args.port == 10000
    assert args.zone == ""
    assert args.volume is None
    assert args.mute is None
    assert args.input is None
    assert args.monitor is False
    assert args.power_on is None
    assert args.power_off is None


def test_parse_state_full():
    args = parser.parse_args(
        [
            "state",
            "--host",
            "10.0.0.1",
            "--port",
            "54480",
            "--zone",
            "extOutput:zone?zone=2",
            "--volume",
            "50",
            "--no-mute",
            "--input",
            "extInput:tv",
            "--sound-field",
            "direct",
            "--monitor",
            "--power-on",
        ]
    )
    assert args.port == 54480
    assert args.zone == "extOutput:zone?zone=2"
    assert args.volume == 50
    assert args.mute is False
    assert args.input == "extInput:tv"
    assert args.sound_field == "direct"
    assert args.monitor is True
    assert args.power_on is True


def test_parse_request():
    args = parser.parse_args(
        [
            "request",
            "--host",
            "h",
            "--service",
            "audio",
            "--method",
            "getVolumeInformation",
            "--params",
            '{"output": ""}',
            "--version",
            "1.1",
        ]
    )
    assert args.subcommand == "request"
    assert args.params == [{"output": ""}]
    assert args.version == "1.1"


def test_parse_server_defaults():
    args = parser.parse_args(["server"])
    assert args.subcommand == "server"
    assert args.host == "localhost"
    assert args.port == 10000
    assert args.model == "STR-DN1080"


def test_config_from_args():
    args = parser.parse_args(
        ["state", "--host", "h", "--input", "extInput:tv", "--sound-field", "direct"]
    )
    config = _config(args)
    assert [e.uri for e in config.inputs] == ["extInput:tv"]
    assert [e.value for e in config.sound_fields] == ["dolbySurround", "2chStereo", "direct"]


# --- main() dispatch ---


@pytest.mark.parametrize("subcommand", ["request", "state", "server"])
@patch("sony.audiocontrol.console.asyncio.run")
def test_main_dispatches(mock_run, subcommand):
    with patch.object(
        parser, "parse_args", return_value=argparse.Namespace(subcommand=subcommand, verbose=False)
    ):
        main()
    mock_run.assert_called_once()
    mock_run.call_args.args[0].close()


@patch("sony.audiocontrol.console.asyncio.run")
def test_main_verbose_sets_logging(mock_run):
    with patch.object(
        parser, "parse_args", return_value=argparse.Namespace(subcommand="request", verbose=True)
    ):
        main()
    mock_run.call_args.args[0].close()


def test_main_no_subcommand(capsys):
    """No subcommand prints help and runs nothing."""
    with (
        patch("sony.audiocontrol.console.asyncio.run") as mock_run,
        patch.object(
            parser,
            "parse_args",
            return_value=argparse.Namespace(subcommand=None, verbose=False),
        ),
    ):
        main()
    mock_run.assert_not_called()
    assert "usage" in capsys.readouterr().out


# --- against the dummy server ---


async def test_run_request(dummy, capsys):
    args = parser.parse_args(
        [
            "request",
            "--host",
            "127.0.0.1",
            "--port",
            str(dummy.port),
            "--service",
            "system",
            "--method",
            "getPowerStatus",
            "--version",
            "1.1",
        ]
    )
    await run_request(args)
    assert json.loads(capsys.readouterr().out) == [{"status": "active"}]


async def test_run_state_applies_changes(dummy):
    args = parser.parse_args(
        [
            "state",
            "--host",
            "127.0.0.1",
            "--port",
            str(dummy.port),
            "--volume",
            "30",
            "--mute",
            "--input",
            "extInput:btAudio",
            "--sound-field",
            "direct",
        ]
    )
    with patch("sony.audiocontrol.console.print_state") as mock_print:
        await run_state(args)

    state = mock_print.call_args.args[0]
    assert state.get_power() is True
    assert state.get_volume() == 30
    assert state.get_mute() is True
    assert state.get_input() == "extInput:btAudio"
    assert state.get_sound_field() == "direct"

    result = await _query(dummy, "audio", "getVolumeInformation", [{"output": ""}], "1.1")
    assert result[0][0]["volume"] == 30


async def test_run_state_power_off(dummy):
    args = parser.parse_args(
        ["state", "--host", "127.0.0.1", "--port", str(dummy.port), "--power-off"]
    )
    with patch("sony.audiocontrol.console.print_state") as mock_print:
        await run_state(args)
    assert mock_print.call_args.args[0].get_power() is False


async def _query(dummy, service, method, params, version):
    response = await dummy.process_request(CommandRequest(service, method, params, version))
    return response.raise_for_error()
