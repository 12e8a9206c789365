"""Tests for packets.py: requests, responses and notification frames."""

import json

import pytest

from sony.audiocontrol import (
    CommandRequest,
    CommandResponse,
    DeviceError,
    ErrorCodes,
    IllegalState,
    NoSuchMethod,
    NotificationFrame,
    ParseError,
    UnsupportedOperation,
    flatten,
    matches_zone,
    parse_frame,
)

# --- zones ---


@pytest.mark.parametrize(
    "output,zone,expected",
    [
        (None, "", True),
        ("", "", True),
        ("extOutput:zone?zone=1", "", True),
        ("extOutput:zone?zone=2", "", False),
        ("extOutput:zone?zone=2", "extOutput:zone?zone=2", True),
        (None, "extOutput:zone?zone=2", False),
        ("extOutput:zone?zone=1", "extOutput:zone?zone=2", False),
    ],
)
def test_matches_zone(output, zone, expected):
    assert matches_zone(output, zone) is expected


# --- CommandRequest ---


def test_request_to_dict():
    request = CommandRequest("audio", "setAudioVolume", [{"volume": "5"}], "1.1", 7)
    assert request.to_dict() == {
        "method": "setAudioVolume",
        "id": 7,
        "params": [{"volume": "5"}],
        "version": "1.1",
    }
    assert json.loads(request.to_json())["id"] == 7


def test_request_from_dict_defaults():
    request = CommandRequest.from_dict("system", {"method": "getPowerStatus"})
    assert request == CommandRequest("system", "getPowerStatus", [], "1.0", 1)


def test_request_from_dict_missing_method():
    with pytest.raises(ParseError):
        CommandRequest.from_dict("system", {"id": 1})


# --- CommandResponse ---


def test_response_result():
    response = CommandResponse.from_dict({"id": 3, "result": [{"status": "active"}]})
    assert response.raise_for_error() == [{"status": "active"}]


def test_response_scalar_result_is_wrapped():
    response = CommandResponse.from_dict({"id": 3, "result": "ok"})
    assert response.result == ["ok"]


@pytest.mark.parametrize(
    "code,exception",
    [
        (ErrorCodes.ILLEGAL_STATE, IllegalState),
        (ErrorCodes.NO_SUCH_METHOD, NoSuchMethod),
        (ErrorCodes.UNSUPPORTED_OPERATION, UnsupportedOperation),
    ],
)
def test_response_error(code, exception):
    response = CommandResponse.from_dict({"id": 3, "error": [int(code), "failed"]})
    with pytest.raises(exception) as info:
        response.raise_for_error()
    assert info.value.code == code
    assert info.value.message == "failed"


def test_response_unknown_error_code():
    response = CommandResponse(1, error=[40000, "Display Off"])
    with pytest.raises(DeviceError) as info:
        response.raise_for_error()
    assert type(info.value) is DeviceError
    assert info.value.code == 40000


def test_response_without_result_or_error():
    with pytest.raises(DeviceError):
        CommandResponse(1).raise_for_error()


def test_response_from_non_object():
    with pytest.raises(DeviceError):
        CommandResponse.from_dict([1, 2])


def test_response_responds_to():
    request = CommandRequest("audio", "x", id=5)
    assert CommandResponse(5, result=[]).responds_to(request)
    assert not CommandResponse(6, result=[]).responds_to(request)


# --- flatten ---


def test_flatten_nested_and_plain():
    assert flatten([[{"a": 1}, {"b": 2}], {"c": 3}]) == [{"a": 1}, {"b": 2}, {"c": 3}]


def test_flatten_rejects_scalars():
    with pytest.raises(ParseError):
        flatten(["text"])


# --- parse_frame ---


def test_parse_notification():
    frame = parse_frame(
        '{"method": "notifyVolumeInformation", "params": [{"volume": 5}], "version": "1.0"}'
    )
    assert frame == NotificationFrame("notifyVolumeInformation", [{"volume": 5}], "1.0")
    assert frame.items() == [{"volume": 5}]


def test_parse_response():
    frame = parse_frame('{"id": 2, "result": []}')
    assert frame == CommandResponse(2, [], None)


@pytest.mark.parametrize(
    "data",
    [
        "not json",
        "[1, 2]",
        '{"foo": 1}',
        '{"method": "notifyVolumeInformation", "params": "x"}',
    ],
)
def test_parse_invalid(data):
    with pytest.raises(ParseError):
        parse_frame(data)
