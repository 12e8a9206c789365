"""Dummy server for development and testing.

Provides a simulated Sony receiver that answers the audio control api with
in-memory state and pushes the same notifications a real device sends after
a change. Useful for integration testing without physical hardware.
"""

from typing import Any

from .exceptions import IllegalArgument, IllegalState
from .packets import flatten, is_main_zone
from .server import Server

MAIN_OUTPUT = "extOutput:zone?zone=1"
ZONE2_OUTPUT = "extOutput:zone?zone=2"

DEFAULT_INPUTS = (
    "extInput:tv",
    "extInput:hdmi?port=1",
    "extInput:hdmi?port=2",
    "extInput:btAudio",
)
DEFAULT_SOUND_FIELDS = ("dolbySurround", "2chStereo", "multiChStereo", "direct")


def _output(params: list) -> str:
    for item in flatten(params):
        output = item.get("output")
        if output is not None and not is_main_zone(output):
            return output
    return MAIN_OUTPUT


class DummyServer(Server):
    """Simulated receiver with a main zone and a second zone.

    Args:
        host: Bind address for the HTTP server.
        port: Port number, 0 picks a free one.
        model: Device model name.
    """

    def __init__(self, host: str, port: int, model: str = "STR-DN1080") -> None:
        super().__init__(host, port, model)

        self._power = True
        self._zones = {MAIN_OUTPUT: True, ZONE2_OUTPUT: False}
        self._volume = {MAIN_OUTPUT: 20, ZONE2_OUTPUT: 10}
        self._mute = {MAIN_OUTPUT: False, ZONE2_OUTPUT: False}
        self._input = {MAIN_OUTPUT: DEFAULT_INPUTS[0], ZONE2_OUTPUT: DEFAULT_INPUTS[0]}
        self._sound_field = DEFAULT_SOUND_FIELDS[0]
        self.max_volume = 74
        self.quick_start = "off"

        self.register_handler("system", "getPowerStatus", self.get_power)
        self.register_handler("system", "setPowerStatus", self.set_power)
        self.register_handler("system", "setPowerSettings", self.set_power_settings)
        self.register_handler(
            "avContent", "getCurrentExternalTerminalsStatus", self.get_terminals
        )
        self.register_handler("avContent", "setActiveTerminal", self.set_terminal)
        self.register_handler("avContent", "getPlayingContentInfo", self.get_playing_content)
        self.register_handler("avContent", "setPlayContent", self.set_play_content)
        self.register_handler("audio", "getVolumeInformation", self.get_volume)
        self.register_handler("audio", "setAudioVolume", self.set_volume)
        self.register_handler("audio", "setAudioMute", self.set_mute)
        self.register_handler("audio", "getSoundSettings", self.get_sound_settings)
        self.register_handler("audio", "setSoundSettings", self.set_sound_settings)

    def _require_power(self, output: str) -> None:
        if not self._power or not self._zones[output]:
            raise IllegalState("Display Off")

    def _volume_information(self, output: str) -> dict[str, Any]:
        return {
            "output": output,
            "volume": self._volume[output],
            "mute": "on" if self._mute[output] else "off",
            "minVolume": 0,
            "maxVolume": self.max_volume,
            "step": 1,
        }

    # --- system --------------------------------------------------------------

    def get_power(self, **kwargs) -> list:
        return [{"status": "active" if self._power else "standby"}]

    async def set_power(self, params: list, **kwargs) -> list:
        status = flatten(params)[0].get("status")
        if status not in ("active", "standby"):
            raise IllegalArgument(f"Invalid status {status!r}")
        await self._switch_main(status == "active")
        return []

    async def _switch_main(self, active: bool) -> None:
        # the main zone terminal follows the system power state
        self._power = active
        self._zones[MAIN_OUTPUT] = active
        await self.notify(
            "system", "notifyPowerStatus", [{"status": "active" if active else "standby"}]
        )
        await self.notify(
            "avContent",
            "notifyExternalTerminalStatus",
            [{"uri": MAIN_OUTPUT, "active": "active" if active else "inactive"}],
        )

    def set_power_settings(self, params: list, **kwargs) -> list:
        for param in flatten(params):
            for setting in param.get("settings", []):
                if setting.get("target") == "quickStartMode":
                    self.quick_start = setting.get("value")
        return []

    # --- avContent -----------------------------------------------------------

    def get_terminals(self, **kwargs) -> list:
        return [
            [
                {
                    "uri": uri,
                    "title": "Main Zone" if uri == MAIN_OUTPUT else "Zone2",
                    "active": "active" if active else "inactive",
                    "meta": "meta:zone:output",
                }
                for uri, active in self._zones.items()
            ]
        ]

    async def set_terminal(self, params: list, **kwargs) -> list:
        item = flatten(params)[0]
        uri = item.get("uri")
        if uri not in self._zones:
            raise IllegalArgument(f"Unknown terminal {uri!r}")
        if uri == MAIN_OUTPUT:
            await self._switch_main(item.get("active") == "active")
            return []
        self._zones[uri] = item.get("active") == "active"
        await self.notify(
            "avContent",
            "notifyExternalTerminalStatus",
            [{"uri": uri, "active": item.get("active")}],
        )
        return []

    def get_playing_content(self, params: list, **kwargs) -> list:
        output = _output(params)
        self._require_power(output)
        return [[{"output": output, "uri": self._input[output], "source": self._input[output]}]]

    async def set_play_content(self, params: list, **kwargs) -> list:
        output = _output(params)
        uri = flatten(params)[0].get("uri")
        if uri not in DEFAULT_INPUTS:
            raise IllegalArgument(f"Unknown input {uri!r}")
        self._require_power(output)
        self._input[output] = uri
        await self.notify(
            "avContent", "notifyPlayingContentInfo", [{"output": output, "uri": uri}]
        )
        return []

    # --- audio ---------------------------------------------------------------

    def get_volume(self, params: list, **kwargs) -> list:
        return [[self._volume_information(_output(params))]]

    async def set_volume(self, params: list, **kwargs) -> list:
        output = _output(params)
        value = str(flatten(params)[0].get("volume"))
        self._require_power(output)
        try:
            if value.startswith(("+", "-")):
                volume = self._volume[output] + int(value)
            else:
                volume = int(value)
        except ValueError:
            raise IllegalArgument(f"Invalid volume {value!r}")
        self._volume[output] = max(0, min(volume, self.max_volume))
        await self.notify(
            "audio", "notifyVolumeInformation", [self._volume_information(output)]
        )
        return []

    async def set_mute(self, params: list, **kwargs) -> list:
        output = _output(params)
        mute = flatten(params)[0].get("mute")
        self._require_power(output)
        if mute == "toggle":
            self._mute[output] = not self._mute[output]
        elif mute in ("on", "off"):
            self._mute[output] = mute == "on"
        else:
            raise IllegalArgument(f"Invalid mute {mute!r}")
        await self.notify(
            "audio", "notifyVolumeInformation", [self._volume_information(output)]
        )
        return []

    def get_sound_settings(self, **kwargs) -> list:
        return [
            [
                {
                    "target": "soundField",
                    "currentValue": self._sound_field,
                    "type": "enumTarget",
                    "isAvailable": True,
                    "candidate": [{"value": v, "isAvailable": True} for v in DEFAULT_SOUND_FIELDS],
                }
            ]
        ]

    async def set_sound_settings(self, params: list, **kwargs) -> list:
        for param in flatten(params):
            for setting in param.get("settings", []):
                if setting.get("target") != "soundField":
                    continue
                if setting.get("value") not in DEFAULT_SOUND_FIELDS:
                    raise IllegalArgument(f"Unknown sound field {setting.get('value')!r}")
                self._sound_field = setting["value"]
                await self.notify(
                    "audio",
                    "notifySettingsUpdate",
                    [
                        {
                            "apiMappingUpdate": {
                                "target": "soundField",
                                "currentValue": self._sound_field,
                            }
                        }
                    ],
                )
        return []
