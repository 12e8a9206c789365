import argparse
import asyncio
import json
import logging
import sys

from .client import Client, ClientContext
from .config import DEFAULT_PORT, ReceiverConfig
from .dataclasses import DEFAULT_SOUND_FIELDS, InputEntry, SoundFieldEntry
from .display import build_table, print_state
from .dummy import DummyServer
from .packets import MAIN_ZONE
from .receiver import Receiver
from .server import ServerContext

_LOGGER = logging.getLogger(__name__)


def auto_params(x: str) -> list:
    value = json.loads(x)
    if not isinstance(value, list):
        value = [value]
    return value


parser = argparse.ArgumentParser(description="Communicate with Sony receivers.")
parser.add_argument("--verbose", action="store_true")

subparsers = parser.add_subparsers(dest="subcommand")

parser_state = subparsers.add_parser("state")
parser_state.add_argument("--host", required=True)
parser_state.add_argument("--port", default=DEFAULT_PORT, type=int)
parser_state.add_argument("--zone", default=MAIN_ZONE)
parser_state.add_argument("--volume", type=int)
parser_state.add_argument("--max-volume", default=100, type=int)
parser_state.add_argument("--mute", action=argparse.BooleanOptionalAction)
parser_state.add_argument("--input")
parser_state.add_argument("--sound-field")
parser_state.add_argument("--monitor", action="store_true")
parser_state.add_argument("--power-on", action=argparse.BooleanOptionalAction)
parser_state.add_argument("--power-off", action=argparse.BooleanOptionalAction)

parser_request = subparsers.add_parser("request")
parser_request.add_argument("--host", required=True)
parser_request.add_argument("--port", default=DEFAULT_PORT, type=int)
parser_request.add_argument("--service", required=True)
parser_request.add_argument("--method", required=True)
parser_request.add_argument("--params", default=[], type=auto_params)
parser_request.add_argument("--version", default="1.0")

parser_server = subparsers.add_parser("server")
parser_server.add_argument("--host", default="localhost")
parser_server.add_argument("--port", default=DEFAULT_PORT, type=int)
parser_server.add_argument("--model", default="STR-DN1080")


async def run_request(args: argparse.Namespace) -> None:
    client = Client(args.host, args.port)
    async with ClientContext(client):
        result = await client.request(args.service, args.method, args.params, args.version)
        print(json.dumps(result, indent=2))


def _config(args: argparse.Namespace) -> ReceiverConfig:
    inputs = [InputEntry(args.input, args.input)] if args.input else []
    sound_fields = list(DEFAULT_SOUND_FIELDS)
    if args.sound_field and all(e.value != args.sound_field for e in sound_fields):
        sound_fields.append(SoundFieldEntry(args.sound_field, args.sound_field))
    return ReceiverConfig(
        args.host,
        port=args.port,
        zone=args.zone,
        max_volume=args.max_volume,
        inputs=inputs,
        sound_fields=sound_fields,
    )


async def run_state(args: argparse.Namespace) -> None:
    receiver = Receiver(_config(args))
    async with ClientContext(receiver.client):
        for service in (receiver.power, receiver.volume, receiver.sound_fields[0]):
            await service.get_current_state()
        await receiver.volume.get_mute()
        if receiver.inputs:
            await receiver.inputs[0].get_current_state()

        if args.volume is not None:
            await receiver.volume.set_state(args.volume)

        if args.mute is not None:
            await receiver.volume.set_mute(args.mute)

        if args.input is not None:
            await receiver.inputs[0].activate()

        if args.sound_field is not None:
            await receiver.sound_fields[0].set_state(args.sound_field)

        if args.power_on:
            await receiver.power.set_state(True)

        if args.power_off:
            await receiver.power.set_state(False)

        if args.monitor:
            await _monitor(receiver)
        else:
            print_state(receiver.state, receiver.config.name)


def _subscriptions(receiver: Receiver):
    return {
        source: subscription.state
        for source, subscription in receiver.listener.subscriptions.items()
    }


async def _monitor(receiver: Receiver) -> None:
    async with receiver.listener:
        try:
            from rich.live import Live
        except ImportError:
            print_state(receiver.state)
            while True:
                await receiver.state.wait_changed()
                print_state(receiver.state)

        table = build_table(receiver.state, receiver.config.name, _subscriptions(receiver))
        with Live(table, refresh_per_second=4) as live:
            while True:
                await receiver.state.wait_changed()
                live.update(
                    build_table(receiver.state, receiver.config.name, _subscriptions(receiver))
                )


async def run_server(args: argparse.Namespace) -> None:
    server = DummyServer(args.host, args.port, args.model)
    async with ServerContext(server):
        while True:
            await asyncio.sleep(delay=1)


def main() -> None:
    args = parser.parse_args()

    if args.verbose:
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)

        channel = logging.StreamHandler(sys.stdout)
        channel.setLevel(logging.DEBUG)
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        channel.setFormatter(formatter)
        root.addHandler(channel)

    if args.subcommand == "request":
        asyncio.run(run_request(args))
    elif args.subcommand == "state":
        asyncio.run(run_state(args))
    elif args.subcommand == "server":
        asyncio.run(run_server(args))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
