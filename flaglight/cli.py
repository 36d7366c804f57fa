"""
Command-line front end.

    flaglight connect <token>
    flaglight devices
    flaglight select <id> [<id> ...]
    flaglight flag red
    flaglight race-flag VIRTUAL_SC
    flaglight disconnect

The credential and selection persist in the state file named by the config
(storage.state_file), so each invocation resumes the previous session.
"""

import argparse
import logging
import sys
from typing import Optional

from colorama import Fore, Style

from .api import ApplyResult, FlagEffect, RaceFlag
from .config import load_config
from .exceptions import FlagLightError
from .interface import FlagControl
from .storage import YamlStore
from .utils import run_with_keyboard_interrupt, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flaglight", description="Drive LIFX lights from race-control flags")
    parser.add_argument("-c", "--config", help="YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--traffic", action="store_true", help="print every API request")
    commands = parser.add_subparsers(dest="command", required=True)

    connect = commands.add_parser("connect", help="store a LIFX token and connect")
    connect.add_argument("token")
    commands.add_parser("disconnect", help="forget the token and selection")
    commands.add_parser("status", help="show connection status")
    commands.add_parser("devices", help="list lights")

    select = commands.add_parser("select", help="add lights to the selection")
    select.add_argument("ids", nargs="+")
    deselect = commands.add_parser("deselect", help="remove lights from the selection")
    deselect.add_argument("ids", nargs="+")

    flag = commands.add_parser("flag", help="show a flag on the selected lights")
    flag.add_argument("name", help=", ".join(f.value for f in FlagEffect))
    flag.add_argument("--initial", action="store_true", help="use the session start sequence")

    race_flag = commands.add_parser("race-flag", help="show a race-control flag on the selected lights")
    race_flag.add_argument("name", help=", ".join(f.value for f in RaceFlag))
    return parser


def _print_status(control: FlagControl) -> None:
    status = control.status
    colour = Fore.GREEN if status.connected else Fore.RED
    line = colour + f"{status.state.value}" + Style.RESET_ALL
    if status.reason:
        line += f" ({status.reason.value})"
    print(line)
    if status.error:
        print(Fore.YELLOW + status.error.message + Style.RESET_ALL)
    if control.needs_reauthentication:
        print("Token rejected, run 'flaglight connect <token>' with a new token.")


def _print_result(result: ApplyResult) -> int:
    if result in (ApplyResult.APPLIED, ApplyResult.COALESCED):
        print(Fore.GREEN + result.value + Style.RESET_ALL)
        return 0
    print(Fore.RED + result.value + Style.RESET_ALL)
    return 1


async def run(args: argparse.Namespace, control: Optional[FlagControl] = None) -> int:
    if control is None:
        config = load_config(args.config)
        logger = setup_logging("DEBUG" if args.verbose else config.log_level, config.log_file)
        store = YamlStore(config.state_path, logger=logger)
        control = FlagControl(
            config=config,
            credential_store=store.credentials(),
            selection_store=store.selection(),
            print_traffic=args.traffic,
            logger=logger,
        )

    async with control:
        match args.command:
            case "connect":
                await control.connect(args.token)
                _print_status(control)
                return 0 if control.connected else 1
            case "disconnect":
                await control.disconnect()
                _print_status(control)
                return 0
            case "status":
                await control.resume()
                _print_status(control)
                return 0 if control.connected else 1
            case "devices":
                await control.resume()
                if not control.connected:
                    _print_status(control)
                    return 1
                for device in control.devices:
                    marker = Fore.GREEN + "*" if device.id in control.selection else " "
                    state = "" if device.connected else Fore.RED + " (offline)"
                    print(f"{marker} {device.id}  {device.display_name}{state}" + Style.RESET_ALL)
                return 0
            case "select":
                for id in args.ids:
                    control.select_device(id)
                print(", ".join(sorted(control.selection)))
                return 0
            case "deselect":
                for id in args.ids:
                    control.deselect_device(id)
                print(", ".join(sorted(control.selection)) or "(none)")
                return 0
            case "flag":
                flag = FlagEffect.parse(args.name)
                await control.resume()
                result = await control.apply_flag(flag, initial=args.initial)
                if control.last_error:
                    print(Fore.YELLOW + control.last_error.message + Style.RESET_ALL)
                return _print_result(result)
            case "race-flag":
                await control.resume()
                result = await control.apply_race_flag(args.name)
                if control.last_error:
                    print(Fore.YELLOW + control.last_error.message + Style.RESET_ALL)
                return _print_result(result)
    return 2


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    async def _main() -> int:
        try:
            return await run(args)
        except (FlagLightError, ValueError) as e:
            logging.getLogger("flaglight").debug("Command failed", exc_info=True)
            print(Fore.RED + f"❌ Error: {e}" + Style.RESET_ALL, file=sys.stderr)
            return 1

    return run_with_keyboard_interrupt(_main)


if __name__ == "__main__":
    sys.exit(main())
