"""Command-line entry point: global options, version and connection profiles."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from newtmgr.connprofile import (
    ConnProfile,
    ConnProfileError,
    ConnProfileManager,
    ConnType,
    conn_type_from_string,
    conn_type_to_string,
)
from newtmgr.nmutil import ToolInfo

TOOL_INFO = ToolInfo()

_LOG_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}


class UsageError(Exception):
    """Raised when a command is used wrongly; optionally shows the command's help."""

    def __init__(self, message: str = "", show_help: bool = True) -> None:
        super().__init__(message)
        self.message = message
        self.show_help = show_help


def _parse_log_level(s: str) -> int:
    try:
        return _LOG_LEVELS[s.lower()]
    except KeyError:
        raise UsageError(f'not a valid log level: "{s}"', show_help=False) from None


def conn_add(manager: ConnProfileManager, args: Sequence[str]) -> ConnProfile:
    """Create a profile from ``name [type=...] [connstring=...]`` and store it."""
    if not args:
        raise UsageError("Need connection profile name")

    profile = ConnProfile(name=args[0], type=ConnType.NONE)
    for vdef in args[1:]:
        key, sep, value = vdef.partition("=")
        if key not in ("type", "connstring"):
            raise UsageError(f"Unknown variable {key}")
        if not sep:
            raise UsageError(f"Missing value for variable {key}")
        if key == "type":
            try:
                profile.type = conn_type_from_string(value)
            except ConnProfileError as exc:
                raise UsageError(str(exc)) from exc
        else:
            profile.conn_string = value

    if profile.type == ConnType.NONE:
        raise UsageError("Must specify a connection type")

    try:
        manager.add(profile)
    except ConnProfileError as exc:
        raise UsageError(str(exc)) from exc
    return profile


def conn_show(manager: ConnProfileManager, name: str = "") -> str:
    """Describe all profiles, or only the one called ``name`` when given."""
    lines = []
    for profile in manager.profiles():
        if name and profile.name != name:
            continue
        if not lines:
            lines.append("Connection profiles: ")
        lines.append(
            f"  {profile.name}: type={conn_type_to_string(profile.type)}, "
            f"connstring='{profile.conn_string}'"
        )

    if not lines:
        if not name:
            lines.append("No connection profiles found!")
        else:
            lines.append(f"No connection profiles found matching {name}")
    return "\n".join(lines) + "\n"


def conn_delete(manager: ConnProfileManager, name: Optional[str]) -> None:
    """Remove the profile called ``name``."""
    if not name:
        raise UsageError("Need connection profile name")
    try:
        manager.delete(name)
    except ConnProfileError as exc:
        raise UsageError(str(exc)) from exc


# Each handler returns the text the command writes to standard output.

def _run_version(ns: argparse.Namespace, manager: ConnProfileManager) -> str:
    return f"{TOOL_INFO.long_name} {TOOL_INFO.version_string}\n"


def _run_conn_add(ns: argparse.Namespace, manager: ConnProfileManager) -> str:
    profile = conn_add(manager, ns.args)
    return f"Connection profile {profile.name} successfully added\n"


def _run_conn_show(ns: argparse.Namespace, manager: ConnProfileManager) -> str:
    return conn_show(manager, ns.name_arg or "")


def _run_conn_delete(ns: argparse.Namespace, manager: ConnProfileManager) -> str:
    conn_delete(manager, ns.name_arg)
    return f"Connection profile {ns.name_arg} successfully deleted.\n"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the global options and subcommands."""
    parser = argparse.ArgumentParser(
        prog=TOOL_INFO.exe_name,
        description=f"{TOOL_INFO.short_name} helps you manage remote devices",
    )
    parser.set_defaults(func=None, cmd_parser=parser)

    if sys.platform == "darwin":
        parser.add_argument(
            "-m", "--mtu-ovrd", dest="mtu_override", type=int, default=0,
            help="Override MTU in case it can't be negotiated on Mac computers",
        )
    parser.add_argument("-c", "--conn", dest="conn_profile", default="",
                        help="connection profile to use")
    parser.add_argument("-t", "--timeout", type=float, default=10.0,
                        help="timeout in seconds (partial seconds allowed)")
    parser.add_argument("-r", "--tries", type=int, default=1,
                        help="total number of tries in case of timeout")
    parser.add_argument("-l", "--loglevel", default="info", help="log level to use")
    parser.add_argument("--name", dest="device_name", default="",
                        help="name of target BLE device; overrides profile setting")
    parser.add_argument("--write-rsp", dest="write_rsp", action="store_true",
                        help="Send BLE acked write requests instead of unacked write commands")
    parser.add_argument("--conntype", default="",
                        help="Connection type to use instead of using the profile's type")
    parser.add_argument("--connstring", default="",
                        help="Connection key-value pairs to use instead of using "
                             "the profile's connstring")
    parser.add_argument("--connextra", default="",
                        help="Additional key-value pair to append to the connstring")
    parser.add_argument("--ompres", default="/omgr",
                        help="Use this CoAP resource instead of /omgr")
    parser.add_argument("-i", "--hci", dest="hci_idx", type=int, default=0,
                        help="HCI index for the controller on Linux machine")

    subs = parser.add_subparsers(dest="command")

    vers = subs.add_parser(
        "version", help=f"Display the {TOOL_INFO.short_name} version number"
    )
    vers.set_defaults(func=_run_version, cmd_parser=vers)

    conn = subs.add_parser(
        "conn", help=f"Manage {TOOL_INFO.short_name} connection profiles"
    )
    conn.set_defaults(func=None, cmd_parser=conn)
    conn_subs = conn.add_subparsers(dest="conn_command")

    add = conn_subs.add_parser(
        "add", help=f"Add a {TOOL_INFO.short_name} connection profile"
    )
    add.add_argument("args", nargs="*", metavar="conn_profile varname=value")
    add.set_defaults(func=_run_conn_add, cmd_parser=add)

    dele = conn_subs.add_parser(
        "delete", help=f"Delete a {TOOL_INFO.short_name} connection profile"
    )
    dele.add_argument("name_arg", nargs="?", metavar="conn_profile")
    dele.set_defaults(func=_run_conn_delete, cmd_parser=dele)

    show = conn_subs.add_parser(
        "show",
        help=f"Show {TOOL_INFO.short_name} connection profiles",
        description="Show information for the conn_profile connection profile or "
                    "for all\nconnection profiles if conn_profile is not specified.",
    )
    show.add_argument("name_arg", nargs="?", metavar="conn_profile")
    show.set_defaults(func=_run_conn_show, cmd_parser=show)

    return parser


def _report(err: UsageError, cmd_parser: Optional[argparse.ArgumentParser]) -> None:
    if err.message:
        print(f"Error: {err.message}", file=sys.stderr)
    if err.show_help and cmd_parser is not None:
        print()
        sys.stdout.write(f"{cmd_parser.prog.split()[-1]} - ")
        sys.stdout.write(cmd_parser.format_help())


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line and return the exit status."""
    parser = build_parser()
    try:
        ns = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1

    try:
        manager = ConnProfileManager()
    except ConnProfileError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        level = _parse_log_level(ns.loglevel)
    except UsageError as err:
        _report(err, None)
        return 1
    logging.basicConfig(level=level)

    if ns.func is None:
        sys.stdout.write(ns.cmd_parser.format_help())
        return 0

    try:
        output = ns.func(ns, manager)
    except UsageError as err:
        _report(err, ns.cmd_parser)
        return 1
    except KeyboardInterrupt:
        return 1
    sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())