"""Command line interface for managing proxies and toxics on a Toxiproxy server."""

from __future__ import annotations

import argparse
import math
import os
import platform
import sys
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, TextIO, Tuple

from .client import Client
from .errors import ApiError
from .models import Attributes, Toxic, ToxicOptions

VERSION = "git"
DEFAULT_HOST = "http://localhost:8474"
HOST_ENV = "TOXIPROXY_URL"

RED = "\x1b[31m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
BLUE = "\x1b[34m"
PURPLE = "\x1b[35m"
NONE = "\x1b[0m"

TOXIC_DESCRIPTION = """
  Default Toxics:
  latency:    delay all data +/- jitter
              latency=<ms>,jitter=<ms>

  bandwidth:  limit to max kb/s
              rate=<KB/s>

  slow_close: delay from closing
              delay=<ms>

  timeout:    stop all data and close after timeout
              timeout=<ms>

  reset_peer: simulate TCP RESET (Connection reset by peer) on the connections by closing
              the stub Input immediately or after a timeout
              timeout=<ms>

  slicer:     slice data into bits with optional delay
              average_size=<bytes>,size_variation=<bytes>,delay=<microseconds>

  toxic add:
    usage: toxiproxy-cli toxic add --type <toxicType> [--downstream|--upstream] \\
            --toxicName <toxicName> [--toxicity <float>] \\
            --attribute <key=value> [--attribute <key2=value2>] <proxyName>


    example: toxiproxy-cli toxic add -t latency -n myToxic -a latency=100 -a jitter=50 myProxy

  toxic update:
    usage: toxiproxy-cli toxic update --toxicName <toxicName> [--toxicity <float>] \\
            --attribute <key1=value1> [--attribute <key2=value2>] <proxyName>

    example: toxiproxy-cli toxic update -n myToxic -a jitter=25 myProxy

  toxic delete:
    usage: toxiproxy-cli toxic delete --toxicName <toxicName> <proxyName>

    example: toxiproxy-cli toxic delete -n myToxic myProxy
"""

_CLIENT_ERRORS = (ApiError, ConnectionError, ValueError)

_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
}


class CliError(Exception):
    """A failure that ends the command with a message and an exit code."""

    def __init__(self, message: str, code: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class _Output:
    stream: TextIO
    tty: bool

    def color(self, code: str) -> str:
        return code if self.tty else ""

    def color_enabled(self, enabled: bool) -> str:
        return self.color(GREEN if enabled else RED)

    def write(self, text: str) -> None:
        self.stream.write(text)

    def hint(self, message: str) -> None:
        if self.tty:
            self.write(f"\n{self.color(NONE)}Hint: {message}\n")

    def print_width(self, col: str, text: str, num_tabs: int) -> None:
        if self.tty:
            num_tabs = max(num_tabs - (len(text) // 8 + 1), 0)
        else:
            num_tabs = 0
        self.write(f"{self.color(col)}{text}{self.color(NONE)}\t" + "\t" * num_tabs)


def enabled_text(enabled: bool) -> str:
    """Return the word shown for a proxy's enabled status."""
    return "enabled" if enabled else "disabled"


def _parse_go_float(text: str) -> float:
    if text != text.strip() or "_" in text:
        raise ValueError(f"invalid float: {text!r}")
    return float(text)


def parse_attributes(values: Optional[Iterable[str]]) -> Attributes:
    """Turn ``key=value`` strings into attributes; numeric values become floats."""
    parsed: Attributes = {}
    for raw in values or []:
        key, sep, value = raw.partition("=")
        if not sep:
            continue
        try:
            parsed[key] = _parse_go_float(value)
        except ValueError:
            parsed[key] = value
    return parsed


def parse_toxicity(value: Optional[str], default: float) -> float:
    """Parse a toxicity between 0 and 1, or return ``default`` when none is given."""
    if not value:
        return default
    try:
        toxicity = _parse_go_float(value)
    except ValueError:
        toxicity = None
    if toxicity is None or toxicity > 1 or toxicity < 0:
        raise CliError("toxicity should be a float between 0 and 1.\n")
    return toxicity


def sorted_attributes(attributes: Optional[Attributes]) -> List[Tuple[str, float]]:
    """Return the attributes as (key, number) pairs sorted by key."""
    return sorted(((key, float(value)) for key, value in (attributes or {}).items()),
                  key=lambda pair: pair[0])


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def _first_arg(args: argparse.Namespace) -> str:
    names = getattr(args, "proxy_name", None) or []
    return names[0] if names else ""


def _show_help(args: argparse.Namespace, out: _Output) -> None:
    parser = getattr(args, "help_parser", None)
    if parser is not None:
        parser.print_help(out.stream)


def _require_proxy_name(args: argparse.Namespace, out: _Output, message: str) -> str:
    name = _first_arg(args)
    if not name:
        _show_help(args, out)
        raise CliError(message)
    return name


def _get_arg_or_fail(args: argparse.Namespace, out: _Output, name: str) -> str:
    value = getattr(args, name, None) or ""
    if not value:
        _show_help(args, out)
        raise CliError(f"Required argument '{name}' was empty.\n")
    return value


def _list_toxics(out: _Output, toxics: Sequence[Toxic], stream: str) -> None:
    if out.tty:
        out.write(f"{out.color(GREEN)}{stream} toxics:\n{out.color(NONE)}")
        if not toxics:
            out.write(
                f"{out.color(RED)}Proxy has no {stream} toxics enabled.\n{out.color(NONE)}"
            )
            return
    for toxic in toxics:
        if out.tty:
            out.write(f"{out.color(BLUE)}{toxic.name}:{out.color(NONE)}\t")
        else:
            out.write(f"{toxic.name}\t")
        out.write(f"type={toxic.type}\t")
        out.write(f"stream={toxic.stream}\t")
        out.write(f"toxicity={toxic.toxicity:.2f}\t")
        out.write("attributes=[")
        for key, value in sorted_attributes(toxic.attributes):
            out.write(f"\t{key}={_format_number(value)}")
        out.write("\t]\n")


def _list(args: argparse.Namespace, client: Client, out: _Output) -> None:
    try:
        proxies = client.proxies()
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to retrieve proxies: {exc}") from exc

    names = sorted(proxies)
    if out.tty:
        out.write(
            f"{out.color(GREEN)}Name\t\t\t{out.color(BLUE)}Listen\t\t"
            f"{out.color(YELLOW)}Upstream\t\t{out.color(PURPLE)}Enabled\t\t"
            f"{out.color(RED)}Toxics\n{out.color(NONE)}"
        )
        out.write(f"{out.color(NONE)}" + "=" * 86 + "\n")
        if not names:
            out.write(f"{out.color(RED)}no proxies\n{out.color(NONE)}")
            out.hint("create a proxy with `toxiproxy-cli create`")
            return

    for name in names:
        proxy = proxies[name]
        num_toxics = str(len(proxy.active_toxics))
        if num_toxics == "0" and out.tty:
            num_toxics = "None"
        out.print_width(GREEN if proxy.enabled else RED, proxy.name, 3)
        out.print_width(BLUE, proxy.listen, 2)
        out.print_width(YELLOW, proxy.upstream, 3)
        out.print_width(PURPLE, enabled_text(proxy.enabled), 2)
        out.write(f"{out.color(RED)}{num_toxics}{out.color(NONE)}\n")
    out.hint("inspect toxics with `toxiproxy-cli inspect <proxyName>`")


def _inspect(args: argparse.Namespace, client: Client, out: _Output) -> None:
    name = _require_proxy_name(args, out, "Proxy name is required as the first argument.\n")
    try:
        proxy = client.proxy(name)
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to retrieve proxy {name}: {exc}\n") from exc

    if not out.tty:
        _list_toxics(out, proxy.active_toxics, "")
        return

    out.write(f"{out.color(PURPLE)}Name: {out.color(NONE)}{proxy.name}\t")
    out.write(f"{out.color(BLUE)}Listen: {out.color(NONE)}{proxy.listen}\t")
    out.write(f"{out.color(YELLOW)}Upstream: {out.color(NONE)}{proxy.upstream}\n")
    out.write(f"{out.color(NONE)}" + "=" * 70 + "\n")

    if not proxy.active_toxics:
        out.write(f"{out.color(RED)}Proxy has no toxics enabled.\n{out.color(NONE)}")
    else:
        upstream = [t for t in proxy.active_toxics if t.stream == "upstream"]
        downstream = [t for t in proxy.active_toxics if t.stream != "upstream"]
        _list_toxics(out, upstream, "Upstream")
        out.write("\n")
        _list_toxics(out, downstream, "Downstream")
    out.hint("add a toxic with `toxiproxy-cli toxic add`")


def _toggle(args: argparse.Namespace, client: Client, out: _Output) -> None:
    name = _require_proxy_name(args, out, "Proxy name is required as the first argument.\n")
    try:
        proxy = client.proxy(name)
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to retrieve proxy {name}: {exc}\n") from exc

    proxy.enabled = not proxy.enabled
    try:
        proxy.save()
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to toggle proxy {name}: {exc}\n") from exc

    state = out.color_enabled(proxy.enabled)
    out.write(
        f"Proxy {state}{name}{out.color(NONE)} is now "
        f"{state}{enabled_text(proxy.enabled)}{out.color(NONE)}\n"
    )


def _create(args: argparse.Namespace, client: Client, out: _Output) -> None:
    name = _require_proxy_name(args, out, "Proxy name is required as the first argument.\n")
    listen = _get_arg_or_fail(args, out, "listen")
    upstream = _get_arg_or_fail(args, out, "upstream")
    try:
        client.create_proxy(name, listen, upstream)
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to create proxy: {exc}\n") from exc
    out.write(f"Created new proxy {name}\n")


def _delete(args: argparse.Namespace, client: Client, out: _Output) -> None:
    name = _require_proxy_name(args, out, "Proxy name is required as the first argument.\n")
    try:
        proxy = client.proxy(name)
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to retrieve proxy {name}: {exc}\n") from exc
    try:
        proxy.delete()
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to delete proxy: {exc}\n") from exc
    out.write(f"Deleted proxy {name}\n")


def _common_toxic_options(args: argparse.Namespace, out: _Output) -> ToxicOptions:
    name = _require_proxy_name(args, out, "Proxy name is missing.\n")
    return ToxicOptions(proxy_name=name, toxic_name=args.toxicName or "")


def _add_toxic(args: argparse.Namespace, client: Client, out: _Output) -> None:
    options = _common_toxic_options(args, out)
    options.toxic_type = _get_arg_or_fail(args, out, "type")
    if args.upstream and args.downstream:
        raise CliError("Only one should be specified: upstream or downstream.\n")
    options.stream = "upstream" if args.upstream else "downstream"
    options.toxicity = parse_toxicity(args.toxicity, 1.0)
    options.attributes = parse_attributes(args.attribute)

    try:
        toxic = client.add_toxic(options)
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to add toxic: {exc}\n") from exc
    out.write(
        f"Added {toxic.stream} {toxic.type} toxic '{toxic.name}' "
        f"on proxy '{options.proxy_name}'\n"
    )


def _update_toxic(args: argparse.Namespace, client: Client, out: _Output) -> None:
    options = _common_toxic_options(args, out)
    options.toxicity = parse_toxicity(args.toxicity, 1.0)
    options.attributes = parse_attributes(args.attribute)

    try:
        toxic = client.update_toxic(options)
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to update toxic: {exc}\n") from exc
    out.write(f"Updated toxic '{toxic.name}' on proxy '{options.proxy_name}'\n")


def _remove_toxic(args: argparse.Namespace, client: Client, out: _Output) -> None:
    options = _common_toxic_options(args, out)
    try:
        client.remove_toxic(options)
    except _CLIENT_ERRORS as exc:
        raise CliError(f"Failed to remove toxic: {exc}\n") from exc
    out.write(
        f"Removed toxic '{options.toxic_name}' on proxy '{options.proxy_name}'\n"
    )


def _add_help(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--help", action="help", help="show help")


def _leaf(
    subparsers: Any,
    name: str,
    aliases: List[str],
    help_text: str,
    handler: Callable[[argparse.Namespace, Client, _Output], None],
    **kwargs: Any,
) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        name, aliases=aliases, help=help_text, add_help=False, **kwargs
    )
    _add_help(parser)
    parser.add_argument("proxy_name", nargs="*", metavar="proxyName")
    parser.set_defaults(handler=handler, help_parser=parser)
    return parser


def _toxic_flags(parser: argparse.ArgumentParser, with_values: bool) -> None:
    parser.add_argument("--toxicName", "-n", default="", help="name of the toxic")
    if not with_values:
        return
    parser.add_argument(
        "--toxicity", "--tox", default="",
        help="toxicity of toxic should be a float between 0 and 1 (default: 1.0)",
    )
    parser.add_argument(
        "--attribute", "-a", action="append", default=[],
        help="toxic attribute in key=value format",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for every command and subcommand."""
    parser = argparse.ArgumentParser(
        prog="toxiproxy-cli",
        description="Simulate network and system conditions",
        add_help=False,
        allow_abbrev=False,
    )
    _add_help(parser)
    parser.add_argument(
        "--version", "-v", action="version", version=f"%(prog)s version {VERSION}"
    )
    parser.add_argument(
        "--host", "-h", default=os.environ.get(HOST_ENV, DEFAULT_HOST),
        help=f"toxiproxy host to connect to (env: {HOST_ENV})",
    )
    parser.set_defaults(handler=None, help_parser=parser)

    commands = parser.add_subparsers(dest="command", metavar="command")
    _leaf(commands, "list", ["l", "li", "ls"], "list all proxies", _list)
    _leaf(commands, "inspect", ["i", "ins"], "inspect a single proxy", _inspect)

    create = _leaf(commands, "create", ["c", "new"], "create a new proxy", _create)
    create.add_argument("--listen", "-l", default="",
                        help="proxy will listen on this address")
    create.add_argument("--upstream", "-u", default="",
                        help="proxy will forward to this address")

    _leaf(commands, "toggle", ["tog"], "toggle enabled status on a proxy", _toggle)
    _leaf(commands, "delete", ["d"], "delete a proxy", _delete)

    toxic = commands.add_parser(
        "toxic", aliases=["t"], help="add, remove or update a toxic", add_help=False,
        description=TOXIC_DESCRIPTION, formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_help(toxic)
    toxic.set_defaults(handler=None, help_parser=toxic)
    toxic_commands = toxic.add_subparsers(dest="toxic_command", metavar="command")

    add = _leaf(toxic_commands, "add", ["a"], "add a new toxic", _add_toxic)
    _toxic_flags(add, with_values=True)
    add.add_argument("--type", "-t", default="", help="type of toxic")
    add.add_argument("--upstream", "-u", action="store_true",
                     help="add toxic to upstream")
    add.add_argument("--downstream", "-d", action="store_true",
                     help="add toxic to downstream (default)")

    update = _leaf(toxic_commands, "update", ["u"], "update an enabled toxic", _update_toxic)
    _toxic_flags(update, with_values=True)

    remove = _leaf(toxic_commands, "remove", ["r", "delete", "d"],
                   "remove an enabled toxic", _remove_toxic)
    _toxic_flags(remove, with_values=False)

    return parser


def _user_agent() -> str:
    system = platform.system().lower() or "unknown"
    machine = platform.machine().lower()
    arch = _ARCH_NAMES.get(machine, machine or "unknown")
    return f"toxiproxy-cli/{VERSION} ({system}/{arch})"


def _exit_code(code: Any) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line tool and return its exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return _exit_code(exc.code)

    out = _Output(sys.stdout, sys.stdout.isatty())
    if args.handler is None:
        args.help_parser.print_help(out.stream)
        return 0

    client = Client(args.host, user_agent=_user_agent())
    try:
        args.handler(args, client, out)
    except CliError as exc:
        sys.stderr.write(exc.message + "\n")
        return exc.code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())