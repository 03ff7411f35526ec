"""Command line front end of ``check_pgactivity``."""

from __future__ import annotations

import argparse
import os
import sys
import typing

from . import __version__
from .check import CheckExecutor, registry
from .error import EXIT_USAGE, UsageError
from .host import ConnectionParams
from .output import FORMATS
from .query import PsycopgRunner
from .runtime import Runtime, guarded
from .statestore import StateStore
from .threshold import parse_duration

PROG = "check_pgactivity"

STATUS_FILE = "check_pgactivity.data"


class _ArgumentParser(argparse.ArgumentParser):
    """
    Exit with ``Unknown`` (exit code 3) for ``--help`` and ``--version``,
    according to the
    `Monitoring Plugin Guidelines
    <https://github.com/monitoring-plugins/monitoring-plugin-guidelines/blob/main/monitoring_plugins_interface/02.Input.md>`__,
    and with :data:`~pgactivity.error.EXIT_USAGE` on invalid arguments.
    """

    def exit(
        self, status: int = 3, message: typing.Optional[str] = None
    ) -> typing.NoReturn:
        if message:
            self._print_message(message, sys.stderr)
        sys.exit(status)

    def error(self, message: str) -> typing.NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, "{0}: error: {1}\n".format(self.prog, message))


def default_status_file() -> str:
    """The status file next to the executable."""
    return os.path.join(os.path.dirname(os.path.abspath(sys.argv[0])), STATUS_FILE)


def setup_argparser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = _ArgumentParser(
        prog=PROG,
        add_help=False,
        formatter_class=lambda prog: argparse.RawDescriptionHelpFormatter(
            prog, width=80
        ),
        description="version {0}\n\nPostgreSQL monitoring plugin.".format(__version__),
    )
    parser.add_argument("--help", action="help", help="show this help message and exit")
    parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("-s", "--service", help="the service to run")
    parser.add_argument(
        "-l", "--list", action="store_true", help="list available services"
    )

    conn = parser.add_argument_group("connection")
    conn.add_argument("-h", "--host", help="comma separated list of hosts")
    conn.add_argument("-p", "--port", help="comma separated list of ports")
    conn.add_argument("-U", "--username", help="comma separated list of users")
    conn.add_argument("-d", "--dbname", help="comma separated list of databases")
    conn.add_argument(
        "-S", "--dbservice", help="comma separated list of connection services"
    )

    check = parser.add_argument_group("check")
    check.add_argument("-w", "--warning", help="warning threshold")
    check.add_argument("-c", "--critical", help="critical threshold")
    check.add_argument(
        "--status-file",
        default=default_status_file(),
        help="file keeping state between calls (default: %(default)s)",
    )
    check.add_argument(
        "-t", "--timeout", default="30s", help="timeout, e.g. 30s or 1m (default: 30s)"
    )
    check.add_argument(
        "--dbinclude", action="append", default=[], help="only databases matching regex"
    )
    check.add_argument(
        "--dbexclude", action="append", default=[], help="skip databases matching regex"
    )

    out = parser.add_argument_group("output")
    out.add_argument("-F", "--output", choices=FORMATS, default="nagios")
    out.add_argument("-v", "--verbose", action="count", default=0)
    return parser


def _split(value: typing.Optional[str]) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",")]


def _nth(values: list[str], index: int) -> typing.Optional[str]:
    """The value at `index`, or the last one given for missing indexes."""
    if not values:
        return None
    if index < len(values):
        return values[index]
    return values[-1]


def connection_params(args: argparse.Namespace) -> list[ConnectionParams]:
    """Builds one :class:`ConnectionParams` per host or service.

    The i-th port, user and database apply to the i-th host; when fewer
    values than hosts are given, the last value applies to the rest.
    """
    hosts = _split(args.host)
    services = _split(args.dbservice)
    ports = _split(args.port)
    users = _split(args.username)
    dbnames = _split(args.dbname)
    count = max(len(hosts), len(services), 1)
    params: list[ConnectionParams] = []
    for index in range(count):
        port = _nth(ports, index)
        if port is not None and not port.isdigit():
            raise UsageError("invalid port {0!r}".format(port))
        params.append(
            ConnectionParams(
                host=_nth(hosts, index),
                port=int(port) if port is not None else None,
                user=_nth(users, index),
                dbname=_nth(dbnames, index),
                service=_nth(services, index),
            )
        )
    return params


def list_services() -> str:
    checks = registry()
    width = max(len(name) for name in checks)
    lines = ["Available services:"]
    for name in sorted(checks):
        lines.append("  {0:<{1}}  {2}".format(name, width, checks[name].description))
    return "\n".join(lines)


def check_args(args: argparse.Namespace) -> dict[str, typing.Any]:
    """Arguments handed to :meth:`CheckExecutor.run`."""
    return {
        "hosts": connection_params(args),
        "warning": args.warning,
        "critical": args.critical,
        "dbinclude": args.dbinclude,
        "dbexclude": args.dbexclude,
    }


@guarded(verbose=0)
def main(argv: typing.Optional[list[str]] = None) -> typing.NoReturn:
    args = setup_argparser().parse_args(argv)
    if args.list:
        print(list_services())
        sys.exit(0)
    if not args.service:
        raise UsageError("a service is required, see --list")
    timeout = parse_duration(args.timeout)
    check = check_args(args)
    store = StateStore(args.status_file) if args.status_file else None
    executor = CheckExecutor(PsycopgRunner(timeout), store)
    Runtime().execute(
        executor, args.service, check, args.verbose, timeout, args.output
    )


if __name__ == "__main__":
    main()
