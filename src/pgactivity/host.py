"""Connection targets."""

from __future__ import annotations

import logging
import typing

from .statestore import host_identity
from .version import normalize_version

if typing.TYPE_CHECKING:
    from .query import QueryRunner

_log = logging.getLogger(__name__)


class ConnectionParams(typing.NamedTuple):
    """Immutable libpq connection parameters.

    Unset fields are left to libpq, which falls back to its environment
    variables and defaults.
    """

    host: typing.Optional[str] = None
    port: typing.Optional[int] = None
    user: typing.Optional[str] = None
    dbname: typing.Optional[str] = None
    service: typing.Optional[str] = None

    def with_dbname(self, dbname: str) -> "ConnectionParams":
        return self._replace(dbname=dbname)

    def dsn_kwargs(self) -> dict[str, typing.Any]:
        """Keyword arguments for the database driver, unset ones omitted."""
        return {key: value for key, value in self._asdict().items() if value is not None}


class HostTarget:
    """One server the check connects to.

    The server version is fetched on first use and cached for the rest
    of the invocation.
    """

    params: ConnectionParams

    _version: typing.Optional[tuple[str, int]]

    def __init__(self, params: ConnectionParams, name: typing.Optional[str] = None) -> None:
        self.params = params
        self._name = name
        self._version = None

    def __repr__(self) -> str:
        return "HostTarget({0!r})".format(self.params)

    @property
    def name(self) -> str:
        """Display name of the target."""
        if self._name:
            return self._name
        if self.params.service:
            return "service {0}".format(self.params.service)
        if self.params.host or self.params.port:
            return "{0}:{1}".format(self.params.host or "localhost", self.params.port or 5432)
        return "default"

    @property
    def identity(self) -> str:
        """Key of this target in the status file."""
        return host_identity(self.params.host, self.params.port, self.params.service)

    def version(self, runner: "QueryRunner") -> tuple[str, int]:
        """The server's ``(version, version_num)``, queried once."""
        if self._version is None:
            self._version = discover_version(runner, self)
            _log.debug("%s runs version %s (%d)", self.name, *self._version)
        return self._version

    def version_num(self, runner: "QueryRunner") -> int:
        return self.version(runner)[1]


VERSION_QUERY = "SELECT current_setting('server_version')"


def discover_version(runner: "QueryRunner", target: HostTarget) -> tuple[str, int]:
    """Asks the server for its version.

    ``server_version_num`` does not exist before 8.2, so the textual
    ``server_version`` is normalized instead.
    """
    rows = runner.query(target.params, VERSION_QUERY)
    text = rows[0][0]
    version_num = normalize_version(text)
    return text.split()[0], version_num
