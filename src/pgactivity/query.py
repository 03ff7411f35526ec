"""Query execution.

Checks never talk to the database driver directly. They hand SQL text
and a target to a :class:`QueryRunner` and get rows of text fields
back, the way ``psql -A -t`` would print them.
"""

from __future__ import annotations

import logging
import typing

import psycopg2
import psycopg2.errors
import psycopg2.extensions
import psycopg2.extras

from .error import QueryError
from .version import VersionedQuery

if typing.TYPE_CHECKING:
    from .host import ConnectionParams, HostTarget

_log = logging.getLogger(__name__)

Rows = list[list[typing.Optional[str]]]


def _text(value: typing.Any) -> typing.Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "t" if value else "f"
    return str(value)


def check_shape(rows: Rows, columns: typing.Optional[int] = None) -> Rows:
    """Makes sure every row has the same number of columns.

    :raises QueryError: if row lengths differ from each other or from
        `columns`
    """
    if not rows:
        return rows
    expected = len(rows[0]) if columns is None else columns
    for number, row in enumerate(rows):
        if len(row) != expected:
            raise QueryError(
                "malformed result: row {0} has {1} columns, expected {2}".format(
                    number, len(row), expected
                )
            )
    return rows


class QueryRunner:
    """Base class of query execution backends.

    Subclasses implement :meth:`query`. The timeout in seconds applies to
    each statement and to connection establishment.
    """

    timeout: typing.Optional[int]

    def __init__(self, timeout: typing.Optional[int] = None) -> None:
        self.timeout = timeout

    def query(self, params: "ConnectionParams", sql: str) -> Rows:
        """Runs `sql` on the server described by `params`.

        :returns: rows of text fields (`None` for SQL NULL)
        :raises QueryError: on connection failure, SQL error or timeout
        """
        raise NotImplementedError

    def query_ver(self, target: "HostTarget", queries: VersionedQuery[str]) -> Rows:
        """Runs the variant of `queries` matching the target's version.

        :raises IncompatibleServer: if no variant applies
        """
        sql = queries.select(target.version_num(self))
        return self.query(target.params, sql)

    def close(self) -> None:
        pass

    def __enter__(self) -> "QueryRunner":
        return self

    def __exit__(self, *exc_info: typing.Any) -> None:
        self.close()


class PsycopgRunner(QueryRunner):
    """Runs queries through psycopg2.

    Connections are opened lazily, one per set of connection parameters,
    and kept until :meth:`close`. The timeout is set as the server side
    ``statement_timeout`` so a hung query gets cancelled by the server
    itself rather than merely abandoned.

    libpq waits go through :func:`psycopg2.extras.wait_select`, so the
    alarm and termination signals handled by the runtime interrupt a
    connection or a query the server never answers.
    """

    application_name: str

    connections: dict["ConnectionParams", psycopg2.extensions.connection]

    def __init__(
        self,
        timeout: typing.Optional[int] = None,
        application_name: str = "check_pgactivity",
    ) -> None:
        super().__init__(timeout)
        self.application_name = application_name
        self.connections = {}
        psycopg2.extensions.set_wait_callback(psycopg2.extras.wait_select)

    def connect(self, params: "ConnectionParams") -> psycopg2.extensions.connection:
        if params in self.connections:
            return self.connections[params]
        kwargs = params.dsn_kwargs()
        kwargs["application_name"] = self.application_name
        if self.timeout:
            kwargs["connect_timeout"] = self.timeout
            kwargs["options"] = "-c statement_timeout={0}".format(self.timeout * 1000)
        _log.debug("connecting to %s", {k: v for k, v in kwargs.items() if k != "options"})
        try:
            conn = psycopg2.connect(**kwargs)
        except psycopg2.Error as exc:
            raise QueryError("connection failed: {0}".format(str(exc).strip())) from exc
        conn.set_session(readonly=True, autocommit=True)
        self.connections[params] = conn
        return conn

    def query(self, params: "ConnectionParams", sql: str) -> Rows:
        conn = self.connect(params)
        _log.debug("query: %s", sql)
        try:
            with conn.cursor() as cur:
                cur.execute(sql)
                if cur.description is None:
                    return []
                columns = len(cur.description)
                rows = [[_text(value) for value in row] for row in cur.fetchall()]
        except psycopg2.errors.QueryCanceled as exc:
            raise QueryError(
                "query cancelled after {0}s: {1}".format(self.timeout, str(exc).strip())
            ) from exc
        except psycopg2.Error as exc:
            raise QueryError("query failed: {0}".format(str(exc).strip())) from exc
        return check_shape(rows, columns)

    def close(self) -> None:
        for conn in self.connections.values():
            conn.close()
        self.connections = {}
