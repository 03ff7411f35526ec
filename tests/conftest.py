import typing

import pytest

from pgactivity import CheckExecutor, QueryError, QueryRunner, StateStore
from pgactivity.host import VERSION_QUERY


class FakeRunner(QueryRunner):
    """Answers queries from canned rows.

    `responses` maps a SQL fragment to the rows returned for any query
    containing it, or to an exception raised instead.
    """

    def __init__(
        self,
        responses: typing.Optional[dict[str, typing.Any]] = None,
        version: str = "16.2",
    ) -> None:
        super().__init__()
        self.responses = dict(responses or {})
        self.version = version
        self.queries: list[str] = []
        self.closed = False

    def query(self, params, sql):
        self.queries.append(sql)
        if sql == VERSION_QUERY:
            if isinstance(self.version, Exception):
                raise self.version
            return [[self.version]]
        for fragment, rows in self.responses.items():
            if fragment in sql:
                if isinstance(rows, Exception):
                    raise rows
                return [list(row) for row in rows]
        raise QueryError("unexpected query: " + sql)

    def close(self):
        self.closed = True


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def store(tmp_path) -> StateStore:
    return StateStore(str(tmp_path / "status.data"))


@pytest.fixture
def executor(runner, store) -> CheckExecutor:
    return CheckExecutor(runner, store)
