"""Controller logic for check execution.

This module contains the :class:`Check` base class every service
derives from, the service registry, and the :class:`CheckExecutor`
which orchestrates one invocation: building the host targets,
validating threshold arguments, gating on the server version, running
the check and turning query failures into an UNKNOWN verdict.

A check sees the world through a :class:`CheckInvocation`. It queries
the database and reads or writes its status file entries only through
it.
"""

from __future__ import annotations

import logging
import re
import time
import typing

from .error import CheckError, IncompatibleServer, QueryError, UsageError
from .host import ConnectionParams, HostTarget
from .query import QueryRunner, Rows
from .state import unknown
from .statestore import StateStore
from .threshold import (
    Count,
    Kinds,
    LabelMap,
    Threshold,
    parse_label_thresholds,
    parse_threshold,
)
from .verdict import Verdict
from .version import VersionedQuery, check_supported, format_version

_log = logging.getLogger(__name__)

REQUIRED = "required"
OPTIONAL = "optional"
FORBIDDEN = "forbidden"


class CheckInvocation:
    """Everything one run of a check works with.

    Created by :class:`CheckExecutor` at the start of a run and dropped
    at its end.
    """

    name: str
    hosts: list[HostTarget]
    warning_raw: typing.Optional[str]
    critical_raw: typing.Optional[str]
    warning: typing.Optional[Threshold]
    critical: typing.Optional[Threshold]
    flags: dict[str, typing.Any]
    dbinclude: list[re.Pattern[str]]
    dbexclude: list[re.Pattern[str]]
    runner: QueryRunner
    store: typing.Optional[StateStore]
    now: float

    def __init__(
        self,
        name: str,
        hosts: list[HostTarget],
        runner: QueryRunner,
        store: typing.Optional[StateStore] = None,
        warning: typing.Optional[str] = None,
        critical: typing.Optional[str] = None,
        flags: typing.Optional[typing.Mapping[str, typing.Any]] = None,
        now: typing.Optional[float] = None,
    ) -> None:
        self.name = name
        self.hosts = hosts
        self.runner = runner
        self.store = store
        self.warning_raw = warning
        self.critical_raw = critical
        self.warning = None
        self.critical = None
        self.flags = dict(flags or {})
        self.now = time.time() if now is None else now
        self.dbinclude = self._patterns("dbinclude")
        self.dbexclude = self._patterns("dbexclude")

    @property
    def host(self) -> HostTarget:
        """The first (usually only) target."""
        return self.hosts[0]

    def query(self, sql: str, host: typing.Optional[HostTarget] = None) -> Rows:
        return self.runner.query((host or self.host).params, sql)

    def query_ver(
        self, queries: VersionedQuery[str], host: typing.Optional[HostTarget] = None
    ) -> Rows:
        return self.runner.query_ver(host or self.host, queries)

    def version_num(self, host: typing.Optional[HostTarget] = None) -> int:
        return (host or self.host).version_num(self.runner)

    def load(self, entry_name: str, host: typing.Optional[HostTarget] = None) -> typing.Any:
        """Previous value of a status file entry, `None` on first call."""
        return self._store().load((host or self.host).identity, entry_name)

    def save(
        self, entry_name: str, value: typing.Any, host: typing.Optional[HostTarget] = None
    ) -> None:
        self._store().save((host or self.host).identity, entry_name, value)

    def _store(self) -> StateStore:
        if self.store is None:
            raise UsageError("service {0} requires a status file".format(self.name))
        return self.store

    def _patterns(self, flag: str) -> list[re.Pattern[str]]:
        patterns = []
        for pattern in self.flags.get(flag) or []:
            try:
                patterns.append(re.compile(pattern))
            except re.error as exc:
                raise UsageError(
                    "invalid --{0} pattern {1!r}: {2}".format(flag, pattern, exc)
                ) from exc
        return patterns

    def database_selected(self, dbname: str) -> bool:
        """Applies ``--dbinclude`` and ``--dbexclude`` to a database name.

        Inclusion is tested first: with include patterns given, only
        matching databases are kept. Exclusion applies afterwards.
        """
        if self.dbinclude and not any(p.search(dbname) for p in self.dbinclude):
            return False
        return not any(p.search(dbname) for p in self.dbexclude)


class Check:
    """Base class of all services.

    Subclasses set the class attributes describing their argument policy
    and implement :meth:`run`. The default :meth:`validate_args`
    enforces the policy and parses the thresholds, so :meth:`run` finds
    :attr:`CheckInvocation.warning` and :attr:`CheckInvocation.critical`
    already typed.
    """

    name: str = ""

    description: str = ""

    thresholds: str = OPTIONAL
    """whether -w/-c are required, optional or forbidden"""

    accepts: Kinds = (Count,)
    """threshold variants accepted for -w/-c"""

    labels: typing.Optional[typing.Mapping[str, Kinds]] = None
    """allowed labels and their variants for label list thresholds"""

    min_version: typing.Optional[int] = None

    max_version: typing.Optional[int] = None

    max_hosts: typing.Optional[int] = 1

    stateful: bool = False

    def __repr__(self) -> str:
        return "<check {0}>".format(self.name)

    def validate_args(self, invocation: CheckInvocation) -> None:
        """Checks the invocation's arguments before anything is queried.

        :raises UsageError: on any violation of the check's policy
        """
        if self.max_hosts is not None and len(invocation.hosts) > self.max_hosts:
            raise UsageError(
                "service {0} accepts at most {1} host(s)".format(self.name, self.max_hosts)
            )
        given = [invocation.warning_raw is not None, invocation.critical_raw is not None]
        if self.thresholds == FORBIDDEN and any(given):
            raise UsageError("service {0} takes no thresholds".format(self.name))
        if self.thresholds == REQUIRED and not all(given):
            raise UsageError(
                "service {0} requires both warning and critical thresholds".format(
                    self.name
                )
            )
        if invocation.warning_raw is not None:
            invocation.warning = self.parse_threshold(invocation.warning_raw)
        if invocation.critical_raw is not None:
            invocation.critical = self.parse_threshold(invocation.critical_raw)
        if self.stateful and invocation.store is None:
            raise UsageError("service {0} requires a status file".format(self.name))

    def parse_threshold(self, raw: str) -> Threshold:
        if self.labels is not None:
            return parse_label_thresholds(raw, self.labels)
        return parse_threshold(raw, self.accepts)

    def run(self, invocation: CheckInvocation) -> Verdict:
        """Queries the targets and evaluates the outcome."""
        raise NotImplementedError

    @staticmethod
    def limit(
        threshold: typing.Optional[Threshold],
        label: typing.Optional[str] = None,
        base: typing.Optional[float] = None,
    ) -> typing.Optional[float]:
        """Resolves a threshold (or one label of a label list) to a number."""
        if threshold is None:
            return None
        if isinstance(threshold, LabelMap):
            if label is None:
                raise TypeError("a label is required for label list thresholds")
            threshold = threshold.get(label)
            if threshold is None:
                return None
        return threshold.resolve(base)


_registry: dict[str, type[Check]] = {}

C = typing.TypeVar("C", bound=type[Check])


def register(cls: C) -> C:
    """Class decorator adding a check to the service registry."""
    if not cls.name:
        raise ValueError("check class without name", cls)
    if cls.name in _registry:
        raise ValueError("duplicate service name", cls.name)
    _registry[cls.name] = cls
    return cls


def registry() -> dict[str, type[Check]]:
    """All registered services by name."""
    from . import checks  # noqa: F401  pylint: disable=import-outside-toplevel

    return dict(_registry)


def get_check(name: str) -> Check:
    """Instantiates the service called `name`.

    :raises UsageError: if no such service exists
    """
    checks = registry()
    if name not in checks:
        raise UsageError(
            "unknown service {0!r}, use --list to see available services".format(name)
        )
    return checks[name]()


class CheckExecutor:
    """Runs checks against a query runner and a status file."""

    runner: QueryRunner

    store: typing.Optional[StateStore]

    def __init__(self, runner: QueryRunner, store: typing.Optional[StateStore] = None) -> None:
        self.runner = runner
        self.store = store

    def invocation(
        self, check: Check, args: typing.Mapping[str, typing.Any]
    ) -> CheckInvocation:
        flags = dict(args)
        params: list[ConnectionParams] = list(flags.pop("hosts", None) or [])
        hosts = [HostTarget(p) for p in params or [ConnectionParams()]]
        warning = flags.pop("warning", None)
        critical = flags.pop("critical", None)
        now = flags.pop("now", None)
        return CheckInvocation(
            check.name,
            hosts,
            self.runner,
            self.store,
            warning=warning,
            critical=critical,
            flags=flags,
            now=now,
        )

    def run(self, check_name: str, args: typing.Mapping[str, typing.Any]) -> Verdict:
        """Runs one check.

        `args` holds ``hosts`` (a list of :class:`ConnectionParams`),
        ``warning`` and ``critical`` raw threshold strings and any
        service specific flag.

        :raises UsageError: on invalid arguments, before any query runs
        :returns: the verdict; query failures and unsupported server
            versions result in an UNKNOWN verdict
        """
        check = get_check(check_name)
        invocation = self.invocation(check, args)
        check.validate_args(invocation)
        try:
            self.check_versions(check, invocation)
            verdict = check.run(invocation)
        except QueryError as exc:
            _log.info("service %s failed: %s", check.name, exc)
            return Verdict(unknown, [str(exc)])
        except CheckError as exc:
            return Verdict(unknown, [str(exc)])
        _log.debug("service %s returned %s", check.name, verdict)
        return verdict

    def check_versions(self, check: Check, invocation: CheckInvocation) -> None:
        if check.min_version is None and check.max_version is None:
            return
        for host in invocation.hosts:
            version_num = invocation.version_num(host)
            if not check_supported(
                check.name, version_num, check.min_version or 0, check.max_version
            ):
                raise IncompatibleServer(
                    "service {0} is not compatible with {1} (version {2})".format(
                        check.name, host.name, format_version(version_num)
                    )
                )
