"""PostgreSQL monitoring plugin.

pgactivity queries a running cluster and rates its health (connections,
cache hit ratio, WAL, database growth...) according to the monitoring
plugin API: an exit code out of ok, warning, critical and unknown, a
status line and performance data.
"""

from importlib import metadata

__version__: str = metadata.version("pgactivity")

from .check import (  # noqa: E402
    FORBIDDEN,
    OPTIONAL,
    REQUIRED,
    Check,
    CheckExecutor,
    CheckInvocation,
    get_check,
    register,
    registry,
)
from .delta import counter_deltas, rate, ratio  # noqa: E402
from .error import (  # noqa: E402
    EXIT_USAGE,
    CheckError,
    IncompatibleServer,
    ParseError,
    QueryError,
    StateStoreError,
    Terminated,
    Timeout,
    UsageError,
)
from .host import ConnectionParams, HostTarget  # noqa: E402
from .output import Output  # noqa: E402
from .performance import Performance  # noqa: E402
from .query import PsycopgRunner, QueryRunner  # noqa: E402
from .runtime import Runtime, guarded  # noqa: E402
from .state import ServiceState, critical, ok, unknown, warn, worst  # noqa: E402
from .statestore import StateStore, host_identity  # noqa: E402
from .threshold import (  # noqa: E402
    ByteSize,
    Count,
    Duration,
    LabelMap,
    Percentage,
    Rate,
    Threshold,
    compare,
    is_duration,
    is_size,
    parse_duration,
    parse_label_map,
    parse_size,
    parse_threshold,
)
from .verdict import Verdict, fold  # noqa: E402
from .version import (  # noqa: E402
    Unsupported,
    VersionedQuery,
    check_supported,
    normalize_version,
    resolve,
)

__all__ = [
    "ByteSize",
    "Check",
    "CheckError",
    "CheckExecutor",
    "CheckInvocation",
    "ConnectionParams",
    "Count",
    "Duration",
    "EXIT_USAGE",
    "FORBIDDEN",
    "HostTarget",
    "IncompatibleServer",
    "LabelMap",
    "OPTIONAL",
    "Output",
    "ParseError",
    "Percentage",
    "Performance",
    "PsycopgRunner",
    "QueryError",
    "QueryRunner",
    "Rate",
    "REQUIRED",
    "Runtime",
    "ServiceState",
    "StateStore",
    "StateStoreError",
    "Terminated",
    "Threshold",
    "Timeout",
    "Unsupported",
    "UsageError",
    "Verdict",
    "VersionedQuery",
    "check_supported",
    "compare",
    "counter_deltas",
    "critical",
    "fold",
    "get_check",
    "guarded",
    "host_identity",
    "is_duration",
    "is_size",
    "normalize_version",
    "ok",
    "parse_duration",
    "parse_label_map",
    "parse_size",
    "parse_threshold",
    "rate",
    "ratio",
    "register",
    "registry",
    "resolve",
    "unknown",
    "warn",
    "worst",
]
