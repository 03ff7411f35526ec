"""Number of client connections, per database and in total."""

from ..check import REQUIRED, Check, CheckInvocation, register
from ..error import CheckError
from ..threshold import Count, Percentage, compare
from ..verdict import Verdict
from ..version import VersionedQuery

QUERIES: VersionedQuery[str] = VersionedQuery(
    {
        70400: """
            SELECT d.datname, count(s.datname)
            FROM pg_database d
            LEFT JOIN pg_stat_activity s ON s.datid = d.oid
            WHERE d.datallowconn
            GROUP BY d.datname
            ORDER BY d.datname""",
        100000: """
            SELECT d.datname, count(s.datname)
            FROM pg_database d
            LEFT JOIN pg_stat_activity s
              ON s.datid = d.oid AND s.backend_type = 'client backend'
            WHERE d.datallowconn
            GROUP BY d.datname
            ORDER BY d.datname""",
    }
)

MAX_CONNECTIONS = """
    SELECT current_setting('max_connections')::int
         - current_setting('superuser_reserved_connections')::int"""


@register
class Backends(Check):
    """Compares the connection count with the usable connection slots.

    Percentages are relative to ``max_connections`` minus the slots
    reserved to superusers.
    """

    name = "backends"
    description = "Check the total number of connections in the cluster."
    thresholds = REQUIRED
    accepts = (Count, Percentage)

    def run(self, invocation: CheckInvocation) -> Verdict:
        rows = invocation.query(MAX_CONNECTIONS)
        if not rows or rows[0][0] is None:
            raise CheckError("could not read max_connections")
        maximum = int(rows[0][0])
        warning = self.limit(invocation.warning, base=maximum)
        critical = self.limit(invocation.critical, base=maximum)

        verdict = Verdict()
        total = 0
        for datname, count in invocation.query_ver(QUERIES):
            if datname is None or not invocation.database_selected(datname):
                continue
            total += int(count or 0)
            verdict.perf(datname, int(count or 0), min=0, max=maximum)
        verdict.perf("maximum", maximum)
        verdict.perf("total", total, warn=warning, crit=critical, min=0, max=maximum)
        verdict.add(
            compare(total, warning, critical),
            "{0} connections on {1}".format(total, maximum),
        )
        return verdict
