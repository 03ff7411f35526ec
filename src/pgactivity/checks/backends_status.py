"""Connections by status (waiting, idle in transaction...)."""

from ..check import OPTIONAL, Check, CheckInvocation, register
from ..state import ok
from ..threshold import Count, Percentage, compare
from ..verdict import Verdict
from ..version import VersionedQuery

STATUSES = ("active", "idle", "idle_xact", "waiting")

QUERIES: VersionedQuery[str] = VersionedQuery(
    {
        80200: """
            SELECT CASE
                WHEN waiting THEN 'waiting'
                WHEN current_query = '<IDLE>' THEN 'idle'
                WHEN current_query = '<IDLE> in transaction' THEN 'idle_xact'
                ELSE 'active' END AS status,
              count(*)
            FROM pg_stat_activity
            WHERE procpid <> pg_backend_pid()
            GROUP BY 1""",
        90200: """
            SELECT CASE
                WHEN waiting THEN 'waiting'
                WHEN state = 'idle' THEN 'idle'
                WHEN state LIKE 'idle in transaction%' THEN 'idle_xact'
                ELSE 'active' END AS status,
              count(*)
            FROM pg_stat_activity
            WHERE pid <> pg_backend_pid()
            GROUP BY 1""",
        90600: """
            SELECT CASE
                WHEN wait_event_type = 'Lock' THEN 'waiting'
                WHEN state = 'idle' THEN 'idle'
                WHEN state LIKE 'idle in transaction%' THEN 'idle_xact'
                ELSE 'active' END AS status,
              count(*)
            FROM pg_stat_activity
            WHERE pid <> pg_backend_pid()
            GROUP BY 1""",
        100000: """
            SELECT CASE
                WHEN wait_event_type = 'Lock' THEN 'waiting'
                WHEN state = 'idle' THEN 'idle'
                WHEN state LIKE 'idle in transaction%' THEN 'idle_xact'
                ELSE 'active' END AS status,
              count(*)
            FROM pg_stat_activity
            WHERE pid <> pg_backend_pid()
              AND backend_type = 'client backend'
            GROUP BY 1""",
    }
)

MAX_CONNECTIONS = "SELECT current_setting('max_connections')"


@register
class BackendsStatus(Check):
    """Thresholds are label lists, e.g. ``-w waiting=5,idle_xact=10``.

    Each label takes a count or a percentage of ``max_connections``.
    Statuses without a threshold are only reported.
    """

    name = "backends_status"
    description = "Check the status of all backends."
    thresholds = OPTIONAL
    labels = {status: (Count, Percentage) for status in STATUSES}
    min_version = 80200

    def run(self, invocation: CheckInvocation) -> Verdict:
        maximum = int(invocation.query(MAX_CONNECTIONS)[0][0] or 0)
        counts = dict.fromkeys(STATUSES, 0)
        for status, count in invocation.query_ver(QUERIES):
            if status in counts:
                counts[status] += int(count or 0)

        verdict = Verdict()
        for status in STATUSES:
            warning = self.limit(invocation.warning, status, maximum)
            critical = self.limit(invocation.critical, status, maximum)
            state = compare(counts[status], warning, critical)
            verdict.perf(
                status, counts[status], warn=warning, crit=critical, min=0, max=maximum
            )
            if state != ok:
                verdict.add(state, "{0} {1}".format(counts[status], status))
        if not verdict.messages:
            verdict.ok("{0} connections on {1}".format(sum(counts.values()), maximum))
        return verdict
