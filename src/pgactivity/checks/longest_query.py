"""Duration of the longest running query, per database."""

from ..check import REQUIRED, Check, CheckInvocation, register
from ..state import ok
from ..threshold import Duration, compare
from ..verdict import Verdict
from ..version import VersionedQuery

QUERIES: VersionedQuery[str] = VersionedQuery(
    {
        80200: """
            SELECT d.datname,
              coalesce(max(extract(epoch FROM now() - s.query_start)), 0)::bigint,
              count(s.procpid)
            FROM pg_database d
            LEFT JOIN pg_stat_activity s ON s.datid = d.oid
              AND s.current_query NOT LIKE '<IDLE>%'
              AND s.procpid <> pg_backend_pid()
            WHERE d.datallowconn
            GROUP BY d.datname""",
        90200: """
            SELECT d.datname,
              coalesce(max(extract(epoch FROM now() - s.query_start)), 0)::bigint,
              count(s.pid)
            FROM pg_database d
            LEFT JOIN pg_stat_activity s ON s.datid = d.oid
              AND s.state = 'active'
              AND s.pid <> pg_backend_pid()
            WHERE d.datallowconn
            GROUP BY d.datname""",
        100000: """
            SELECT d.datname,
              coalesce(max(extract(epoch FROM now() - s.query_start)), 0)::bigint,
              count(s.pid)
            FROM pg_database d
            LEFT JOIN pg_stat_activity s ON s.datid = d.oid
              AND s.state = 'active'
              AND s.backend_type = 'client backend'
              AND s.pid <> pg_backend_pid()
            WHERE d.datallowconn
            GROUP BY d.datname""",
    }
)


@register
class LongestQuery(Check):
    name = "longest_query"
    description = "Check the longest running query in the cluster."
    thresholds = REQUIRED
    accepts = (Duration,)
    min_version = 80200

    def run(self, invocation: CheckInvocation) -> Verdict:
        warning = self.limit(invocation.warning)
        critical = self.limit(invocation.critical)
        verdict = Verdict()
        longest = 0
        databases = 0
        for datname, seconds, count in invocation.query_ver(QUERIES):
            if datname is None or not invocation.database_selected(datname):
                continue
            databases += 1
            duration = int(seconds or 0)
            longest = max(longest, duration)
            verdict.perf(datname + " max", duration, "s", warning, critical, 0)
            verdict.perf(datname + " #queries", int(count or 0))
            state = compare(duration, warning, critical)
            if state != ok:
                verdict.add(state, "{0}: {1}s".format(datname, duration))
        if not verdict.messages:
            verdict.ok("{0} database(s), longest query: {1}s".format(databases, longest))
        return verdict
