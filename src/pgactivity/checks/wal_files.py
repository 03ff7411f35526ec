"""Number of WAL segments in the WAL directory."""

from ..check import REQUIRED, Check, CheckInvocation, register
from ..threshold import Count, compare
from ..verdict import Verdict
from ..version import VersionedQuery

QUERIES: VersionedQuery[str] = VersionedQuery(
    {
        80100: """
            SELECT count(*)
            FROM pg_ls_dir('pg_xlog') AS f
            WHERE f ~ '^[0-9A-F]{24}$'""",
        100000: """
            SELECT count(*)
            FROM pg_ls_waldir()
            WHERE name ~ '^[0-9A-F]{24}$'""",
    }
)


@register
class WalFiles(Check):
    name = "wal_files"
    description = "Check the number of WAL files."
    thresholds = REQUIRED
    accepts = (Count,)
    min_version = 80100

    def run(self, invocation: CheckInvocation) -> Verdict:
        warning = self.limit(invocation.warning)
        critical = self.limit(invocation.critical)
        count = int(invocation.query_ver(QUERIES)[0][0] or 0)
        return (
            Verdict()
            .add(compare(count, warning, critical), "{0} WAL files".format(count))
            .perf("total_wal", count, warn=warning, crit=critical, min=0)
        )
