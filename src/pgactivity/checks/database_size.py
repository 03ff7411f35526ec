"""Database sizes and their growth since the previous call."""

from __future__ import annotations

from ..check import OPTIONAL, Check, CheckInvocation, register
from ..state import ok
from ..threshold import ByteSize, Percentage, compare
from ..verdict import Verdict

QUERY = """
    SELECT datname, pg_database_size(datname)
    FROM pg_database
    WHERE datallowconn
    ORDER BY datname"""


@register
class DatabaseSize(Check):
    """Thresholds apply to the growth of each database since the last
    call, as a size (``500MB``) or as a percentage of the previous size
    (``10%``). Without thresholds, sizes are only reported.
    """

    name = "database_size"
    description = "Check the variation of database sizes."
    thresholds = OPTIONAL
    accepts = (ByteSize, Percentage)
    stateful = True
    min_version = 80100

    def run(self, invocation: CheckInvocation) -> Verdict:
        sizes = {
            datname: int(size or 0)
            for datname, size in invocation.query(QUERY)
            if datname is not None and invocation.database_selected(datname)
        }
        previous = invocation.load(self.name)
        old_sizes = previous["sizes"] if previous is not None else {}

        verdict = Verdict()
        for datname, size in sizes.items():
            verdict.perf(datname, size, "B", min=0)
            if datname not in old_sizes:
                continue
            old = old_sizes[datname]
            growth = size - old
            warning = self.limit(invocation.warning, base=old)
            critical = self.limit(invocation.critical, base=old)
            verdict.perf(datname + "_delta", growth, "B", warning, critical)
            state = compare(growth, warning, critical)
            if state != ok:
                verdict.add(state, "{0} grew by {1} bytes".format(datname, growth))
        if previous is None:
            verdict.ok(
                "first call, baseline established for {0} database(s)".format(
                    len(sizes)
                )
            )
        elif not verdict.messages:
            verdict.ok("{0} database(s) checked".format(len(sizes)))

        invocation.save(self.name, {"timestamp": invocation.now, "sizes": sizes})
        return verdict
