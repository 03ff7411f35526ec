"""Cache hit ratio since the previous call, per database."""

from __future__ import annotations

import typing

from ..check import REQUIRED, Check, CheckInvocation, register
from ..delta import Counters, counter_deltas, ratio
from ..threshold import Count, Percentage, compare, percent_limit
from ..verdict import Verdict

QUERY = """
    SELECT d.datname, s.blks_hit, s.blks_read
    FROM pg_stat_database s
    JOIN pg_database d ON d.oid = s.datid
    WHERE d.datallowconn
    ORDER BY d.datname"""


@register
class HitRatio(Check):
    """Ratio of blocks found in shared buffers among all blocks read.

    Counters are cumulative, so the ratio is computed on the blocks read
    since the previous call. The first call only records the counters.
    A ratio below the limits raises an alert.
    """

    name = "hit_ratio"
    description = "Check the cache hit ratio on the cluster."
    thresholds = REQUIRED
    accepts = (Percentage, Count)
    stateful = True

    def run(self, invocation: CheckInvocation) -> Verdict:
        warning = percent_limit(invocation.warning)
        critical = percent_limit(invocation.critical)
        counters = {
            datname: {"hit": int(hit or 0), "read": int(read or 0)}
            for datname, hit, read in invocation.query(QUERY)
            if datname is not None and invocation.database_selected(datname)
        }
        previous = invocation.load(self.name)

        verdict = Verdict()
        if previous is None:
            verdict.ok(
                "first call, baseline established for {0} database(s)".format(
                    len(counters)
                )
            )
        else:
            for datname, new in counters.items():
                old = previous["counters"].get(datname)
                self.evaluate(verdict, datname, old, new, warning, critical)
            if not verdict.messages:
                verdict.ok("{0} database(s) checked".format(len(counters)))

        invocation.save(self.name, {"timestamp": invocation.now, "counters": counters})
        return verdict

    @staticmethod
    def evaluate(
        verdict: Verdict,
        datname: str,
        old: typing.Optional[Counters],
        new: Counters,
        warning: typing.Optional[float],
        critical: typing.Optional[float],
    ) -> None:
        if old is None:
            verdict.long("{0}: no previous counters".format(datname))
            return
        deltas = counter_deltas(old, new)
        if deltas is None:
            verdict.ok("{0}: stats reset since last call".format(datname))
            return
        value = ratio(deltas["hit"], deltas["hit"] + deltas["read"])
        if value is None:
            verdict.long("{0}: no block read since last call".format(datname))
            return
        verdict.perf(datname, round(value, 2), "%", warning, critical, 0, 100)
        verdict.add(
            compare(value, warning, critical, reverse=True),
            "{0}: {1:.2f}%".format(datname, value),
        )
