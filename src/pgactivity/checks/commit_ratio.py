"""Commit and rollback rates since the previous call, per database."""

from __future__ import annotations

import typing

from ..check import OPTIONAL, Check, CheckInvocation, register
from ..delta import counter_deltas, rate, ratio
from ..state import ok
from ..threshold import Count, LabelMap, Percentage, Rate, compare, percent_limit
from ..verdict import Verdict

QUERY = """
    SELECT d.datname, s.xact_commit, s.xact_rollback
    FROM pg_stat_database s
    JOIN pg_database d ON d.oid = s.datid
    WHERE d.datallowconn
    ORDER BY d.datname"""


@register
class CommitRatio(Check):
    """Thresholds are label lists of ``rollbacks`` (rollbacks since the
    last call), ``rollback_rate`` (rollbacks per second) and
    ``rollback_ratio`` (percentage of rollbacks among all transactions),
    e.g. ``-w rollbacks=10 -c rollbacks=100,rollback_ratio=50%``.
    """

    name = "commit_ratio"
    description = "Check the commit and rollback rate per database."
    thresholds = OPTIONAL
    labels = {
        "rollbacks": (Count,),
        "rollback_rate": (Rate,),
        "rollback_ratio": (Percentage, Count),
    }
    stateful = True

    def run(self, invocation: CheckInvocation) -> Verdict:
        counters = {
            datname: {"commit": int(commit or 0), "rollback": int(rollback or 0)}
            for datname, commit, rollback in invocation.query(QUERY)
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
            elapsed = invocation.now - previous["timestamp"]
            for datname, new in counters.items():
                old = previous["counters"].get(datname)
                if old is None:
                    verdict.long("{0}: no previous counters".format(datname))
                    continue
                deltas = counter_deltas(old, new)
                if deltas is None:
                    verdict.long("{0}: stats reset since last call".format(datname))
                    continue
                self.evaluate(invocation, verdict, datname, deltas, elapsed)
            if not verdict.messages:
                verdict.ok("{0} database(s) checked".format(len(counters)))

        invocation.save(self.name, {"timestamp": invocation.now, "counters": counters})
        return verdict

    def evaluate(
        self,
        invocation: CheckInvocation,
        verdict: Verdict,
        datname: str,
        deltas: dict[str, float],
        elapsed: float,
    ) -> None:
        total = deltas["commit"] + deltas["rollback"]
        measures = {
            "rollbacks": deltas["rollback"],
            "rollback_rate": rate(deltas["rollback"], elapsed),
            "rollback_ratio": ratio(deltas["rollback"], total) or 0.0,
        }
        verdict.perf(
            datname + "_commit_rate", round(rate(deltas["commit"], elapsed), 2), min=0
        )
        for label, value in measures.items():
            warning = self.label_limit(invocation.warning, label)
            critical = self.label_limit(invocation.critical, label)
            uom = "%" if label == "rollback_ratio" else None
            verdict.perf(
                "{0}_{1}".format(datname, label),
                round(value, 2),
                uom,
                warning,
                critical,
                0,
            )
            state = compare(value, warning, critical)
            if state != ok:
                verdict.add(state, "{0} {1}: {2:.2f}".format(datname, label, value))

    @staticmethod
    def label_limit(threshold: typing.Any, label: str) -> typing.Optional[float]:
        if not isinstance(threshold, LabelMap):
            return None
        return percent_limit(threshold.get(label))
