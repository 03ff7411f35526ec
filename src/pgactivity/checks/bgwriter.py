"""Background writer and checkpointer activity rates."""

from __future__ import annotations

from ..check import FORBIDDEN, Check, CheckInvocation, register
from ..delta import counter_deltas, rate
from ..verdict import Verdict
from ..version import VersionedQuery

COUNTERS = (
    "checkpoint_timed",
    "checkpoint_req",
    "buffers_checkpoint",
    "buffers_clean",
    "maxwritten_clean",
    "buffers_backend",
    "buffers_alloc",
)

QUERIES: VersionedQuery[str] = VersionedQuery(
    {
        80300: """
            SELECT checkpoints_timed, checkpoints_req, buffers_checkpoint,
              buffers_clean, maxwritten_clean, buffers_backend, buffers_alloc
            FROM pg_stat_bgwriter""",
        170000: """
            SELECT c.num_timed, c.num_requested, c.buffers_written,
              b.buffers_clean, b.maxwritten_clean, 0, b.buffers_alloc
            FROM pg_stat_checkpointer c, pg_stat_bgwriter b""",
    }
)


@register
class Bgwriter(Check):
    """Reports the rate per second of each background writer counter.

    Only performance data are produced. When a counter went backwards
    the statistics were reset and no rate is reported for that call.
    """

    name = "bgwriter"
    description = "Check the background writer and checkpoint statistics."
    thresholds = FORBIDDEN
    stateful = True
    min_version = 80300

    def run(self, invocation: CheckInvocation) -> Verdict:
        row = invocation.query_ver(QUERIES)[0]
        counters = {name: int(value or 0) for name, value in zip(COUNTERS, row)}
        previous = invocation.load(self.name)

        verdict = Verdict()
        if previous is None:
            verdict.ok("first call, baseline established")
        else:
            elapsed = invocation.now - previous["timestamp"]
            deltas = counter_deltas(previous["counters"], counters)
            if deltas is None:
                verdict.ok("stats reset since last call")
            else:
                for name in COUNTERS:
                    if name in deltas:
                        verdict.perf(name, round(rate(deltas[name], elapsed), 4))
                verdict.ok("{0:.0f}s since last call".format(elapsed))

        invocation.save(self.name, {"timestamp": invocation.now, "counters": counters})
        return verdict
