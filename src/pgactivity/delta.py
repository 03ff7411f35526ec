"""Differences between two observations of cumulative counters."""

from __future__ import annotations

import logging
import typing

_log = logging.getLogger(__name__)

Counters = typing.Mapping[str, float]


def counter_deltas(
    old: Counters, new: Counters
) -> typing.Optional[dict[str, float]]:
    """Computes ``new - old`` for every counter present in both.

    Cumulative counters only grow. A counter lower than before means the
    statistics were reset (or the server restarted) since the previous
    observation, and no meaningful difference exists.

    :returns: the differences, or `None` if any counter went backwards
    """
    deltas: dict[str, float] = {}
    for name, value in new.items():
        if name not in old:
            continue
        delta = value - old[name]
        if delta < 0:
            _log.info(
                "counter %s decreased from %s to %s, assuming stats reset",
                name,
                old[name],
                value,
            )
            return None
        deltas[name] = delta
    return deltas


def rate(delta: float, seconds: float) -> float:
    """Per second rate of `delta` over an interval of `seconds`."""
    if seconds <= 0:
        return 0.0
    return delta / seconds


def ratio(part: float, total: float) -> typing.Optional[float]:
    """Percentage of `part` in `total`, `None` when `total` is zero."""
    if not total:
        return None
    return part * 100.0 / total
