"""Outcome of a check invocation.

A :class:`Verdict` gathers the overall :class:`~.state.ServiceState`,
the short messages that end up on the status line, the performance data
and the long messages shown below the status line. Checks evaluating
several objects (databases, tables, hosts) add one outcome per object
and let the verdict keep the most significant state.
"""

from __future__ import annotations

import typing

from .performance import Number, Performance
from .state import ServiceState, critical, ok, unknown, warn, worst


class Verdict:
    state: ServiceState

    messages: list[str]

    perfdata: list[Performance]

    longmessages: list[str]

    def __init__(
        self,
        state: ServiceState = ok,
        messages: typing.Optional[typing.Iterable[str]] = None,
        perfdata: typing.Optional[typing.Iterable[Performance]] = None,
        longmessages: typing.Optional[typing.Iterable[str]] = None,
    ) -> None:
        self.state = state
        self.messages = list(messages or [])
        self.perfdata = list(perfdata or [])
        self.longmessages = list(longmessages or [])

    def __repr__(self) -> str:
        return "Verdict({0!r}, {1!r})".format(self.state, self.messages)

    def add(self, state: ServiceState, message: typing.Optional[str] = None) -> "Verdict":
        """Records the outcome for one object.

        The verdict's state becomes the most significant of its current
        state and `state`.
        """
        self.state = worst([self.state, state])
        if message:
            self.messages.append(message)
        return self

    def ok(self, message: typing.Optional[str] = None) -> "Verdict":
        return self.add(ok, message)

    def warn(self, message: typing.Optional[str] = None) -> "Verdict":
        return self.add(warn, message)

    def critical(self, message: typing.Optional[str] = None) -> "Verdict":
        return self.add(critical, message)

    def unknown(self, message: typing.Optional[str] = None) -> "Verdict":
        return self.add(unknown, message)

    # pylint: disable-next=redefined-builtin,too-many-arguments
    def perf(
        self,
        label: str,
        value: typing.Any,
        uom: typing.Optional[str] = None,
        warn: typing.Optional[Number] = None,
        crit: typing.Optional[Number] = None,
        min: typing.Optional[Number] = None,
        max: typing.Optional[Number] = None,
    ) -> "Verdict":
        self.perfdata.append(Performance(label, value, uom, warn, crit, min, max))
        return self

    def long(self, message: str) -> "Verdict":
        self.longmessages.append(message)
        return self

    @property
    def exitcode(self) -> int:
        return int(self.state)


def fold(verdicts: typing.Iterable[Verdict]) -> Verdict:
    """Merges per-object verdicts into one.

    The state is the most significant one, messages, perfdata and long
    messages are concatenated in order.
    """
    folded = Verdict()
    for verdict in verdicts:
        folded.state = worst([folded.state, verdict.state])
        folded.messages.extend(verdict.messages)
        folded.perfdata.extend(verdict.perfdata)
        folded.longmessages.extend(verdict.longmessages)
    return folded
