"""Classes to represent check outcomes.

This module defines :class:`ServiceState` which is the base class for
check outcomes. The four states defined by the :term:`Nagios plugin API`
are represented as singleton subclasses.

States are ordered by their significance when several outcomes have to
be folded into one: critical > warning > unknown > ok. The exit code is
the plugin API code and does not follow that order (unknown is 3).

Note that the *warning* state is defined by the :class:`Warn` class. The
class has not been named `Warning` to avoid being confused with the
built-in Python exception of the same name.
"""

from __future__ import annotations

import functools
import typing


def worst(states: typing.Iterable["ServiceState"]) -> "ServiceState":
    """Reduce list of *states* to the most significant state."""
    return functools.reduce(lambda a, b: a if a > b else b, states, ok)


class ServiceState:
    """Base class for all states.

    Each state has three constant attributes: :attr:`text` is the short
    text representation which is printed for example at the beginning of
    the status line. :attr:`code` is the corresponding exit code and
    :attr:`rank` the significance used for comparisons.
    """

    code: int

    text: str

    rank: int

    def __init__(self, code: int, text: str, rank: int) -> None:
        self.code = code
        self.text = text
        self.rank = rank

    def __str__(self) -> str:
        """Plugin-API compliant text representation."""
        return self.text

    def __repr__(self) -> str:
        return "<{0}>".format(self.text)

    def __int__(self) -> int:
        """Plugin API compliant exit code."""
        return self.code

    def __gt__(self, other: typing.Any) -> bool:
        return isinstance(other, ServiceState) and self.rank > other.rank

    def __lt__(self, other: typing.Any) -> bool:
        return isinstance(other, ServiceState) and self.rank < other.rank

    def __eq__(self, other: typing.Any) -> bool:
        return (
            isinstance(other, ServiceState)
            and self.code == other.code
            and self.text == other.text
        )

    def __hash__(self) -> int:
        return hash((self.code, self.text))


class Ok(ServiceState):
    def __init__(self) -> None:
        super().__init__(0, "ok", 0)


ok = Ok()


class Warn(ServiceState):
    def __init__(self) -> None:
        super().__init__(1, "warning", 2)


# According to the Nagios development guidelines, this should be Warning,
# not Warn, but renaming the class would occlude the built-in Warning
# exception class.
warn = Warn()


class Critical(ServiceState):
    def __init__(self) -> None:
        super().__init__(2, "critical", 3)


critical = Critical()


class Unknown(ServiceState):
    def __init__(self) -> None:
        super().__init__(3, "unknown", 1)


unknown = Unknown()


def from_code(code: int) -> ServiceState:
    """Look up the state singleton for a plugin API exit code."""
    for state in (ok, warn, critical, unknown):
        if state.code == code:
            return state
    raise ValueError("no service state with exit code", code)
