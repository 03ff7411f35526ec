"""Threshold grammar.

Warning and critical arguments are plain strings whose meaning depends
on the check consuming them: a raw count (``10``), a percentage of some
base that is only known once a query ran (``80%``), an interval
(``1h30m``), a byte size (``512MB``) or a list of labelled values
(``waiting=5,idle_xact=10``).

The ``parse_*`` and ``is_*`` functions implement the grammars.
:func:`parse_threshold` turns a string into one of the tagged
:class:`Threshold` variants a check declares to accept, rejecting
everything else at the boundary.
"""

from __future__ import annotations

import math
import re
import typing

from .error import ParseError
from .state import ServiceState, critical, ok, warn


_DURATION_UNITS: dict[str, int] = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_SIZE_UNITS = "bkmgtpez"

_DURATION_TOKEN = re.compile(r"\s*(\d+)\s*([a-z]?)\s*", re.IGNORECASE)

_DURATION = re.compile(r"^\s*(?:\d+\s*[smhd]\s*)*(?:\d+\s*)?$", re.IGNORECASE)

_SIZE = re.compile(r"^\s*(\d+)\s*(?:([kmgtpez])[bo]?|[bo])?\s*$", re.IGNORECASE)

_PERCENT = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*%\s*$")

_COUNT = re.compile(r"^\s*(\d+)\s*$")

_RATE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*$")

_LABEL = re.compile(r"^\s*(\w+)\s*=\s*(\S(?:.*\S)?)\s*$")


def is_duration(value: str) -> bool:
    """Tells whether `value` follows the interval grammar."""
    return bool(value.strip()) and _DURATION.match(value) is not None


def is_size(value: str) -> bool:
    """Tells whether `value` follows the byte size grammar (no percents)."""
    return _SIZE.match(value) is not None


def is_percentage(value: str) -> bool:
    return _PERCENT.match(value) is not None


def parse_duration(value: str) -> int:
    """Converts an interval to seconds.

    The interval is a sequence of ``<int><unit>`` tokens with units
    ``s``, ``m``, ``h`` and ``d`` (case insensitive). Units may repeat
    and whitespace between tokens is ignored. A trailing number without
    unit counts as seconds, so ``"1h 55m 6"`` is 6966 seconds.

    :raises ParseError: if any part of `value` is not a valid token
    """
    if not is_duration(value):
        raise ParseError("malformed interval", value)
    seconds = 0
    for amount, unit in _DURATION_TOKEN.findall(value):
        seconds += int(amount) * _DURATION_UNITS[(unit or "s").lower()]
    return seconds


def parse_size(value: str, base: typing.Optional[float] = None) -> int:
    """Converts a size to bytes.

    Sizes are integers with an optional unit out of ``b``, ``k``, ``m``,
    ``g``, ``t``, ``p``, ``e`` and ``z``, optionally followed by ``b`` or
    ``o``. Units are binary: ``1k`` is 1024 bytes. A size given as
    percentage (``20%``) is resolved against `base` and rounded down.

    :param base: the 100% value, mandatory for percentages
    :raises ParseError: on fractional or otherwise malformed sizes
    :raises TypeError: if `value` is a percentage and `base` is missing
    """
    if "." in value or "," in value:
        raise ParseError("sizes must be integers", value)
    percent = _PERCENT.match(value)
    if percent:
        if base is None:
            raise TypeError("a base value is required to resolve a percentage")
        return math.floor(int(percent.group(1)) * base / 100)
    match = _SIZE.match(value)
    if not match:
        raise ParseError("malformed size", value)
    unit = (match.group(2) or "b").lower()
    return int(match.group(1)) * 1024 ** _SIZE_UNITS.index(unit)


def parse_label_map(value: str, allowed_labels: typing.Iterable[str]) -> dict[str, str]:
    """Splits a ``label=value`` list.

    Values are returned raw, their grammar depends on the label. When a
    label is given twice the last occurrence wins.

    :raises ParseError: on empty input, malformed items or labels which
        are not in `allowed_labels`
    """
    allowed = set(allowed_labels)
    if not value.strip():
        raise ParseError("empty threshold list", value)
    labels: dict[str, str] = {}
    for item in value.split(","):
        match = _LABEL.match(item)
        if not match:
            raise ParseError("malformed label=value pair", item)
        label, raw = match.groups()
        if label not in allowed:
            raise ParseError(
                "unknown label (expected one of {0})".format(", ".join(sorted(allowed))),
                label,
            )
        labels[label] = raw
    return labels


class Threshold:
    """Base class of the parsed threshold variants."""

    raw: str = ""

    def resolve(self, base: typing.Optional[float] = None) -> float:
        """Absolute value of this threshold.

        :param base: the 100% value; only percentages need it
        """
        raise NotImplementedError

    def _key(self) -> tuple[typing.Any, ...]:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and self._key() == other._key()  # type: ignore

    def __hash__(self) -> int:
        return hash((type(self).__name__,) + self._key())

    def __repr__(self) -> str:
        return "{0}{1!r}".format(type(self).__name__, self._key())

    def __str__(self) -> str:
        return self.raw or repr(self)


class Count(Threshold):
    value: int

    def __init__(self, value: int, raw: str = "") -> None:
        self.value = value
        self.raw = raw

    @classmethod
    def parse(cls, raw: str) -> "Count":
        match = _COUNT.match(raw)
        if not match:
            raise ParseError("malformed number", raw)
        return cls(int(match.group(1)), raw.strip())

    def resolve(self, base: typing.Optional[float] = None) -> float:
        return self.value

    def _key(self) -> tuple[typing.Any, ...]:
        return (self.value,)


class Percentage(Threshold):
    """A percentage between 0 and 100.

    Resolution is deferred until the base is known, which for most checks
    means after the query ran. The rounding of the resolved value is up
    to the check and defaults to rounding down.
    """

    value: float

    rounding: typing.Callable[[float], float]

    def __init__(
        self,
        value: float,
        raw: str = "",
        rounding: typing.Callable[[float], float] = math.floor,
    ) -> None:
        if not 0 <= value <= 100:
            raise ParseError("percentage out of range 0-100", raw or str(value))
        self.value = value
        self.raw = raw
        self.rounding = rounding

    @classmethod
    def parse(cls, raw: str) -> "Percentage":
        match = _PERCENT.match(raw)
        if not match:
            raise ParseError("malformed percentage", raw)
        return cls(float(match.group(1)), raw.strip())

    def resolve(self, base: typing.Optional[float] = None) -> float:
        if base is None:
            raise TypeError("a base value is required to resolve a percentage")
        return self.rounding(self.value * base / 100)

    def _key(self) -> tuple[typing.Any, ...]:
        return (self.value,)


class Rate(Threshold):
    """A non negative number which may be fractional, like ``0.5`` per second."""

    value: float

    def __init__(self, value: float, raw: str = "") -> None:
        self.value = value
        self.raw = raw

    @classmethod
    def parse(cls, raw: str) -> "Rate":
        match = _RATE.match(raw)
        if not match:
            raise ParseError("malformed rate", raw)
        return cls(float(match.group(1)), raw.strip())

    def resolve(self, base: typing.Optional[float] = None) -> float:
        return self.value

    def _key(self) -> tuple[typing.Any, ...]:
        return (self.value,)


class Duration(Threshold):
    seconds: int

    def __init__(self, seconds: int, raw: str = "") -> None:
        self.seconds = seconds
        self.raw = raw

    @classmethod
    def parse(cls, raw: str) -> "Duration":
        return cls(parse_duration(raw), raw.strip())

    def resolve(self, base: typing.Optional[float] = None) -> float:
        return self.seconds

    def _key(self) -> tuple[typing.Any, ...]:
        return (self.seconds,)


class ByteSize(Threshold):
    bytes: int

    def __init__(self, size: int, raw: str = "") -> None:
        self.bytes = size
        self.raw = raw

    @classmethod
    def parse(cls, raw: str) -> "ByteSize":
        if is_percentage(raw):
            raise ParseError("malformed size", raw)
        return cls(parse_size(raw), raw.strip())

    def resolve(self, base: typing.Optional[float] = None) -> float:
        return self.bytes

    def _key(self) -> tuple[typing.Any, ...]:
        return (self.bytes,)


class LabelMap(Threshold):
    """Thresholds per label, like ``waiting=5,idle_xact=10``."""

    labels: dict[str, Threshold]

    def __init__(self, labels: dict[str, Threshold], raw: str = "") -> None:
        if not labels:
            raise ParseError("empty threshold list", raw)
        self.labels = labels
        self.raw = raw

    def __getitem__(self, label: str) -> Threshold:
        return self.labels[label]

    def __contains__(self, label: str) -> bool:
        return label in self.labels

    def __len__(self) -> int:
        return len(self.labels)

    def get(self, label: str) -> typing.Optional[Threshold]:
        return self.labels.get(label)

    def resolve(self, base: typing.Optional[float] = None) -> float:
        raise TypeError("a label map has no single value, resolve its labels")

    def _key(self) -> tuple[typing.Any, ...]:
        return tuple(sorted(self.labels.items()))


Kinds = typing.Sequence[type[Threshold]]

_SCALARS: dict[type[Threshold], str] = {
    Count: "number",
    Rate: "number",
    Percentage: "percentage",
    Duration: "interval",
    ByteSize: "size",
}


def parse_threshold(raw: str, accepts: Kinds) -> Threshold:
    """Parses `raw` as the first variant out of `accepts` that matches.

    Variants are tried in the given order, so ``(Count, Duration)``
    reads ``"60"`` as a count while ``(Duration,)`` reads it as 60
    seconds. :class:`LabelMap` is not handled here, see
    :func:`parse_label_thresholds`.

    :raises ParseError: if no accepted variant matches
    """
    for kind in accepts:
        if kind not in _SCALARS:
            raise TypeError("cannot parse threshold kind", kind)
        try:
            return kind.parse(raw)  # type: ignore
        except ParseError:
            continue
    raise ParseError(
        "invalid threshold (expected {0})".format(
            " or ".join(_SCALARS[kind] for kind in accepts)
        ),
        raw,
    )


def parse_label_thresholds(raw: str, accepts: typing.Mapping[str, Kinds]) -> LabelMap:
    """Parses a ``label=value`` list into a :class:`LabelMap`.

    :param accepts: mapping from each allowed label to the variants its
        value may take
    """
    labels = {
        label: parse_threshold(value, accepts[label])
        for label, value in parse_label_map(raw, accepts.keys()).items()
    }
    return LabelMap(labels, raw.strip())


def compare(
    value: float,
    warning: typing.Optional[float],
    critical_: typing.Optional[float],
    reverse: bool = False,
) -> ServiceState:
    """Rates `value` against resolved limits.

    The critical limit is tested first. By default reaching a limit
    triggers it; with `reverse` set, falling below a limit does.
    ``None`` disables a limit.
    """

    def triggers(limit: typing.Optional[float]) -> bool:
        if limit is None:
            return False
        if reverse:
            return value < limit
        return value >= limit

    if triggers(critical_):
        return critical
    if triggers(warning):
        return warn
    return ok


def percent_limit(threshold: typing.Optional[Threshold]) -> typing.Optional[float]:
    """Limit for a measure which already is a percentage.

    ``90`` and ``90%`` both mean 90 percent, fractions are kept.
    """
    if threshold is None:
        return None
    if isinstance(threshold, Percentage):
        return threshold.value
    return threshold.resolve()
