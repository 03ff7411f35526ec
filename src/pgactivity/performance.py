"""Performance data (perfdata) representation.

Performance data are written into the *perfdata* section of the
plugin's output, after the ``|`` of the status line.
https://github.com/monitoring-plugins/monitoring-plugin-guidelines/blob/main/monitoring_plugins_interface/03.Output.md#performance-data
"""

from __future__ import annotations

import re
import typing

Number = typing.Union[int, float]


def quote(label: str) -> str:
    if re.match(r"^\w+$", label):
        return label
    return f"'{label}'"


def _fmt(value: typing.Any) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return "%.6g" % value
    return str(value)


class Performance:
    """A single measured value with its limits.

    For sake of consistency, performance data should represent their
    values in their respective base unit, so `Performance('size', 10000,
    'B')` is better than `Performance('size', 10, 'kB')`. Limits are
    absolute values: percentages must be resolved before.
    """

    label: str
    """short identifier, results in graph titles for example"""

    value: typing.Any
    """measured value (usually an int or float)"""

    uom: typing.Optional[str]
    """unit of measure -- use base units whereever possible"""

    warn: typing.Optional[Number]
    """warning limit"""

    crit: typing.Optional[Number]
    """critical limit"""

    min: typing.Optional[Number]
    """known value minimum (None for no minimum)"""

    max: typing.Optional[Number]
    """known value maximum (None for no maximum)"""

    # pylint: disable-next=redefined-builtin,too-many-arguments
    def __init__(
        self,
        label: str,
        value: typing.Any,
        uom: typing.Optional[str] = None,
        warn: typing.Optional[Number] = None,
        crit: typing.Optional[Number] = None,
        min: typing.Optional[Number] = None,
        max: typing.Optional[Number] = None,
    ) -> None:
        if "'" in label or "=" in label:
            raise RuntimeError("label contains illegal characters", label)
        self.label = label
        self.value = value
        self.uom = uom
        self.warn = warn
        self.crit = crit
        self.min = min
        self.max = max

    def __repr__(self) -> str:
        return "Performance({0!r})".format(str(self))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Performance) and str(self) == str(other)

    def __str__(self) -> str:
        """String representation conforming to the plugin API.

        Labels containing spaces or special characters will be quoted.
        Trailing empty fields are left out.
        """
        out = [
            "{0}={1}{2}".format(quote(self.label), _fmt(self.value), self.uom or ""),
        ]
        for field in (self.warn, self.crit, self.min, self.max):
            out.append("" if field is None else _fmt(field))
        while out[-1] == "":
            out.pop()
        return ";".join(out)
