"""Rendering of verdicts.

Two formats are supported. ``nagios`` is the plugin API format: a
status line with messages and perfdata, followed by long output lines.
``human`` prints one labelled field per line for use on a terminal.
Rendering never touches the status file nor the database.
"""

from __future__ import annotations

import io
import logging
import typing

from .verdict import Verdict

FORMATS = ("nagios", "human")

SERVICE_PREFIX = "POSTGRES_"


def filter_output(output: str, filtered: str) -> str:
    """Filters out characters from output"""
    for char in filtered:
        output = output.replace(char, "")
    return output


def service_label(name: typing.Optional[str]) -> str:
    if not name:
        return ""
    return SERVICE_PREFIX + name.upper()


class Output:
    ILLEGAL = "|"

    logchan: logging.StreamHandler[io.StringIO]
    verbose: int
    format: str
    status: str
    out: list[str]
    warnings: list[str]
    perfdata: str

    def __init__(
        self,
        logchan: logging.StreamHandler[io.StringIO],
        verbose: int = 0,
        format: str = "nagios",
    ) -> None:
        if format not in FORMATS:
            raise ValueError("unknown output format", format)
        self.logchan = logchan
        self.verbose = verbose
        self.format = format
        self.status = ""
        self.out = []
        self.warnings = []
        self.perfdata = ""

    def add(self, service: typing.Optional[str], verdict: Verdict) -> None:
        if self.format == "human":
            self._add_human(service, verdict)
            return
        self.status = self.format_status(service, verdict)
        self.perfdata = self.format_perfdata(verdict)
        if self.perfdata and self.verbose == 0:
            self.status += " " + self.perfdata
            self.perfdata = ""
        self.add_longoutput(verdict.longmessages)

    def format_status(self, service: typing.Optional[str], verdict: Verdict) -> str:
        prefix = service_label(service)
        messages = ", ".join(msg.strip() for msg in verdict.messages if msg.strip())
        return self._screen_chars(
            "{0}{1}{2}".format(
                prefix + " " if prefix else "",
                str(verdict.state).upper(),
                ": " + messages if messages else "",
            ),
            "status line",
        )

    def format_perfdata(self, verdict: Verdict) -> str:
        if not verdict.perfdata:
            return ""
        out = " ".join(str(perf) for perf in verdict.perfdata)
        return "| " + self._screen_chars(out, "perfdata")

    def _add_human(self, service: typing.Optional[str], verdict: Verdict) -> None:
        self.status = "{0:<15}: {1}".format("Service", service_label(service))
        self.out.append(
            "{0:<15}: {1} ({2})".format(
                "Returns", verdict.exitcode, str(verdict.state).upper()
            )
        )
        for message in verdict.messages:
            self.out.append("{0:<15}: {1}".format("Message", message))
        for message in verdict.longmessages:
            self.out.append("{0:<15}: {1}".format("Long message", message))
        for perf in verdict.perfdata:
            self.out.append("{0:<15}: {1}".format("Perfdata", perf))

    def add_longoutput(self, text: typing.Union[str, list[str], tuple[str, ...]]) -> None:
        if isinstance(text, (list, tuple)):
            for line in text:
                self.add_longoutput(line)
        else:
            self.out.append(self._screen_chars(text, "long output"))

    def __str__(self) -> str:
        output = [
            elem
            for elem in [self.status]
            + self.out
            + [self._screen_chars(self.logchan.stream.getvalue(), "logging output")]
            + self.warnings
            + [self.perfdata]
            if elem
        ]
        return "\n".join(output) + "\n"

    def _screen_chars(self, text: str, where: str) -> str:
        text = text.rstrip("\n")
        if self.format == "human":
            return text
        screened = filter_output(text, self.ILLEGAL)
        if screened != text:
            self.warnings.append(
                self._illegal_chars_warning(where, set(text) - set(screened))
            )
        return screened

    @staticmethod
    def _illegal_chars_warning(where: str, removed_chars: set[str]) -> str:
        hex_chars = ", ".join("0x{0:x}".format(ord(c)) for c in sorted(removed_chars))
        return "warning: removed illegal characters ({0}) from {1}".format(
            hex_chars, where
        )
