"""Server version compatibility.

Version numbers are integers: ``major*10000 + minor*100 + patch`` up to
9.6 and ``major*10000 + minor`` from 10 on. Both schemes compare
correctly once numeric, so everything below only deals with integers.
:func:`normalize_version` converts the textual forms reported by the
server.
"""

from __future__ import annotations

import bisect
import logging
import re
import typing

from .error import CheckError, IncompatibleServer

_log = logging.getLogger(__name__)

P = typing.TypeVar("P")

_VERSION = re.compile(r"^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?")


class _Unsupported:
    """Marker for a version below every entry of a version table."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Unsupported"


Unsupported = _Unsupported()


def normalize_version(text: str) -> int:
    """Converts a textual server version to its numeric form.

    >>> normalize_version("9.6.5")
    90605
    >>> normalize_version("10.4")
    100004
    >>> normalize_version("13beta2")
    130000

    :raises CheckError: if `text` does not start with a version number
    """
    match = _VERSION.match(text)
    if not match:
        raise CheckError("cannot parse server version", text)
    major = int(match.group(1))
    minor = int(match.group(2) or 0)
    patch = int(match.group(3) or 0)
    if major >= 10:
        return major * 10000 + minor
    return major * 10000 + minor * 100 + patch


def format_version(version_num: int) -> str:
    """Human readable form of a numeric version."""
    major, rest = divmod(version_num, 10000)
    if major >= 10:
        return "{0}.{1}".format(major, rest)
    return "{0}.{1}".format(major, rest // 100)


class VersionedQuery(typing.Generic[P]):
    """Payloads indexed by the minimum server version they apply to.

    Keys are kept sorted so that :meth:`get` is a floor lookup: the
    payload of the greatest key not above the requested version.
    """

    versions: list[int]

    payloads: list[P]

    def __init__(self, table: typing.Mapping[int, P]) -> None:
        if not table:
            raise ValueError("a version table needs at least one entry")
        self.versions = sorted(table)
        self.payloads = [table[version] for version in self.versions]

    def __len__(self) -> int:
        return len(self.versions)

    def __repr__(self) -> str:
        return "VersionedQuery({0!r})".format(dict(zip(self.versions, self.payloads)))

    @property
    def minimum(self) -> int:
        return self.versions[0]

    def get(self, version_num: int) -> typing.Union[P, _Unsupported]:
        index = bisect.bisect_right(self.versions, version_num)
        if index == 0:
            return Unsupported
        return self.payloads[index - 1]

    def select(self, version_num: int) -> P:
        """Like :meth:`get` but raises if no payload applies.

        :raises IncompatibleServer: if `version_num` is below every key
        """
        payload = self.get(version_num)
        if payload is Unsupported:
            raise IncompatibleServer(
                "no query for server version {0} (requires {1} or later)".format(
                    format_version(version_num), format_version(self.minimum)
                )
            )
        return typing.cast(P, payload)


def resolve(
    table: typing.Union[typing.Mapping[int, P], VersionedQuery[P]], version_num: int
) -> typing.Union[P, _Unsupported]:
    """Picks the payload of the greatest version key <= `version_num`.

    :returns: the payload, or :data:`Unsupported` if `version_num` is
        below every key
    """
    if not isinstance(table, VersionedQuery):
        table = VersionedQuery(table)
    return table.get(version_num)


def check_supported(
    check_name: str,
    version_num: int,
    minimum: int,
    maximum: typing.Optional[int] = None,
) -> bool:
    """Tells whether a check runs on a server of version `version_num`.

    `minimum` is inclusive, `maximum` exclusive. A warning is logged
    when the check is not supported.
    """
    if version_num < minimum:
        _log.warning(
            "service %s is not compatible with server version %s "
            "(only %s and after)",
            check_name,
            format_version(version_num),
            format_version(minimum),
        )
        return False
    if maximum is not None and version_num >= maximum:
        _log.warning(
            "service %s is not compatible with server version %s "
            "(only before %s)",
            check_name,
            format_version(version_num),
            format_version(maximum),
        )
        return False
    return True
