"""Persistent state between plugin invocations.

Rate based checks (hit ratio, WAL growth, commit rates...) compare the
counters they see with the ones seen by the previous run. Those are
kept in a single status file holding, for each monitored cluster, a
mapping from entry name to a JSON value. We prefer a plain text format
to allow administrators to inspect and edit its content.

The file starts with a marker line so that a ``--status-file`` pointing
to some unrelated file is refused instead of being overwritten.

Several plugin processes may share the same status file. Every access
takes an advisory lock on a companion ``.lock`` file for the whole
file: shared for :meth:`StateStore.load`, exclusive for the
read-modify-write cycle of :meth:`StateStore.save`. New content is
written to a temporary file which then replaces the status file, so a
crash never leaves a half written file behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import typing

from .error import StateStoreError
from .platform import locked

_log = logging.getLogger(__name__)

MAGIC = "# pgactivity status file, format 1"

DEFAULT_IDENTITY = "default"

DEFAULT_PORT = 5432


def host_identity(
    host: typing.Optional[str] = None,
    port: typing.Optional[int] = None,
    service: typing.Optional[str] = None,
) -> str:
    """Derives the key under which a cluster's state is stored.

    A named service is identified by its name, anything else by host and
    port. The ambient connection (libpq defaults and environment) uses a
    fixed sentinel.
    """
    if service:
        return "service={0}".format(service)
    if not host and not port:
        return DEFAULT_IDENTITY
    return "host={0} port={1}".format(host or "localhost", port or DEFAULT_PORT)


class StateStore:
    path: str

    lockpath: str

    def __init__(self, path: str) -> None:
        """Creates a store backed by the status file at `path`.

        Nothing is read or created until the first :meth:`load` or
        :meth:`save`.
        """
        self.path = path
        self.lockpath = path + ".lock"

    def __repr__(self) -> str:
        return "StateStore({0!r})".format(self.path)

    def load(self, host_identity: str, entry_name: str) -> typing.Any:
        """Reads one entry.

        :returns: the saved value or `None` if the entry was never saved,
            including when the status file does not exist yet
        :raises StateStoreError: if the file can not be read or is not
            a status file
        """
        try:
            with locked(self.lockpath, exclusive=False):
                data = self._read()
        except OSError as exc:
            raise StateStoreError(self.path, "cannot lock: {0}".format(exc)) from exc
        value = data.get(host_identity, {}).get(entry_name)
        if value is None:
            _log.debug("no %s entry for %s in %s", entry_name, host_identity, self.path)
        return value

    def save(self, host_identity: str, entry_name: str, value: typing.Any) -> None:
        """Replaces one entry, keeping every other entry of the file.

        `value` must be JSON serializable. Tuples come back as lists.

        :raises StateStoreError: if the file can not be read, is not a
            status file or the new content can not be written
        """
        try:
            with locked(self.lockpath, exclusive=True):
                data = self._read()
                data.setdefault(host_identity, {})[entry_name] = value
                self._write(data)
        except OSError as exc:
            raise StateStoreError(self.path, "cannot lock: {0}".format(exc)) from exc
        _log.debug("saved %s entry for %s in %s", entry_name, host_identity, self.path)

    def _read(self) -> dict[str, dict[str, typing.Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as fileobj:
                header = fileobj.readline()
                body = fileobj.read()
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            raise StateStoreError(self.path, "cannot read: {0}".format(exc)) from exc
        if not header and not body:
            return {}
        if header.rstrip("\r\n") != MAGIC:
            raise StateStoreError(self.path, "not a pgactivity status file")
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise StateStoreError(self.path, "corrupted content: {0}".format(exc)) from exc
        if not isinstance(data, dict) or not all(
            isinstance(entries, dict) for entries in data.values()
        ):
            raise StateStoreError(self.path, "corrupted content: not a mapping of hosts")
        return typing.cast(dict[str, dict[str, typing.Any]], data)

    def _write(self, data: dict[str, dict[str, typing.Any]]) -> None:
        try:
            content = json.dumps(data, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise StateStoreError(self.path, "cannot serialize: {0}".format(exc)) from exc
        directory = os.path.dirname(os.path.abspath(self.path))
        tmpname = None
        replaced = False
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=".pgactivity_",
                delete=False,
            ) as fileobj:
                tmpname = fileobj.name
                fileobj.write(MAGIC + "\n")
                fileobj.write(content)
                fileobj.write("\n")
                fileobj.flush()
                os.fsync(fileobj.fileno())
            os.replace(tmpname, self.path)
            replaced = True
        except OSError as exc:
            raise StateStoreError(self.path, "cannot write: {0}".format(exc)) from exc
        finally:
            if not replaced and tmpname is not None and os.path.exists(tmpname):
                os.unlink(tmpname)
