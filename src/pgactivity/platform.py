"""Platform specific helpers: timeouts and advisory file locks."""

from __future__ import annotations

import contextlib
import importlib
import os
import typing

from .error import Timeout

R = typing.TypeVar("R")


def with_timeout(
    time: int, func: typing.Callable[..., R], *args: typing.Any, **kwargs: typing.Any
) -> typing.Optional[R]:
    """Call `func` but terminate after `time` seconds."""

    if os.name == "nt":
        # We use a thread here since NT systems don't have POSIX signals.
        threading = importlib.import_module("threading")
        result: list[R] = []

        def target() -> None:
            result.append(func(*args, **kwargs))

        func_thread = threading.Thread(target=target)
        func_thread.daemon = True  # quit interpreter even if still running
        func_thread.start()
        func_thread.join(time)
        if func_thread.is_alive():
            raise Timeout("{0}s".format(time))
        return result[0] if result else None

    signal = importlib.import_module("signal")

    def timeout_handler(signum: int, frame: typing.Any) -> typing.NoReturn:
        raise Timeout("{0}s".format(time))

    previous = signal.signal(signal.SIGALRM, timeout_handler)
    signal.alarm(time)
    try:
        return func(*args, **kwargs)
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, previous)


def flock_exclusive(fileobj: typing.IO[typing.Any]) -> None:
    """Acquire exclusive lock for open file `fileobj`."""

    if os.name == "nt":
        msvcrt = importlib.import_module("msvcrt")
        msvcrt.locking(fileobj.fileno(), msvcrt.LK_LOCK, 2147483647)
        return

    fcntl = importlib.import_module("fcntl")
    fcntl.flock(fileobj, fcntl.LOCK_EX)


def flock_shared(fileobj: typing.IO[typing.Any]) -> None:
    """Acquire shared lock for open file `fileobj`.

    NT has no shared byte range locks, the lock is exclusive there.
    """

    if os.name == "nt":
        msvcrt = importlib.import_module("msvcrt")
        msvcrt.locking(fileobj.fileno(), msvcrt.LK_RLCK, 2147483647)
        return

    fcntl = importlib.import_module("fcntl")
    fcntl.flock(fileobj, fcntl.LOCK_SH)


def funlock(fileobj: typing.IO[typing.Any]) -> None:
    """Release a lock taken by :func:`flock_exclusive` or :func:`flock_shared`."""

    if os.name == "nt":
        msvcrt = importlib.import_module("msvcrt")
        fileobj.seek(0)
        msvcrt.locking(fileobj.fileno(), msvcrt.LK_UNLCK, 2147483647)
        return

    fcntl = importlib.import_module("fcntl")
    fcntl.flock(fileobj, fcntl.LOCK_UN)


@contextlib.contextmanager
def locked(path: str, exclusive: bool) -> typing.Iterator[typing.IO[str]]:
    """Holds a lock on the file at `path` for the duration of the block.

    The file is created if needed. The lock is released and the file
    closed on every exit path.
    """
    fileobj = open(path, "a+", encoding="ascii")
    try:
        if exclusive:
            flock_exclusive(fileobj)
        else:
            flock_shared(fileobj)
        try:
            yield fileobj
        finally:
            funlock(fileobj)
    finally:
        fileobj.close()
