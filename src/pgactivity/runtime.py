"""Functions and classes to interface with the system.

This module contains the :class:`Runtime` class that handles exceptions,
timeouts, signals and logging. The plugin's main function should not
use Runtime directly but be decorated with :func:`guarded`.
"""

from __future__ import annotations

import functools
import io
import logging
import signal
import sys
import threading
import traceback
import typing

from typing_extensions import Self

from .error import EXIT_USAGE, Terminated, Timeout, UsageError
from .output import Output, service_label
from .platform import with_timeout

if typing.TYPE_CHECKING:
    from .check import CheckExecutor

P = typing.ParamSpec("P")
R = typing.TypeVar("R")

TERMINATING_SIGNALS = ("SIGTERM", "SIGINT", "SIGHUP")


def _terminate(signum: int, frame: typing.Any) -> typing.NoReturn:
    raise Terminated(signal.Signals(signum).name)


def install_signal_handlers() -> None:
    """Turns termination signals into a :exc:`Terminated` exception.

    Only possible from the main thread; elsewhere the default handlers
    stay in place.
    """
    if threading.current_thread() is not threading.main_thread():
        return
    for name in TERMINATING_SIGNALS:
        if hasattr(signal, name):
            signal.signal(getattr(signal, name), _terminate)


def guarded(
    original_function: typing.Optional[typing.Callable[P, R]] = None,
    verbose: typing.Optional[int] = None,
) -> typing.Callable[P, R]:
    """Runs a function in pgactivity's Runtime environment.

    `guarded` makes the decorated function behave correctly with respect
    to the Nagios plugin API if it aborts with an uncaught exception, a
    timeout or a termination signal: it exits with an *unknown* exit
    code and prints a traceback in a format acceptable by Nagios. Usage
    errors are printed on stderr and exit with :data:`EXIT_USAGE`.

    This function should be used as a decorator for the script's `main`
    function.

    :param verbose: Optional keyword parameter to control verbosity
        level during early execution (before :meth:`Runtime.execute`
        has been called). For example, use `@guarded(verbose=0)` to
        turn tracebacks in that phase off.
    """

    def _decorate(func: typing.Callable[P, R]):
        @functools.wraps(func)
        # pylint: disable-next=inconsistent-return-statements
        def wrapper(*args: typing.Any, **kwds: typing.Any):
            runtime = Runtime()
            if verbose is not None:
                runtime.verbose = verbose
            install_signal_handlers()
            try:
                return func(*args, **kwds)
            except UsageError as exc:
                runtime._handle_usage_error(exc)  # type: ignore
            except Timeout as exc:
                runtime._handle_exception(  # type: ignore
                    "Timeout: check execution aborted after {0}".format(exc)
                )
            except Terminated as exc:
                runtime._handle_exception(  # type: ignore
                    "Terminated: received {0}".format(exc)
                )
            except Exception:
                runtime._handle_exception()  # type: ignore

        return wrapper

    if original_function is not None:
        assert callable(original_function), (
            'Function {!r} not callable. Forgot to add "verbose=" keyword?'.format(
                original_function
            )
        )
        return _decorate(original_function)
    return _decorate  # type: ignore


class Runtime:
    instance = None
    service: typing.Optional[str] = None
    _verbose = 1
    timeout: typing.Optional[int] = None
    logchan: logging.StreamHandler[io.StringIO]
    output: Output
    stdout = None
    stderr = None
    exitcode: int = 70  # EX_SOFTWARE

    def __new__(cls) -> Self:
        if not cls.instance:
            cls.instance = super(Runtime, cls).__new__(cls)
        return cls.instance

    def __init__(self) -> None:
        if getattr(self, "output", None) is not None:
            return
        rootlogger = logging.getLogger(__name__.split(".", 1)[0])
        rootlogger.setLevel(logging.DEBUG)
        for handler in list(rootlogger.handlers):
            if getattr(handler, "_pgactivity_runtime", False):
                rootlogger.removeHandler(handler)
        self.logchan = logging.StreamHandler(io.StringIO())
        self.logchan._pgactivity_runtime = True  # type: ignore
        self.logchan.setFormatter(logging.Formatter("%(message)s"))
        rootlogger.addHandler(self.logchan)
        self.output = Output(self.logchan)
        self.verbose = self._verbose

    def _handle_exception(
        self, statusline: typing.Optional[str] = None
    ) -> typing.NoReturn:
        exc_type, value = sys.exc_info()[0:2]
        name = service_label(self.service)
        self.output.status = "{0}UNKNOWN: {1}".format(
            name + " " if name else "",
            statusline or traceback.format_exception_only(exc_type, value)[0].strip(),
        )
        if self.verbose > 0:
            self.output.add_longoutput(traceback.format_exc())
        print("{0}".format(self.output), end="", file=self.stdout)
        self.exitcode = 3
        self.sysexit()

    def _handle_usage_error(self, exc: UsageError) -> typing.NoReturn:
        print("usage error: {0}".format(exc), file=self.stderr or sys.stderr)
        self.exitcode = EXIT_USAGE
        self.sysexit()

    @property
    def verbose(self) -> int:
        return self._verbose

    @verbose.setter
    def verbose(self, verbose: typing.Any) -> None:
        if isinstance(verbose, int):
            self._verbose = verbose
        elif isinstance(verbose, float):
            self._verbose = int(verbose)
        else:
            self._verbose = len(verbose or [])
        if self._verbose >= 3:
            self.logchan.setLevel(logging.DEBUG)
            self._verbose = 3
        elif self._verbose == 2:
            self.logchan.setLevel(logging.INFO)
        else:
            self.logchan.setLevel(logging.WARNING)
        self.output.verbose = self._verbose

    def run(
        self,
        executor: "CheckExecutor",
        service: str,
        args: typing.Mapping[str, typing.Any],
    ) -> None:
        verdict = executor.run(service, args)
        self.output.add(service, verdict)
        self.exitcode = verdict.exitcode

    # pylint: disable-next=too-many-arguments
    def execute(
        self,
        executor: "CheckExecutor",
        service: str,
        args: typing.Mapping[str, typing.Any],
        verbose: typing.Any = None,
        timeout: typing.Any = None,
        format: typing.Optional[str] = None,
    ) -> typing.NoReturn:
        self.service = service
        if verbose is not None:
            self.verbose = verbose
        if timeout is not None:
            self.timeout = int(timeout)
        if format is not None:
            self.output.format = format
        try:
            if self.timeout:
                with_timeout(self.timeout, self.run, executor, service, args)
            else:
                self.run(executor, service, args)
        finally:
            executor.runner.close()
        print("{0}".format(self.output), end="", file=self.stdout)
        self.sysexit()

    def sysexit(self) -> typing.NoReturn:
        sys.exit(self.exitcode)
