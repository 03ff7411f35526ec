"""Exceptions with special meanings for pgactivity."""


class CheckError(RuntimeError):
    """Abort check execution.

    This exception should be raised if it becomes clear for a check
    that it is not able to determine the cluster status. Raising this
    exception will make the plugin display the exception's argument and
    exit with an UNKNOWN (3) status.
    """

    pass


class QueryError(CheckError):
    """A query could not be executed or its result could not be parsed.

    Connection failures, SQL errors and server side statement timeouts
    all end up here. Query errors are never retried.
    """

    pass


class IncompatibleServer(CheckError):
    """The check does not support the version of the server."""

    pass


class Timeout(RuntimeError):
    """Maximum check run time exceeded.

    This exception is raised internally if the check's run time takes
    longer than allowed. Check execution is aborted and the plugin exits
    with an UNKNOWN (3) status.
    """

    pass


class Terminated(RuntimeError):
    """The process received a termination signal."""

    pass


class StateStoreError(RuntimeError):
    """The status file can not be read or written.

    Raised for unreadable, corrupted or foreign files as well as for
    failed writes. A missing status file is not an error.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(path, reason)
        self.path = path
        self.reason = reason

    def __str__(self) -> str:
        return "status file {0}: {1}".format(self.path, self.reason)


class UsageError(ValueError):
    """Invalid command line usage.

    Bad thresholds, missing or mutually exclusive arguments and unknown
    services. Usage errors never produce a verdict, the plugin exits
    with :data:`EXIT_USAGE` instead.
    """

    pass


class ParseError(UsageError):
    """A threshold or interval could not be parsed."""

    def __init__(self, message: str, value: str) -> None:
        super().__init__(message, value)
        self.message = message
        self.value = value

    def __str__(self) -> str:
        return "{0}: {1!r}".format(self.message, self.value)


EXIT_USAGE = 127
