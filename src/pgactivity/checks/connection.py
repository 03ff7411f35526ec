"""Connectivity test: failing to connect is the problem being checked."""

from ..check import FORBIDDEN, Check, CheckInvocation, register
from ..error import QueryError
from ..verdict import Verdict


@register
class Connection(Check):
    name = "connection"
    description = "Perform a simple connection test."
    thresholds = FORBIDDEN
    max_hosts = None

    def run(self, invocation: CheckInvocation) -> Verdict:
        verdict = Verdict()
        for host in invocation.hosts:
            try:
                version, _ = host.version(invocation.runner)
                invocation.query("SELECT now()", host)
            except QueryError as exc:
                verdict.critical("{0}: {1}".format(host.name, exc))
                continue
            verdict.ok("Connection successful on {0}, version {1}".format(host.name, version))
        return verdict
