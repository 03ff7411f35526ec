"""Services shipped with pgactivity.

Importing this package registers every service.
"""

from . import (  # noqa: F401
    backends,
    backends_status,
    bgwriter,
    commit_ratio,
    connection,
    database_size,
    hit_ratio,
    longest_query,
    wal_files,
)
