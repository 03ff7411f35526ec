import logging

import pytest

from pgactivity import (
    CheckError,
    IncompatibleServer,
    Unsupported,
    VersionedQuery,
    check_supported,
    normalize_version,
    resolve,
)
from pgactivity.version import format_version


class TestResolve:
    table = {80100: "A", 90200: "B"}

    def test_greatest_key_below(self):
        assert resolve(self.table, 90605) == "B"

    def test_exact_key(self):
        assert resolve(self.table, 90200) == "B"
        assert resolve(self.table, 80100) == "A"

    def test_between_keys(self):
        assert resolve(self.table, 90105) == "A"

    def test_below_every_key(self):
        assert resolve(self.table, 80000) is Unsupported
        assert not Unsupported

    def test_versioned_query_input(self):
        assert resolve(VersionedQuery(self.table), 170002) == "B"


class TestVersionedQuery:
    def test_keys_sorted(self):
        queries = VersionedQuery({100000: "new", 80200: "old", 90600: "mid"})
        assert queries.versions == [80200, 90600, 100000]
        assert queries.minimum == 80200

    def test_select(self):
        queries = VersionedQuery({80200: "old", 100000: "new"})
        assert queries.select(90600) == "old"
        assert queries.select(130004) == "new"

    def test_select_unsupported(self):
        queries = VersionedQuery({100000: "new"})
        with pytest.raises(IncompatibleServer) as excinfo:
            queries.select(90605)
        assert "9.6" in str(excinfo.value)

    def test_empty_table(self):
        with pytest.raises(ValueError):
            VersionedQuery({})


class TestCheckSupported:
    def test_supported(self):
        assert check_supported("backends", 90605, 80200)

    def test_too_old(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pgactivity"):
            assert not check_supported("wal_files", 80000, 80100)
        assert "wal_files" in caplog.text
        assert "8.1" in caplog.text

    def test_maximum_is_exclusive(self):
        assert check_supported("x", 90605, 80200, 100000)
        assert not check_supported("x", 100000, 80200, 100000)


class TestNormalizeVersion:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("9.6.5", 90605),
            ("8.4.22", 80422),
            ("9.6", 90600),
            ("10.4", 100004),
            ("16.2", 160002),
            ("10devel", 100000),
            ("13beta2", 130000),
            ("15.3 (Debian 15.3-1.pgdg120+1)", 150003),
        ],
    )
    def test_versions(self, text, expected):
        assert normalize_version(text) == expected

    def test_garbage(self):
        with pytest.raises(CheckError):
            normalize_version("PostgreSQL")

    def test_format(self):
        assert format_version(90605) == "9.6"
        assert format_version(160002) == "16.2"
