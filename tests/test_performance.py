import pytest

from pgactivity import Performance


class TestPerformance:
    def test_normal_label(self):
        assert "d=10" == str(Performance("d", 10))

    def test_label_quoted(self):
        assert "'d d'=10" == str(Performance("d d", 10))

    def test_label_must_not_contain_quotes(self):
        with pytest.raises(RuntimeError):
            str(Performance("d'", 10))

    def test_label_must_not_contain_equals(self):
        with pytest.raises(RuntimeError):
            str(Performance("d=", 10))

    def test_all_fields(self):
        perf = Performance("total", 12, "B", 100, 200, 0, 1000)
        assert "total=12B;100;200;0;1000" == str(perf)

    def test_trailing_empty_fields_dropped(self):
        assert "total=12;;;0" == str(Performance("total", 12, min=0))

    def test_float_formatting(self):
        assert "ratio=80%;90;80" == str(Performance("ratio", 80.0, "%", 90.0, 80))
        assert "rate=0.3333" == str(Performance("rate", 0.3333))

    def test_equality(self):
        assert Performance("a", 1, warn=2) == Performance("a", 1.0, warn=2.0)
        assert Performance("a", 1) != Performance("b", 1)
