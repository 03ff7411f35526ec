from pgactivity import counter_deltas, rate, ratio


class TestCounterDeltas:
    def test_growth(self):
        assert counter_deltas({"hit": 100, "read": 50}, {"hit": 140, "read": 60}) == {
            "hit": 40,
            "read": 10,
        }

    def test_unchanged(self):
        assert counter_deltas({"a": 5}, {"a": 5}) == {"a": 0}

    def test_decrease_is_reset(self):
        assert counter_deltas({"a": 50, "b": 1}, {"a": 40, "b": 2}) is None

    def test_new_counter_ignored(self):
        assert counter_deltas({"a": 1}, {"a": 3, "b": 7}) == {"a": 2}


class TestRate:
    def test_rate(self):
        assert rate(120, 60) == 2.0

    def test_no_elapsed_time(self):
        assert rate(120, 0) == 0.0
        assert rate(120, -5) == 0.0


class TestRatio:
    def test_ratio(self):
        assert ratio(40, 50) == 80.0

    def test_zero_total(self):
        assert ratio(0, 0) is None
