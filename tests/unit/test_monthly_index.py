from datetime import date

import pytest

from family_tasks.services.monthly_index import MonthlyIndex


@pytest.mark.unit
class TestMonthlyIndex:
    def test_add_spans_every_month(self):
        index = MonthlyIndex()

        months = index.add("t1", date(2023, 11, 20), date(2024, 2, 3))

        assert months == ["2023-11", "2023-12", "2024-01", "2024-02"]
        assert index.months_for("t1") == months

    def test_add_is_idempotent(self):
        index = MonthlyIndex()
        index.add("t1", date(2024, 1, 1), date(2024, 1, 2))
        index.add("t1", date(2024, 1, 1), date(2024, 1, 2))

        assert index.ids_for_month("2024-01") == ["t1"]

    def test_register_new_bumps_counter(self):
        index = MonthlyIndex()
        index.register_new("t1", date(2024, 1, 1), date(2024, 1, 1))
        index.register_new("t2", date(2024, 1, 1), date(2024, 1, 1))

        assert index.last_task_id == 2
        assert len(index) == 2

    def test_remove_drops_empty_buckets(self):
        index = MonthlyIndex()
        index.add("t1", date(2024, 1, 28), date(2024, 2, 3))
        index.add("t2", date(2024, 2, 1), date(2024, 2, 1))

        assert index.remove("t1") == ["2024-01", "2024-02"]
        assert index.month_keys == ["2024-02"]
        assert "t1" not in index

    def test_move(self):
        index = MonthlyIndex()
        index.add("t1", date(2024, 1, 28), date(2024, 2, 3))

        moved = index.move("t1", (date(2024, 1, 28), date(2024, 2, 3)), (date(2024, 1, 28), date(2024, 1, 31)))

        assert moved is True
        assert index.months_for("t1") == ["2024-01"]
        assert index.ids_for_month("2024-02") == []

    def test_move_with_same_span_is_noop(self):
        index = MonthlyIndex()
        index.add("t1", date(2024, 1, 28), date(2024, 2, 3))
        span = (date(2024, 1, 28), date(2024, 2, 3))

        assert index.move("t1", span, span) is False

    def test_document_round_trip_deduplicates(self):
        index = MonthlyIndex.from_document({"monthlyIndex": {"2024-01": ["a", "a", "b"], "2024-02": []}, "lastTaskId": 7})

        assert index.ids_for_month("2024-01") == ["a", "b"]
        assert index.month_keys == ["2024-01"]
        assert index.to_document() == {"monthlyIndex": {"2024-01": ["a", "b"]}, "lastTaskId": 7}

    def test_from_document_rejects_bad_shape(self):
        with pytest.raises(ValueError, match="monthlyIndex must be an object"):
            MonthlyIndex.from_document({"monthlyIndex": ["2024-01"]})

    def test_copy_is_independent(self):
        original = MonthlyIndex()
        original.add("t1", date(2024, 1, 1), date(2024, 1, 1))

        working = original.copy()
        working.add("t2", date(2024, 1, 1), date(2024, 1, 1))

        assert original.ids_for_month("2024-01") == ["t1"]
        assert working.ids_for_month("2024-01") == ["t1", "t2"]
