# tests/fork/test_stats.py
from __future__ import annotations

from forkjob.fork import (
    BatchProcessingError,
    LogEntry,
    MergeTypeConflict,
    StatsAggregator,
    merge_result,
)


class TestMergeResult:
    def test_absent_key_is_copied(self):
        source = {"nested": {"a": [1]}}
        target = merge_result({}, source)
        assert target == source
        target["nested"]["a"].append(2)
        assert source == {"nested": {"a": [1]}}

    def test_numbers_add(self):
        assert merge_result({"n": 2}, {"n": 3}) == {"n": 5}
        assert merge_result({"n": 1.5}, {"n": 1}) == {"n": 2.5}

    def test_numeric_merge_is_order_independent(self):
        deltas = [{"n": 1}, {"n": 4}, {"n": 10}]
        forward, backward = {}, {}
        for delta in deltas:
            merge_result(forward, delta)
        for delta in reversed(deltas):
            merge_result(backward, delta)
        assert forward == backward == {"n": 15}

    def test_strings_last_write_wins(self):
        assert merge_result({"s": "old"}, {"s": "new"}) == {"s": "new"}

    def test_lists_extend_in_arrival_order(self):
        target = {"seen": [1]}
        merge_result(target, {"seen": [2, 3]})
        merge_result(target, {"seen": (4,)})
        assert target == {"seen": [1, 2, 3, 4]}

    def test_dicts_merge_recursively(self):
        target = {"by_lang": {"en": 1, "fr": 2}}
        merge_result(target, {"by_lang": {"en": 4, "de": 1}})
        assert target == {"by_lang": {"en": 5, "fr": 2, "de": 1}}

    def test_type_conflict_overwrites_and_reports(self):
        conflicts = []
        target = merge_result({"x": {"a": 1}}, {"x": 7}, conflicts)
        assert target == {"x": 7}
        (conflict,) = conflicts
        assert isinstance(conflict, MergeTypeConflict)
        assert conflict.path == ("x",)
        assert "dict" in str(conflict) and "int" in str(conflict)

    def test_bool_is_not_summed(self):
        conflicts = []
        target = merge_result({"flag": True}, {"flag": 1}, conflicts)
        assert target == {"flag": 1}
        assert len(conflicts) == 1


class TestStatsAggregator:
    def test_add_result_counts_by_default(self):
        stats = StatsAggregator()
        stats.add_result("files")
        stats.add_result("files")
        stats.add_result("bytes", 100)
        assert stats.result == {"files": 2, "bytes": 100}

    def test_logs_keep_order_and_kind(self):
        stats = StatsAggregator()
        stats.add_log("first")
        stats.add_error("second", data={"row": 3})
        stats.add_log("third")

        assert [e.message for e in stats.logs] == ["first", "second", "third"]
        assert [e.message for e in stats.errors()] == ["second"]
        assert stats.errors()[0].data == {"row": 3}

    def test_conflict_becomes_error_entry(self):
        stats = StatsAggregator()
        stats.add_result("x", "text")
        stats.add_result("x", 3)
        assert stats.result == {"x": 3}
        (entry,) = stats.errors()
        assert entry.data == ("x",)

    def test_absorb_accepts_entries_and_dicts(self):
        stats = StatsAggregator()
        stats.absorb({
            "result": {"n": 1},
            "logs": [LogEntry(message="a"), {"message": "b", "type": "error"}],
        })
        stats.absorb({"result": {"n": 2}})

        assert stats.result == {"n": 3}
        assert [e.message for e in stats.logs] == ["a", "b"]
        assert stats.logs[1].is_error

    def test_snapshot_is_detached_and_reset_clears(self):
        stats = StatsAggregator()
        stats.add_result("seen", [1])
        snap = stats.snapshot()
        stats.add_result("seen", [2])
        assert snap["result"] == {"seen": [1]}

        stats.reset()
        assert stats.result == {} and stats.logs == []
        assert snap["result"] == {"seen": [1]}


def test_log_entry_defaults():
    a, b = LogEntry(message="x"), LogEntry(message="x")
    assert a.type == "log"
    assert a.id != b.id
    assert a.to_dict()["message"] == "x"
    assert a.date.endswith("+00:00")


def test_batch_error_from_message():
    err = BatchProcessingError.from_message({"code": "error", "error": "KeyError: 'k'"}, pid=12)
    assert str(err) == "KeyError: 'k'"
    assert err.pid == 12
    assert str(BatchProcessingError.from_message({})) == "unknown batch error"
