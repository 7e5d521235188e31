from __future__ import annotations

from sparkscope.runtime.records import CorrelationTable


def test_lookup_absent_returns_none():
    t = CorrelationTable("job")
    assert t.lookup("app_1", 0) is None
    assert len(t) == 0


def test_record_is_keyed_by_app_instance():
    t = CorrelationTable("job")
    t.record("app1_1", 0, "c1")
    t.record("app2_1", 0, "c2")

    assert t.lookup("app1_1", 0) == "c1"
    assert t.lookup("app2_1", 0) == "c2"
    assert len(t) == 2


def test_owner_is_write_once():
    t = CorrelationTable("stage")
    assert t.record("a_1", 5, "c1") == "c1"
    assert t.record("a_1", 5, "c2") == "c1"
    assert t.lookup("a_1", 5) == "c1"
