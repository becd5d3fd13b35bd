from __future__ import annotations

from depot.shared.core import lifecycle


def test_handlers_run_most_recent_first_and_survive_errors(caplog):
    calls = []

    def first():
        calls.append("first")

    def broken():
        raise RuntimeError("close failed")

    def last():
        calls.append("last")

    for handler in (first, broken, last, first):
        lifecycle.register_cleanup_handler(handler)

    lifecycle.run_cleanup_handlers()

    assert calls == ["last", "first"]
    assert "close failed" in caplog.text

    # Drained: a second run is a no-op
    lifecycle.run_cleanup_handlers()
    assert calls == ["last", "first"]


def test_unregister_cleanup_handler():
    calls = []

    def handler():
        calls.append("ran")

    lifecycle.register_cleanup_handler(handler)
    lifecycle.unregister_cleanup_handler(handler)
    lifecycle.run_cleanup_handlers()

    assert calls == []
