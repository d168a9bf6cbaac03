"""Deferred work scheduling and the host callback table."""

import asyncio

import pytest

from viewbind import CallbackRegistry, Debouncer, Scheduler


class TestScheduler:

    def test_runs_immediately_without_loop(self):
        scheduler = Scheduler()
        calls = []
        assert not scheduler.is_deferred
        assert scheduler.call_soon(calls.append, "soon") is None
        assert scheduler.call_later(1.0, calls.append, "later") is None
        assert calls == ["soon", "later"]

    @pytest.mark.asyncio
    async def test_defers_on_running_loop(self):
        scheduler = Scheduler()
        calls = []
        assert scheduler.is_deferred
        scheduler.call_soon(calls.append, "soon")
        assert calls == []
        await asyncio.sleep(0)
        assert calls == ["soon"]


class TestDebouncer:

    @pytest.mark.asyncio
    async def test_trailing_edge_per_key(self):
        debounce = Debouncer(Scheduler(), 0.01)
        calls = []
        debounce("a", lambda: calls.append("a1"))
        debounce("a", lambda: calls.append("a2"))
        debounce("b", lambda: calls.append("b1"))
        assert debounce.is_pending("a")
        assert debounce.pending_count == 2

        await asyncio.sleep(0.05)
        assert sorted(calls) == ["a2", "b1"]
        assert debounce.pending_count == 0

    @pytest.mark.asyncio
    async def test_cancel(self):
        debounce = Debouncer(Scheduler(), 0.01)
        calls = []
        debounce("a", lambda: calls.append("a"))
        assert debounce.cancel("a")
        assert not debounce.cancel("a")
        await asyncio.sleep(0.05)
        assert calls == []

    def test_failing_callback_is_logged(self, caplog):
        debounce = Debouncer(Scheduler(), 0.01)

        def broken():
            raise RuntimeError("boom")

        debounce("a", broken)
        assert "boom" in caplog.text


class TestCallbackRegistry:

    def test_register_and_invoke(self):
        registry = CallbackRegistry()
        calls = []
        registry.register("onHidden", calls.append)
        assert "onHidden" in registry
        assert registry.invoke("onHidden", "target")
        assert calls == ["target"]

    def test_decorator_registration(self):
        registry = CallbackRegistry()

        @registry.register("onHidden")
        def on_hidden(element_id):
            return element_id

        assert registry.get("onHidden") is on_hidden
        assert registry.names() == ["onHidden"]

    def test_unregister_and_missing(self):
        registry = CallbackRegistry({"onHidden": lambda element_id: None})
        registry.unregister("onHidden")
        assert not registry.invoke("onHidden", "target")

    def test_non_callable_is_rejected(self):
        with pytest.raises(TypeError):
            CallbackRegistry().register("onHidden", "not a function")

    def test_host_exception_is_isolated(self):
        def broken(element_id):
            raise ValueError(element_id)

        registry = CallbackRegistry({"broken": broken})
        assert registry.invoke("broken", "target") is False
