"""Tests for handlers that call back into the emitter while it dispatches."""

import threading

import pytest

from emmett import KILL_EVENT, Emitter


@pytest.mark.unit
class TestReentrancy:
    def test_handler_bound_mid_pass_waits_for_next_emission(self, emitter, make_handler, calls) -> None:
        late = make_handler("late")

        def binder(event):
            calls.append(("binder", event.key, event.data))
            emitter.on("x", late)

        emitter.once("x", binder)

        emitter.emit("x")
        assert [name for name, _, _ in calls] == ["binder"]

        emitter.emit("x")
        assert [name for name, _, _ in calls] == ["binder", "late"]

    def test_handler_removed_mid_pass_does_not_fire(self, emitter, make_handler, calls) -> None:
        victim = make_handler("victim")

        def remover(event):
            calls.append(("remover", event.key, event.data))
            emitter.off("x", victim)

        emitter.on("x", remover)
        emitter.on("x", victim)

        emitter.emit("x")

        assert [name for name, _, _ in calls] == ["remover"]

    def test_handler_removing_itself_still_counts(self, emitter, make_handler, calls) -> None:
        def self_removing(event):
            calls.append(("self", event.key, event.data))
            emitter.off(self_removing)

        emitter.on("x", self_removing)
        emitter.on("x", make_handler("after"))

        emitter.emit("x").emit("x")

        assert [name for name, _, _ in calls] == ["self", "after", "after"]

    def test_unbind_all_mid_pass(self, emitter, make_handler, calls) -> None:
        emitter.on("x", lambda e: emitter.unbind_all())
        emitter.on("x", make_handler("never"))
        emitter.on(make_handler("never"))

        emitter.emit("x")

        assert calls == []

    def test_once_handler_still_listed_during_its_call(self, emitter) -> None:
        seen = []

        def handler(event):
            seen.append(list(emitter.listeners("x")))

        emitter.once("x", handler)
        emitter.emit("x")

        assert seen == [[handler]]
        assert emitter.listeners("x") == []

    def test_once_handler_fires_once_under_nested_emission(self, emitter, calls) -> None:
        def handler(event):
            calls.append(("once", event.key, event.data))
            emitter.emit("x")

        emitter.once("x", handler)

        emitter.emit("x")

        assert len(calls) == 1

    def test_once_bound_mid_pass_is_not_consumed(self, emitter, make_handler, calls) -> None:
        late = make_handler("late")
        emitter.once("x", lambda e: emitter.once("x", late))

        emitter.emit("x")
        assert emitter.listeners("x") == [late]

        emitter.emit("x").emit("x")
        assert [name for name, _, _ in calls] == ["late"]

    def test_nested_emission_completes_first(self, emitter, make_handler, calls) -> None:
        def outer(event):
            calls.append(("outer:start", event.key, event.data))
            emitter.emit("inner")
            calls.append(("outer:end", event.key, event.data))

        emitter.on("outer", outer)
        emitter.on("outer", make_handler("outer:next"))
        emitter.on("inner", make_handler("inner"))

        emitter.emit("outer")

        assert [name for name, _, _ in calls] == [
            "outer:start",
            "inner",
            "outer:end",
            "outer:next",
        ]

    def test_kill_mid_pass_stops_remaining_handlers(self, emitter, make_handler, calls) -> None:
        emitter.on("x", lambda e: emitter.kill())
        emitter.on("x", make_handler("never"))

        emitter.emit("x")

        assert calls == []
        assert emitter.killed


@pytest.mark.unit
class TestHandlerFailure:
    def test_exception_reaches_emit_caller(self, emitter, make_handler, calls) -> None:
        def explode(event):
            raise ValueError("boom")

        emitter.on("x", make_handler("before"))
        emitter.on("x", explode)
        emitter.on("x", make_handler("after"))

        with pytest.raises(ValueError, match="boom"):
            emitter.emit("x")

        assert [name for name, _, _ in calls] == ["before"]

    def test_once_handlers_that_fired_are_consumed(self, emitter, make_handler, calls) -> None:
        def explode(event):
            raise ValueError("boom")

        emitter.once("x", make_handler("once"))
        emitter.on("x", explode)

        with pytest.raises(ValueError):
            emitter.emit("x")

        assert emitter.listeners("x") == [explode]

    def test_failure_aborts_propagation(self, make_handler, calls) -> None:
        parent = Emitter()
        child = parent.child()
        parent.on("x", make_handler("parent"))

        def explode(event):
            raise RuntimeError("boom")

        child.on("x", explode)

        with pytest.raises(RuntimeError):
            child.emit("x")

        assert calls == []


@pytest.mark.unit
class TestThreads:
    def test_concurrent_emitters_are_serialized(self, emitter) -> None:
        counter = {"value": 0}

        def increment(event):
            current = counter["value"]
            counter["value"] = current + 1

        emitter.on("tick", increment)

        def worker():
            for _ in range(500):
                emitter.emit("tick")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert counter["value"] == 2000

    def test_concurrent_binding(self, emitter) -> None:
        def worker():
            for _ in range(200):
                emitter.on("x", lambda e: None)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(emitter.listeners("x")) == 800

    def test_parent_and_child_killed_concurrently(self, emitter) -> None:
        child = emitter.child()
        parent_killing = threading.Event()
        child_killing = threading.Event()

        def on_parent_kill(event):
            parent_killing.set()
            child_killing.wait(5)

        def on_child_kill(event):
            child_killing.set()
            parent_killing.wait(5)

        emitter.on(KILL_EVENT, on_parent_kill)
        child.on(KILL_EVENT, on_child_kill)

        threads = [
            threading.Thread(target=emitter.kill, daemon=True),
            threading.Thread(target=child.kill, daemon=True),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)

        assert not any(thread.is_alive() for thread in threads)
        assert emitter.killed and child.killed
        assert emitter.children == ()
