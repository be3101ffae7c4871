"""SessionRegistry ownership, lifecycle events and per-target serialization."""

import threading
import time

import pytest

from tabdriver.browser.ref_table import RefTable
from tabdriver.browser.types import Ref
from tabdriver.errors import BrowserConnectionError, ProtocolError


def test_get_or_create_attaches_and_enables(registry, browser):
    session = registry.get_or_create("T1")

    assert session.is_attached
    assert session.domains_enabled
    assert registry.get("T1") is session
    assert "Runtime.enable" in browser.methods()


def test_get_or_create_returns_same_session(registry, browser):
    first = registry.get_or_create("T1")
    second = registry.get_or_create("T1")

    assert first is second
    assert len(browser.connections) == 1


def test_get_does_not_create(registry, browser):
    assert registry.get("T1") is None
    assert browser.connections == []


def test_get_or_create_reattaches_detached_session(registry, browser):
    session = registry.get_or_create("T1")
    session.detach()

    again = registry.get_or_create("T1")

    assert again is session
    assert again.is_attached
    assert again.domains_enabled
    assert len(browser.connections) == 2


def test_enable_failure_detaches_and_raises(registry, browser):
    browser.handlers["DOM.enable"] = ProtocolError("DOM agent unavailable")

    with pytest.raises(ProtocolError):
        registry.get_or_create("T1")

    assert not registry.get("T1").is_attached

    # Retrying in full works once the remote recovers
    del browser.handlers["DOM.enable"]
    assert registry.get_or_create("T1").domains_enabled


def test_attach_failure_propagates(registry, browser):
    browser.refuse = True
    with pytest.raises(BrowserConnectionError):
        registry.get_or_create("T1")


def test_concurrent_creation_for_one_target_makes_one_session(registry, browser, endpoint):
    real_get_target = endpoint.get_target.side_effect

    def slow_get_target(target_id):
        time.sleep(0.02)
        return real_get_target(target_id)

    endpoint.get_target.side_effect = slow_get_target
    barrier = threading.Barrier(5)
    results = []

    def worker():
        barrier.wait()
        results.append(registry.get_or_create("T1"))

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 5
    assert all(s is results[0] for s in results)
    assert len(browser.connections) == 1


def test_different_targets_get_different_sessions(registry, browser):
    a = registry.get_or_create("A")
    b = registry.get_or_create("B")

    assert a is not b
    assert sorted(registry.targets()) == ["A", "B"]


def test_ref_table_is_per_target(registry):
    assert isinstance(registry.ref_table("A"), RefTable)
    assert registry.ref_table("A") is registry.ref_table("A")
    assert registry.ref_table("A") is not registry.ref_table("B")


def test_remove_detaches_and_drops_both_maps(registry, browser):
    session = registry.get_or_create("T1")
    table = registry.ref_table("T1")
    table.update([Ref(id="e0", backend_node_id=1, role="button", name="Go")])

    registry.remove("T1")

    assert registry.get("T1") is None
    assert not session.is_attached
    assert len(table) == 0
    assert registry.ref_table("T1") is not table


def test_remove_unknown_target_is_noop(registry):
    registry.remove("nope")
    assert registry.targets() == []


def test_external_detach_removes_target(registry, browser):
    registry.get_or_create("T1")
    registry.ref_table("T1").update([Ref(id="e0", backend_node_id=1, role="link", name="Home")])

    browser.connections[0].fire_event("Inspector.detached", {"reason": "canceled_by_user"})

    assert registry.get("T1") is None
    assert registry.ref_table("T1").get("e0") is None


def test_next_call_after_external_detach_reattaches(registry, browser):
    registry.get_or_create("T1")
    browser.connections[0].on_close("socket_closed")

    session = registry.get_or_create("T1")

    assert session.is_attached
    assert len(browser.connections) == 2


def test_target_removed_event(registry):
    session = registry.get_or_create("T1")
    registry.handle_target_removed("T1")
    assert registry.get("T1") is None
    assert not session.is_attached


def test_remove_all(registry):
    sessions = [registry.get_or_create(t) for t in ("A", "B", "C")]
    registry.ref_table("D")

    registry.remove_all()

    assert registry.targets() == []
    assert not any(s.is_attached for s in sessions)


def test_target_locks_are_released_after_use(registry):
    registry.get_or_create("A")
    registry.remove("A")
    registry.remove("never-seen")

    assert registry._target_locks == {}
