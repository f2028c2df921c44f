import time

from interview_runtime.session.registry import SessionRegistry


def test_session_registry_register_touch_inactive_cleanup():
    registry = SessionRegistry()

    registry.register("s1", orchestrator=object(), token="tok-1")
    item = registry.get("s1")
    assert item is not None
    assert item.active is True
    assert registry.active_for_token("tok-1") == ["s1"]

    before_touch = item.updated_at
    time.sleep(0.01)
    registry.touch("s1")
    assert registry.get("s1").updated_at >= before_touch

    registry.mark_inactive("s1")
    assert registry.get("s1").active is False
    assert registry.active_count() == 0
    assert registry.active_for_token("tok-1") == []

    # ttl clamps to >= 30s; age the entry directly
    registry._sessions["s1"].updated_at = time.time() - 3600
    removed = registry.cleanup_inactive(ttl_sec=0)
    assert removed == 1
    assert registry.get("s1") is None


def test_active_sessions_survive_cleanup():
    registry = SessionRegistry()
    registry.register("s1", orchestrator=object())
    registry._sessions["s1"].updated_at = time.time() - 3600

    assert registry.cleanup_inactive(ttl_sec=60) == 0
    assert registry.active_count() == 1


def test_get_returns_a_copy():
    registry = SessionRegistry()
    registry.register("s1", orchestrator=object())

    copy = registry.get("s1")
    copy.active = False
    assert registry.get("s1").active is True
