import pytest

from scanwatch import (
    Delivered,
    DuplicateRegistrationError,
    Notification,
    NotificationRouter,
    Unclaimed,
)


def _notification(task_id: str = "proj-1", issues: int = 2) -> Notification:
    return Notification(task_id=task_id, scan_type="full", issues_found=issues, timestamp=1_760_000_000_000)


def test_dispatch_delivers_once_and_removes_entry() -> None:
    router = NotificationRouter()
    received: list[Notification] = []
    router.register_once("proj-1", received.append)

    first = router.dispatch(_notification())
    second = router.dispatch(_notification())

    assert isinstance(first, Delivered)
    assert isinstance(second, Unclaimed)
    assert len(received) == 1
    assert not router.pending("proj-1")
    assert router.pending_count == 0


def test_dispatch_without_waiter_is_unclaimed() -> None:
    router = NotificationRouter()
    result = router.dispatch(_notification("nobody"))
    assert isinstance(result, Unclaimed)
    assert result.notification.task_id == "nobody"


def test_entry_is_removed_before_handler_runs() -> None:
    router = NotificationRouter()
    calls: list[bool] = []
    nested_results: list[object] = []

    def handler(notification: Notification) -> None:
        calls.append(router.pending(notification.task_id))
        # A nested dispatch for the same task must not re-fire this handler.
        nested_results.append(router.dispatch(notification))

    router.register_once("proj-1", handler)
    router.dispatch(_notification())

    assert calls == [False]
    assert len(nested_results) == 1
    assert isinstance(nested_results[0], Unclaimed)


def test_register_once_rejects_conflicts_unless_replacing() -> None:
    router = NotificationRouter()
    first: list[Notification] = []
    second: list[Notification] = []
    router.register_once("proj-1", first.append)

    with pytest.raises(DuplicateRegistrationError) as excinfo:
        router.register_once("proj-1", second.append)
    assert excinfo.value.task_id == "proj-1"

    router.register_once("proj-1", second.append, replace=True)
    router.dispatch(_notification())
    assert first == []
    assert len(second) == 1


def test_unregister_only_removes_matching_handler() -> None:
    router = NotificationRouter()

    def handler(_notification: Notification) -> None:
        return None

    def other(_notification: Notification) -> None:
        return None

    router.register_once("proj-1", handler)
    assert router.unregister("proj-1", other) is False
    assert router.pending("proj-1")
    assert router.unregister("proj-1", handler) is True
    assert router.unregister("proj-1") is False


def test_observers_receive_every_notification_independently() -> None:
    router = NotificationRouter()
    seen_a: list[str] = []
    seen_b: list[str] = []

    def observer_a(notification: Notification) -> None:
        seen_a.append(notification.task_id)

    def observer_b(notification: Notification) -> None:
        seen_b.append(notification.task_id)

    router.add_observer(observer_a)
    router.add_observer(observer_b)
    router.register_once("proj-1", lambda _n: None)

    router.dispatch(_notification("proj-1"))
    router.dispatch(_notification("proj-2"))
    assert seen_a == ["proj-1", "proj-2"]
    assert seen_b == ["proj-1", "proj-2"]

    router.remove_observer(observer_a)
    router.dispatch(_notification("proj-3"))
    assert seen_a == ["proj-1", "proj-2"]
    assert seen_b == ["proj-1", "proj-2", "proj-3"]


def test_remove_unknown_observer_is_noop() -> None:
    router = NotificationRouter()
    router.remove_observer(lambda _n: None)
    assert router.observer_count == 0


def test_failing_handlers_do_not_block_other_observers(caplog: pytest.LogCaptureFixture) -> None:
    router = NotificationRouter()
    seen: list[str] = []

    def broken(_notification: Notification) -> None:
        raise RuntimeError("boom")

    router.register_once("proj-1", broken)
    router.add_observer(broken)
    router.add_observer(lambda n: seen.append(n.task_id))

    with caplog.at_level("ERROR", logger="scanwatch.router"):
        result = router.dispatch(_notification())

    assert isinstance(result, Delivered)
    assert seen == ["proj-1"]
    assert any(record.message == "notification_handler_failed" for record in caplog.records)


def test_clear_drops_pending_callbacks_but_keeps_observers() -> None:
    router = NotificationRouter()
    router.register_once("proj-1", lambda _n: None)
    router.add_observer(lambda _n: None)
    router.clear()
    assert router.pending_count == 0
    assert router.observer_count == 1
