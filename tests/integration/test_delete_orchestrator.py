"""End-to-end delete behavior with a fake remote delete and caller state."""

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest

from estimate_tracker import (
    DeleteFailedError,
    DeleteOrchestrator,
    ErrorCategory,
    GuidanceAction,
    PerformanceMonitor,
)
from estimate_tracker.delete.orchestrator import (
    E_DELETE_FAILED,
    E_DELETE_RETRYING,
    E_DELETE_ROLLED_BACK,
    E_DELETE_STARTED,
    E_DELETE_SUCCEEDED,
)
from tests.helpers import RecordingSleep, scripted_delete


def _orchestrator(delete, sleep=None, **kwargs):
    kwargs.setdefault("performance", PerformanceMonitor(memory_probe=lambda: None))
    return DeleteOrchestrator(delete, sleep=sleep or RecordingSleep(), **kwargs)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_network_retries_then_success(project_list):
    sleep = RecordingSleep()
    on_success, on_error = Mock(), Mock()
    delete = scripted_delete(*[ConnectionError("network timeout")] * 3, True)
    orchestrator = _orchestrator(
        delete, sleep, on_success=on_success, on_error=on_error
    )
    snapshot = project_list.projects[2]

    assert await orchestrator.execute_delete("p1", snapshot, project_list) is True

    assert len(delete.calls) == 4
    assert sleep.delays_ms == [1000, 2000, 4000]
    assert project_list.updates == 1
    assert project_list.ids == ["p3", "p2"]
    assert orchestrator.is_deleting("p1") is False
    assert orchestrator.get_error("p1") is None
    on_success.assert_called_once_with("p1", snapshot)
    on_error.assert_not_called()

    stats = orchestrator.get_stats()
    assert (stats.total_deletes, stats.successful_deletes) == (1, 1)
    assert stats.success_rate == "100.0"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_is_deleting_while_in_flight(project_list):
    seen = []

    async def delete(entity_id):
        seen.append(orchestrator.is_deleting(entity_id))
        seen.append(orchestrator.deleting_ids)
        return True

    orchestrator = _orchestrator(delete)
    await orchestrator.execute_delete("p2", project_list.projects[1], project_list)

    assert seen == [True, ("p2",)]
    assert orchestrator.deleting_ids == ()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_permission_error_rolls_back_with_guidance(project_list, caplog):
    error = PermissionError("permission denied")
    delete = scripted_delete(error)
    on_success, on_error = Mock(), Mock()
    orchestrator = _orchestrator(delete, on_success=on_success, on_error=on_error)
    rolled_back = []
    orchestrator.subscribe(E_DELETE_ROLLED_BACK, lambda **p: rolled_back.append(p))

    with caplog.at_level(logging.ERROR, logger="estimate_tracker.delete.orchestrator"):
        result = await orchestrator.execute_delete(
            "p1", project_list.projects[2], project_list
        )

    assert result is False
    assert len(delete.calls) == 1
    assert project_list.updates == 2
    assert project_list.ids == ["p3", "p2", "p1"]
    assert rolled_back == [{"entity_id": "p1"}]

    guidance = orchestrator.get_error("p1")
    assert guidance.category is ErrorCategory.PERMISSION
    assert guidance.action is GuidanceAction.REAUTH
    on_error.assert_called_once_with("p1", error, guidance)
    on_success.assert_not_called()
    assert "Delete of p1 failed: permission denied" in caplog.text

    stats = orchestrator.get_stats()
    assert stats.failed_deletes == 1
    assert dict(stats.error_types) == {"permission": 1}
    assert stats.success_rate == "0.0"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_falsy_result_is_a_failure_without_retry(project_list, roof_repair):
    sleep = RecordingSleep()
    delete = scripted_delete(False)
    on_error = Mock()
    orchestrator = _orchestrator(delete, sleep, on_error=on_error)

    assert await orchestrator.execute_delete("p1", roof_repair, project_list) is False

    assert len(delete.calls) == 1
    assert sleep.calls == []
    assert "p1" in project_list.ids
    guidance = orchestrator.get_error("p1")
    assert guidance.category is ErrorCategory.DEFAULT
    assert guidance.message == 'Failed to delete "Roof Repair".'
    (entity_id, error, _), _ = on_error.call_args
    assert entity_id == "p1"
    assert isinstance(error, DeleteFailedError)
    assert str(error) == "Delete operation failed"
    assert error.entity_id == "p1"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_exhausted_retries_roll_back(project_list):
    sleep = RecordingSleep()
    delete = scripted_delete(TimeoutError("request timeout"))
    orchestrator = _orchestrator(delete, sleep, max_retries=2, base_delay_ms=100)

    assert (
        await orchestrator.execute_delete("p3", project_list.projects[0], project_list)
        is False
    )
    assert len(delete.calls) == 3
    assert sleep.delays_ms == [100, 200]
    assert project_list.ids == ["p3", "p2", "p1"]
    assert orchestrator.get_error("p3").category is ErrorCategory.TIMEOUT


@pytest.mark.asyncio
@pytest.mark.integration
async def test_retry_disabled_attempts_once(project_list):
    sleep = RecordingSleep()
    delete = scripted_delete(ConnectionError("network"))
    orchestrator = _orchestrator(delete, sleep, enable_retry=False)

    assert await orchestrator.execute_delete("p1", project_list.projects[2], project_list) is False
    assert len(delete.calls) == 1
    assert sleep.calls == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_optimistic_updates_disabled_leave_state_alone(project_list):
    orchestrator = _orchestrator(
        scripted_delete(PermissionError("forbidden")), enable_optimistic_updates=False
    )

    assert await orchestrator.execute_delete("p1", project_list.projects[2], project_list) is False
    assert project_list.updates == 0
    assert orchestrator.get_error("p1").category is ErrorCategory.PERMISSION


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_without_snapshot_or_callback():
    on_success = Mock()
    delete = AsyncMock(return_value={"deleted": 1})
    orchestrator = _orchestrator(delete, on_success=on_success)

    assert await orchestrator.execute_delete("p9") is True
    delete.assert_awaited_once_with("p9")
    on_success.assert_called_once_with("p9", None)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancellation_rolls_back_and_propagates(project_list):
    started = asyncio.Event()

    async def hang(_entity_id):
        started.set()
        await asyncio.Event().wait()

    on_error = Mock()
    orchestrator = _orchestrator(hang, on_error=on_error)
    task = asyncio.create_task(
        orchestrator.execute_delete("p2", project_list.projects[1], project_list)
    )
    await started.wait()
    assert project_list.ids == ["p3", "p1"]

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert project_list.ids == ["p3", "p2", "p1"]
    assert orchestrator.is_deleting("p2") is False
    assert orchestrator.get_error("p2") is None
    assert orchestrator.get_stats().total_deletes == 0
    assert orchestrator.leak_detector.get_tracking_status() == {"DeleteProjectData": 0}
    on_error.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_success_callback_errors_propagate(project_list):
    def broken(*_):
        raise RuntimeError("ui crashed")

    orchestrator = _orchestrator(scripted_delete(True), on_success=broken)

    with pytest.raises(RuntimeError, match="ui crashed"):
        await orchestrator.execute_delete("p1", project_list.projects[2], project_list)

    assert orchestrator.is_deleting("p1") is False
    assert orchestrator.get_stats().successful_deletes == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_new_attempt_clears_previous_error(project_list, roof_repair):
    delete = scripted_delete(LookupError("404 not found"), True)
    orchestrator = _orchestrator(delete, enable_retry=False)

    await orchestrator.execute_delete("p1", roof_repair, project_list)
    assert orchestrator.get_error("p1").action is GuidanceAction.REFRESH
    assert set(orchestrator.errors) == {"p1"}

    assert await orchestrator.execute_delete("p1", roof_repair, project_list) is True
    assert orchestrator.get_error("p1") is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_clear_errors(project_list):
    orchestrator = _orchestrator(scripted_delete(PermissionError("forbidden")))
    for snapshot in project_list.projects[:2]:
        await orchestrator.execute_delete(snapshot.id, snapshot, project_list)

    orchestrator.clear_error("p3")
    assert set(orchestrator.errors) == {"p2"}
    orchestrator.clear_all_errors()
    assert dict(orchestrator.errors) == {}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_events_follow_the_delete_lifecycle(project_list):
    events = []
    orchestrator = _orchestrator(scripted_delete(ConnectionError("fetch failed"), True))

    def record(name):
        def listener(**payload):
            events.append((name, payload["entity_id"]))

        return listener

    listeners = {
        name: record(name)
        for name in (E_DELETE_STARTED, E_DELETE_RETRYING, E_DELETE_SUCCEEDED, E_DELETE_FAILED)
    }
    for name, listener in listeners.items():
        assert orchestrator.subscribe(name, listener) is True
        assert orchestrator.subscribe(name, listener) is False

    await orchestrator.execute_delete("p1", project_list.projects[2], project_list)

    assert events == [
        (E_DELETE_STARTED, "p1"),
        (E_DELETE_RETRYING, "p1"),
        (E_DELETE_SUCCEEDED, "p1"),
    ]
    assert orchestrator.unsubscribe(E_DELETE_STARTED, listeners[E_DELETE_STARTED])
    assert not orchestrator.unsubscribe(E_DELETE_STARTED, listeners[E_DELETE_STARTED])


@pytest.mark.asyncio
@pytest.mark.integration
async def test_snapshots_are_tracked_only_while_in_flight(project_list):
    seen = []

    async def delete(entity_id):
        seen.append(orchestrator.leak_detector.get_tracking_status())
        return True

    orchestrator = _orchestrator(delete)
    await orchestrator.execute_delete("p1", project_list.projects[2], project_list)

    assert seen == [{"DeleteProjectData": 1}]
    assert orchestrator.leak_detector.get_tracking_status() == {"DeleteProjectData": 0}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_each_delete_is_timed(project_list):
    orchestrator = _orchestrator(scripted_delete(True))
    await orchestrator.execute_delete("p1", project_list.projects[2], project_list)

    stats = orchestrator.performance.get_operation_stats("delete-p1")
    assert stats is not None
    assert stats.count == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_concurrent_deletes_of_different_ids(project_list):
    gate = asyncio.Event()

    async def delete(entity_id):
        await gate.wait()
        if entity_id == "p2":
            raise PermissionError("forbidden")
        return True

    orchestrator = _orchestrator(delete)
    tasks = [
        asyncio.create_task(orchestrator.execute_delete(p.id, p, project_list))
        for p in list(project_list.projects)
    ]
    await asyncio.sleep(0)
    assert set(orchestrator.deleting_ids) == {"p1", "p2", "p3"}
    assert project_list.ids == []

    gate.set()
    results = await asyncio.gather(*tasks)

    assert results == [True, False, True]
    assert project_list.ids == ["p2"]
    stats = orchestrator.get_stats()
    assert (stats.successful_deletes, stats.failed_deletes) == (2, 1)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bulk_delete(project_list):
    async def delete(entity_id):
        if entity_id == "p2":
            raise LookupError("project not found")
        return True

    orchestrator = _orchestrator(delete, bulk_batch_size=2)

    outcomes = await orchestrator.execute_bulk_delete(
        list(project_list.projects), project_list
    )

    assert outcomes == {"p3": True, "p2": False, "p1": True}
    assert project_list.ids == ["p2"]
    assert orchestrator.get_error("p2").category is ErrorCategory.NOT_FOUND


@pytest.mark.asyncio
@pytest.mark.integration
async def test_close_tears_down_subscriptions_and_timers(project_list):
    calls = []
    orchestrator = _orchestrator(scripted_delete(True))
    orchestrator.subscribe(E_DELETE_STARTED, lambda **p: calls.append(p))
    orchestrator.start_leak_detection()
    assert orchestrator.leak_detector.is_running

    orchestrator.close()
    await asyncio.sleep(0)

    assert not orchestrator.leak_detector.is_running
    assert orchestrator.listeners.listener_count() == 0
    await orchestrator.execute_delete("p1", project_list.projects[2], project_list)
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_async_context_manager_closes():
    async with _orchestrator(scripted_delete(True)) as orchestrator:
        orchestrator.start_leak_detection()
        orchestrator.subscribe(E_DELETE_STARTED, lambda **_: None)
    await asyncio.sleep(0)

    assert not orchestrator.leak_detector.is_running
    assert orchestrator.listeners.listener_count() == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reset_stats(project_list):
    orchestrator = _orchestrator(scripted_delete(True))
    await orchestrator.execute_delete("p1", project_list.projects[2], project_list)

    orchestrator.reset_stats()

    assert orchestrator.get_stats().total_deletes == 0
    assert orchestrator.get_stats().success_rate == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_failure_is_recorded_when_rollback_callback_raises(project_list):
    applied = []

    def update(transform):
        if applied:
            raise RuntimeError("table unmounted")
        applied.append(transform)
        project_list(transform)

    on_error = Mock()
    orchestrator = _orchestrator(
        scripted_delete(PermissionError("forbidden")), on_error=on_error
    )

    with pytest.raises(RuntimeError, match="table unmounted"):
        await orchestrator.execute_delete("p1", project_list.projects[2], update)

    stats = orchestrator.get_stats()
    assert (stats.total_deletes, stats.failed_deletes) == (1, 1)
    assert orchestrator.get_error("p1").category is ErrorCategory.PERMISSION
    assert orchestrator.leak_detector.get_tracking_status() == {"DeleteProjectData": 0}
    assert orchestrator.performance.get_operation_stats("delete-p1").count == 1
    assert orchestrator.is_deleting("p1") is False
    on_error.assert_called_once()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancellation_bookkeeping_survives_rollback_error(project_list):
    started = asyncio.Event()
    calls = []

    async def hang(_entity_id):
        started.set()
        await asyncio.Event().wait()

    def update(transform):
        calls.append(transform)
        if len(calls) > 1:
            raise RuntimeError("table unmounted")

    orchestrator = _orchestrator(hang)
    task = asyncio.create_task(
        orchestrator.execute_delete("p1", project_list.projects[2], update)
    )
    await started.wait()
    task.cancel()

    with pytest.raises(RuntimeError, match="table unmounted"):
        await task

    assert orchestrator.leak_detector.get_tracking_status() == {"DeleteProjectData": 0}
    assert orchestrator.performance.get_operation_stats("delete-p1").count == 1
    assert orchestrator.is_deleting("p1") is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_finished_deletes_leave_no_in_flight_entries(project_list):
    orchestrator = _orchestrator(scripted_delete(True, PermissionError("forbidden")))

    for snapshot in list(project_list.projects[:2]):
        await orchestrator.execute_delete(snapshot.id, snapshot, project_list)

    assert orchestrator._deleting == {}
    assert orchestrator.deleting_ids == ()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mapping_snapshots_are_rejected_before_any_work(project_list):
    delete = scripted_delete(True)
    orchestrator = _orchestrator(delete)

    with pytest.raises(TypeError, match="ProjectRecord.from_row"):
        await orchestrator.execute_delete("p1", {"id": "p1", "title": "Roof"}, project_list)
    with pytest.raises(TypeError):
        await orchestrator.execute_bulk_delete(
            [project_list.projects[0], {"id": "p9", "title": "Shed"}], project_list
        )

    assert delete.calls == []
    assert project_list.updates == 0
    assert orchestrator.get_stats().total_deletes == 0
    assert len(orchestrator.performance) == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_async_context_manager_waits_for_leak_check_task():
    async with _orchestrator(scripted_delete(True)) as orchestrator:
        orchestrator.start_leak_detection()
        task = orchestrator.leak_detector._task

    assert task.done()
    assert task.cancelled()
