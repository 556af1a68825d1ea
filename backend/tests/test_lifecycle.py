"""
Lifecycle tests: status transitions, autosave monotonicity and completion
"""
import asyncio
import pytest

from models.enums import AuditStatus
from services.audit_store import AuditRepository
from services.error_types import NotFoundError, PreconditionError
from services.lifecycle import OPEN_STATES, AutosaveSnapshot, AutosaveTask, LifecycleController


class FlakyStatusRepository(AuditRepository):
    """Repository whose status read always fails"""

    async def get_status(self, audit_id, session=None):
        raise RuntimeError("connection reset")


async def mark_completed(repository, audit_id):
    assert await repository.set_status_if(audit_id, AuditStatus.completed, OPEN_STATES)


async def test_new_audit_is_draft(repository, audit):
    assert await repository.get_status(audit.id) == AuditStatus.draft


async def test_section_save_moves_draft_to_in_progress(lifecycle, repository, audit):
    record = await lifecycle.save_section(audit.id, "houseInfo", {"yearBuilt": "1962"})
    assert record.status == AuditStatus.in_progress
    assert record.house_info.year_built == "1962"
    assert await repository.get_status(audit.id) == AuditStatus.in_progress


async def test_scalar_save_moves_draft_to_in_progress(lifecycle, audit):
    record = await lifecycle.save_scalars(audit.id, {"customerPhone": "506-555-0101"})
    assert record.status == AuditStatus.in_progress
    assert record.customer_phone == "506-555-0101"
    assert record.customer_first_name == "Marie"


async def test_data_write_never_downgrades_completed(lifecycle, repository, audit):
    await mark_completed(repository, audit.id)
    record = await lifecycle.save_section(audit.id, "doorsInfo", {"skin": "Fibreglass"})
    assert record.status == AuditStatus.completed
    assert record.doors_info.skin == "Fibreglass"


async def test_autosave_keeps_completed_status_despite_stale_client(lifecycle, repository, audit):
    await mark_completed(repository, audit.id)
    snapshot = AutosaveSnapshot(
        status=AuditStatus.in_progress,
        sections={"ceilingInfo": {"ceilingType": "Cathedral"}},
    )

    written = await lifecycle.autosave(audit.id, snapshot)

    assert written == AuditStatus.completed
    assert await repository.get_status(audit.id) == AuditStatus.completed
    record = await lifecycle.load(audit.id)
    assert record.ceiling_info.ceiling_type == "Cathedral"


async def test_autosave_on_open_audit_writes_in_progress(lifecycle, repository, audit):
    snapshot = AutosaveSnapshot(status=AuditStatus.draft, fields={"customerCity": "Dieppe"})
    assert await lifecycle.autosave(audit.id, snapshot) == AuditStatus.in_progress
    record = await lifecycle.load(audit.id)
    assert record.customer_city == "Dieppe"
    assert record.status == AuditStatus.in_progress


async def test_autosave_falls_back_to_client_status_when_status_read_fails(session_factory, ctx):
    repository = FlakyStatusRepository(session_factory)
    audit = await repository.create_audit(ctx, {})
    lifecycle = LifecycleController(repository)

    snapshot = AutosaveSnapshot(status=AuditStatus.in_progress, sections={"doorsInfo": {"skin": "Steel"}})
    assert await lifecycle.autosave(audit.id, snapshot) == AuditStatus.in_progress
    assert (await lifecycle.load(audit.id)).doors_info.skin == "Steel"


async def test_autosave_of_missing_audit_raises(lifecycle):
    with pytest.raises(NotFoundError):
        await lifecycle.autosave("missing", AutosaveSnapshot())


async def test_complete_requires_saved_depressurization_test(lifecycle, repository, audit):
    with pytest.raises(PreconditionError):
        await lifecycle.complete(audit.id)
    assert await repository.get_status(audit.id) == AuditStatus.draft

    await lifecycle.save_section(audit.id, "depressurizationTest", {})
    assert await lifecycle.complete(audit.id) == AuditStatus.completed


@pytest.mark.parametrize("section", [{}, {"windowLeakage": "no", "otherLeakage": "Attic hatch"}])
async def test_autosaved_depressurization_test_does_not_allow_completion(lifecycle, repository, audit, section):
    snapshot = AutosaveSnapshot(status=AuditStatus.in_progress, sections={"depressurizationTest": section})
    await lifecycle.autosave(audit.id, snapshot)

    with pytest.raises(PreconditionError):
        await lifecycle.complete(audit.id)
    assert await repository.get_status(audit.id) == AuditStatus.in_progress
    assert (await repository.get_audit(audit.id)).depressurization_saved_at is None


async def test_complete_with_final_depressurization_payload(lifecycle, audit):
    status = await lifecycle.complete(audit.id, {"windowLeakage": "yes", "otherLeakage": "Attic hatch"})
    assert status == AuditStatus.completed
    record = await lifecycle.load(audit.id)
    assert record.depressurization_test.other_leakage == "Attic hatch"


async def test_complete_is_idempotent(lifecycle, audit):
    await lifecycle.complete(audit.id, {"otherLeakage": "None observed"})
    assert await lifecycle.complete(audit.id) == AuditStatus.completed


async def test_reopen_only_from_completed(lifecycle, repository, audit):
    with pytest.raises(PreconditionError):
        await lifecycle.reopen(audit.id)

    await mark_completed(repository, audit.id)
    assert await lifecycle.reopen(audit.id) == AuditStatus.in_progress
    assert await repository.get_status(audit.id) == AuditStatus.in_progress


async def test_floor_add_and_remove_persist(lifecycle, audit):
    floor = await lifecycle.add_floor(audit.id)
    assert floor.name == "Second Floor"
    record = await lifecycle.load(audit.id)
    assert [f.id for f in record.walls_info.floors] == ["basement", "main", floor.id]

    record = await lifecycle.remove_floor(audit.id, floor.id)
    assert [f.id for f in record.walls_info.floors] == ["basement", "main"]


async def test_autosave_task_run_once(lifecycle, repository, audit):
    snapshots = [AutosaveSnapshot(sections={"doorsInfo": {"insulation": "Polyurethane"}}), None]
    task = AutosaveTask(lifecycle, audit.id, lambda: snapshots.pop(0), interval=60)

    assert await task.run_once() == AuditStatus.in_progress
    assert task.last_status == AuditStatus.in_progress
    assert await task.run_once() is None
    assert task.saves == 1


async def test_autosave_task_follows_persisted_completion(lifecycle, repository, audit):
    async def provider():
        return AutosaveSnapshot(sections={"doorsInfo": {"skin": "Wood"}})

    task = AutosaveTask(lifecycle, audit.id, provider, interval=60)
    await task.run_once()
    await mark_completed(repository, audit.id)
    assert await task.run_once() == AuditStatus.completed
    assert await repository.get_status(audit.id) == AuditStatus.completed


async def test_autosave_task_timer_keeps_running_after_errors(lifecycle, audit):
    calls = []

    def provider():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("form not ready")
        return AutosaveSnapshot(fields={"customerPhone": "555"})

    task = AutosaveTask(lifecycle, audit.id, provider, interval=0.01).start()
    assert task.running
    for _ in range(100):
        if task.saves:
            break
        await asyncio.sleep(0.01)
    await task.stop()

    assert not task.running
    assert len(calls) >= 2
    assert task.saves >= 1
