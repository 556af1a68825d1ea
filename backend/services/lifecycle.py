"""
Audit lifecycle: draft -> in_progress -> completed.

All writes to an audit go through LifecycleController so the status rules
hold in one place:

- any data write on a draft or in-progress audit leaves it in_progress
- completing requires the depressurization test to have been explicitly
  saved once; autosave does not count
- autosave re-reads the persisted status right before writing and never
  moves a completed audit back to in_progress
- only ``reopen`` takes a completed audit back to in_progress
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from app.config import AUTOSAVE_INTERVAL_SECONDS
from models.audit import (
    AuditRecord,
    FloorRecord,
    add_floor,
    apply_scalar_update,
    apply_section_update,
    remove_floor,
    resolve_scalar,
    resolve_section,
)
from models.db_models import utcnow
from models.enums import AuditStatus
from services.audit_store import AuditRepository, audit_repository
from services.error_types import NotFoundError, PreconditionError

logger = logging.getLogger(__name__)

DEPRESSURIZATION_SECTION = "depressurization_test"
OPEN_STATES = (AuditStatus.draft, AuditStatus.in_progress)


@dataclass
class AutosaveSnapshot:
    """What the field UI holds in memory when its autosave timer fires"""
    status: Optional[AuditStatus] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    sections: Dict[str, Dict[str, Any]] = field(default_factory=dict)


class LifecycleController:
    def __init__(self, repository: AuditRepository = audit_repository):
        self.repository = repository

    async def load(self, audit_id: str) -> AuditRecord:
        row = await self.repository.require_audit(audit_id)
        return AuditRecord.from_row(row)

    async def _write(self, audit_id: str, updates: Dict[str, Any]) -> AuditRecord:
        if not await self.repository.update_audit(audit_id, updates, advance_status=True):
            raise NotFoundError(f"Audit {audit_id} not found", {"audit_id": audit_id})
        return await self.load(audit_id)

    @staticmethod
    def _section_updates(record: AuditRecord, section: str, explicit: bool = True) -> Dict[str, Any]:
        updates: Dict[str, Any] = {section: record.section_payload(section)}
        # Only a user-initiated save counts towards the completion precondition
        if explicit and section == DEPRESSURIZATION_SECTION:
            updates["depressurization_saved_at"] = utcnow()
        return updates

    async def save_section(self, audit_id: str, section_name: str, partial: Dict[str, Any]) -> AuditRecord:
        """Merge a partial section into the stored one and persist it"""
        section = resolve_section(section_name)
        record = apply_section_update(await self.load(audit_id), section, partial)
        logger.info(f"Saving section {section} of audit {audit_id}")
        return await self._write(audit_id, self._section_updates(record, section))

    async def save_scalars(self, audit_id: str, fields: Dict[str, Any]) -> AuditRecord:
        record = apply_scalar_update(await self.load(audit_id), fields)
        updates = {key: value for key, value in record.to_row_values().items() if key in _scalar_columns(fields)}
        return await self._write(audit_id, updates)

    async def add_floor(self, audit_id: str, name: Optional[str] = None) -> FloorRecord:
        record, floor = add_floor(await self.load(audit_id), name)
        await self._write(audit_id, {"walls_info": record.section_payload("walls_info")})
        logger.info(f"Added floor {floor.id} ({floor.name}) to audit {audit_id}")
        return floor

    async def remove_floor(self, audit_id: str, floor_id: str) -> AuditRecord:
        record = remove_floor(await self.load(audit_id), floor_id)
        return await self._write(audit_id, {"walls_info": record.section_payload("walls_info")})

    async def autosave(self, audit_id: str, snapshot: AutosaveSnapshot) -> AuditStatus:
        """
        Persist a client snapshot without ever regressing a completed audit.

        The persisted status is re-read immediately before the write. If that
        read fails for any reason other than the audit being gone, the last
        status the client knew is used instead and the save still happens.
        """
        try:
            persisted = await self.repository.get_status(audit_id)
        except NotFoundError:
            raise
        except Exception as e:
            persisted = snapshot.status or AuditStatus.in_progress
            logger.warning(f"[AUTOSAVE] Status check failed for audit {audit_id}, using last known '{persisted.value}': {e}")

        write_status = AuditStatus.completed if persisted == AuditStatus.completed else AuditStatus.in_progress

        record = await self.load(audit_id)
        updates: Dict[str, Any] = {}
        if snapshot.fields:
            record = apply_scalar_update(record, snapshot.fields)
            row_values = record.to_row_values()
            updates.update({key: row_values[key] for key in _scalar_columns(snapshot.fields)})
        for section_name, partial in snapshot.sections.items():
            section = resolve_section(section_name)
            record = apply_section_update(record, section, partial)
            updates.update(self._section_updates(record, section, explicit=False))

        if write_status == AuditStatus.completed:
            updates["status"] = AuditStatus.completed.value
            written = await self.repository.update_audit(audit_id, updates)
        else:
            # Conditional in the UPDATE itself: a concurrent completion still wins
            written = await self.repository.update_audit(audit_id, updates, advance_status=True)
        if not written:
            raise NotFoundError(f"Audit {audit_id} not found", {"audit_id": audit_id})

        logger.info(
            f"[AUTOSAVE] Audit {audit_id} saved ({len(snapshot.sections)} sections, "
            f"client status={snapshot.status.value if snapshot.status else None}, written status={write_status.value})"
        )
        return write_status

    async def complete(self, audit_id: str, depressurization: Optional[Dict[str, Any]] = None) -> AuditStatus:
        """Mark an audit completed; optionally saving the final depressurization section first"""
        if depressurization is not None:
            await self.save_section(audit_id, DEPRESSURIZATION_SECTION, depressurization)

        row = await self.repository.require_audit(audit_id)
        if row.depressurization_saved_at is None:
            raise PreconditionError(
                "The depressurization test must be saved before the audit can be completed",
                {"audit_id": audit_id},
            )

        if await self.repository.set_status_if(audit_id, AuditStatus.completed, OPEN_STATES):
            logger.info(f"Audit {audit_id} completed")
        return await self.repository.get_status(audit_id)

    async def reopen(self, audit_id: str) -> AuditStatus:
        """Explicit user action moving a completed audit back to in_progress"""
        if await self.repository.set_status_if(audit_id, AuditStatus.in_progress, [AuditStatus.completed]):
            logger.info(f"Audit {audit_id} reopened")
            return AuditStatus.in_progress

        status = await self.repository.get_status(audit_id)
        raise PreconditionError(
            f"Only completed audits can be reopened (current status: {status.value})",
            {"audit_id": audit_id, "status": status.value},
        )


def _scalar_columns(fields: Dict[str, Any]) -> Set[str]:
    return {resolve_scalar(key) for key in fields if resolve_scalar(key)}


SnapshotProvider = Callable[[], Union[Optional[AutosaveSnapshot], Awaitable[Optional[AutosaveSnapshot]]]]


class AutosaveTask:
    """
    Recurring background save of one audit.

    Every ``interval`` seconds the latest snapshot is pulled from ``provider``
    and handed to ``LifecycleController.autosave``. Failures are logged and
    the timer keeps running.
    """

    def __init__(
        self,
        controller: LifecycleController,
        audit_id: str,
        provider: SnapshotProvider,
        interval: float = AUTOSAVE_INTERVAL_SECONDS,
    ):
        self.controller = controller
        self.audit_id = audit_id
        self.provider = provider
        self.interval = interval
        self.last_status: Optional[AuditStatus] = None
        self.saves = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "AutosaveTask":
        if not self.running:
            self._task = asyncio.create_task(self._run(), name=f"autosave-{self.audit_id}")
            logger.info(f"[AUTOSAVE] Started for audit {self.audit_id} every {self.interval}s")
        return self

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"[AUTOSAVE] Stopped for audit {self.audit_id}")

    async def run_once(self) -> Optional[AuditStatus]:
        snapshot = self.provider()
        if inspect.isawaitable(snapshot):
            snapshot = await snapshot
        if snapshot is None:
            return None

        # The client's idea of the status follows what was last written
        if self.last_status is not None and snapshot.status is None:
            snapshot.status = self.last_status
        self.last_status = await self.controller.autosave(self.audit_id, snapshot)
        self.saves += 1
        return self.last_status

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[AUTOSAVE] Save failed for audit {self.audit_id}: {e}")
