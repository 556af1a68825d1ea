from typing import Optional, List, Dict, Any, Iterable
from sqlmodel import select
from sqlalchemy import update, delete, case, or_, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from models.db_models import Audit, AuditPhoto, utcnow
from models.enums import AuditStatus, PHOTO_CATEGORY_ORDER
from core.context import SessionContext
from services.error_types import NotFoundError, ValidationError
from database import AsyncSessionLocal
import logging

logger = logging.getLogger(__name__)

SEARCH_COLUMNS = ("customer_first_name", "customer_last_name", "customer_address", "customer_city")


class AuditRepository:
    """SQLModel-backed persistence for audits and their photo rows"""

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory

    async def create_audit(
        self,
        ctx: SessionContext,
        fields: Dict[str, Any],
        session: Optional[AsyncSession] = None
    ) -> Audit:
        """Create a new draft audit owned by the calling user"""
        if session is None:
            async with self.session_factory() as session:
                return await self.create_audit(ctx, fields, session)

        audit = Audit(user_id=ctx.user_id, status=AuditStatus.draft.value)
        for key, value in fields.items():
            if hasattr(audit, key):
                setattr(audit, key, value)

        session.add(audit)
        await session.commit()
        await session.refresh(audit)

        logger.info(f"Created audit {audit.id} for user {ctx.user_id}")
        return audit

    async def get_audit(self, audit_id: str, session: Optional[AsyncSession] = None) -> Optional[Audit]:
        """Get audit by ID"""
        if session is None:
            async with self.session_factory() as session:
                return await self.get_audit(audit_id, session)

        statement = select(Audit).where(Audit.id == audit_id)
        result = await session.execute(statement)
        return result.scalars().first()

    async def require_audit(self, audit_id: str, session: Optional[AsyncSession] = None) -> Audit:
        audit = await self.get_audit(audit_id, session)
        if audit is None:
            raise NotFoundError(f"Audit {audit_id} not found", {"audit_id": audit_id})
        return audit

    async def get_status(self, audit_id: str, session: Optional[AsyncSession] = None) -> AuditStatus:
        """Read only the persisted status column"""
        if session is None:
            async with self.session_factory() as session:
                return await self.get_status(audit_id, session)

        result = await session.execute(select(Audit.status).where(Audit.id == audit_id))
        status = result.scalars().first()
        if status is None:
            raise NotFoundError(f"Audit {audit_id} not found", {"audit_id": audit_id})
        return AuditStatus(status)

    async def list_audits(
        self,
        user_id: Optional[int] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> List[Audit]:
        """List audits newest first, optionally filtered by owner, free text and status"""
        if session is None:
            async with self.session_factory() as session:
                return await self.list_audits(user_id, search, status, session)

        statement = select(Audit)
        if user_id is not None:
            statement = statement.where(Audit.user_id == user_id)
        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            statement = statement.where(or_(*[
                func.lower(getattr(Audit, column)).like(term) for column in SEARCH_COLUMNS
            ]))
        if status and status != "all":
            if status not in AuditStatus.__members__:
                raise ValidationError(f"Unknown status filter: {status}", {"status": status})
            statement = statement.where(Audit.status == status)

        statement = statement.order_by(Audit.created_at.desc())
        result = await session.execute(statement)
        return list(result.scalars().all())

    async def update_audit(
        self,
        audit_id: str,
        updates: Dict[str, Any],
        advance_status: bool = False,
        session: Optional[AsyncSession] = None
    ) -> bool:
        """
        Overwrite the given columns in a single UPDATE.

        With ``advance_status`` the same statement moves draft/in_progress to
        in_progress while leaving a completed audit completed, so a data write
        can never downgrade a finished audit.
        """
        if session is None:
            async with self.session_factory() as session:
                return await self.update_audit(audit_id, updates, advance_status, session)

        values = {key: value for key, value in updates.items() if key in Audit.model_fields and key != "id"}
        values["updated_at"] = utcnow()
        if advance_status:
            values["status"] = case(
                (Audit.status == AuditStatus.completed.value, AuditStatus.completed.value),
                else_=AuditStatus.in_progress.value,
            )

        statement = update(Audit).where(Audit.id == audit_id).values(**values)
        result = await session.execute(statement.execution_options(synchronize_session=False))
        await session.commit()
        return result.rowcount > 0

    async def set_status_if(
        self,
        audit_id: str,
        target: AuditStatus,
        allowed_from: Iterable[AuditStatus],
        extra: Optional[Dict[str, Any]] = None,
        session: Optional[AsyncSession] = None
    ) -> bool:
        """Atomically set status only when the current status is in ``allowed_from``"""
        if session is None:
            async with self.session_factory() as session:
                return await self.set_status_if(audit_id, target, allowed_from, extra, session)

        allowed = [status.value for status in allowed_from]
        values = {"status": target.value, "updated_at": utcnow(), **(extra or {})}
        statement = (
            update(Audit)
            .where(Audit.id == audit_id, Audit.status.in_(allowed))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(statement)
        await session.commit()

        changed = result.rowcount > 0
        logger.info(f"Status guard for audit {audit_id}: {allowed} -> {target.value} applied={changed}")
        return changed

    async def delete_audit(
        self,
        ctx: SessionContext,
        audit_id: str,
        session: Optional[AsyncSession] = None
    ) -> List[AuditPhoto]:
        """Delete an audit owned by the caller and its photo rows; returns the removed photos"""
        if session is None:
            async with self.session_factory() as session:
                return await self.delete_audit(ctx, audit_id, session)

        audit = await self.get_audit(audit_id, session)
        if audit is None or audit.user_id != ctx.user_id:
            raise NotFoundError(f"Audit {audit_id} not found", {"audit_id": audit_id})

        photos = await self.list_photos(audit_id, session=session)
        await session.execute(
            delete(AuditPhoto).where(AuditPhoto.audit_id == audit_id).execution_options(synchronize_session=False)
        )
        await session.delete(audit)
        await session.commit()

        logger.info(f"Deleted audit {audit_id} with {len(photos)} photos")
        return photos

    # Photo rows

    async def add_photo(self, photo: AuditPhoto, session: Optional[AsyncSession] = None) -> AuditPhoto:
        if session is None:
            async with self.session_factory() as session:
                return await self.add_photo(photo, session)

        session.add(photo)
        await session.commit()
        await session.refresh(photo)
        return photo

    async def get_photo(self, photo_id: str, session: Optional[AsyncSession] = None) -> Optional[AuditPhoto]:
        if session is None:
            async with self.session_factory() as session:
                return await self.get_photo(photo_id, session)

        result = await session.execute(select(AuditPhoto).where(AuditPhoto.id == photo_id))
        return result.scalars().first()

    async def list_photos(
        self,
        audit_id: str,
        category: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> List[AuditPhoto]:
        """Photos of one audit in category order, then upload order"""
        if session is None:
            async with self.session_factory() as session:
                return await self.list_photos(audit_id, category, session)

        category_rank = case(PHOTO_CATEGORY_ORDER, value=AuditPhoto.category, else_=len(PHOTO_CATEGORY_ORDER))
        statement = select(AuditPhoto).where(AuditPhoto.audit_id == audit_id)
        if category:
            statement = statement.where(AuditPhoto.category == category)
        statement = statement.order_by(category_rank, AuditPhoto.uploaded_at, AuditPhoto.id)

        result = await session.execute(statement)
        return list(result.scalars().all())

    async def delete_photo(self, photo_id: str, session: Optional[AsyncSession] = None) -> Optional[AuditPhoto]:
        """Remove a photo row; returns the removed row or None when it did not exist"""
        if session is None:
            async with self.session_factory() as session:
                return await self.delete_photo(photo_id, session)

        photo = await self.get_photo(photo_id, session)
        if photo is None:
            return None
        await session.delete(photo)
        await session.commit()
        return photo


# Singleton instance
audit_repository = AuditRepository()
