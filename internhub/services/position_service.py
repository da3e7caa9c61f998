"""
Position & Capacity Manager

Creates, updates and deletes internship positions and keeps slot accounting
and derived status consistent:
- available_slots starts at total_slots and never leaves [0, total_slots]
- status is closed after end_date, full at zero slots, open otherwise
- a position with pending applications cannot be deleted
"""
import logging
import math
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from internhub.database import transaction, AsyncSessionLocal
from internhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from internhub.models.application import Application, ApplicationStatus
from internhub.models.position import Position, PositionStatus
from internhub.services import events
from internhub.services.events import AuditEntry, DomainEvent, Outbox, RequestMeta
from internhub.services.lifecycle import (
    decrement_slot,
    recompute_position_status,
    resize_slots,
    validate_position_fields,
)
from internhub.services.profiles import require_enterprise

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "requirements", "total_slots", "start_date", "end_date")


class PositionService:
    """Slot accounting and status derivation for positions"""

    async def create_position(
        self,
        user_id: int,
        title: str,
        description: str,
        total_slots: int,
        start_date: date,
        end_date: date,
        requirements: Optional[str] = None,
        meta: Optional[RequestMeta] = None,
    ) -> Position:
        """
        Create a position owned by the calling enterprise.

        Args:
            user_id: Enterprise user creating the position
            total_slots: Capacity, at least 1

        Returns:
            Position with available_slots = total_slots; status is open
            unless end_date has already passed

        Raises:
            ValidationError: Empty title/description, total_slots < 1, end_date <= start_date
            NotFoundError: Caller has no enterprise profile
        """
        validate_position_fields(title, description, total_slots, start_date, end_date)

        outbox = Outbox()
        async with transaction() as session:
            enterprise = await require_enterprise(session, user_id)
            position = Position(
                enterprise_id=enterprise.id,
                enterprise=enterprise,
                title=title.strip(),
                description=description.strip(),
                requirements=requirements or None,
                total_slots=total_slots,
                available_slots=total_slots,
                start_date=start_date,
                end_date=end_date,
                status=recompute_position_status(end_date, total_slots, date.today()),
            )
            session.add(position)
            await session.flush()

            outbox.record(DomainEvent(
                name=events.POSITION_CREATED,
                audit=AuditEntry(user_id, "position_create", f"Enterprise created position: {position.title}", meta),
            ))

        await outbox.dispatch()
        logger.info(f"Position {position.id} created by enterprise {position.enterprise_id} ({total_slots} slots)")
        return position

    def refresh_status(self, position: Position, as_of: Optional[date] = None) -> PositionStatus:
        """Re-derive a loaded position's status; the caller's transaction persists any change."""
        status = recompute_position_status(position.end_date, position.available_slots, as_of or date.today())
        if status != position.status:
            logger.debug(f"Position {position.id} status {position.status.value} -> {status.value}")
            position.status = status
        return status

    async def get_position(self, position_id: int, as_of: Optional[date] = None) -> Position:
        async with transaction() as session:
            position = await session.get(Position, position_id)
            if position is None:
                raise NotFoundError("Position", position_id)
            self.refresh_status(position, as_of)
        return position

    async def lock_position(self, session: AsyncSession, position_id: int) -> Position:
        """
        Re-read a position with a row lock inside the caller's transaction.

        Slot decrements must start from this fresh value.
        """
        result = await session.execute(
            select(Position)
            .where(Position.id == position_id)
            .with_for_update(of=Position)
            .execution_options(populate_existing=True)
        )
        position = result.unique().scalar_one_or_none()
        if position is None:
            raise NotFoundError("Position", position_id)
        return position

    async def take_slot(self, session: AsyncSession, position_id: int, as_of: Optional[date] = None) -> Position:
        """Lock the position and consume one slot within the caller's transaction."""
        position = await self.lock_position(session, position_id)
        before = position.available_slots
        decrement_slot(position, as_of)
        logger.debug(f"Position {position_id} slots {before} -> {position.available_slots}")
        return position

    async def update_position(
        self,
        position_id: int,
        user_id: int,
        changes: Dict[str, Any],
        meta: Optional[RequestMeta] = None,
    ) -> Position:
        """
        Update an owned position.

        Changing total_slots keeps used slots occupied; status is re-derived.

        Raises:
            NotFoundError: Position or enterprise profile missing
            ForbiddenError: Position belongs to another enterprise
            ValidationError: Invalid field values
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                "Validation failed",
                details=[{"field": name, "message": "Field cannot be updated"} for name in sorted(unknown)],
            )

        outbox = Outbox()
        async with transaction() as session:
            position = await self.lock_position(session, position_id)
            enterprise = await require_enterprise(session, user_id)
            if position.enterprise_id != enterprise.id:
                raise ForbiddenError("You do not have permission to update this position")

            merged = {name: getattr(position, name) for name in UPDATABLE_FIELDS}
            merged.update({name: value for name, value in changes.items() if value is not None or name == "requirements"})
            validate_position_fields(
                merged["title"], merged["description"], merged["total_slots"],
                merged["start_date"], merged["end_date"],
            )

            if merged["total_slots"] != position.total_slots:
                position.available_slots = resize_slots(
                    position.total_slots, merged["total_slots"], position.available_slots
                )
                position.total_slots = merged["total_slots"]

            position.title = merged["title"].strip()
            position.description = merged["description"].strip()
            position.requirements = merged["requirements"] or None
            position.start_date = merged["start_date"]
            position.end_date = merged["end_date"]
            position.status = recompute_position_status(position.end_date, position.available_slots, date.today())

            outbox.record(DomainEvent(
                name=events.POSITION_UPDATED,
                audit=AuditEntry(user_id, "position_update", f"Enterprise updated position #{position_id}", meta),
            ))

        await outbox.dispatch()
        return position

    async def delete_position(self, position_id: int, user_id: int, meta: Optional[RequestMeta] = None) -> None:
        """
        Delete an owned position that has no pending applications.

        Raises:
            NotFoundError: Position or enterprise profile missing
            ForbiddenError: Position belongs to another enterprise
            ConflictError: Pending applications exist
        """
        outbox = Outbox()
        async with transaction() as session:
            position = await self.lock_position(session, position_id)
            enterprise = await require_enterprise(session, user_id)
            if position.enterprise_id != enterprise.id:
                raise ForbiddenError("You do not have permission to delete this position")

            pending = await session.scalar(
                select(func.count())
                .select_from(Application)
                .where(Application.position_id == position_id, Application.status == ApplicationStatus.PENDING)
            )
            if pending:
                raise ConflictError(f"Cannot delete position with {pending} pending applications")

            await session.delete(position)
            outbox.record(DomainEvent(
                name=events.POSITION_DELETED,
                audit=AuditEntry(user_id, "position_delete", f"Enterprise deleted position #{position_id}", meta),
            ))

        await outbox.dispatch()
        logger.info(f"Position {position_id} deleted")

    async def close_expired_positions(self, as_of: Optional[date] = None) -> int:
        """Mark every position whose end_date has passed as closed; returns the count."""
        as_of = as_of or date.today()
        async with transaction() as session:
            result = await session.execute(
                update(Position)
                .where(Position.end_date < as_of, Position.status != PositionStatus.CLOSED)
                .values(status=PositionStatus.CLOSED)
            )
        closed = result.rowcount or 0
        if closed:
            logger.info(f"Closed {closed} expired positions")
        return closed

    async def list_positions(
        self,
        keyword: Optional[str] = None,
        enterprise_id: Optional[int] = None,
        status: Optional[PositionStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        Search positions newest first.

        Returns:
            Dict with items, total, page, limit, total_pages
        """
        await self.close_expired_positions()

        conditions = []
        if keyword:
            pattern = f"%{keyword}%"
            conditions.append(or_(Position.title.ilike(pattern), Position.description.ilike(pattern)))
        if enterprise_id is not None:
            conditions.append(Position.enterprise_id == enterprise_id)
        if status is not None:
            conditions.append(Position.status == status)

        page = max(1, page)
        async with AsyncSessionLocal() as session:
            total = await session.scalar(select(func.count()).select_from(Position).where(*conditions)) or 0
            result = await session.execute(
                select(Position)
                .where(*conditions)
                .order_by(Position.created_at.desc(), Position.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
            items = list(result.unique().scalars().all())

        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }


# Global instance
_position_service: Optional[PositionService] = None


def get_position_service() -> PositionService:
    """Get or create global PositionService instance."""
    global _position_service
    if _position_service is None:
        _position_service = PositionService()
    return _position_service
