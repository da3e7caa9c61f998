"""
Application Admission & Transition Controller

Admission rules at submission (duplicate prevention, capacity) and the
one-shot pending -> approved / pending -> rejected review.

Approval is a single transaction: the application claim, internship creation,
slot decrement and outgoing notifications either all happen or none do.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError

from internhub.database import transaction, AsyncSessionLocal
from internhub.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    DUPLICATE_APPLICATION,
    INVALID_STATUS,
    POSITION_FULL,
)
from internhub.models.application import Application, ApplicationStatus
from internhub.models.internship import Internship, InternshipStatus
from internhub.models.position import Position
from internhub.models.user import Role
from internhub.services import events
from internhub.services.events import AuditEntry, DomainEvent, NotificationMessage, Outbox, RequestMeta
from internhub.services.lifecycle import ACTIVE_APPLICATION_STATUSES, transition_application
from internhub.services.position_service import get_position_service
from internhub.services.profiles import (
    all_teacher_user_ids,
    find_enterprise,
    find_student,
    require_student,
    require_teacher,
)

logger = logging.getLogger(__name__)


class ApplicationService:
    """Drive applications through admission and review"""

    async def submit(
        self,
        user_id: int,
        position_id: Optional[int],
        personal_statement: Optional[str],
        contact_info: Optional[str],
        meta: Optional[RequestMeta] = None,
    ) -> Application:
        """
        Submit an application for a position (admission control).

        Validation order, failing fast:
            required fields -> student profile -> position exists ->
            no pending/approved application -> free slot

        Raises:
            ValidationError: Missing position_id, statement or contact info
            NotFoundError: Student profile or position missing
            ConflictError(DUPLICATE_APPLICATION): Student already holds an active application
            ConflictError(POSITION_FULL): No slot left
        """
        errors = []
        if not position_id:
            errors.append({"field": "position_id", "message": "Position is required"})
        if not personal_statement or not personal_statement.strip():
            errors.append({"field": "personal_statement", "message": "Personal statement must not be empty"})
        if not contact_info or not contact_info.strip():
            errors.append({"field": "contact_info", "message": "Contact info must not be empty"})
        if errors:
            raise ValidationError("Validation failed", details=errors)

        outbox = Outbox()
        async with transaction() as session:
            student = await require_student(session, user_id)

            position = await session.get(Position, position_id)
            if position is None:
                raise NotFoundError("Position", position_id)
            get_position_service().refresh_status(position)

            existing = await session.scalar(
                select(Application.id)
                .where(
                    Application.student_id == student.id,
                    Application.status.in_(ACTIVE_APPLICATION_STATUSES),
                )
                .limit(1)
            )
            if existing is not None:
                raise ConflictError(
                    "You already have a pending or approved application",
                    code=DUPLICATE_APPLICATION,
                )

            if position.available_slots <= 0:
                raise ConflictError("This position has no available slots", code=POSITION_FULL)

            application = Application(
                student_id=student.id,
                position_id=position.id,
                student=student,
                position=position,
                personal_statement=personal_statement.strip(),
                contact_info=contact_info.strip(),
                status=ApplicationStatus.PENDING,
                applied_at=datetime.utcnow(),
            )
            session.add(application)
            try:
                await session.flush()
            except IntegrityError as e:
                # a concurrent submission by the same student won the active-application index
                raise ConflictError(
                    "You already have a pending or approved application",
                    code=DUPLICATE_APPLICATION,
                ) from e

            teacher_user_ids = await all_teacher_user_ids(session)
            outbox.record(DomainEvent(
                name=events.APPLICATION_SUBMITTED,
                notifications=[
                    NotificationMessage(
                        teacher_user_id,
                        "New internship application awaiting review",
                        f"A student applied for the position: {position.title}",
                        "application_submitted",
                    )
                    for teacher_user_id in teacher_user_ids
                ],
                audit=AuditEntry(
                    user_id,
                    "application_submit",
                    f"Student submitted application #{application.id} for position #{position.id}",
                    meta,
                ),
            ))

        await outbox.dispatch()
        logger.info(f"Application {application.id} submitted by student {application.student_id}")
        return application

    async def _claim_pending(
        self,
        session,
        application: Application,
        target: ApplicationStatus,
        reviewer_id: int,
        **values,
    ) -> None:
        """
        Move a pending application to a terminal status exactly once.

        The status check and write are one conditional UPDATE, so concurrent
        reviews of the same application produce a single winner. Extra column
        values are written by the same UPDATE and mirrored on the instance.
        """
        transition_application(application.status, target)

        now = datetime.utcnow()
        result = await session.execute(
            update(Application)
            .where(Application.id == application.id, Application.status == ApplicationStatus.PENDING)
            .values(status=target, reviewed_at=now, reviewed_by=reviewer_id, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Only pending applications can be reviewed", code=INVALID_STATUS)

        application.status = target
        application.reviewed_at = now
        application.reviewed_by = reviewer_id
        for name, value in values.items():
            setattr(application, name, value)

    async def _load_application(self, session, application_id: int) -> Application:
        application = await session.get(Application, application_id, populate_existing=True)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    async def approve(
        self,
        application_id: int,
        user_id: int,
        meta: Optional[RequestMeta] = None,
    ) -> Tuple[Application, Internship]:
        """
        Approve a pending application and open the internship.

        Effects (one transaction): application approved and reviewed,
        internship created with the position's dates, one slot taken,
        student and enterprise notified.

        Several applications may be pending on a position with fewer free
        slots; approving past zero keeps available_slots at 0.

        Raises:
            NotFoundError: Teacher profile or application missing
            ConflictError(INVALID_STATUS): Application is not pending
        """
        outbox = Outbox()
        async with transaction() as session:
            teacher = await require_teacher(session, user_id)
            application = await self._load_application(session, application_id)
            transition_application(application.status, ApplicationStatus.APPROVED)

            position = await get_position_service().lock_position(session, application.position_id)
            if position.available_slots <= 0:
                logger.warning(f"Approving application {application.id} on position {position.id} with no free slot")

            await self._claim_pending(
                session, application, ApplicationStatus.APPROVED, teacher.id, teacher_id=teacher.id
            )

            internship = Internship(
                application_id=application.id,
                student_id=application.student_id,
                position_id=position.id,
                enterprise_id=position.enterprise_id,
                teacher_id=teacher.id,
                start_date=position.start_date,
                end_date=position.end_date,
                status=InternshipStatus.ONGOING,
                student=application.student,
                teacher=teacher,
                enterprise=position.enterprise,
                position=position,
            )
            session.add(internship)

            await get_position_service().take_slot(session, position.id)
            await session.flush()

            outbox.record(DomainEvent(
                name=events.APPLICATION_APPROVED,
                notifications=[
                    NotificationMessage(
                        application.student.user_id,
                        "Internship application approved",
                        f"Your application was approved for the position: {position.title}",
                        "application_approved",
                    ),
                    NotificationMessage(
                        position.enterprise.user_id,
                        "New intern assigned",
                        f"A student's application was approved for the position: {position.title}",
                        "application_approved",
                    ),
                ],
                audit=AuditEntry(user_id, "application_approve", f"Teacher approved application #{application.id}", meta),
            ))

        await outbox.dispatch()
        logger.info(
            f"Application {application.id} approved by teacher {teacher.id}; "
            f"internship {internship.id} created, position {position.id} has {position.available_slots} slots left"
        )
        return application, internship

    async def reject(
        self,
        application_id: int,
        user_id: int,
        rejection_reason: Optional[str],
        meta: Optional[RequestMeta] = None,
    ) -> Application:
        """
        Reject a pending application with a reason.

        Raises:
            ValidationError: Reason empty after trimming
            NotFoundError: Teacher profile or application missing
            ConflictError(INVALID_STATUS): Application is not pending
        """
        reason = (rejection_reason or "").strip()
        if not reason:
            raise ValidationError.for_field("rejection_reason", "Rejection reason must not be empty")

        outbox = Outbox()
        async with transaction() as session:
            teacher = await require_teacher(session, user_id)
            application = await self._load_application(session, application_id)

            await self._claim_pending(
                session, application, ApplicationStatus.REJECTED, teacher.id, rejection_reason=reason
            )

            outbox.record(DomainEvent(
                name=events.APPLICATION_REJECTED,
                notifications=[
                    NotificationMessage(
                        application.student.user_id,
                        "Internship application rejected",
                        f"Your application for the position {application.position.title} was rejected. "
                        f"Reason: {reason}",
                        "application_rejected",
                    ),
                ],
                audit=AuditEntry(
                    user_id, "application_reject", f"Teacher rejected application #{application.id}: {reason}", meta
                ),
            ))

        await outbox.dispatch()
        logger.info(f"Application {application.id} rejected by teacher {teacher.id}")
        return application

    async def get_application(self, application_id: int, user_id: int, role: Role) -> Application:
        """
        Fetch one application visible to the caller.

        Students see their own, enterprises those on their positions, teachers all.
        """
        async with AsyncSessionLocal() as session:
            application = await session.get(Application, application_id)
            if application is None:
                raise NotFoundError("Application", application_id)

            if role == Role.STUDENT:
                student = await find_student(session, user_id)
                if student is None or application.student_id != student.id:
                    raise ForbiddenError("You do not have permission to view this application")
            elif role == Role.ENTERPRISE:
                enterprise = await find_enterprise(session, user_id)
                if enterprise is None or application.position.enterprise_id != enterprise.id:
                    raise ForbiddenError("You do not have permission to view this application")

            return application

    async def list_applications(
        self,
        user_id: int,
        role: Role,
        status: Optional[ApplicationStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        Newest-first applications visible to the caller.

        Returns:
            Dict with applications and total
        """
        conditions = []
        if status is not None:
            conditions.append(Application.status == status)

        page = max(1, page)
        async with AsyncSessionLocal() as session:
            if role == Role.STUDENT:
                student = await require_student(session, user_id)
                conditions.append(Application.student_id == student.id)
            elif role == Role.ENTERPRISE:
                enterprise = await find_enterprise(session, user_id)
                if enterprise is None:
                    raise NotFoundError("Enterprise profile", user_id)
                owned = select(Position.id).where(Position.enterprise_id == enterprise.id)
                conditions.append(Application.position_id.in_(owned))

            total = await session.scalar(select(func.count()).select_from(Application).where(*conditions)) or 0
            result = await session.execute(
                select(Application)
                .where(*conditions)
                .order_by(Application.applied_at.desc(), Application.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
            applications = list(result.unique().scalars().all())

        return {"applications": applications, "total": total}


# Global instance
_application_service: Optional[ApplicationService] = None


def get_application_service() -> ApplicationService:
    """Get or create global ApplicationService instance."""
    global _application_service
    if _application_service is None:
        _application_service = ApplicationService()
    return _application_service
