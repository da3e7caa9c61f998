"""
Internship Lifecycle & Evaluation Aggregator

Time-driven expiry (ongoing -> pending_evaluation), expiring-soon reminders,
progress computation and the dual-evaluation workflow that completes an
internship once both the teacher and the enterprise have scored it.

Status flow:
    ongoing -> pending_evaluation -> completed
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from internhub.config import REMINDER_HORIZON_DAYS
from internhub.database import transaction, AsyncSessionLocal
from internhub.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    BUSINESS_LOGIC_ERROR,
    EVALUATION_ALREADY_SUBMITTED,
)
from internhub.models.internship import Internship, InternshipStatus
from internhub.models.user import Role
from internhub.services import events
from internhub.services.events import AuditEntry, DomainEvent, NotificationMessage, Outbox, RequestMeta
from internhub.services.lifecycle import (
    EVALUABLE_STATUSES,
    aggregate_score,
    compute_progress,
    days_between,
    is_expired,
    transition_internship,
    validate_score,
)
from internhub.services.profiles import (
    find_enterprise,
    find_student,
    find_teacher,
    require_enterprise,
    require_student,
    require_teacher,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluator:
    """
    Capability to score an internship on behalf of one party.

    Each evaluator only ever writes its own score and comment columns.
    """
    role: Role
    score_field: str
    comment_field: str
    party_field: str
    resolve_profile: Callable[[AsyncSession, int], Awaitable[Any]]
    label: str


TeacherEvaluator = Evaluator(
    role=Role.TEACHER,
    score_field="teacher_score",
    comment_field="teacher_comment",
    party_field="teacher_id",
    resolve_profile=require_teacher,
    label="teacher",
)

EnterpriseEvaluator = Evaluator(
    role=Role.ENTERPRISE,
    score_field="enterprise_score",
    comment_field="enterprise_comment",
    party_field="enterprise_id",
    resolve_profile=require_enterprise,
    label="enterprise",
)

EVALUATORS = {
    Role.TEACHER: TeacherEvaluator,
    Role.ENTERPRISE: EnterpriseEvaluator,
}


def _party_user_ids(internship: Internship) -> List[int]:
    """User ids of the intern and the assigned teacher, if any."""
    user_ids = [internship.student.user_id]
    if internship.teacher is not None:
        user_ids.append(internship.teacher.user_id)
    return user_ids


def _expired_event(internship: Internship) -> DomainEvent:
    title = internship.position.title if internship.position else f"#{internship.id}"
    return DomainEvent(
        name=events.INTERNSHIP_EXPIRED,
        notifications=[
            NotificationMessage(
                user_id,
                "Internship ended, evaluation pending",
                f"The internship for position {title} has ended and is awaiting evaluation",
                "internship_expired",
            )
            for user_id in _party_user_ids(internship)
        ],
    )


class InternshipService:
    """Expiry, reminders, progress and evaluation of internships"""

    # Expiry

    def check_and_update_on_read(
        self,
        internship: Internship,
        as_of: Optional[Union[date, datetime]] = None,
        outbox: Optional[Outbox] = None,
    ) -> bool:
        """
        Apply the expiry rule to a single loaded internship.

        Must run inside the transaction that loaded the internship.

        Returns:
            True if the internship moved to pending_evaluation
        """
        as_of = as_of or date.today()
        if internship.status != InternshipStatus.ONGOING or not is_expired(internship.end_date, as_of):
            return False

        internship.status = transition_internship(internship.status, InternshipStatus.PENDING_EVALUATION)
        if outbox is not None:
            outbox.record(_expired_event(internship))
        logger.info(f"Internship {internship.id} expired on read, now pending evaluation")
        return True

    async def sweep_expired(self, as_of: Optional[Union[date, datetime]] = None) -> Dict[str, Any]:
        """
        Move every ongoing internship past its end date to pending_evaluation.

        Idempotent: a second sweep with the same as_of updates nothing.

        Returns:
            Dict with updated (count) and internships (ids)
        """
        as_of = as_of or date.today()
        cutoff = as_of.date() if isinstance(as_of, datetime) else as_of

        outbox = Outbox()
        async with transaction() as session:
            result = await session.execute(
                select(Internship)
                .where(Internship.status == InternshipStatus.ONGOING, Internship.end_date < cutoff)
                .order_by(Internship.id)
                .with_for_update(of=Internship)
                .execution_options(populate_existing=True)
            )
            expired = list(result.unique().scalars().all())

            for internship in expired:
                self.check_and_update_on_read(internship, cutoff, outbox)

        await outbox.dispatch()

        ids = [internship.id for internship in expired]
        logger.info(f"Expiry sweep as of {cutoff}: {len(ids)} internships moved to pending evaluation")
        return {"updated": len(ids), "internships": ids}

    async def remind(
        self,
        as_of: Optional[Union[date, datetime]] = None,
        horizon_days: int = REMINDER_HORIZON_DAYS,
    ) -> Dict[str, int]:
        """
        Remind students and teachers of internships ending within the horizon.

        Args:
            as_of: Reference moment (default now)
            horizon_days: Look-ahead window in days

        Returns:
            Dict with checked (internships in window) and sent (notifications)
        """
        as_of = as_of or datetime.now()
        today = as_of.date() if isinstance(as_of, datetime) else as_of
        horizon = today + timedelta(days=horizon_days)

        async with AsyncSessionLocal() as session:
            result = await session.execute(
                select(Internship)
                .where(
                    Internship.status == InternshipStatus.ONGOING,
                    Internship.end_date >= today,
                    Internship.end_date <= horizon,
                )
                .order_by(Internship.end_date, Internship.id)
            )
            expiring = list(result.unique().scalars().all())

        outbox = Outbox()
        for internship in expiring:
            days_remaining = days_between(as_of, internship.end_date)
            outbox.record(DomainEvent(
                name=events.INTERNSHIP_EXPIRING,
                notifications=[
                    NotificationMessage(
                        user_id,
                        "Internship ending soon",
                        f"The internship for position {internship.position.title} ends in "
                        f"{days_remaining} day(s) on {internship.end_date.isoformat()}",
                        "internship_expiring",
                    )
                    for user_id in _party_user_ids(internship)
                ],
            ))

        sent = await outbox.dispatch()
        logger.info(f"Reminder run: {len(expiring)} internships ending by {horizon}, {sent} notifications sent")
        return {"checked": len(expiring), "sent": sent}

    # Reads

    async def _authorize_party(self, session: AsyncSession, internship: Internship, user_id: int, role: Role) -> None:
        """Only the intern, the assigned teacher or the host enterprise may see an internship."""
        allowed = False
        if role == Role.STUDENT:
            student = await find_student(session, user_id)
            allowed = student is not None and internship.student_id == student.id
        elif role == Role.TEACHER:
            teacher = await find_teacher(session, user_id)
            allowed = teacher is not None and internship.teacher_id == teacher.id
        elif role == Role.ENTERPRISE:
            enterprise = await find_enterprise(session, user_id)
            allowed = enterprise is not None and internship.enterprise_id == enterprise.id

        if not allowed:
            raise ForbiddenError("You do not have permission to access this internship")

    async def load_for_party(
        self,
        session: AsyncSession,
        internship_id: int,
        user_id: int,
        role: Role,
    ) -> Internship:
        """Load an internship in the caller's session after checking visibility."""
        internship = await session.get(Internship, internship_id)
        if internship is None:
            raise NotFoundError("Internship", internship_id)
        await self._authorize_party(session, internship, user_id, role)
        return internship

    async def get_internship(
        self,
        internship_id: int,
        user_id: int,
        role: Role,
        as_of: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Fetch an internship for one of its parties, applying lazy expiry.

        Returns:
            Dict with the internship and its progress
        """
        as_of = as_of or date.today()
        outbox = Outbox()
        async with transaction() as session:
            internship = await self.load_for_party(session, internship_id, user_id, role)
            self.check_and_update_on_read(internship, as_of, outbox)

        await outbox.dispatch()
        return {
            "internship": internship,
            "progress": compute_progress(internship.start_date, internship.end_date, as_of),
        }

    async def get_progress(
        self,
        internship_id: int,
        user_id: int,
        role: Role,
        as_of: Optional[date] = None,
    ) -> Dict[str, Any]:
        async with AsyncSessionLocal() as session:
            internship = await self.load_for_party(session, internship_id, user_id, role)
        return compute_progress(internship.start_date, internship.end_date, as_of or date.today())

    async def get_evaluation(self, internship_id: int, user_id: int, role: Role) -> Dict[str, Any]:
        """Both evaluations and the final score; visible to the intern only."""
        async with AsyncSessionLocal() as session:
            internship = await session.get(Internship, internship_id)
            if internship is None:
                raise NotFoundError("Internship", internship_id)
            if role != Role.STUDENT or internship.student.user_id != user_id:
                raise ForbiddenError("You do not have permission to view this evaluation")

        return {
            "teacher_score": internship.teacher_score,
            "teacher_comment": internship.teacher_comment,
            "enterprise_score": internship.enterprise_score,
            "enterprise_comment": internship.enterprise_comment,
            "final_score": internship.final_score,
            "status": internship.status,
        }

    async def list_internships(
        self,
        user_id: int,
        role: Role,
        status: Optional[InternshipStatus] = None,
    ) -> Dict[str, Any]:
        """
        Newest-first internships the caller takes part in.

        Students see their own, teachers those they supervise and
        enterprises those they host.
        """
        async with AsyncSessionLocal() as session:
            query = select(Internship)
            if role == Role.STUDENT:
                student = await require_student(session, user_id)
                query = query.where(Internship.student_id == student.id)
            elif role == Role.TEACHER:
                teacher = await require_teacher(session, user_id)
                query = query.where(Internship.teacher_id == teacher.id)
            elif role == Role.ENTERPRISE:
                enterprise = await require_enterprise(session, user_id)
                query = query.where(Internship.enterprise_id == enterprise.id)
            if status is not None:
                query = query.where(Internship.status == status)

            result = await session.execute(query.order_by(Internship.created_at.desc(), Internship.id.desc()))
            internships = list(result.unique().scalars().all())

        return {"internships": internships, "total": len(internships)}

    # Evaluation

    async def submit_evaluation(
        self,
        role: Role,
        internship_id: int,
        user_id: int,
        score: Any,
        comment: Optional[str] = None,
        meta: Optional[RequestMeta] = None,
    ) -> Internship:
        """
        Record one party's evaluation and aggregate the final score.

        The first evaluation per role wins. When both scores are present,
        final_score is set and the internship completes in the same transaction.
        The caller must be the internship's party before the score is checked.

        Raises:
            ForbiddenError: Caller cannot evaluate, or is not this internship's party
            ValidationError: Score missing, not numeric or outside [0, 100]
            NotFoundError: Profile or internship missing
            ConflictError(BUSINESS_LOGIC_ERROR): Internship has not ended yet
            ConflictError(EVALUATION_ALREADY_SUBMITTED): This role already scored
        """
        evaluator = EVALUATORS.get(role)
        if evaluator is None:
            raise ForbiddenError(f"Role '{role.value}' cannot submit evaluations")
        comment = comment.strip() if comment and comment.strip() else None

        outbox = Outbox()
        async with transaction() as session:
            party = await evaluator.resolve_profile(session, user_id)

            result = await session.execute(
                select(Internship)
                .where(Internship.id == internship_id)
                .with_for_update(of=Internship)
                .execution_options(populate_existing=True)
            )
            internship = result.unique().scalar_one_or_none()
            if internship is None:
                raise NotFoundError("Internship", internship_id)
            if getattr(internship, evaluator.party_field) != party.id:
                raise ForbiddenError(f"Only the internship's {evaluator.label} can submit this evaluation")
            score = validate_score(score)

            self.check_and_update_on_read(internship, date.today(), outbox)
            if internship.status not in EVALUABLE_STATUSES:
                raise ConflictError(
                    "The internship has not ended yet and cannot be evaluated",
                    code=BUSINESS_LOGIC_ERROR,
                )
            if getattr(internship, evaluator.score_field) is not None:
                raise ConflictError(
                    f"The {evaluator.label} evaluation has already been submitted",
                    code=EVALUATION_ALREADY_SUBMITTED,
                )

            score_column = getattr(Internship, evaluator.score_field)
            claimed = await session.execute(
                update(Internship)
                .where(Internship.id == internship.id, score_column.is_(None))
                .values({evaluator.score_field: score, evaluator.comment_field: comment})
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                raise ConflictError(
                    f"The {evaluator.label} evaluation has already been submitted",
                    code=EVALUATION_ALREADY_SUBMITTED,
                )
            setattr(internship, evaluator.score_field, score)
            setattr(internship, evaluator.comment_field, comment)

            completed = aggregate_score(internship)
            await session.flush()

            student_user_id = internship.student.user_id
            outbox.record(DomainEvent(
                name=events.EVALUATION_SUBMITTED,
                notifications=[
                    NotificationMessage(
                        student_user_id,
                        "Internship evaluation received",
                        f"Your {evaluator.label} evaluation was submitted with a score of {score:g}",
                        "evaluation_submitted",
                    ),
                ],
                audit=AuditEntry(
                    user_id,
                    "evaluation_submit",
                    f"Submitted {evaluator.label} evaluation for internship #{internship.id}, score {score:g}",
                    meta,
                ),
            ))
            if completed:
                outbox.record(DomainEvent(
                    name=events.INTERNSHIP_COMPLETED,
                    notifications=[
                        NotificationMessage(
                            student_user_id,
                            "Internship completed",
                            f"Your internship is complete with a final score of {internship.final_score:g}",
                            "internship_completed",
                        ),
                    ],
                ))

        await outbox.dispatch()
        logger.info(
            f"Internship {internship.id}: {evaluator.label} score {score:g} recorded"
            + (f", final score {internship.final_score:g}" if completed else "")
        )
        return internship

    async def submit_teacher_evaluation(
        self,
        internship_id: int,
        user_id: int,
        score: Any,
        comment: Optional[str] = None,
        meta: Optional[RequestMeta] = None,
    ) -> Internship:
        return await self.submit_evaluation(Role.TEACHER, internship_id, user_id, score, comment, meta)

    async def submit_enterprise_evaluation(
        self,
        internship_id: int,
        user_id: int,
        score: Any,
        comment: Optional[str] = None,
        meta: Optional[RequestMeta] = None,
    ) -> Internship:
        return await self.submit_evaluation(Role.ENTERPRISE, internship_id, user_id, score, comment, meta)


# Global instance
_internship_service: Optional[InternshipService] = None


def get_internship_service() -> InternshipService:
    """Get or create global InternshipService instance."""
    global _internship_service
    if _internship_service is None:
        _internship_service = InternshipService()
    return _internship_service
