"""
Statistics Service

Aggregate counts over applications, internships and positions for the
teacher dashboard, per-enterprise capacity reports and activity time series.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, case

from internhub.database import AsyncSessionLocal
from internhub.errors import ForbiddenError, NotFoundError, ValidationError
from internhub.models.application import Application, ApplicationStatus
from internhub.models.internship import Internship, InternshipStatus
from internhub.models.position import Position, PositionStatus
from internhub.models.user import Enterprise, Role, Student
from internhub.services.profiles import find_enterprise

logger = logging.getLogger(__name__)

PERIODS = ("month", "semester", "year")
GROUPINGS = ("day", "week", "month", "year")


def period_start(period: str, today: Optional[date] = None) -> datetime:
    """
    First moment of a named reporting period.

    month: first day of this month; semester: first day of the month six
    months back; year: January 1st.
    """
    today = today or date.today()
    if period == "month":
        return datetime(today.year, today.month, 1)
    if period == "semester":
        month_index = today.year * 12 + (today.month - 1) - 6
        return datetime(month_index // 12, month_index % 12 + 1, 1)
    if period == "year":
        return datetime(today.year, 1, 1)
    raise ValidationError.for_field("period", f"Period must be one of: {', '.join(PERIODS)}")


def period_key(moment: datetime, group_by: str) -> str:
    """Label of the day, ISO week, month or year a timestamp falls in."""
    if group_by == "day":
        return moment.strftime("%Y-%m-%d")
    if group_by == "week":
        year, week, _ = moment.isocalendar()
        return f"{year}-W{week:02d}"
    if group_by == "month":
        return moment.strftime("%Y-%m")
    return moment.strftime("%Y")


def _bucket(rows, group_by: str, statuses) -> List[Dict[str, Any]]:
    buckets: Dict[str, Dict[str, Any]] = {}
    for moment, status in rows:
        key = period_key(moment, group_by)
        bucket = buckets.setdefault(key, {"period": key, "total": 0, **{s.value: 0 for s in statuses}})
        bucket["total"] += 1
        bucket[statuses(status).value] += 1
    return [buckets[key] for key in sorted(buckets)]


class StatisticsService:
    """Read-only reporting over the lifecycle tables"""

    def _window(
        self,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        period: Optional[str],
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        if start_date and end_date:
            if end_date < start_date:
                raise ValidationError.for_field("end_date", "End date must not be before start date")
            return start_date, end_date
        if period:
            return period_start(period), None
        return None, None

    async def overview(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        period: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Dashboard overview.

        Args:
            start_date, end_date: Explicit reporting window (both required)
            period: month | semester | year, used when no explicit window is given

        Returns:
            Dict with applications, internships, positions, students,
            enterprises and per-enterprise details
        """
        since, until = self._window(start_date, end_date, period)

        def within(column):
            conditions = []
            if since is not None:
                conditions.append(column >= since)
            if until is not None:
                conditions.append(column <= until)
            return conditions

        async with AsyncSessionLocal() as session:
            app_rows = await session.execute(
                select(Application.status, func.count())
                .where(*within(Application.applied_at))
                .group_by(Application.status)
            )
            applications = {status.value: 0 for status in ApplicationStatus}
            for status, count in app_rows.all():
                applications[ApplicationStatus(status).value] = count
            total_applications = sum(applications.values())
            approval_rate = (
                round(applications[ApplicationStatus.APPROVED.value] / total_applications * 100, 2)
                if total_applications else 0
            )

            internship_rows = await session.execute(
                select(Internship.status, func.count())
                .where(*within(Internship.created_at))
                .group_by(Internship.status)
            )
            internships = {status.value: 0 for status in InternshipStatus}
            for status, count in internship_rows.all():
                internships[InternshipStatus(status).value] = count

            average_final = await session.scalar(
                select(func.avg(Internship.final_score))
                .where(Internship.final_score.is_not(None), *within(Internship.created_at))
            )

            total_positions = await session.scalar(
                select(func.count()).select_from(Position).where(*within(Position.created_at))
            )
            open_positions = await session.scalar(
                select(func.count())
                .select_from(Position)
                .where(Position.status == PositionStatus.OPEN, *within(Position.created_at))
            )

            total_students = await session.scalar(select(func.count()).select_from(Student))
            total_enterprises = await session.scalar(select(func.count()).select_from(Enterprise))

            position_counts = (
                select(Position.enterprise_id, func.count(Position.id).label("positions"))
                .where(*within(Position.created_at))
                .group_by(Position.enterprise_id)
                .subquery()
            )
            application_counts = (
                select(
                    Position.enterprise_id,
                    func.count(Application.id).label("applications"),
                    func.sum(case((Application.status == ApplicationStatus.APPROVED, 1), else_=0)).label("approved"),
                )
                .join(Application, Application.position_id == Position.id)
                .where(*within(Application.applied_at))
                .group_by(Position.enterprise_id)
                .subquery()
            )
            detail_rows = await session.execute(
                select(
                    Enterprise.id,
                    Enterprise.company_name,
                    func.coalesce(position_counts.c.positions, 0),
                    func.coalesce(application_counts.c.applications, 0),
                    func.coalesce(application_counts.c.approved, 0),
                )
                .outerjoin(position_counts, position_counts.c.enterprise_id == Enterprise.id)
                .outerjoin(application_counts, application_counts.c.enterprise_id == Enterprise.id)
                .order_by(Enterprise.id)
            )
            enterprise_details = [
                {
                    "enterprise_id": enterprise_id,
                    "company_name": company_name,
                    "positions": int(positions),
                    "applications": int(applied),
                    "approved": int(approved),
                }
                for enterprise_id, company_name, positions, applied, approved in detail_rows.all()
            ]

        logger.debug(f"Statistics overview computed ({total_applications} applications)")
        return {
            "applications": {
                "total": total_applications,
                **applications,
                "approval_rate": approval_rate,
            },
            "internships": {
                "total": sum(internships.values()),
                **internships,
                "average_final_score": round(float(average_final), 2) if average_final is not None else None,
            },
            "positions": {"total": total_positions or 0, "open": open_positions or 0},
            "students": total_students or 0,
            "enterprises": total_enterprises or 0,
            "enterprise_details": enterprise_details,
        }

    async def enterprise_statistics(
        self,
        enterprise_id: int,
        user_id: int,
        role: Role,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Position capacity and intern distribution for one enterprise.

        Teachers may read any enterprise; an enterprise only its own. The
        window, when given, limits positions by creation time.

        Raises:
            NotFoundError: Enterprise missing
            ForbiddenError: Enterprise caller asking about another enterprise
            ValidationError: Inverted window
        """
        since, until = self._window(start_date, end_date, None)

        async with AsyncSessionLocal() as session:
            enterprise = await session.get(Enterprise, enterprise_id)
            if enterprise is None:
                raise NotFoundError("Enterprise", enterprise_id)
            if role == Role.ENTERPRISE:
                own = await find_enterprise(session, user_id)
                if own is None or own.id != enterprise_id:
                    raise ForbiddenError("You can only view statistics for your own enterprise")

            conditions = [Position.enterprise_id == enterprise_id]
            if since is not None:
                conditions.append(Position.created_at >= since)
            if until is not None:
                conditions.append(Position.created_at <= until)

            positions = list((await session.execute(select(Position).where(*conditions))).unique().scalars().all())

            distribution_rows = await session.execute(
                select(
                    Position.id,
                    Position.title,
                    func.count(Internship.id).label("student_count"),
                    func.avg(Internship.final_score),
                )
                .outerjoin(Internship, Internship.position_id == Position.id)
                .where(*conditions)
                .group_by(Position.id, Position.title)
                .order_by(func.count(Internship.id).desc(), Position.id)
            )
            distribution = [
                {
                    "position_id": position_id,
                    "position_title": title,
                    "student_count": int(student_count),
                    "average_score": round(float(average), 2) if average is not None else None,
                }
                for position_id, title, student_count, average in distribution_rows.all()
            ]

        by_status = {status.value: 0 for status in PositionStatus}
        for position in positions:
            by_status[PositionStatus(position.status).value] += 1

        return {
            "enterprise": {
                "id": enterprise.id,
                "company_name": enterprise.company_name,
                "industry": enterprise.industry,
            },
            "positions": {
                "total": len(positions),
                **by_status,
                "total_slots": sum(position.total_slots for position in positions),
                "available_slots": sum(position.available_slots for position in positions),
            },
            "student_distribution": distribution,
        }

    async def timeseries(
        self,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        group_by: str = "month",
    ) -> Dict[str, Any]:
        """
        Application and internship counts per day, week, month or year.

        Applications are bucketed by applied_at, internships by created_at.
        Buckets without activity are omitted; buckets are in ascending order.

        Raises:
            ValidationError: Missing or inverted window, unknown group_by
        """
        if start_date is None or end_date is None:
            raise ValidationError.for_field("start_date", "Both start_date and end_date are required")
        if group_by not in GROUPINGS:
            raise ValidationError.for_field("group_by", f"group_by must be one of: {', '.join(GROUPINGS)}")
        since, until = self._window(start_date, end_date, None)

        async with AsyncSessionLocal() as session:
            application_rows = (await session.execute(
                select(Application.applied_at, Application.status)
                .where(Application.applied_at >= since, Application.applied_at <= until)
            )).all()
            internship_rows = (await session.execute(
                select(Internship.created_at, Internship.status)
                .where(Internship.created_at >= since, Internship.created_at <= until)
            )).all()

        applications = _bucket(application_rows, group_by, ApplicationStatus)
        internships = _bucket(internship_rows, group_by, InternshipStatus)
        logger.debug(
            f"Time series by {group_by}: {len(applications)} application and {len(internships)} internship buckets"
        )
        return {
            "applications": applications,
            "internships": internships,
            "group_by": group_by,
            "start_date": since.isoformat(),
            "end_date": until.isoformat(),
        }


# Global instance
_statistics_service: Optional[StatisticsService] = None


def get_statistics_service() -> StatisticsService:
    """Get or create global StatisticsService instance."""
    global _statistics_service
    if _statistics_service is None:
        _statistics_service = StatisticsService()
    return _statistics_service
