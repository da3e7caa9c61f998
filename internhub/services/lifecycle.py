"""
Internship Lifecycle Rules

Pure functions shared by the position, application and internship services:
- Explicit transition tables for Application and Internship status
- Position slot accounting and derived status
- Internship progress and dual-evaluation score aggregation

Nothing in this module touches the database.
"""
import math
from datetime import date, datetime, timedelta
from typing import Dict, Any, FrozenSet, Mapping, Optional, Union

from internhub.errors import ConflictError, ValidationError, INVALID_STATUS, BUSINESS_LOGIC_ERROR
from internhub.models.application import ApplicationStatus
from internhub.models.internship import InternshipStatus
from internhub.models.position import PositionStatus

TEACHER_WEIGHT = 0.5
ENTERPRISE_WEIGHT = 0.5

MIN_SCORE = 0
MAX_SCORE = 100

APPLICATION_TRANSITIONS: Mapping[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset({ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}

INTERNSHIP_TRANSITIONS: Mapping[InternshipStatus, FrozenSet[InternshipStatus]] = {
    InternshipStatus.ONGOING: frozenset({InternshipStatus.PENDING_EVALUATION}),
    InternshipStatus.PENDING_EVALUATION: frozenset({InternshipStatus.COMPLETED}),
    InternshipStatus.COMPLETED: frozenset(),
}

# Applications in these states block a new submission by the same student
ACTIVE_APPLICATION_STATUSES = (ApplicationStatus.PENDING, ApplicationStatus.APPROVED)

# Evaluations are accepted only once the internship has ended
EVALUABLE_STATUSES = (InternshipStatus.PENDING_EVALUATION, InternshipStatus.COMPLETED)


def transition_application(current: ApplicationStatus, target: ApplicationStatus) -> ApplicationStatus:
    """
    Validate an application status change against the transition table.

    Raises:
        ConflictError(INVALID_STATUS): If the transition is not allowed
    """
    if target not in APPLICATION_TRANSITIONS[current]:
        raise ConflictError(
            f"Application cannot move from '{current.value}' to '{target.value}'; "
            "only pending applications can be reviewed",
            code=INVALID_STATUS,
        )
    return target


def transition_internship(current: InternshipStatus, target: InternshipStatus) -> InternshipStatus:
    """
    Validate an internship status change against the transition table.

    Re-asserting the current status is a no-op so completion stays one-way.

    Raises:
        ConflictError(BUSINESS_LOGIC_ERROR): If the transition is not allowed
    """
    if current == target:
        return current
    if target not in INTERNSHIP_TRANSITIONS[current]:
        raise ConflictError(
            f"Internship cannot move from '{current.value}' to '{target.value}'",
            code=BUSINESS_LOGIC_ERROR,
        )
    return target


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def recompute_position_status(
    end_date: date,
    available_slots: int,
    as_of: Union[date, datetime],
) -> PositionStatus:
    """
    Derive position status: closed after end_date, else full at zero slots, else open.

    A full position whose slots are restored reopens.
    """
    if end_date < _as_date(as_of):
        return PositionStatus.CLOSED
    if available_slots <= 0:
        return PositionStatus.FULL
    return PositionStatus.OPEN


def decrement_slot(position, as_of: Optional[Union[date, datetime]] = None):
    """Take one slot from a position (never below zero) and refresh its status."""
    position.available_slots = max(0, position.available_slots - 1)
    position.status = recompute_position_status(
        position.end_date, position.available_slots, as_of or date.today()
    )
    return position


def resize_slots(total_slots: int, new_total: int, available_slots: int) -> int:
    """Available slots after changing capacity, keeping already used slots occupied."""
    used = total_slots - available_slots
    return max(0, new_total - used)


def validate_position_fields(
    title: Optional[str],
    description: Optional[str],
    total_slots: Any,
    start_date: Optional[date],
    end_date: Optional[date],
) -> None:
    """
    Validate position input.

    Raises:
        ValidationError: Listing every offending field
    """
    errors = []
    if not title or not str(title).strip():
        errors.append({"field": "title", "message": "Title is required"})
    if not description or not str(description).strip():
        errors.append({"field": "description", "message": "Description is required"})
    if isinstance(total_slots, bool) or not isinstance(total_slots, int) or total_slots < 1:
        errors.append({"field": "total_slots", "message": "Total slots must be a positive integer"})
    if start_date is None:
        errors.append({"field": "start_date", "message": "Start date is required"})
    if end_date is None:
        errors.append({"field": "end_date", "message": "End date is required"})
    elif start_date is not None and end_date <= start_date:
        errors.append({"field": "end_date", "message": "End date must be after start date"})

    if errors:
        raise ValidationError("Validation failed", details=errors)


def require_text(field: str, value: Optional[str], message: Optional[str] = None) -> str:
    """Return the trimmed value or raise ValidationError if it is empty."""
    if value is None or not str(value).strip():
        raise ValidationError.for_field(field, message or f"{field} must not be empty")
    return str(value).strip()


def validate_score(score: Any) -> float:
    """
    Check an evaluation score.

    Raises:
        ValidationError: If the score is missing, not numeric or outside [0, 100]
    """
    if score is None:
        raise ValidationError.for_field("score", "Score is required")
    if isinstance(score, bool) or not isinstance(score, (int, float)) or math.isnan(score):
        raise ValidationError.for_field("score", "Score must be a number")
    if score < MIN_SCORE or score > MAX_SCORE:
        raise ValidationError.for_field("score", "Score must be between 0 and 100")
    return float(score)


def final_score(teacher_score: Optional[float], enterprise_score: Optional[float]) -> Optional[float]:
    """Weighted average of both evaluations, or None while either is missing."""
    if teacher_score is None or enterprise_score is None:
        return None
    return TEACHER_WEIGHT * float(teacher_score) + ENTERPRISE_WEIGHT * float(enterprise_score)


def aggregate_score(internship) -> bool:
    """
    Derive final_score and completion once both evaluations are present.

    Mutates the internship in place; callers run it inside the same
    transaction as the evaluation write.

    Returns:
        True if the internship now carries a final score
    """
    score = final_score(internship.teacher_score, internship.enterprise_score)
    if score is None:
        return False

    internship.final_score = round(score, 2)
    internship.status = transition_internship(internship.status, InternshipStatus.COMPLETED)
    return True


def is_expired(end_date: date, as_of: Union[date, datetime]) -> bool:
    """An internship or position is expired once its end_date lies before as_of."""
    return end_date < _as_date(as_of)


def days_between(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    """Whole days from start to end, rounding partial days up."""
    if isinstance(start, datetime) or isinstance(end, datetime):
        start_dt = start if isinstance(start, datetime) else datetime.combine(start, datetime.min.time())
        end_dt = end if isinstance(end, datetime) else datetime.combine(end, datetime.min.time())
        return math.ceil((end_dt - start_dt) / timedelta(days=1))
    return (end - start).days


def compute_progress(start_date: date, end_date: date, as_of: Union[date, datetime]) -> Dict[str, Any]:
    """
    Compute internship progress as of a given day.

    Formula:
        total_days = ceil((end - start) / 1 day)
        completed_days = clamp(ceil((as_of - start) / 1 day), 0, total_days)
        percentage = round(100 * completed_days / total_days), 0 when total_days <= 0

    Returns:
        Dict with total_days, completed_days, percentage, is_completed
    """
    total_days = days_between(start_date, end_date)
    completed_days = days_between(start_date, as_of)
    completed_days = max(0, min(completed_days, total_days))

    if total_days > 0:
        # round half up
        percentage = int(math.floor(100 * completed_days / total_days + 0.5))
        percentage = max(0, min(100, percentage))
    else:
        percentage = 0

    return {
        "total_days": total_days,
        "completed_days": completed_days,
        "percentage": percentage,
        "is_completed": completed_days >= total_days,
    }
