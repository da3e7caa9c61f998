"""
Integration tests for InternshipService

Tests the expiry sweep, reminders, progress, visibility and the dual
evaluation workflow.
"""
from datetime import date, datetime, time, timedelta

import pytest

from internhub.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    BUSINESS_LOGIC_ERROR,
    EVALUATION_ALREADY_SUBMITTED,
)
from internhub.models.internship import InternshipStatus
from internhub.models.user import Role
from internhub.services.internship_service import (
    EnterpriseEvaluator,
    TeacherEvaluator,
    get_internship_service,
)
from internhub.services.notification_service import get_notification_service

pytestmark = pytest.mark.integration


@pytest.fixture
def yesterday():
    return date.today() - timedelta(days=1)


class TestSweepExpired:
    """ongoing -> pending_evaluation once end_date has passed"""

    async def test_sweep_moves_only_expired(self, make_internship, yesterday, count_notifications, campus):
        ended = await make_internship(student_index=0, end_date=yesterday)
        running = await make_internship(student_index=1)

        result = await get_internship_service().sweep_expired()

        assert result == {"updated": 1, "internships": [ended.id]}
        detail = await get_internship_service().get_internship(running.id, campus.students[1], Role.STUDENT)
        assert detail["internship"].status == InternshipStatus.ONGOING
        assert await count_notifications(campus.students[0], "internship_expired") == 1
        assert await count_notifications(campus.teacher, "internship_expired") == 1

    async def test_sweep_is_idempotent(self, make_internship, yesterday):
        await make_internship(end_date=yesterday)
        service = get_internship_service()

        first = await service.sweep_expired()
        second = await service.sweep_expired()

        assert first["updated"] == 1
        assert second == {"updated": 0, "internships": []}

    async def test_internship_ending_today_is_not_expired(self, make_internship):
        await make_internship(end_date=date.today())
        result = await get_internship_service().sweep_expired()
        assert result["updated"] == 0

    async def test_explicit_as_of(self, make_internship):
        internship = await make_internship()
        result = await get_internship_service().sweep_expired(as_of=internship.end_date + timedelta(days=1))
        assert result["internships"] == [internship.id]

    async def test_expiry_applied_on_read(self, make_internship, yesterday, campus):
        internship = await make_internship(end_date=yesterday)

        detail = await get_internship_service().get_internship(internship.id, campus.students[0], Role.STUDENT)

        assert detail["internship"].status == InternshipStatus.PENDING_EVALUATION
        assert detail["progress"]["is_completed"] is True
        assert (await get_internship_service().sweep_expired())["updated"] == 0


class TestRemind:
    """Reminders for internships about to end"""

    async def test_reminds_student_and_teacher(self, make_internship, campus):
        today = date.today()
        soon = await make_internship(student_index=0, end_date=today + timedelta(days=3))
        await make_internship(student_index=1, end_date=today + timedelta(days=30))

        result = await get_internship_service().remind(as_of=datetime.combine(today, time(10, 0)))

        assert result == {"checked": 1, "sent": 2}
        inbox = await get_notification_service().list_notifications(campus.students[0], type="internship_expiring")
        assert len(inbox["notifications"]) == 1
        assert "3 day(s)" in inbox["notifications"][0].content
        assert soon.end_date.isoformat() in inbox["notifications"][0].content

    async def test_nothing_to_remind(self, make_internship):
        await make_internship(end_date=date.today() + timedelta(days=60))
        assert await get_internship_service().remind() == {"checked": 0, "sent": 0}

    async def test_custom_horizon(self, make_internship):
        await make_internship(end_date=date.today() + timedelta(days=10))
        result = await get_internship_service().remind(horizon_days=14)
        assert result["checked"] == 1


class TestReads:
    """Party visibility, progress and listings"""

    async def test_progress_for_parties(self, make_internship, campus):
        today = date.today()
        internship = await make_internship(start_date=today - timedelta(days=10), end_date=today + timedelta(days=10))

        for user_id, role in [
            (campus.students[0], Role.STUDENT),
            (campus.teacher, Role.TEACHER),
            (campus.enterprise, Role.ENTERPRISE),
        ]:
            progress = await get_internship_service().get_progress(internship.id, user_id, role)
            assert progress == {"total_days": 20, "completed_days": 10, "percentage": 50, "is_completed": False}

    @pytest.mark.parametrize("outsider", ["student", "teacher", "enterprise"])
    async def test_outsiders_forbidden(self, make_internship, campus, outsider):
        internship = await make_internship()
        user_id, role = {
            "student": (campus.students[5], Role.STUDENT),
            "teacher": (campus.other_teacher, Role.TEACHER),
            "enterprise": (campus.other_enterprise, Role.ENTERPRISE),
        }[outsider]

        with pytest.raises(ForbiddenError):
            await get_internship_service().get_internship(internship.id, user_id, role)

    async def test_unknown_internship(self, campus):
        with pytest.raises(NotFoundError):
            await get_internship_service().get_progress(9999, campus.teacher, Role.TEACHER)

    async def test_list_by_role(self, make_internship, campus):
        await make_internship(student_index=0)
        await make_internship(student_index=1)
        service = get_internship_service()

        assert (await service.list_internships(campus.students[0], Role.STUDENT))["total"] == 1
        assert (await service.list_internships(campus.teacher, Role.TEACHER))["total"] == 2
        assert (await service.list_internships(campus.other_teacher, Role.TEACHER))["total"] == 0
        assert (await service.list_internships(campus.enterprise, Role.ENTERPRISE))["total"] == 2

    async def test_evaluation_visible_to_intern_only(self, make_internship, campus):
        internship = await make_internship()
        service = get_internship_service()

        evaluation = await service.get_evaluation(internship.id, campus.students[0], Role.STUDENT)
        assert evaluation["final_score"] is None

        with pytest.raises(ForbiddenError):
            await service.get_evaluation(internship.id, campus.teacher, Role.TEACHER)


class TestEvaluation:
    """Dual evaluation and aggregation"""

    async def test_both_evaluations_complete_internship(self, make_internship, yesterday, campus, count_notifications):
        internship = await make_internship(end_date=yesterday)
        service = get_internship_service()

        after_teacher = await service.submit_teacher_evaluation(internship.id, campus.teacher, 80, "Solid work")
        assert after_teacher.status == InternshipStatus.PENDING_EVALUATION
        assert after_teacher.final_score is None

        after_enterprise = await service.submit_enterprise_evaluation(internship.id, campus.enterprise, 90)
        assert after_enterprise.teacher_score == 80
        assert after_enterprise.enterprise_score == 90
        assert after_enterprise.final_score == 85
        assert after_enterprise.status == InternshipStatus.COMPLETED

        evaluation = await service.get_evaluation(internship.id, campus.students[0], Role.STUDENT)
        assert evaluation["teacher_comment"] == "Solid work"
        assert evaluation["final_score"] == 85

        assert await count_notifications(campus.students[0], "evaluation_submitted") == 2
        assert await count_notifications(campus.students[0], "internship_completed") == 1

    async def test_enterprise_first_then_teacher(self, make_internship, yesterday, campus):
        internship = await make_internship(end_date=yesterday)
        service = get_internship_service()

        await service.submit_evaluation(Role.ENTERPRISE, internship.id, campus.enterprise, 70)
        result = await service.submit_evaluation(Role.TEACHER, internship.id, campus.teacher, 75)

        assert result.final_score == 72.5
        assert result.status == InternshipStatus.COMPLETED

    async def test_ongoing_internship_cannot_be_evaluated(self, make_internship, campus):
        internship = await make_internship()

        with pytest.raises(ConflictError) as exc_info:
            await get_internship_service().submit_teacher_evaluation(internship.id, campus.teacher, 80)
        assert exc_info.value.code == BUSINESS_LOGIC_ERROR

    async def test_second_evaluation_by_same_role_conflicts(self, make_internship, yesterday, campus):
        internship = await make_internship(end_date=yesterday)
        service = get_internship_service()
        await service.submit_teacher_evaluation(internship.id, campus.teacher, 80)

        with pytest.raises(ConflictError) as exc_info:
            await service.submit_teacher_evaluation(internship.id, campus.teacher, 60)
        assert exc_info.value.code == EVALUATION_ALREADY_SUBMITTED

        evaluation = await service.get_evaluation(internship.id, campus.students[0], Role.STUDENT)
        assert evaluation["teacher_score"] == 80

    async def test_only_assigned_parties_evaluate(self, make_internship, yesterday, campus):
        internship = await make_internship(end_date=yesterday)
        service = get_internship_service()

        with pytest.raises(ForbiddenError):
            await service.submit_teacher_evaluation(internship.id, campus.other_teacher, 80)
        with pytest.raises(ForbiddenError):
            await service.submit_enterprise_evaluation(internship.id, campus.other_enterprise, 80)
        with pytest.raises(ForbiddenError):
            await service.submit_evaluation(Role.STUDENT, internship.id, campus.students[0], 80)

    @pytest.mark.parametrize("score", [None, -5, 100.1])
    async def test_invalid_score(self, make_internship, yesterday, campus, score):
        internship = await make_internship(end_date=yesterday)

        with pytest.raises(ValidationError):
            await get_internship_service().submit_teacher_evaluation(internship.id, campus.teacher, score)

    async def test_outsider_with_invalid_score_is_forbidden(self, make_internship, yesterday, campus):
        internship = await make_internship(end_date=yesterday)
        service = get_internship_service()

        with pytest.raises(ForbiddenError):
            await service.submit_teacher_evaluation(internship.id, campus.other_teacher, 150)
        with pytest.raises(ForbiddenError):
            await service.submit_enterprise_evaluation(internship.id, campus.other_enterprise, None)

    async def test_invalid_score_checked_before_internship_status(self, make_internship, campus):
        internship = await make_internship()

        with pytest.raises(ValidationError):
            await get_internship_service().submit_teacher_evaluation(internship.id, campus.teacher, -1)

    async def test_evaluation_is_audited(self, make_internship, yesterday, campus, operation_types):
        internship = await make_internship(end_date=yesterday)
        await get_internship_service().submit_teacher_evaluation(internship.id, campus.teacher, 88)
        assert (await operation_types())[-1] == "evaluation_submit"

    def test_evaluators_write_separate_columns(self):
        assert TeacherEvaluator.score_field == "teacher_score"
        assert EnterpriseEvaluator.score_field == "enterprise_score"
        assert TeacherEvaluator.party_field != EnterpriseEvaluator.party_field
