"""
Integration tests for NotificationService

Tests the per-user inbox: filters, unread counts, read marking and deletion.
"""
import pytest

from internhub.errors import ForbiddenError, NotFoundError
from internhub.services.events import NotificationMessage
from internhub.services.notification_service import get_notification_service

pytestmark = pytest.mark.integration


@pytest.fixture
async def inbox(campus):
    """Three notifications for the first student, one for the second"""
    student, other = campus.students[0], campus.students[1]
    created = await get_notification_service().create_bulk([
        NotificationMessage(student, "Approved", "Your application was approved", "application_approved"),
        NotificationMessage(student, "Ending soon", "Your internship ends in 3 day(s)", "internship_expiring"),
        NotificationMessage(student, "Evaluated", "Your teacher evaluation was submitted", "evaluation_submitted"),
        NotificationMessage(other, "Rejected", "Your application was rejected", "application_rejected"),
    ])
    return student, other, created


class TestInbox:
    """Listing and counts"""

    async def test_newest_first_with_unread_count(self, inbox):
        student, _, created = inbox
        result = await get_notification_service().list_notifications(student)

        assert [item.id for item in result["notifications"]] == [created[2].id, created[1].id, created[0].id]
        assert result["pagination"] == {"total": 3, "limit": 50, "offset": 0}
        assert result["unread_count"] == 3

    async def test_filters_and_paging(self, inbox):
        student, _, created = inbox
        service = get_notification_service()

        by_type = await service.list_notifications(student, type="internship_expiring")
        assert [item.id for item in by_type["notifications"]] == [created[1].id]

        page = await service.list_notifications(student, limit=1, offset=1)
        assert [item.id for item in page["notifications"]] == [created[1].id]
        assert page["pagination"]["total"] == 3

    async def test_create_single(self, campus):
        service = get_notification_service()
        notification = await service.create(campus.teacher, "Hello", "Welcome aboard")
        assert notification.id is not None
        assert await service.unread_count(campus.teacher) == 1


class TestReadState:
    """Marking notifications read"""

    async def test_mark_one(self, inbox):
        student, _, created = inbox
        service = get_notification_service()

        notification = await service.mark_as_read(created[0].id, student)
        assert notification.is_read is True

        unread = await service.list_notifications(student, is_read=False)
        assert unread["pagination"]["total"] == 2
        assert unread["unread_count"] == 2

    async def test_mark_other_users_notification_forbidden(self, inbox):
        _, other, created = inbox
        with pytest.raises(ForbiddenError):
            await get_notification_service().mark_as_read(created[0].id, other)

    async def test_mark_unknown(self, inbox):
        student, _, _ = inbox
        with pytest.raises(NotFoundError):
            await get_notification_service().mark_as_read(9999, student)

    async def test_mark_all_only_touches_own(self, inbox):
        student, other, _ = inbox
        service = get_notification_service()

        assert await service.mark_all_as_read(student) == 3
        assert await service.mark_all_as_read(student) == 0
        assert await service.unread_count(student) == 0
        assert await service.unread_count(other) == 1


class TestDelete:
    """Deleting notifications"""

    async def test_delete_own(self, inbox):
        student, _, created = inbox
        service = get_notification_service()

        await service.delete_notification(created[0].id, student)

        result = await service.list_notifications(student)
        assert created[0].id not in [item.id for item in result["notifications"]]

    async def test_delete_other_users_forbidden(self, inbox):
        _, other, created = inbox
        with pytest.raises(ForbiddenError):
            await get_notification_service().delete_notification(created[0].id, other)
