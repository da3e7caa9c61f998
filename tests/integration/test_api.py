"""
API tests

Drive the FastAPI app in-process through httpx with bearer tokens from a
test token registry.
"""
from datetime import date, timedelta

import pytest
from httpx import AsyncClient, ASGITransport

from internhub.api import auth
from internhub.services import internship_records
from main import app

pytestmark = pytest.mark.integration


@pytest.fixture
def tokens(campus, monkeypatch):
    """Bearer token per seeded account"""
    registry = {
        "teacher-token": ("teacher", campus.teacher),
        "other-teacher-token": ("teacher", campus.other_teacher),
        "enterprise-token": ("enterprise", campus.enterprise),
        "other-enterprise-token": ("enterprise", campus.other_enterprise),
    }
    for index, user_id in enumerate(campus.students):
        registry[f"student-{index}-token"] = ("student", user_id)
    monkeypatch.setattr(auth, "_token_registry", registry)
    return registry


@pytest.fixture
async def client(tokens):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def as_user(token):
    return {"Authorization": f"Bearer {token}"}


TEACHER = as_user("teacher-token")
ENTERPRISE = as_user("enterprise-token")
STUDENT = as_user("student-0-token")


async def create_position(client, total_slots=2, start_date=None, end_date=None):
    start_date = start_date or date.today() + timedelta(days=7)
    end_date = end_date or start_date + timedelta(days=90)
    response = await client.post(
        "/api/v1/positions",
        json={
            "title": "Backend Intern",
            "description": "Build internal REST services",
            "total_slots": total_slots,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        },
        headers=ENTERPRISE,
    )
    assert response.status_code == 201
    return response.json()["data"]


async def apply(client, position_id, headers=STUDENT):
    return await client.post(
        "/api/v1/applications",
        json={"position_id": position_id, "personal_statement": "I love APIs", "contact_info": "555-0100"},
        headers=headers,
    )


async def approved_internship(client, end_date=None):
    start_date = end_date - timedelta(days=60) if end_date else None
    position = await create_position(client, total_slots=1, start_date=start_date, end_date=end_date)
    application = (await apply(client, position["id"])).json()["data"]
    response = await client.put(f"/api/v1/applications/{application['id']}/approve", headers=TEACHER)
    assert response.status_code == 200
    return response.json()["data"]["internship"]


class TestSystem:
    """Health and authentication"""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "ok"

    async def test_missing_token(self, client):
        response = await client.get("/api/v1/positions")
        assert response.status_code == 401

    async def test_unknown_token(self, client):
        response = await client.get("/api/v1/positions", headers=as_user("forged"))
        assert response.status_code == 401

    async def test_wrong_role(self, client):
        response = await client.post("/api/v1/positions", json={}, headers=STUDENT)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"


class TestPositionsApi:
    """Position endpoints"""

    async def test_create_and_get(self, client):
        position = await create_position(client, total_slots=3)
        assert position["available_slots"] == 3
        assert position["status"] == "open"

        response = await client.get(f"/api/v1/positions/{position['id']}", headers=STUDENT)
        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Backend Intern"

    async def test_invalid_body(self, client):
        response = await client.post("/api/v1/positions", json={"title": "Only a title"}, headers=ENTERPRISE)
        assert response.status_code == 400
        body = response.json()["error"]
        assert body["code"] == "VALIDATION_ERROR"
        assert {"description", "total_slots"} <= {detail["field"] for detail in body["details"]}

    async def test_malformed_date_is_422(self, client):
        response = await client.post(
            "/api/v1/positions", json={"title": "x", "start_date": "not-a-date"}, headers=ENTERPRISE
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_search(self, client):
        await create_position(client)
        response = await client.get("/api/v1/positions", params={"keyword": "backend"}, headers=STUDENT)
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

    async def test_update_and_delete(self, client):
        position = await create_position(client)

        response = await client.put(
            f"/api/v1/positions/{position['id']}", json={"title": "Platform Intern"}, headers=ENTERPRISE
        )
        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Platform Intern"

        forbidden = await client.delete(
            f"/api/v1/positions/{position['id']}", headers=as_user("other-enterprise-token")
        )
        assert forbidden.status_code == 403

        response = await client.delete(f"/api/v1/positions/{position['id']}", headers=ENTERPRISE)
        assert response.status_code == 200
        missing = await client.get(f"/api/v1/positions/{position['id']}", headers=ENTERPRISE)
        assert missing.status_code == 404


class TestApplicationsApi:
    """Application endpoints"""

    async def test_submit_and_duplicate(self, client):
        position = await create_position(client)

        first = await apply(client, position["id"])
        assert first.status_code == 201
        assert first.json()["data"]["status"] == "pending"

        second = await apply(client, position["id"])
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "DUPLICATE_APPLICATION"

    async def test_unknown_position(self, client, campus):
        response = await apply(client, 9999)
        assert response.status_code == 404

    async def test_approve_twice(self, client):
        position = await create_position(client)
        application = (await apply(client, position["id"])).json()["data"]

        approved = await client.put(f"/api/v1/applications/{application['id']}/approve", headers=TEACHER)
        assert approved.status_code == 200
        payload = approved.json()["data"]
        assert payload["application"]["status"] == "approved"
        assert payload["internship"]["status"] == "ongoing"

        again = await client.put(f"/api/v1/applications/{application['id']}/approve", headers=TEACHER)
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "INVALID_STATUS"

    async def test_reject_requires_reason(self, client):
        position = await create_position(client)
        application = (await apply(client, position["id"])).json()["data"]

        empty = await client.put(
            f"/api/v1/applications/{application['id']}/reject", json={"rejection_reason": " "}, headers=TEACHER
        )
        assert empty.status_code == 400

        rejected = await client.put(
            f"/api/v1/applications/{application['id']}/reject",
            json={"rejection_reason": "Positions filled internally"},
            headers=TEACHER,
        )
        assert rejected.status_code == 200
        assert rejected.json()["data"]["rejection_reason"] == "Positions filled internally"

    async def test_student_sees_only_own(self, client):
        position = await create_position(client)
        await apply(client, position["id"])
        await apply(client, position["id"], headers=as_user("student-1-token"))

        response = await client.get("/api/v1/applications", headers=STUDENT)
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1


class TestInternshipsApi:
    """Internship, records and evaluation endpoints"""

    async def test_detail_with_progress(self, client):
        internship = await approved_internship(client)

        response = await client.get(f"/api/v1/internships/{internship['id']}", headers=STUDENT)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "ongoing"
        assert data["progress"]["percentage"] == 0

        outsider = await client.get(f"/api/v1/internships/{internship['id']}", headers=as_user("student-3-token"))
        assert outsider.status_code == 403

    async def test_update_expired(self, client):
        internship = await approved_internship(client, end_date=date.today() - timedelta(days=1))

        response = await client.post("/api/v1/internships/update-expired", headers=TEACHER)
        assert response.status_code == 200
        assert response.json()["data"] == {"updated": 1, "internships": [internship["id"]]}

        forbidden = await client.post("/api/v1/internships/update-expired", headers=STUDENT)
        assert forbidden.status_code == 403

    async def test_update_expired_as_of(self, client):
        end_date = date.today() + timedelta(days=10)
        internship = await approved_internship(client, end_date=end_date)

        early = await client.post(
            "/api/v1/internships/update-expired", params={"as_of": end_date.isoformat()}, headers=TEACHER
        )
        assert early.json()["data"]["updated"] == 0

        later = await client.post(
            "/api/v1/internships/update-expired",
            params={"as_of": (end_date + timedelta(days=1)).isoformat()},
            headers=TEACHER,
        )
        assert later.json()["data"] == {"updated": 1, "internships": [internship["id"]]}

    async def test_evaluation_flow(self, client):
        internship = await approved_internship(client, end_date=date.today() - timedelta(days=1))
        base = f"/api/v1/internships/{internship['id']}"

        out_of_range = await client.post(f"{base}/evaluate/teacher", json={"score": 150}, headers=TEACHER)
        assert out_of_range.status_code == 400

        teacher = await client.post(f"{base}/evaluate/teacher", json={"score": 80, "comment": "Good"}, headers=TEACHER)
        assert teacher.status_code == 200
        assert teacher.json()["data"]["final_score"] is None

        again = await client.post(f"{base}/evaluate/teacher", json={"score": 90}, headers=TEACHER)
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "EVALUATION_ALREADY_SUBMITTED"

        enterprise = await client.post(f"{base}/evaluate/enterprise", json={"score": 90}, headers=ENTERPRISE)
        assert enterprise.status_code == 200
        assert enterprise.json()["data"]["final_score"] == 85
        assert enterprise.json()["data"]["status"] == "completed"

        evaluation = await client.get(f"{base}/evaluation", headers=STUDENT)
        assert evaluation.status_code == 200
        assert evaluation.json()["data"]["teacher_comment"] == "Good"

    async def test_ongoing_cannot_be_evaluated(self, client):
        internship = await approved_internship(client)
        response = await client.post(
            f"/api/v1/internships/{internship['id']}/evaluate/teacher", json={"score": 80}, headers=TEACHER
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "BUSINESS_LOGIC_ERROR"

    async def test_logs_and_upload(self, client, monkeypatch):
        internship = await approved_internship(client)
        base = f"/api/v1/internships/{internship['id']}"

        log = await client.post(
            f"{base}/logs", json={"content": "Week 1 done", "log_date": date.today().isoformat()}, headers=STUDENT
        )
        assert log.status_code == 201

        upload = await client.post(
            f"{base}/files",
            files={"file": ("report.pdf", b"%PDF-1.4 report", "application/pdf")},
            headers=STUDENT,
        )
        assert upload.status_code == 201
        assert upload.json()["data"]["file_name"] == "report.pdf"

        rejected = await client.post(
            f"{base}/files",
            files={"file": ("tool.exe", b"MZ", "application/octet-stream")},
            headers=STUDENT,
        )
        assert rejected.status_code == 400

        monkeypatch.setattr(internship_records, "MAX_UPLOAD_BYTES", 8)
        oversized = await client.post(
            f"{base}/files",
            files={"file": ("big.pdf", b"%PDF-1.4 " + b"x" * 64, "application/pdf")},
            headers=STUDENT,
        )
        assert oversized.status_code == 400
        assert oversized.json()["error"]["code"] == "VALIDATION_ERROR"

        logs = await client.get(f"{base}/logs", headers=TEACHER)
        assert logs.json()["total"] == 1
        files = await client.get(f"{base}/files", headers=ENTERPRISE)
        assert files.json()["total"] == 1


class TestNotificationsAndStatisticsApi:
    """Inbox, reminders and the dashboard"""

    async def test_inbox(self, client):
        position = await create_position(client)
        await apply(client, position["id"])

        inbox = await client.get("/api/v1/notifications", headers=TEACHER)
        assert inbox.status_code == 200
        body = inbox.json()
        assert body["unread_count"] == 1
        notification_id = body["data"][0]["id"]

        forbidden = await client.put(f"/api/v1/notifications/{notification_id}/read", headers=as_user("other-teacher-token"))
        assert forbidden.status_code == 403

        read = await client.put(f"/api/v1/notifications/{notification_id}/read", headers=TEACHER)
        assert read.json()["data"]["is_read"] is True

        count = await client.get("/api/v1/notifications/unread-count", headers=TEACHER)
        assert count.json()["unread_count"] == 0

    async def test_send_reminders(self, client):
        await approved_internship(client, end_date=date.today() + timedelta(days=2))

        response = await client.post("/api/v1/notifications/send-reminders", headers=TEACHER)
        assert response.status_code == 200
        assert response.json()["data"] == {"internships_checked": 1, "notifications_sent": 2}

    async def test_send_reminders_window(self, client):
        await approved_internship(client, end_date=date.today() + timedelta(days=10))
        url = "/api/v1/notifications/send-reminders"

        default = await client.post(url, headers=TEACHER)
        assert default.json()["data"]["internships_checked"] == 0

        wider = await client.post(url, params={"horizon_days": 14}, headers=TEACHER)
        assert wider.json()["data"] == {"internships_checked": 1, "notifications_sent": 2}

        later = await client.post(
            url, params={"as_of": (date.today() + timedelta(days=5)).isoformat()}, headers=TEACHER
        )
        assert later.json()["data"]["internships_checked"] == 1

        negative = await client.post(url, params={"horizon_days": -1}, headers=TEACHER)
        assert negative.status_code == 422

    async def test_statistics_teacher_only(self, client):
        position = await create_position(client)
        await apply(client, position["id"])

        response = await client.get("/api/v1/statistics/overview", headers=TEACHER)
        assert response.status_code == 200
        assert response.json()["data"]["applications"]["pending"] == 1

        bad_period = await client.get("/api/v1/statistics/overview", params={"period": "decade"}, headers=TEACHER)
        assert bad_period.status_code == 400

        forbidden = await client.get("/api/v1/statistics/overview", headers=ENTERPRISE)
        assert forbidden.status_code == 403

    async def test_enterprise_statistics(self, client):
        position = await create_position(client)
        url = f"/api/v1/statistics/enterprise/{position['enterprise_id']}"

        own = await client.get(url, headers=ENTERPRISE)
        assert own.status_code == 200
        assert own.json()["data"]["positions"]["total"] == 1

        teacher = await client.get(url, headers=TEACHER)
        assert teacher.status_code == 200

        other = await client.get(url, headers=as_user("other-enterprise-token"))
        assert other.status_code == 403

        student = await client.get(url, headers=STUDENT)
        assert student.status_code == 403

    async def test_timeseries(self, client):
        position = await create_position(client)
        await apply(client, position["id"])
        url = "/api/v1/statistics/timeseries"

        response = await client.get(
            url,
            params={"start_date": "2000-01-01T00:00:00", "end_date": "2100-01-01T00:00:00", "group_by": "year"},
            headers=TEACHER,
        )
        assert response.status_code == 200
        assert [bucket["pending"] for bucket in response.json()["data"]["applications"]] == [1]

        missing = await client.get(url, headers=TEACHER)
        assert missing.status_code == 400

        forbidden = await client.get(url, headers=ENTERPRISE)
        assert forbidden.status_code == 403
