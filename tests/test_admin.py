"""
Tests for the admin API: stats, account moderation, posting moderation,
announcements and on-demand maintenance.
"""

from datetime import timedelta

from conftest import set_deadline
from internhub.services.notification_service import NotificationService
from internhub.utils.dates import utcnow


def notifications_of(user_id: int, type: str) -> list:
    return NotificationService().list_for_user(user_id, type=type)[0]


class TestAccess:
    def test_students_and_companies_are_refused(self, client, student, company) -> None:
        for account in (student, company):
            assert client.get("/api/admin/stats", headers=account["headers"]).status_code == 403

    def test_anonymous_is_refused(self, client) -> None:
        assert client.get("/api/admin/users").status_code == 401


class TestStats:
    def test_totals_and_recent_activity(self, client, admin, student, company, internship) -> None:
        response = client.get("/api/admin/stats", headers=admin["headers"])
        assert response.status_code == 200
        body = response.json()

        totals = body["totals"]
        assert totals["total_users"] == 3
        assert totals["total_students"] == 1
        assert totals["total_companies"] == 1
        assert totals["total_internships"] == 1
        assert totals["active_internships"] == 1
        assert totals["total_applications"] == 0
        assert totals["pending_verifications"] == 1

        assert len(body["recent_users"]) == 3
        assert body["recent_internships"][0]["title"] == internship["title"]

        assert len(body["monthly"]) == 6
        current = body["monthly"][-1]
        assert current["month"] == utcnow().strftime("%Y-%m")
        assert current["users"] == 3
        assert current["internships"] == 1


class TestUsers:
    def test_filter_by_role(self, client, admin, student, company) -> None:
        body = client.get("/api/admin/users", params={"role": "company"}, headers=admin["headers"]).json()
        assert [u["email"] for u in body["users"]] == ["jobs@acme.io"]
        assert body["pagination"]["total"] == 1

    def test_search_by_name_or_email(self, client, admin, student, company) -> None:
        body = client.get("/api/admin/users", params={"search": "ADA"}, headers=admin["headers"]).json()
        assert [u["name"] for u in body["users"]] == ["Ada Lovelace"]

        body = client.get("/api/admin/users", params={"search": "uni.edu"}, headers=admin["headers"]).json()
        assert body["pagination"]["total"] == 1

    def test_verify_company(self, client, admin, company) -> None:
        response = client.put(f"/api/admin/users/{company['user_id']}/verify", headers=admin["headers"])
        assert response.status_code == 200

        profile = client.get("/api/companies/profile", headers=company["headers"]).json()
        assert profile["is_verified"] is True

        verified = notifications_of(company["user_id"], "company_verification")
        assert len(verified) == 1
        assert verified[0]["priority"] == "high"

    def test_only_companies_can_be_verified(self, client, admin, student) -> None:
        response = client.put(f"/api/admin/users/{student['user_id']}/verify", headers=admin["headers"])
        assert response.status_code == 400

    def test_unknown_user(self, client, admin) -> None:
        assert client.put("/api/admin/users/9999/verify", headers=admin["headers"]).status_code == 404

    def test_deactivate_and_activate(self, client, admin, student) -> None:
        response = client.put(f"/api/admin/users/{student['user_id']}/deactivate", headers=admin["headers"])
        assert response.status_code == 200

        login = {"email": "student1@uni.edu", "password": "secret123"}
        assert client.post("/api/auth/login", json=login).status_code == 403
        assert client.get("/api/auth/me", headers=student["headers"]).status_code == 403

        client.put(f"/api/admin/users/{student['user_id']}/activate", headers=admin["headers"])
        assert client.post("/api/auth/login", json=login).status_code == 200

    def test_cannot_deactivate_self(self, client, admin) -> None:
        response = client.put(f"/api/admin/users/{admin['user_id']}/deactivate", headers=admin["headers"])
        assert response.status_code == 400


class TestInternshipModeration:
    def test_lists_every_status(self, client, admin, databases, post_internship) -> None:
        post_internship(title="Open Role")
        draft = post_internship(title="Draft Role", status="draft")

        body = client.get("/api/admin/internships", headers=admin["headers"]).json()
        assert body["pagination"]["total"] == 2

        body = client.get("/api/admin/internships", params={"status": "draft"}, headers=admin["headers"]).json()
        assert [i["internship_id"] for i in body["internships"]] == [draft["internship_id"]]

    def test_close_posting(self, client, admin, internship) -> None:
        response = client.put(
            f"/api/admin/internships/{internship['internship_id']}/status",
            json={"status": "closed"},
            headers=admin["headers"]
        )
        assert response.status_code == 200
        assert client.get("/api/internships").json()["internships"] == []

    def test_moderate_unknown_posting(self, client, admin) -> None:
        response = client.put("/api/admin/internships/9999/status", json={"status": "closed"}, headers=admin["headers"])
        assert response.status_code == 404


class TestAnnouncements:
    def test_reaches_students_and_companies(self, client, admin, student, company, make_student) -> None:
        make_student()
        response = client.post(
            "/api/admin/announcements",
            json={"title": "Maintenance", "message": "Down for an hour tonight", "priority": "high"},
            headers=admin["headers"]
        )
        assert response.status_code == 200
        assert response.json()["count"] == 3

        announcement = notifications_of(student["user_id"], "system_update")[0]
        assert announcement["title"] == "Maintenance"
        assert announcement["sender_id"] == admin["user_id"]
        assert notifications_of(admin["user_id"], "system_update") == []

    def test_message_is_required(self, client, admin) -> None:
        response = client.post("/api/admin/announcements", json={"message": ""}, headers=admin["headers"])
        assert response.status_code == 422


class TestMaintenance:
    def test_run_job(self, client, admin, databases, internship) -> None:
        set_deadline(databases, internship["internship_id"], utcnow() - timedelta(minutes=5))
        response = client.post("/api/admin/maintenance/expired_internships", headers=admin["headers"])
        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_unknown_job(self, client, admin) -> None:
        assert client.post("/api/admin/maintenance/reindex", headers=admin["headers"]).status_code == 404


class TestOnline:
    def test_nobody_online(self, client, admin) -> None:
        body = client.get("/api/admin/online", headers=admin["headers"]).json()
        assert body == {"count": 0, "connections": 0, "users": []}
