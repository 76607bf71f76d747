"""
Tests for the application workflow: apply, review, interview, withdraw.
"""

import json
from pathlib import Path

import pytest

from conftest import listen
from internhub.core.config import get_settings
from internhub.services.wishlist_service import WishlistService

RESUME = ("resume.pdf", b"%PDF-1.4 resume bytes", "application/pdf")


def apply(client, who, internship_id, **form):
    data = {"internship_id": str(internship_id), **form}
    return client.post("/api/applications", data=data, files={"resume": RESUME}, headers=who["headers"])


@pytest.fixture
def application(client, student, internship):
    response = apply(client, student, internship["internship_id"], cover_letter="I would love to join.")
    assert response.status_code == 201, response.text
    return response.json()


class TestApply:
    def test_apply_creates_pending_application(self, client, internship, application) -> None:
        assert application["status"] == "pending"
        assert application["internship_title"] == internship["title"]
        assert application["resume_url"].startswith("/uploads/resumes/resume-")
        assert [t["status"] for t in application["timeline"]] == ["pending"]

        posting = client.get(f"/api/internships/{internship['internship_id']}").json()
        assert posting["applications_count"] == 1

    def test_company_is_notified(self, client, company, application) -> None:
        notifications = client.get("/api/notifications", headers=company["headers"]).json()["notifications"]
        received = [n for n in notifications if n["type"] == "application_received"]
        assert len(received) == 1
        assert received[0]["data"]["application_id"] == application["application_id"]
        assert received[0]["data"]["action_required"] is True

    def test_duplicate_application(self, client, student, internship, application) -> None:
        response = apply(client, student, internship["internship_id"])
        assert response.status_code == 400

    def test_resume_required(self, client, student, internship) -> None:
        response = client.post(
            "/api/applications", data={"internship_id": str(internship["internship_id"])}, headers=student["headers"]
        )
        assert response.status_code == 400
        assert "Resume is required" in response.json()["detail"]

    def test_profile_resume_is_used(self, client, student, internship) -> None:
        uploaded = client.post("/api/users/resume", files={"file": RESUME}, headers=student["headers"])
        assert uploaded.status_code == 200

        response = client.post(
            "/api/applications", data={"internship_id": str(internship["internship_id"])}, headers=student["headers"]
        )
        assert response.status_code == 201
        assert response.json()["resume_url"] == uploaded.json()["url"]

    def test_answers_and_documents(self, client, student, internship) -> None:
        answers = json.dumps([{"question": "Why us?", "answer": "Great team."}])
        response = client.post(
            "/api/applications",
            data={"internship_id": str(internship["internship_id"]), "answers": answers},
            files=[("resume", RESUME), ("documents", ("transcript.txt", b"A+ in everything", "text/plain"))],
            headers=student["headers"]
        )
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["answers"] == [{"question": "Why us?", "answer": "Great team."}]
        assert body["documents"][0]["name"] == "transcript.txt"

    def test_invalid_document_stores_nothing(self, client, student, internship) -> None:
        folder = Path(get_settings().upload_dir)
        before = {p for p in folder.rglob("*") if p.is_file()}

        response = client.post(
            "/api/applications",
            data={"internship_id": str(internship["internship_id"])},
            files=[("resume", RESUME), ("documents", ("evil.exe", b"MZ", "application/octet-stream"))],
            headers=student["headers"]
        )
        assert response.status_code == 400
        assert "Invalid file type" in response.json()["detail"]
        assert {p for p in folder.rglob("*") if p.is_file()} == before

        posting = client.get(f"/api/internships/{internship['internship_id']}").json()
        assert posting["applications_count"] == 0

    def test_invalid_answers(self, client, student, internship) -> None:
        response = apply(client, student, internship["internship_id"], answers="not json")
        assert response.status_code == 400

    def test_cover_letter_limit(self, client, student, internship) -> None:
        response = apply(client, student, internship["internship_id"], cover_letter="x" * 1001)
        assert response.status_code == 400

    def test_closed_posting(self, client, student, company, internship) -> None:
        client.put(f"/api/internships/{internship['internship_id']}", json={"status": "closed"},
                   headers=company["headers"])
        response = apply(client, student, internship["internship_id"])
        assert response.status_code == 400

    def test_full_posting(self, client, student, make_student, post_internship) -> None:
        posting = post_internship(max_applications=1)
        assert apply(client, student, posting["internship_id"]).status_code == 201
        response = apply(client, make_student(), posting["internship_id"])
        assert response.status_code == 400

    def test_companies_cannot_apply(self, client, company, internship) -> None:
        assert apply(client, company, internship["internship_id"]).status_code == 403

    def test_wishlist_item_marked_applied(self, client, student, internship) -> None:
        client.post("/api/wishlist", json={"internship_id": internship["internship_id"]}, headers=student["headers"])
        apply(client, student, internship["internship_id"])

        item = WishlistService().find_item(student["user_id"], internship["internship_id"])
        assert item["application_status"] == "applied"
        assert item["category"] == "applied"


class TestCompanyReview:
    def test_status_update_notifies_student(self, client, student, company, application) -> None:
        aid = application["application_id"]
        response = client.put(f"/api/applications/{aid}/status", headers=company["headers"],
                              json={"status": "shortlisted", "note": "Strong profile"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "shortlisted"
        assert [t["status"] for t in body["timeline"]] == ["pending", "shortlisted"]
        assert body["timeline"][-1]["note"] == "Strong profile"

        notifications = client.get("/api/notifications", headers=student["headers"]).json()["notifications"]
        update = [n for n in notifications if n["type"] == "application_status_update"][0]
        assert "shortlisted" in update["message"]
        assert update["data"]["metadata"] == {"old_status": "pending", "new_status": "shortlisted"}

    def test_rejection_reason_stored(self, client, company, application) -> None:
        response = client.put(f"/api/applications/{application['application_id']}/status", headers=company["headers"],
                              json={"status": "rejected", "rejection_reason": "Position filled"})
        assert response.json()["rejection_reason"] == "Position filled"

    def test_company_cannot_set_withdrawn(self, client, company, application) -> None:
        response = client.put(f"/api/applications/{application['application_id']}/status",
                              headers=company["headers"], json={"status": "withdrawn"})
        assert response.status_code == 400

    def test_other_company_forbidden(self, client, other_company, application) -> None:
        response = client.put(f"/api/applications/{application['application_id']}/status",
                              headers=other_company["headers"], json={"status": "reviewing"})
        assert response.status_code == 403

    def test_company_listing(self, client, company, application) -> None:
        response = client.get("/api/applications/company", headers=company["headers"])
        assert [a["application_id"] for a in response.json()["applications"]] == [application["application_id"]]

        filtered = client.get("/api/applications/company", params={"status": "accepted"}, headers=company["headers"])
        assert filtered.json()["applications"] == []

    def test_schedule_interview(self, client, student, company, application) -> None:
        aid = application["application_id"]
        response = client.put(f"/api/applications/{aid}/interview", headers=company["headers"], json={
            "scheduled_at": "2030-05-01T10:00:00", "interview_type": "video", "link": "https://meet.example.com/x"
        })
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["interview"]["scheduled"] is True
        assert body["interview"]["link"] == "https://meet.example.com/x"
        assert "Interview scheduled" in body["timeline"][-1]["note"]

        notifications = client.get("/api/notifications", headers=student["headers"]).json()["notifications"]
        interview = [n for n in notifications if n["type"] == "interview_scheduled"][0]
        assert interview["priority"] == "high"


class TestWithdraw:
    def test_withdraw_freezes_application(self, client, student, company, application) -> None:
        aid = application["application_id"]
        response = client.put(f"/api/applications/{aid}/withdraw", headers=student["headers"],
                              json={"reason": "Accepted another offer"})
        assert response.status_code == 200
        assert response.json()["status"] == "withdrawn"
        assert response.json()["withdrawal_reason"] == "Accepted another offer"

        blocked = client.put(f"/api/applications/{aid}/status", headers=company["headers"],
                             json={"status": "reviewing"})
        assert blocked.status_code == 400

        interview = client.put(f"/api/applications/{aid}/interview", headers=company["headers"],
                               json={"scheduled_at": "2030-05-01T10:00:00"})
        assert interview.status_code == 400

    def test_cannot_withdraw_accepted(self, client, student, company, application) -> None:
        aid = application["application_id"]
        client.put(f"/api/applications/{aid}/status", headers=company["headers"], json={"status": "accepted"})
        response = client.put(f"/api/applications/{aid}/withdraw", headers=student["headers"], json={})
        assert response.status_code == 400

    def test_only_applicant_can_withdraw(self, client, make_student, application) -> None:
        stranger = make_student()
        response = client.put(f"/api/applications/{application['application_id']}/withdraw",
                              headers=stranger["headers"], json={})
        assert response.status_code == 403


class TestVisibility:
    def test_applicant_company_and_admin_can_view(self, client, student, company, admin, application) -> None:
        url = f"/api/applications/{application['application_id']}"
        for who in (student, company, admin):
            assert client.get(url, headers=who["headers"]).status_code == 200

    def test_strangers_cannot_view(self, client, make_student, other_company, application) -> None:
        url = f"/api/applications/{application['application_id']}"
        assert client.get(url, headers=make_student()["headers"]).status_code == 403
        assert client.get(url, headers=other_company["headers"]).status_code == 403

    def test_my_applications(self, client, student, application) -> None:
        response = client.get("/api/applications/my", headers=student["headers"])
        assert response.json()["pagination"]["total"] == 1
        assert response.json()["applications"][0]["status"] == "pending"

    def test_missing_application(self, client, student) -> None:
        assert client.get("/api/applications/999", headers=student["headers"]).status_code == 404


class TestLiveEvents:
    def test_company_hears_new_application(self, client, student, company, internship) -> None:
        ws = listen(company, "company")
        response = apply(client, student, internship["internship_id"])

        events = ws.data("application:new")
        assert len(events) == 1
        assert events[0]["application_id"] == response.json()["application_id"]
        assert events[0]["internship_title"] == internship["title"]
        assert "notification" in ws.events()

    def test_student_hears_status_change(self, client, student, company, application) -> None:
        ws = listen(student, "student")
        client.put(f"/api/applications/{application['application_id']}/status", headers=company["headers"],
                   json={"status": "reviewing"})

        events = ws.data("application:status_changed")
        assert [(e["application_id"], e["status"]) for e in events] == [(application["application_id"], "reviewing")]

    def test_company_hears_withdrawal(self, client, student, company, application) -> None:
        ws = listen(company, "company")
        client.put(f"/api/applications/{application['application_id']}/withdraw", headers=student["headers"],
                   json={"reason": "Changed plans"})

        assert [e["status"] for e in ws.data("application:status_changed")] == ["withdrawn"]
