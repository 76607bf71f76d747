"""
Tests for posting creation, search and ownership rules.
"""

from datetime import timedelta

from conftest import internship_payload, listen
from internhub.utils.dates import utcnow


class TestCreate:
    def test_create_returns_nested_location_and_stipend(self, internship) -> None:
        assert internship["company_name"] == "Acme Corp"
        assert internship["location"] == {"type": "hybrid", "city": "Berlin", "state": None, "country": "Germany"}
        assert internship["stipend"] == {"amount": 1500.0, "currency": "EUR", "period": "monthly"}
        assert sorted(internship["skills"]) == ["Python", "SQL"]
        assert internship["status"] == "active"
        assert internship["applications_count"] == 0

    def test_students_cannot_post(self, client, student) -> None:
        response = client.post("/api/internships", json=internship_payload(), headers=student["headers"])
        assert response.status_code == 403

    def test_deadline_must_be_in_future(self, client, company) -> None:
        payload = internship_payload(application_deadline=(utcnow() - timedelta(days=1)).isoformat())
        response = client.post("/api/internships", json=payload, headers=company["headers"])
        assert response.status_code == 400

    def test_short_description_rejected(self, client, company) -> None:
        response = client.post(
            "/api/internships", json=internship_payload(description="Too short"), headers=company["headers"]
        )
        assert response.status_code == 422

    def test_active_posting_notifies_students(self, client, student, internship) -> None:
        response = client.get("/api/notifications", headers=student["headers"])
        notifications = response.json()["notifications"]
        assert [n["type"] for n in notifications] == ["new_internship"]
        assert notifications[0]["data"]["internship_id"] == internship["internship_id"]

    def test_draft_posting_notifies_nobody(self, client, student, post_internship) -> None:
        post_internship(status="draft")
        response = client.get("/api/notifications", headers=student["headers"])
        assert response.json()["notifications"] == []


class TestSearch:
    def test_list_only_active(self, client, post_internship) -> None:
        post_internship(title="Visible Internship")
        post_internship(title="Hidden Draft Posting", status="draft")

        response = client.get("/api/internships")
        titles = [i["title"] for i in response.json()["internships"]]
        assert titles == ["Visible Internship"]
        assert response.json()["pagination"]["total"] == 1

    def test_featured_first(self, client, post_internship) -> None:
        post_internship(title="Regular Posting")
        post_internship(title="Featured Posting", is_featured=True)
        post_internship(title="Newest Regular One")

        titles = [i["title"] for i in client.get("/api/internships").json()["internships"]]
        assert titles[0] == "Featured Posting"
        assert titles[1:] == ["Newest Regular One", "Regular Posting"]

    def test_filters(self, client, post_internship) -> None:
        post_internship(title="Remote Data Role", category="Data Science",
                        location={"type": "remote"}, skills=["Pandas"],
                        stipend={"amount": 500, "currency": "USD", "period": "monthly"})
        post_internship(title="Onsite Dev Role", location={"type": "onsite", "city": "Lisbon"})

        def titles(**params):
            response = client.get("/api/internships", params=params)
            return [i["title"] for i in response.json()["internships"]]

        assert titles(category="Data Science") == ["Remote Data Role"]
        assert titles(remote="true") == ["Remote Data Role"]
        assert titles(location="lisbon") == ["Onsite Dev Role"]
        assert titles(skill="pandas") == ["Remote Data Role"]
        assert titles(stipend_min=1000) == ["Onsite Dev Role"]
        assert titles(search="acme") == ["Onsite Dev Role", "Remote Data Role"]

    def test_student_state_flags(self, client, student, internship) -> None:
        client.put(f"/api/internships/{internship['internship_id']}/save", headers=student["headers"])

        listed = client.get("/api/internships", headers=student["headers"]).json()["internships"][0]
        assert listed["is_saved"] is True
        assert listed["has_applied"] is False

        anonymous = client.get("/api/internships").json()["internships"][0]
        assert anonymous["is_saved"] is None

    def test_detail_counts_views(self, client, internship) -> None:
        iid = internship["internship_id"]
        client.get(f"/api/internships/{iid}")
        response = client.get(f"/api/internships/{iid}")
        assert response.json()["views"] == 2

    def test_detail_missing(self, client) -> None:
        assert client.get("/api/internships/999").status_code == 404


class TestOwnership:
    def test_other_company_cannot_update(self, client, other_company, internship) -> None:
        response = client.put(
            f"/api/internships/{internship['internship_id']}",
            json={"title": "Hijacked Title"},
            headers=other_company["headers"]
        )
        assert response.status_code == 403

    def test_update_and_delete(self, client, company, internship) -> None:
        iid = internship["internship_id"]
        response = client.put(f"/api/internships/{iid}", json={"skills": ["Go"]}, headers=company["headers"])
        assert response.status_code == 200
        assert response.json()["skills"] == ["Go"]

        assert client.delete(f"/api/internships/{iid}", headers=company["headers"]).status_code == 200
        assert client.get(f"/api/internships/{iid}").status_code == 404

    def test_company_sees_drafts_in_own_list(self, client, company, post_internship) -> None:
        post_internship(status="draft")
        response = client.get("/api/internships/company/mine", headers=company["headers"])
        assert [i["status"] for i in response.json()["internships"]] == ["draft"]


class TestSaveToggle:
    def test_toggle_adjusts_saves(self, client, student, internship) -> None:
        iid = internship["internship_id"]

        first = client.put(f"/api/internships/{iid}/save", headers=student["headers"])
        assert first.json()["saved"] is True
        assert client.get(f"/api/internships/{iid}").json()["saves"] == 1

        second = client.put(f"/api/internships/{iid}/save", headers=student["headers"])
        assert second.json()["saved"] is False
        assert client.get(f"/api/internships/{iid}").json()["saves"] == 0


class TestLiveEvents:
    def test_created_goes_to_students_only(self, student, company, post_internship) -> None:
        student_ws, company_ws = listen(student, "student"), listen(company, "company")
        posting = post_internship(title="Data Intern")

        assert [d["internship_id"] for d in student_ws.data("internship:created")] == [posting["internship_id"]]
        assert student_ws.data("internship:created")[0]["title"] == "Data Intern"
        assert company_ws.data("internship:created") == []

    def test_updated_is_broadcast(self, client, student, company, internship) -> None:
        ws = listen(student, "student")
        client.put(f"/api/internships/{internship['internship_id']}", json={"title": "Platform Intern"},
                   headers=company["headers"])

        updated = ws.data("internship:updated")
        assert len(updated) == 1
        assert updated[0]["title"] == "Platform Intern"

    def test_deleted_is_broadcast(self, client, student, company, internship) -> None:
        ws = listen(student, "student")
        client.delete(f"/api/internships/{internship['internship_id']}", headers=company["headers"])

        assert ws.data("internship:deleted") == [{"internship_id": internship["internship_id"]}]
