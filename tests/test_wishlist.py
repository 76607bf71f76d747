"""
Tests for the wishlist API.
"""

from datetime import timedelta

import pytest

from conftest import set_deadline
from internhub.utils.dates import utcnow


def add(client, student, internship_id, **fields):
    return client.post("/api/wishlist", json={"internship_id": internship_id, **fields}, headers=student["headers"])


@pytest.fixture
def item(client, student, internship):
    response = add(client, student, internship["internship_id"], notes="Ask about mentoring", priority="high")
    assert response.status_code == 201, response.text
    return response.json()


class TestAdd:
    def test_add_embeds_posting_summary(self, item, internship) -> None:
        assert item["priority"] == "high"
        assert item["category"] == "interested"
        assert item["application_status"] == "not_applied"
        assert item["internship"]["title"] == internship["title"]
        assert item["internship"]["company_name"] == "Acme Corp"
        assert item["days_until_deadline"] == 20
        assert item["deadline_urgency"] == "low"
        assert item["reminder_due"] is False

    def test_add_increments_saves(self, client, internship, item) -> None:
        assert client.get(f"/api/internships/{internship['internship_id']}").json()["saves"] == 1

    def test_add_twice_rejected(self, client, student, internship, item) -> None:
        assert add(client, student, internship["internship_id"]).status_code == 400

    def test_unknown_posting(self, client, student) -> None:
        assert add(client, student, 12345).status_code == 404

    def test_readd_reactivates_with_old_values(self, client, student, internship, item) -> None:
        client.delete(f"/api/wishlist/{item['id']}", headers=student["headers"])

        response = add(client, student, internship["internship_id"], category="dream_job")
        assert response.status_code == 201
        body = response.json()
        assert body["id"] == item["id"]
        assert body["notes"] == "Ask about mentoring"
        assert body["priority"] == "high"
        assert body["category"] == "dream_job"
        assert client.get(f"/api/internships/{internship['internship_id']}").json()["saves"] == 1


class TestListAndUpdate:
    def test_sorted_by_priority_then_newest(self, client, student, post_internship) -> None:
        low = post_internship(title="Low Priority Posting")
        high = post_internship(title="High Priority Posting")
        medium = post_internship(title="Medium Priority Posting")
        add(client, student, low["internship_id"], priority="low")
        add(client, student, high["internship_id"], priority="high")
        add(client, student, medium["internship_id"])

        response = client.get("/api/wishlist", headers=student["headers"])
        titles = [i["internship"]["title"] for i in response.json()["items"]]
        assert titles == ["High Priority Posting", "Medium Priority Posting", "Low Priority Posting"]

    def test_filter_by_category(self, client, student, post_internship) -> None:
        first = post_internship()
        second = post_internship()
        add(client, student, first["internship_id"], category="backup")
        add(client, student, second["internship_id"])

        response = client.get("/api/wishlist", params={"category": "backup"}, headers=student["headers"])
        assert [i["internship_id"] for i in response.json()["items"]] == [first["internship_id"]]

    def test_marking_applied_moves_category(self, client, student, item) -> None:
        response = client.put(f"/api/wishlist/{item['id']}", json={"application_status": "applied"},
                              headers=student["headers"])
        assert response.status_code == 200
        assert response.json()["category"] == "applied"

    def test_update_unknown_item(self, client, student) -> None:
        response = client.put("/api/wishlist/not-an-id", json={"notes": "x"}, headers=student["headers"])
        assert response.status_code == 404

    def test_other_students_items_are_invisible(self, client, make_student, item) -> None:
        stranger = make_student()
        response = client.put(f"/api/wishlist/{item['id']}", json={"notes": "mine now"}, headers=stranger["headers"])
        assert response.status_code == 404

    def test_remove_decrements_saves(self, client, student, internship, item) -> None:
        response = client.delete(f"/api/wishlist/{item['id']}", headers=student["headers"])
        assert response.status_code == 200
        assert client.get("/api/wishlist", headers=student["headers"]).json()["items"] == []
        assert client.get(f"/api/internships/{internship['internship_id']}").json()["saves"] == 0

        again = client.delete(f"/api/wishlist/{item['id']}", headers=student["headers"])
        assert again.status_code == 404


class TestBulkAndStats:
    def test_bulk_reports_per_item(self, client, student, item) -> None:
        response = client.put("/api/wishlist/bulk", headers=student["headers"], json={"items": [
            {"id": item["id"], "updates": {"priority": "low"}},
            {"id": "ffffffffffffffffffffffff", "updates": {"priority": "low"}},
        ]})
        assert response.status_code == 200
        results = response.json()
        assert results[0] == {"id": item["id"], "success": True, "error": None}
        assert results[1]["success"] is False
        assert results[1]["error"] == "Wishlist item not found"

    def test_stats(self, client, student, databases, post_internship) -> None:
        closing = post_internship(title="Closing Soon Posting")
        later = post_internship(title="Closing Later Posting")
        set_deadline(databases, closing["internship_id"], utcnow() + timedelta(days=2))
        add(client, student, closing["internship_id"], priority="high", category="dream_job")
        add(client, student, later["internship_id"],
            reminder_date=(utcnow() - timedelta(hours=1)).isoformat())

        stats = client.get("/api/wishlist/stats", headers=student["headers"]).json()
        assert stats["total"] == 2
        assert stats["by_category"] == {"dream_job": 1, "interested": 1}
        assert stats["by_priority"] == {"high": 1, "medium": 1, "low": 0}
        assert stats["reminders_due"] == 1
        assert stats["closing_soon"] == 1

    def test_due_reminders(self, client, student, post_internship) -> None:
        due = post_internship()
        future = post_internship()
        add(client, student, due["internship_id"], reminder_date=(utcnow() - timedelta(minutes=5)).isoformat())
        add(client, student, future["internship_id"], reminder_date=(utcnow() + timedelta(days=3)).isoformat())

        response = client.get("/api/wishlist/reminders", headers=student["headers"])
        reminders = response.json()
        assert [r["internship_id"] for r in reminders] == [due["internship_id"]]
        assert reminders[0]["reminder_due"] is True

    def test_companies_have_no_wishlist(self, client, company) -> None:
        assert client.get("/api/wishlist", headers=company["headers"]).status_code == 403
