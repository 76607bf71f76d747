"""
Tests for conversations and chat messages.
"""

from pathlib import Path

import pytest

from internhub.core.config import get_settings
from internhub.services.message_service import ChatMessageService
from internhub.services.notification_service import NotificationService


@pytest.fixture
def conversation(client, student, company):
    response = client.post(
        "/api/messages/conversations",
        json={"participant_ids": [company["user_id"]], "subject": "Your application"},
        headers=student["headers"]
    )
    assert response.status_code == 201, response.text
    return response.json()


def uploaded_files() -> set:
    return {p for p in Path(get_settings().upload_dir).rglob("*") if p.is_file()}


def send(client, account, conversation_id: str, content: str, files=None):
    return client.post(
        f"/api/messages/conversations/{conversation_id}/messages",
        data={"content": content},
        files=files,
        headers=account["headers"]
    )


class TestConversations:
    def test_start(self, conversation, student, company) -> None:
        assert conversation["participants"] == sorted([student["user_id"], company["user_id"]])
        assert conversation["subject"] == "Your application"
        assert conversation["unread_count"] == 0

    def test_direct_conversation_is_reused(self, client, conversation, student, company) -> None:
        response = client.post(
            "/api/messages/conversations",
            json={"participant_ids": [student["user_id"]]},
            headers=company["headers"]
        )
        assert response.json()["id"] == conversation["id"]

    def test_needs_another_participant(self, client, student) -> None:
        response = client.post(
            "/api/messages/conversations",
            json={"participant_ids": [student["user_id"]]},
            headers=student["headers"]
        )
        assert response.status_code == 400

    def test_unknown_participant(self, client, student) -> None:
        response = client.post("/api/messages/conversations", json={"participant_ids": [9999]},
                               headers=student["headers"])
        assert response.status_code == 404

    def test_group_conversation(self, client, student, company, make_student) -> None:
        classmate = make_student()
        response = client.post(
            "/api/messages/conversations",
            json={"participant_ids": [company["user_id"], classmate["user_id"]]},
            headers=student["headers"]
        )
        assert response.status_code == 201
        assert len(response.json()["participants"]) == 3

    def test_outsiders_cannot_read(self, client, conversation, make_student) -> None:
        outsider = make_student()
        url = f"/api/messages/conversations/{conversation['id']}/messages"
        assert client.get(url, headers=outsider["headers"]).status_code == 404
        assert client.get("/api/messages/conversations/not-an-id/messages",
                          headers=outsider["headers"]).status_code == 404


class TestMessages:
    def test_send_and_list(self, client, conversation, student, company) -> None:
        response = send(client, student, conversation["id"], "Hello there")
        assert response.status_code == 201
        assert response.json()["read_by"] == [student["user_id"]]
        send(client, company, conversation["id"], "Hi Ada")

        body = client.get(f"/api/messages/conversations/{conversation['id']}/messages",
                          headers=student["headers"]).json()
        assert [m["content"] for m in body["messages"]] == ["Hello there", "Hi Ada"]
        assert body["pagination"]["total"] == 2

        listed = client.get("/api/messages/conversations", headers=company["headers"]).json()
        assert listed["pagination"]["total"] == 1
        assert listed["conversations"][0]["last_message"] == "Hi Ada"
        assert listed["conversations"][0]["unread_count"] == 1

    def test_recipient_is_notified(self, client, conversation, student, company) -> None:
        send(client, student, conversation["id"], "Are you hiring?")
        notes = NotificationService().list_for_user(company["user_id"], type="message")[0]
        assert len(notes) == 1
        assert notes[0]["data"]["conversation_id"] == conversation["id"]
        assert NotificationService().list_for_user(student["user_id"], type="message")[0] == []

    def test_attachment(self, client, conversation, student) -> None:
        files = [("attachments", ("portfolio.txt", b"my projects", "text/plain"))]
        body = send(client, student, conversation["id"], "See attached", files=files).json()
        assert body["attachments"][0]["name"] == "portfolio.txt"
        assert body["attachments"][0]["url"].startswith("/uploads/documents/")

    def test_too_many_attachments(self, client, conversation, student) -> None:
        files = [("attachments", (f"file{i}.txt", b"x", "text/plain")) for i in range(6)]
        assert send(client, student, conversation["id"], "Lots", files=files).status_code == 400

    def test_invalid_attachment_stores_nothing(self, client, conversation, student) -> None:
        before = uploaded_files()
        files = [
            ("attachments", ("portfolio.txt", b"my projects", "text/plain")),
            ("attachments", ("setup.exe", b"MZ", "application/octet-stream")),
        ]
        assert send(client, student, conversation["id"], "See attached", files=files).status_code == 400
        assert uploaded_files() == before

    def test_failed_send_removes_attachments(self, client, conversation, student, monkeypatch) -> None:
        def broken_create(*args, **kwargs):
            raise RuntimeError("mongo unavailable")

        monkeypatch.setattr(ChatMessageService, "create", broken_create)
        before = uploaded_files()
        files = [("attachments", ("portfolio.txt", b"my projects", "text/plain"))]
        with pytest.raises(RuntimeError):
            send(client, student, conversation["id"], "See attached", files=files)
        assert uploaded_files() == before

    def test_empty_message(self, client, conversation, student) -> None:
        assert send(client, student, conversation["id"], "").status_code == 422

    def test_read_and_unread_count(self, client, conversation, student, company) -> None:
        send(client, student, conversation["id"], "One")
        send(client, student, conversation["id"], "Two")

        assert client.get("/api/messages/unread-count", headers=company["headers"]).json() == {"unread_count": 2}
        assert client.get("/api/messages/unread-count", headers=student["headers"]).json() == {"unread_count": 0}

        response = client.put(f"/api/messages/conversations/{conversation['id']}/read", headers=company["headers"])
        assert response.json()["count"] == 2
        assert client.get("/api/messages/unread-count", headers=company["headers"]).json() == {"unread_count": 0}

    def test_only_sender_deletes(self, client, conversation, student, company) -> None:
        message = send(client, student, conversation["id"], "Oops").json()

        assert client.delete(f"/api/messages/{message['id']}", headers=company["headers"]).status_code == 403
        assert client.delete(f"/api/messages/{message['id']}", headers=student["headers"]).status_code == 200
        assert client.delete(f"/api/messages/{message['id']}", headers=student["headers"]).status_code == 404

        body = client.get(f"/api/messages/conversations/{conversation['id']}/messages",
                          headers=student["headers"]).json()
        assert body["messages"] == []
