"""
Tests for student and company profiles, uploads and dashboards.
"""

import io
import re

from docx import Document

from internhub.services.mongo_service import ResumeDocumentService
from internhub.services.notification_service import NotificationService
from internhub.utils.file_upload import extract_text, get_file_extension, unique_filename

PNG = ("me.png", b"\x89PNG\r\n\x1a\n fake image", "image/png")


def docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def student_id_of(client, account) -> int:
    return client.get("/api/users/profile", headers=account["headers"]).json()["student_id"]


class TestFileHelpers:
    def test_unique_filename(self) -> None:
        name = unique_filename("resume", ".pdf")
        assert re.fullmatch(r"resume-\d+-\d+\.pdf", name)

    def test_file_extension(self) -> None:
        assert get_file_extension("CV.Final.DOCX") == ".docx"
        assert get_file_extension("README") == ""

    def test_extract_text(self) -> None:
        assert extract_text(b"plain words", ".txt") == "plain words"
        assert "Distributed systems" in extract_text(docx_bytes("Distributed systems"), ".docx")
        assert extract_text(b"binary", ".doc") == ""


class TestStudentProfile:
    def test_defaults(self, client, student) -> None:
        profile = client.get("/api/users/profile", headers=student["headers"]).json()
        assert profile["name"] == "Ada Lovelace"
        assert profile["email"] == "student1@uni.edu"
        assert profile["skills"] == []

    def test_update_with_skills(self, client, student) -> None:
        response = client.put("/api/users/profile", headers=student["headers"], json={
            "university": "TU Berlin",
            "graduation_year": 2027,
            "city": "Berlin",
            "skills": ["SQL", "Python", " ", "python"],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["university"] == "TU Berlin"
        assert body["city"] == "Berlin"
        assert body["skills"] == ["Python", "SQL"]

    def test_invalid_gpa(self, client, student) -> None:
        assert client.put("/api/users/profile", json={"gpa": 11}, headers=student["headers"]).status_code == 422

    def test_null_name_is_ignored(self, client, student) -> None:
        response = client.put("/api/users/profile", json={"name": None, "bio": None}, headers=student["headers"])
        assert response.status_code == 200
        assert response.json()["name"] == "Ada Lovelace"

    def test_companies_have_no_student_profile(self, client, company) -> None:
        assert client.get("/api/users/profile", headers=company["headers"]).status_code == 403


class TestUploads:
    def test_avatar(self, client, student) -> None:
        response = client.post("/api/users/avatar", files={"file": PNG}, headers=student["headers"])
        assert response.status_code == 200
        url = response.json()["url"]
        assert url.startswith("/uploads/avatars/avatar-")

        assert client.get(url).content == PNG[1]
        assert client.get("/api/users/profile", headers=student["headers"]).json()["avatar_url"] == url

    def test_avatar_bad_type(self, client, student) -> None:
        files = {"file": ("me.exe", b"MZ", "application/octet-stream")}
        response = client.post("/api/users/avatar", files=files, headers=student["headers"])
        assert response.status_code == 400
        assert "Invalid file type" in response.json()["detail"]

    def test_resume_docx_text_is_stored(self, client, student) -> None:
        content = docx_bytes("Ada Lovelace", "Skills: Python, analytical engines")
        files = {"file": ("ada.docx", content, "application/vnd.openxmlformats-officedocument.wordprocessingml.document")}
        response = client.post("/api/users/resume", files=files, headers=student["headers"])
        assert response.status_code == 200
        body = response.json()
        assert body["text_extracted"] is True
        assert body["characters"] > 0

        stored = ResumeDocumentService().get_by_student(student_id_of(client, student))
        assert "analytical engines" in stored["resume_text"]
        assert stored["filename"] == "ada.docx"

    def test_resume_doc_is_stored_without_text(self, client, student) -> None:
        files = {"file": ("ada.doc", b"legacy word bytes", "application/msword")}
        body = client.post("/api/users/resume", files=files, headers=student["headers"]).json()
        assert body["text_extracted"] is False
        assert ResumeDocumentService().get_by_student(student_id_of(client, student)) is None

        profile = client.get("/api/users/profile", headers=student["headers"]).json()
        assert profile["resume_url"] == body["url"]

    def test_resume_txt_text_is_stored(self, client, student) -> None:
        files = {"file": ("ada.txt", b"Ada Lovelace\nSkills: Python", "text/plain")}
        body = client.post("/api/users/resume", files=files, headers=student["headers"]).json()
        assert body["text_extracted"] is True

        stored = ResumeDocumentService().get_by_student(student_id_of(client, student))
        assert "Skills: Python" in stored["resume_text"]

    def test_resume_formats(self, client) -> None:
        body = client.get("/api/users/resume/formats").json()
        assert {f["extension"] for f in body["supported_formats"]} == {".pdf", ".docx", ".doc", ".txt"}


class TestPublicProfile:
    def test_public_profile(self, client, student) -> None:
        client.put("/api/users/profile", json={"skills": ["Rust"], "major": "Mathematics"}, headers=student["headers"])
        body = client.get(f"/api/users/{student['user_id']}").json()
        assert body["major"] == "Mathematics"
        assert body["skills"] == ["Rust"]
        assert "email" not in body

    def test_private_profile(self, client, student, company, admin) -> None:
        client.put("/api/notifications/preferences", json={"profile_visibility": "private"},
                   headers=student["headers"])
        url = f"/api/users/{student['user_id']}"
        assert client.get(url).status_code == 403
        assert client.get(url, headers=company["headers"]).status_code == 403
        assert client.get(url, headers=student["headers"]).status_code == 200
        assert client.get(url, headers=admin["headers"]).status_code == 200

    def test_company_view_notifies_student(self, client, student, company) -> None:
        client.get(f"/api/users/{student['user_id']}", headers=company["headers"])
        views = NotificationService().list_for_user(student["user_id"], type="profile_view")[0]
        assert len(views) == 1
        assert views[0]["sender_id"] == company["user_id"]

    def test_unknown_user(self, client) -> None:
        assert client.get("/api/users/9999").status_code == 404

    def test_search(self, client, student, company) -> None:
        results = client.get("/api/users/search", params={"query": "acme"}, headers=student["headers"]).json()
        assert [r["user_id"] for r in results] == [company["user_id"]]
        results = client.get("/api/users/search", params={"query": "ada"}, headers=student["headers"]).json()
        assert results == []


class TestDashboards:
    def test_student_dashboard(self, client, student, internship) -> None:
        client.post("/api/wishlist", json={"internship_id": internship["internship_id"]}, headers=student["headers"])
        client.put("/api/users/profile", json={"city": "Berlin", "skills": ["Go"]}, headers=student["headers"])

        stats = client.get("/api/users/stats/dashboard", headers=student["headers"]).json()
        assert stats["total_applications"] == 0
        assert stats["saved_internships"] == 1
        assert stats["profile_completion"] == round(2 * 100 / 11)

    def test_company_dashboards(self, client, company, post_internship) -> None:
        post_internship()
        post_internship(status="draft")

        stats = client.get("/api/users/stats/dashboard", headers=company["headers"]).json()
        assert stats["total_internships"] == 2
        assert stats["active_internships"] == 1

        body = client.get("/api/companies/dashboard", headers=company["headers"]).json()
        assert body["company"]["company_name"] == "Acme Corp"
        assert body["statistics"]["internships_by_status"] == {"active": 1, "draft": 1}
        assert body["recent_applications"] == []


class TestCompanyProfile:
    def test_update(self, client, company) -> None:
        response = client.put("/api/companies/profile", headers=company["headers"], json={
            "industry": "Robotics", "company_size": "small", "city": "Munich",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["industry"] == "Robotics"
        assert body["city"] == "Munich"

    def test_empty_update(self, client, company) -> None:
        assert client.put("/api/companies/profile", json={}, headers=company["headers"]).status_code == 400

    def test_null_company_name_is_ignored(self, client, company) -> None:
        url = "/api/companies/profile"
        assert client.put(url, json={"company_name": None}, headers=company["headers"]).status_code == 400

        response = client.put(url, json={"company_name": None, "industry": "Robotics"}, headers=company["headers"])
        assert response.status_code == 200
        assert response.json()["company_name"] == "Acme Corp"
        assert response.json()["industry"] == "Robotics"

    def test_logo(self, client, company) -> None:
        files = {"file": ("logo.svg", b"<svg/>", "image/svg+xml")}
        response = client.post("/api/companies/logo", files=files, headers=company["headers"])
        assert response.status_code == 200
        assert client.get("/api/companies/profile", headers=company["headers"]).json()["logo_url"] == response.json()["url"]

    def test_public_listing(self, client, company, other_company, admin, internship) -> None:
        client.put(f"/api/admin/users/{other_company['user_id']}/verify", headers=admin["headers"])

        body = client.get("/api/companies").json()
        assert [c["company_name"] for c in body["companies"]] == ["Globex", "Acme Corp"]

        body = client.get("/api/companies", params={"verified": "false"}).json()
        assert [c["company_name"] for c in body["companies"]] == ["Acme Corp"]

        company_id = client.get("/api/companies/profile", headers=company["headers"]).json()["company_id"]
        detail = client.get(f"/api/companies/{company_id}").json()
        assert [i["internship_id"] for i in detail["active_internships"]] == [internship["internship_id"]]

    def test_unknown_company(self, client) -> None:
        assert client.get("/api/companies/9999").status_code == 404
