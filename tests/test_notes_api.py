"""
API tests for note listing, CRUD, downloads and batch uploads.
"""
from conftest import auth_headers, make_note, make_subject, make_user
from core.exceptions import BadRequestException
from models.models import NoteVisibilityEnum
from services.upload_service import UploadService


def titles(response):
    return [n["title"] for n in response.json()["notes"]]


# --- Listing ---

def test_listing_requires_authentication(client):
    response = client.get("/api/notes")
    assert response.status_code in (401, 403)
    assert "error" in response.json()


def test_listing_is_newest_first_and_paginated(client, db, alice):
    for i in range(13):
        make_note(db, alice, title=f"Note {i:02d}", minutes=i)

    first = client.get("/api/notes", headers=auth_headers(alice))
    assert first.status_code == 200
    body = first.json()
    assert len(body["notes"]) == 12
    assert body["notes"][0]["title"] == "Note 12"
    assert body["pagination"] == {"page": 0, "limit": 12, "hasMore": True}

    second = client.get("/api/notes", params={"page": 1}, headers=auth_headers(alice)).json()
    assert [n["title"] for n in second["notes"]] == ["Note 00"]
    assert second["pagination"]["hasMore"] is False


def test_private_notes_are_never_listed(client, db, alice, bob):
    make_note(db, alice, title="Shared", minutes=1)
    make_note(db, alice, title="Secret", visibility=NoteVisibilityEnum.private, minutes=2)

    assert titles(client.get("/api/notes", headers=auth_headers(bob))) == ["Shared"]
    assert titles(client.get("/api/notes", headers=auth_headers(alice))) == ["Shared"]


def test_listing_is_limited_to_callers_college(client, db, alice, outsider):
    make_note(db, alice, title="Ours", visibility=NoteVisibilityEnum.college_only, minutes=1)
    make_note(db, outsider, title="Theirs", minutes=2)
    make_note(db, outsider, title="Theirs too", visibility=NoteVisibilityEnum.college_only, minutes=3)

    assert titles(client.get("/api/notes", headers=auth_headers(alice))) == ["Ours"]
    assert titles(client.get("/api/notes", headers=auth_headers(outsider))) == ["Theirs too", "Theirs"]


def test_subject_filter_is_stable(client, db, alice):
    make_subject(db)
    make_note(db, alice, title="Limits", subject_id="math-101", minutes=1)
    make_note(db, alice, title="Derivatives", subject_id="math-101", minutes=2)
    make_note(db, alice, title="Mechanics", minutes=3)

    params = {"subject_id": "math-101"}
    first = client.get("/api/notes", params=params, headers=auth_headers(alice)).json()
    second = client.get("/api/notes", params=params, headers=auth_headers(alice)).json()
    assert [n["title"] for n in first["notes"]] == ["Derivatives", "Limits"]
    assert first == second
    assert first["notes"][0]["subject_name"] == "Calculus I"
    assert first["notes"][0]["uploader_name"] == "Alice Student"


def test_filters_combine(client, db, alice):
    make_note(db, alice, title="A", semester="Fall 2024", year_of_study=1, tags=["exam"], minutes=1)
    make_note(db, alice, title="B", semester="Fall 2024", year_of_study=2, tags=["exam"], minutes=2)
    make_note(db, alice, title="C", semester="Spring 2024", year_of_study=1, tags=["lab"], minutes=3)

    headers = auth_headers(alice)
    assert titles(client.get("/api/notes", params={"semester": "Fall 2024", "year": 1}, headers=headers)) == ["A"]
    assert titles(client.get("/api/notes", params={"tags": "lab,exam"}, headers=headers)) == ["C", "B", "A"]
    assert titles(client.get("/api/notes", params={"tags": "lab", "year": 1}, headers=headers)) == ["C"]


def test_invalid_year_is_rejected(client, alice):
    response = client.get("/api/notes", params={"year": 0}, headers=auth_headers(alice))
    assert response.status_code == 400
    assert response.json()["error"]["type"] == "ValidationError"


def test_search_matches_title_or_description(client, db, alice):
    make_note(db, alice, title="Limits", description="Epsilon delta proofs", minutes=1)
    make_note(db, alice, title="Series", description="convergence tests", minutes=2)

    headers = auth_headers(alice)
    assert titles(client.get("/api/notes", params={"search": "EPSILON"}, headers=headers)) == ["Limits"]
    assert titles(client.get("/api/notes", params={"search": "  "}, headers=headers)) == ["Series", "Limits"]


def test_search_wildcards_match_literally(client, db, alice):
    make_note(db, alice, title="100% effort", minutes=1)
    make_note(db, alice, title="100 percent", minutes=2)
    make_note(db, alice, title="file_name rules", minutes=3)
    make_note(db, alice, title="filename rules", minutes=4)

    headers = auth_headers(alice)
    assert titles(client.get("/api/notes", params={"search": "100%"}, headers=headers)) == ["100% effort"]
    assert titles(client.get("/api/notes", params={"search": "file_name"}, headers=headers)) == ["file_name rules"]


def test_search_matches_apostrophes_and_parentheses(client, db, alice):
    make_note(db, alice, title="O'Brien lemma (part 2)", minutes=1)
    make_note(db, alice, title="OBrien lemma", minutes=2)

    headers = auth_headers(alice)
    assert titles(client.get("/api/notes", params={"search": "O'Brien"}, headers=headers)) == ["O'Brien lemma (part 2)"]
    assert titles(client.get("/api/notes", params={"search": "(part 2)"}, headers=headers)) == ["O'Brien lemma (part 2)"]


# --- Single note ---

def test_missing_note_is_404_with_error_body(client, alice):
    response = client.get("/api/notes/does-not-exist", headers=auth_headers(alice))
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Note not found"


def test_private_note_visible_only_to_owner(client, db, alice, bob):
    note = make_note(db, alice, title="Secret", visibility=NoteVisibilityEnum.private)

    assert client.get(f"/api/notes/{note.id}", headers=auth_headers(alice)).status_code == 200
    assert client.get(f"/api/notes/{note.id}", headers=auth_headers(bob)).status_code == 404


def test_create_note_for_uploaded_file(client, alice, storage):
    path = f"example.edu/{alice.id}/1700000000000_abcdefghijklm_notes.pdf"
    storage.upload(path, b"%PDF")

    response = client.post("/api/notes", json={
        "title": "Limits",
        "file_name": "notes.pdf",
        "file_path": path,
        "file_size": 4,
        "tags": ["calc", "calc", " exam "],
    }, headers=auth_headers(alice))

    assert response.status_code == 201
    note = response.json()["note"]
    assert note["tags"] == ["calc", "exam"]
    assert note["file_type"] == "pdf"
    assert note["college_domain"] == "example.edu"
    assert note["uploader_id"] == alice.id


def test_create_note_rejects_foreign_path(client, alice, bob):
    response = client.post("/api/notes", json={
        "title": "Limits",
        "file_name": "notes.pdf",
        "file_path": f"example.edu/{bob.id}/x.pdf",
    }, headers=auth_headers(alice))
    assert response.status_code == 403


def test_create_note_rejects_own_id_in_wrong_segment(client, alice):
    response = client.post("/api/notes", json={
        "title": "Limits",
        "file_name": "notes.pdf",
        "file_path": f"other.edu/x/{alice.id}/a.pdf",
    }, headers=auth_headers(alice))
    assert response.status_code == 403


def test_update_by_owner(client, db, alice):
    note = make_note(db, alice, title="Draft", tags=["a"])
    response = client.put(f"/api/notes/{note.id}", json={"title": "Final", "tags": ["b", "c"]},
                          headers=auth_headers(alice))
    assert response.status_code == 200
    updated = response.json()["note"]
    assert updated["title"] == "Final"
    assert updated["tags"] == ["b", "c"]


def test_update_by_other_student_is_forbidden(client, db, alice, bob):
    note = make_note(db, alice, title="Draft")
    response = client.put(f"/api/notes/{note.id}", json={"title": "Mine now"}, headers=auth_headers(bob))
    assert response.status_code == 403


def test_admin_may_update_any_note(client, db, alice, admin):
    note = make_note(db, alice, title="Draft")
    response = client.put(f"/api/notes/{note.id}", json={"visibility": "college_only"}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["note"]["visibility"] == "college_only"


def test_delete_removes_row_and_file(client, db, alice, storage):
    note = make_note(db, alice, title="Old", storage=storage)

    response = client.delete(f"/api/notes/{note.id}", headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json() == {"message": "Note deleted successfully"}
    assert not storage.exists(note.file_path)
    assert client.get(f"/api/notes/{note.id}", headers=auth_headers(alice)).status_code == 404


# --- Downloads ---

def test_download_issues_signed_url_and_counts(client, db, alice, bob, storage):
    note = make_note(db, alice, title="Limits", storage=storage)

    response = client.post(f"/api/notes/{note.id}/download", headers=auth_headers(bob))
    assert response.status_code == 200
    body = response.json()
    assert body["filename"] == "Limits"
    assert "expires=3600" in body["download_url"]

    refreshed = client.get(f"/api/notes/{note.id}", headers=auth_headers(alice)).json()["note"]
    assert refreshed["download_count"] == 1

    mine = client.get("/users/me/notes", headers=auth_headers(alice)).json()
    assert mine["summary"] == {"note_count": 1, "total_downloads": 1}


def test_download_of_missing_file_is_404(client, db, alice):
    note = make_note(db, alice, title="Lost")
    response = client.post(f"/api/notes/{note.id}/download", headers=auth_headers(alice))
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "File not found"


# --- Uploads ---

def pdf(name):
    return ("files", (name, b"%PDF-1.4 body", "application/pdf"))


def test_batch_upload_partial_failure(client, alice, storage, monkeypatch):
    original = UploadService._insert_note

    async def flaky_insert(self, data, college_domain):
        if data.file_name == "two.pdf":
            raise BadRequestException("constraint violation")
        return await original(self, data, college_domain)

    monkeypatch.setattr(UploadService, "_insert_note", flaky_insert)

    response = client.post(
        "/api/notes/upload",
        files=[pdf("one.pdf"), pdf("two.pdf"), pdf("three.pdf")],
        data={"title": "Week 1", "tags": "calc,exam"},
        headers=auth_headers(alice),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["succeeded"] == 2
    assert body["failed"] == 1
    assert body["should_reset_form"] is True
    assert body["errors"][0]["file_name"] == "two.pdf"
    assert body["errors"][0]["error"].startswith("Failed to save note metadata:")
    assert sorted(n["file_name"] for n in body["notes"]) == ["one.pdf", "three.pdf"]
    assert len(storage.objects) == 2
    assert all(f"/{alice.id}/" in path for path in storage.objects)


def test_batch_upload_rejects_invalid_files(client, alice, storage):
    response = client.post(
        "/api/notes/upload",
        files=[("files", ("tool.exe", b"MZ", "application/octet-stream"))],
        data={"title": "Week 1"},
        headers=auth_headers(alice),
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "UploadFailed"
    assert error["result"]["failed"] == 1
    assert error["result"]["should_reset_form"] is False
    assert storage.objects == {}


def test_batch_upload_requires_title(client, alice):
    response = client.post(
        "/api/notes/upload",
        files=[pdf("one.pdf")],
        data={"title": "   "},
        headers=auth_headers(alice),
    )
    assert response.status_code == 400


def test_inactive_user_cannot_list(client, db):
    user = make_user(db, email="gone@example.edu", is_active=False)
    assert client.get("/api/notes", headers=auth_headers(user)).status_code == 403
