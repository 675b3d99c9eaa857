"""
API tests for registration, login, profile and subject routes.
"""
from conftest import auth_headers, make_subject, make_user
from core.config import settings
from core.security import get_password_hash, is_academic_email, verify_password, verify_token


def test_password_hashing():
    hashed = get_password_hash("test_password_123")
    assert verify_password("test_password_123", hashed)
    assert not verify_password("wrong_password", hashed)


def test_academic_email_detection():
    assert is_academic_email("student@cs.example.edu")
    assert is_academic_email("student@ox.ac.uk")
    assert not is_academic_email("student@gmail.com")
    assert not is_academic_email("not-an-email")


def test_register_and_login(client):
    response = client.post("/auth/register", json={
        "email": "Ada@Example.edu",
        "password": "secret123",
        "full_name": "Ada Lovelace",
    })
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["email"] == "ada@example.edu"
    assert user["college_domain"] == "example.edu"
    assert user["college_email"] == "ada@example.edu"
    assert user["role"] == "student"

    login = client.post("/auth/login", json={"email": "ada@example.edu", "password": "secret123"})
    assert login.status_code == 200
    body = login.json()
    assert body["token_type"] == "bearer"
    assert verify_token(body["access_token"])["sub"] == user["id"]
    assert body["user"]["last_login_at"] is not None


def test_register_duplicate_email(client, alice):
    response = client.post("/auth/register", json={"email": alice.email, "password": "secret123"})
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Email already registered"


def test_register_short_password(client):
    response = client.post("/auth/register", json={"email": "x@example.edu", "password": "123"})
    assert response.status_code == 400


def test_register_outside_college_domain(client, monkeypatch):
    monkeypatch.setattr(settings, "college_email_domain", "example.edu")
    response = client.post("/auth/register", json={"email": "x@gmail.com", "password": "secret123"})
    assert response.status_code == 400
    assert "@example.edu" in response.json()["error"]["message"]


def test_login_wrong_password(client, alice):
    response = client.post("/auth/login", json={"email": alice.email, "password": "nope-nope"})
    assert response.status_code == 401


def test_login_deactivated_account(client, db):
    make_user(db, email="gone@example.edu", is_active=False)
    response = client.post("/auth/login", json={"email": "gone@example.edu", "password": "password123"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Account is deactivated"


def test_invalid_token_is_rejected(client):
    response = client.get("/users/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_profile_read_and_update(client, alice):
    assert client.get("/users/me", headers=auth_headers(alice)).json()["email"] == alice.email

    response = client.put("/users/me", json={"major": "Mathematics", "year_of_study": 2},
                          headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["major"] == "Mathematics"
    assert response.json()["full_name"] == "Alice Student"


def test_college_email_verification(client, db):
    user = make_user(db, email="ada@gmail.com")
    response = client.post("/users/me/college-email", json={"college_email": "ada@cs.example.edu"},
                           headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["college_domain"] == "cs.example.edu"

    rejected = client.post("/users/me/college-email", json={"college_email": "ada@yahoo.com"},
                           headers=auth_headers(user))
    assert rejected.status_code == 400
    assert rejected.json()["error"]["message"] == "Invalid college email format"


def test_subjects_cover_own_college_and_shared(client, db, alice):
    make_subject(db, subject_id="math-101", name="Calculus I")
    make_subject(db, subject_id="cs", name="Computer Science", college_domain="general")
    make_subject(db, subject_id="other-phys", name="Physics", college_domain="other.edu")

    response = client.get("/api/subjects", headers=auth_headers(alice))
    assert response.status_code == 200
    assert [s["name"] for s in response.json()] == ["Calculus I", "Computer Science"]


def test_site_config(client):
    body = client.get("/api/config").json()
    assert body["notes_per_page"] == 12
    assert "pdf" in body["allowed_file_types"]
    assert body["college_name"] == settings.college_name
