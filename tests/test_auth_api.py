import pytest
from fastapi import status
from app.models.user import User
from app.services import auth as auth_service


def test_login_success(client, hr_user):
    """Test successful login with valid credentials."""
    response = client.post("/api/auth/login", json={"email": hr_user.email, "password": "Password123!"})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "HR"
    assert data["user"]["employee_id"] == hr_user.employee_profile.id


def test_login_invalid_credentials(client):
    """Test login failure with wrong password."""
    response = client.post("/api/auth/login", json={"email": "nonexistent@example.com", "password": "wrong"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["success"] is False
    assert response.json()["errors"][0]["code"] == "AUTH_FAILED"
    assert response.headers["www-authenticate"] == "Bearer"


def test_login_inactive_user(client, db_session, staff_user):
    staff_user.is_active = False
    db_session.commit()
    response = client.post("/api/auth/login", json={"email": staff_user.email, "password": "Password123!"})
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["errors"][0]["code"] == "PERMISSION_DENIED"


def test_me_returns_current_user(client, staff_user, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers(staff_user))
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == staff_user.email
    assert data["employee_id"] == staff_user.employee_profile.id


def test_me_without_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_me_with_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["errors"][0]["msg"] == "Could not validate credentials"
    assert response.json()["errors"][0]["code"] == "AUTH_FAILED"


def test_me_with_token_for_unknown_user(client):
    token = auth_service.create_access_token({"sub": "ghost@example.com", "role": "STAFF"})
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["errors"][0] == {"msg": "User not found", "code": "AUTH_FAILED"}


def test_me_for_deactivated_user(client, db_session, staff_user, auth_headers):
    headers = auth_headers(staff_user)
    staff_user.is_active = False
    db_session.commit()
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["errors"][0]["code"] == "PERMISSION_DENIED"
