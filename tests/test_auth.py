from vocafluence.models import AuthSession, User
from vocafluence.routers import auth as auth_router

from conftest import bearer, register


def test_register_returns_token_and_user(client):
	body = register(client, email="  New.User@Example.com ")
	assert body["message"] == "User registered successfully."
	assert body["token"]
	assert body["user"]["email"] == "new.user@example.com"
	assert body["user"]["role"] == "student"
	assert body["user"]["firstName"] == "Ana"


def test_register_duplicate_email(client):
	register(client)
	r = client.post(
		"/api/auth/register",
		json={"email": "student@example.com", "password": "another1", "firstName": "A", "lastName": "B"},
	)
	assert r.status_code == 409
	assert r.json()["detail"] == "User already exists."


def test_register_validates_password_and_email(client):
	r = client.post("/api/auth/register", json={"email": "x@example.com", "password": "123", "firstName": "A", "lastName": "B"})
	assert r.status_code == 422
	r = client.post("/api/auth/register", json={"email": "not-an-email", "password": "123456", "firstName": "A", "lastName": "B"})
	assert r.status_code == 422


def test_admin_self_registration_is_disabled(client):
	r = client.post(
		"/api/auth/register",
		json={"email": "boss@example.com", "password": "secret123", "firstName": "B", "lastName": "C", "role": "admin"},
	)
	assert r.status_code == 403


def test_admin_self_registration_when_allowed(client, monkeypatch):
	monkeypatch.setattr(auth_router.settings, "allow_admin_registration", True)
	r = client.post(
		"/api/auth/register",
		json={"email": "boss@example.com", "password": "secret123", "firstName": "B", "lastName": "C", "role": "admin"},
	)
	assert r.status_code == 201
	assert r.json()["user"]["role"] == "admin"


def test_login_and_me(client, student):
	r = client.post("/api/auth/login", json={"email": "STUDENT@example.com", "password": "secret123"})
	assert r.status_code == 200
	token = r.json()["token"]
	me = client.get("/api/auth/me", headers=bearer(token))
	assert me.status_code == 200
	assert me.json()["user"]["id"] == student["id"]
	assert me.json()["user"]["status"] == "active"


def test_login_wrong_password(client, student):
	r = client.post("/api/auth/login", json={"email": "student@example.com", "password": "nope-nope"})
	assert r.status_code == 400
	assert r.json()["detail"] == "Invalid credentials."


def test_oauth2_token_form(client, student):
	r = client.post("/api/auth/token", data={"username": "student@example.com", "password": "secret123"})
	assert r.status_code == 200
	assert r.json()["token_type"] == "bearer"
	assert client.get("/api/auth/me", headers=bearer(r.json()["access_token"])).status_code == 200


def test_me_requires_token(client):
	assert client.get("/api/auth/me").status_code == 401
	assert client.get("/api/auth/me", headers=bearer("garbage")).status_code == 401


def test_logout_revokes_token(client, student, db):
	r = client.post("/api/auth/logout", headers=student["headers"])
	assert r.status_code == 200
	assert client.get("/api/auth/me", headers=student["headers"]).status_code == 401
	assert db.query(AuthSession).filter(AuthSession.user_id == student["id"]).count() == 0


def test_suspended_user_is_locked_out(client, student, db):
	user = db.get(User, student["id"])
	user.status = "suspended"
	db.commit()
	assert client.get("/api/auth/me", headers=student["headers"]).status_code == 403
	r = client.post("/api/auth/login", json={"email": "student@example.com", "password": "secret123"})
	assert r.status_code == 403


def test_change_password(client, student):
	r = client.put(
		"/api/auth/change-password",
		json={"currentPassword": "wrong-one", "newPassword": "brandnew1"},
		headers=student["headers"],
	)
	assert r.status_code == 400
	r = client.put(
		"/api/auth/change-password",
		json={"currentPassword": "secret123", "newPassword": "brandnew1"},
		headers=student["headers"],
	)
	assert r.status_code == 200
	assert client.post("/api/auth/login", json={"email": "student@example.com", "password": "brandnew1"}).status_code == 200


def test_forgot_and_reset_password(client, student):
	assert client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"}).status_code == 404

	r = client.post("/api/auth/forgot-password", json={"email": "student@example.com"})
	assert r.status_code == 200
	# No SMTP in tests, so the token comes back in the response
	reset_token = r.json()["resetToken"]

	# A reset token is not a login token
	assert client.get("/api/auth/me", headers=bearer(reset_token)).status_code == 401

	r = client.post("/api/auth/reset-password", json={"token": reset_token, "newPassword": "fresh-pass"})
	assert r.status_code == 200
	assert client.get("/api/auth/me", headers=student["headers"]).status_code == 401
	assert client.post("/api/auth/login", json={"email": "student@example.com", "password": "fresh-pass"}).status_code == 200

	# Works only once
	r = client.post("/api/auth/reset-password", json={"token": reset_token, "newPassword": "again-pass"})
	assert r.status_code == 400


def test_reset_rejects_access_token(client, student):
	r = client.post("/api/auth/reset-password", json={"token": student["token"], "newPassword": "fresh-pass"})
	assert r.status_code == 400


def test_profile_update(client, student):
	r = client.put(
		"/api/auth/profile",
		json={
			"firstName": "Anita",
			"preferredLanguage": "french",
			"schedule": {"frequency": "weekly", "customDays": [], "reminderTime": "18:30"},
			"timezone": "Europe/Paris",
		},
		headers=student["headers"],
	)
	assert r.status_code == 200
	user = r.json()["user"]
	assert user["firstName"] == "Anita"
	assert user["preferredLanguage"] == "french"
	assert user["schedule"]["frequency"] == "weekly"


def test_profile_rejects_unknown_timezone(client, student):
	r = client.put("/api/auth/profile", json={"firstName": "X", "timezone": "Mars/Olympus"}, headers=student["headers"])
	assert r.status_code == 400
	me = client.get("/api/auth/me", headers=student["headers"]).json()["user"]
	assert me["firstName"] == "Ana"
