import os
import tempfile

# Settings and the engine are built at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["BACKGROUND_JOBS_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="vocafluence-uploads-")
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["EMAIL_USER"] = ""
os.environ["EMAIL_PASS"] = ""
os.environ["ALLOW_ADMIN_REGISTRATION"] = "false"
os.environ.pop("OPENROUTER_API_KEY", None)
os.environ.pop("REVIEW_SINCE", None)

import pytest
from fastapi.testclient import TestClient

from vocafluence.db import Base, SessionLocal, engine
from vocafluence.main import app
from vocafluence.models import Script
from vocafluence.seed import ensure_admin
from vocafluence.transcription import TranscriptResult


@pytest.fixture(autouse=True)
def db():
	Base.metadata.create_all(bind=engine)
	session = SessionLocal()
	try:
		yield session
	finally:
		session.close()
		Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
	return TestClient(app)


def bearer(token):
	return {"Authorization": f"Bearer {token}"}


def register(client, email="student@example.com", password="secret123", first_name="Ana", last_name="Lopez"):
	r = client.post(
		"/api/auth/register",
		json={"email": email, "password": password, "firstName": first_name, "lastName": last_name},
	)
	assert r.status_code == 201, r.text
	return r.json()


@pytest.fixture
def student(client):
	body = register(client)
	return {"id": body["user"]["id"], "token": body["token"], "headers": bearer(body["token"])}


@pytest.fixture
def other_student(client):
	body = register(client, email="other@example.com", first_name="Ben", last_name="Okafor")
	return {"id": body["user"]["id"], "token": body["token"], "headers": bearer(body["token"])}


@pytest.fixture
def admin(client, db):
	user = ensure_admin(db, "admin@example.com", "adminpass", "Ada", "Admin")
	r = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "adminpass"})
	assert r.status_code == 200, r.text
	token = r.json()["token"]
	return {"id": user.id, "token": token, "headers": bearer(token)}


@pytest.fixture
def script(db, admin):
	row = Script(
		title="Morning Routine",
		text_content="Every morning I wake up early and drink a cup of coffee.",
		language="english",
		difficulty="beginner",
		tags=["daily"],
		uploaded_by=admin["id"],
	)
	db.add(row)
	db.commit()
	db.refresh(row)
	return row


@pytest.fixture
def transcriber(monkeypatch):
	"""Replaces the speech service; set ``state["text"]`` to what it should hear."""
	state = {"text": "", "confidence": 0.9, "calls": [], "error": None}

	async def fake_transcribe(data, language="english", content_type=None):
		state["calls"].append({"language": language, "content_type": content_type, "size": len(data)})
		if state["error"] is not None:
			raise state["error"]
		return TranscriptResult(transcript=state["text"], confidence=state["confidence"])

	for module in ("practice", "grammar", "oral_exam"):
		monkeypatch.setattr(f"vocafluence.routers.{module}.transcribe_audio", fake_transcribe)
	return state


def audio_file(name="take.webm", content_type="audio/webm", data=b"\x1aE\xdf\xa3fake-webm"):
	return (name, data, content_type)
