from datetime import timedelta

from vocafluence import storage
from vocafluence.models import Script, utcnow
from vocafluence.routers.scripts import parse_tags

from conftest import audio_file


def _add(db, uploader_id, title, difficulty="beginner", language="english", active=True, age_days=0, category=None):
	row = Script(
		title=title,
		text_content=f"{title} text.",
		language=language,
		difficulty=difficulty,
		uploaded_by=uploader_id,
		is_active=active,
		category=category,
		created_at=utcnow() - timedelta(days=age_days),
	)
	db.add(row)
	db.commit()
	return row


def test_parse_tags():
	assert parse_tags('["a", " b ", ""]') == ["a", "b"]
	assert parse_tags("food, travel") == ["food", "travel"]
	assert parse_tags('"solo"') == ["solo"]
	assert parse_tags(None) == []


def test_list_orders_by_difficulty_then_newest(client, db, admin):
	_add(db, admin["id"], "Advanced one", "advanced")
	_add(db, admin["id"], "Old beginner", "beginner", age_days=3)
	_add(db, admin["id"], "New beginner", "beginner")
	_add(db, admin["id"], "Middle", "intermediate")
	r = client.get("/api/scripts")
	assert r.status_code == 200
	titles = [s["title"] for s in r.json()["scripts"]]
	assert titles == ["New beginner", "Old beginner", "Middle", "Advanced one"]
	assert r.json()["pagination"] == {"page": 1, "limit": 12, "total": 4, "pages": 1}


def test_list_filters(client, db, admin):
	_add(db, admin["id"], "English A", language="english", category="daily")
	_add(db, admin["id"], "French A", language="french")
	_add(db, admin["id"], "Swahili A", language="swahili")
	_add(db, admin["id"], "Hidden", language="english", active=False)
	_add(db, admin["id"], "Ancient", language="english", age_days=30)

	titles = lambda r: sorted(s["title"] for s in r.json()["scripts"])
	assert titles(client.get("/api/scripts", params={"language": "french"})) == ["French A"]
	assert titles(client.get("/api/scripts", params={"languages": "french,swahili"})) == ["French A", "Swahili A"]
	assert titles(client.get("/api/scripts", params={"category": "daily"})) == ["English A"]
	since = (utcnow() - timedelta(days=1)).isoformat()
	assert "Ancient" not in titles(client.get("/api/scripts", params={"fromDate": since}))
	assert titles(client.get("/api/scripts/language/swahili")) == ["Swahili A"]
	assert client.get("/api/scripts/language/klingon").status_code == 400


def test_inactive_scripts_only_for_admins(client, db, admin, student):
	_add(db, admin["id"], "Hidden", active=False)
	params = {"includeInactive": "true"}
	assert client.get("/api/scripts", params=params, headers=student["headers"]).json()["pagination"]["total"] == 0
	assert client.get("/api/scripts", params=params, headers=admin["headers"]).json()["pagination"]["total"] == 1


def test_pagination(client, db, admin):
	for i in range(5):
		_add(db, admin["id"], f"Script {i}")
	r = client.get("/api/scripts", params={"page": 2, "limit": 2})
	assert len(r.json()["scripts"]) == 2
	assert r.json()["pagination"]["pages"] == 3


def test_get_missing_script(client):
	r = client.get("/api/scripts/nope")
	assert r.status_code == 404
	assert r.json()["detail"] == "Script not found."


def test_create_script_with_reference_audio(client, student):
	r = client.post(
		"/api/scripts",
		data={"title": "  My Script ", "textContent": "Hello there.", "language": "english", "tags": "a,b"},
		files={"referenceAudio": audio_file("ref.mp3", "audio/mpeg")},
		headers=student["headers"],
	)
	assert r.status_code == 201, r.text
	created = r.json()["script"]
	assert created["title"] == "My Script"
	assert created["tags"] == ["a", "b"]
	assert created["uploadedBy"] == student["id"]
	url = created["referenceAudioURL"]
	assert url.startswith("/uploads/reference-audio/referenceAudio-")
	assert storage.reference_audio_path(storage.name_from_url(url)).is_file()


def test_create_script_rejects_bad_input(client, student):
	base = {"title": "T", "textContent": "Body", "language": "english"}
	r = client.post("/api/scripts", data={**base, "language": "german"}, headers=student["headers"])
	assert r.status_code == 400
	r = client.post("/api/scripts", data={**base, "difficulty": "expert"}, headers=student["headers"])
	assert r.status_code == 400
	r = client.post("/api/scripts", data={**base, "title": "x" * 201}, headers=student["headers"])
	assert r.status_code == 400
	r = client.post(
		"/api/scripts",
		data=base,
		files={"referenceAudio": ("notes.txt", b"text", "text/plain")},
		headers=student["headers"],
	)
	assert r.status_code == 415
	assert client.post("/api/scripts", data=base).status_code == 401


def test_only_uploader_or_admin_can_edit(client, db, admin, student, other_student):
	r = client.post(
		"/api/scripts",
		data={"title": "Mine", "textContent": "Body", "language": "french"},
		headers=student["headers"],
	)
	script_id = r.json()["script"]["id"]

	r = client.put(f"/api/scripts/{script_id}", data={"title": "Theirs"}, headers=other_student["headers"])
	assert r.status_code == 403

	r = client.put(f"/api/scripts/{script_id}", data={"difficulty": "advanced"}, headers=student["headers"])
	assert r.status_code == 200
	assert r.json()["script"]["difficulty"] == "advanced"
	assert r.json()["script"]["title"] == "Mine"

	r = client.put(f"/api/scripts/{script_id}", data={"isActive": "false"}, headers=admin["headers"])
	assert r.json()["script"]["isActive"] is False

	assert client.delete(f"/api/scripts/{script_id}", headers=other_student["headers"]).status_code == 403


def test_delete_removes_audio_file(client, student):
	r = client.post(
		"/api/scripts",
		data={"title": "With audio", "textContent": "Body", "language": "english"},
		files={"referenceAudio": audio_file("ref.wav", "audio/wav")},
		headers=student["headers"],
	)
	created = r.json()["script"]
	path = storage.reference_audio_path(storage.name_from_url(created["referenceAudioURL"]))
	assert path.is_file()

	r = client.delete(f"/api/scripts/{created['id']}", headers=student["headers"])
	assert r.status_code == 200
	assert not path.exists()
	assert client.get(f"/api/scripts/{created['id']}").status_code == 404


def test_replace_audio(client, student):
	r = client.post(
		"/api/scripts",
		data={"title": "Swap", "textContent": "Body", "language": "english"},
		files={"referenceAudio": audio_file("first.mp3", "audio/mpeg")},
		headers=student["headers"],
	)
	created = r.json()["script"]
	old_path = storage.reference_audio_path(storage.name_from_url(created["referenceAudioURL"]))

	r = client.post(
		f"/api/scripts/{created['id']}/audio",
		files={"audio": audio_file("second.ogg", "audio/ogg")},
		headers=student["headers"],
	)
	assert r.status_code == 200
	new_url = r.json()["script"]["referenceAudioURL"]
	assert new_url != created["referenceAudioURL"]
	assert new_url.endswith(".ogg")
	assert not old_path.exists()

	r = client.post(f"/api/scripts/{created['id']}/audio", headers=student["headers"])
	assert r.status_code == 400
