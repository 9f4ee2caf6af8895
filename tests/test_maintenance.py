from datetime import timedelta

from vocafluence import seed, storage
from vocafluence.maintenance import fix_audio_references, purge_stale_sessions
from vocafluence.models import AuthSession, GrammarLesson, Script, User, utcnow
from vocafluence.settings import settings


def test_purge_stale_sessions(db, student):
	stale = utcnow() - settings.access_token_lifetime - timedelta(minutes=5)
	db.add(AuthSession(session_id="old-jti", user_id=student["id"], created_at=stale, last_activity_at=stale))
	db.commit()

	assert purge_stale_sessions(db) == 1
	remaining = [s.session_id for s in db.query(AuthSession).all()]
	assert "old-jti" not in remaining
	assert len(remaining) == 1
	assert purge_stale_sessions(db) == 0


def test_purge_honours_long_lived_tokens(db, student, monkeypatch):
	# Zero minutes means 30 day tokens, so a two day old session is still usable
	monkeypatch.setattr(settings, "access_token_expire_minutes", 0)
	for jti, days in (("recent-jti", 2), ("ancient-jti", 31)):
		idle = utcnow() - timedelta(days=days)
		db.add(AuthSession(session_id=jti, user_id=student["id"], created_at=idle, last_activity_at=idle))
	db.commit()

	assert purge_stale_sessions(db) == 1
	remaining = {s.session_id for s in db.query(AuthSession).all()}
	assert "recent-jti" in remaining
	assert "ancient-jti" not in remaining


def test_fix_audio_references(db, admin):
	storage.reference_audio_path("present.mp3").write_bytes(b"ID3")
	rows = {
		"missing": storage.reference_audio_url("missing.mp3"),
		"present": storage.reference_audio_url("present.mp3"),
		"external": "https://cdn.example.com/clip.mp3",
	}
	for title, url in rows.items():
		db.add(Script(title=title, text_content="Text.", language="english", reference_audio_url=url, uploaded_by=admin["id"]))
	db.commit()

	assert fix_audio_references(db) == 1
	urls = {s.title: s.reference_audio_url for s in db.query(Script).all()}
	assert urls == {**rows, "missing": None}


def test_seed_is_idempotent(db, admin):
	uploader = db.get(User, admin["id"])
	assert seed.seed_scripts(db, uploader) == len(seed.SAMPLE_SCRIPTS)
	assert seed.seed_scripts(db, uploader) == 0

	assert seed.seed_grammar_lessons(db) == len(seed.STARTER_LESSONS)
	assert seed.seed_grammar_lessons(db) == 0
	lesson = db.query(GrammarLesson).filter_by(topic_id="a1-01", day=1).one()
	assert lesson.level == "A1"
	assert lesson.topic_name == "Pronoms personnels"
	assert lesson.display_order == 101


def test_ensure_admin_promotes_existing_student(db, student):
	user = seed.ensure_admin(db, "Student@Example.com", "ignored")
	assert user.id == student["id"]
	assert user.role == "admin"
	assert db.query(User).count() == 1


def test_cli(db, capsys):
	assert seed.main(["scripts"]) == 1
	assert "No admin account found" in capsys.readouterr().out

	assert seed.main(["admin", "--email", "root@example.com", "--password", "hunter22"]) == 0
	assert "Admin ready: root@example.com" in capsys.readouterr().out

	assert seed.main(["lessons"]) == 0
	assert f"Added {len(seed.STARTER_LESSONS)} lesson(s)." in capsys.readouterr().out
	assert seed.main(["fix-audio"]) == 0
	assert "Cleared 0" in capsys.readouterr().out
