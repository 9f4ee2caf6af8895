import pytest

from vocafluence.gemini_client import GeminiClient, GeminiError
from vocafluence.models import ActivityLog, User
from vocafluence.oral_topics import ORAL_TOPICS
from vocafluence.routers.oral_exam import is_evaluation, parse_evaluation, total_percent

from conftest import audio_file


EVALUATION = (
	"Merci, l'épreuve est terminée. Voici mon évaluation.\n"
	"Cohérence : 4/5\n"
	"Richesse du vocabulaire : 3/5\n"
	"Correction grammaticale : 3/5\n"
	"Prononciation : 4/5\n"
	"Total : 14/20\n"
	"Points forts : argumentation claire, bonne prononciation\n"
	"Axes d'amélioration : accords du participe passé, connecteurs logiques\n"
	"Commentaire global : une prestation solide."
)


@pytest.fixture
def examiner(monkeypatch):
	"""Scripted examiner; queue replies in ``state["replies"]``."""
	state = {"replies": [], "calls": []}

	async def fake_chat(self, messages, *, system=None, temperature=0.7, max_output_tokens=512):
		state["calls"].append([dict(m) for m in messages])
		return state["replies"].pop(0) if state["replies"] else "Bonjour, commençons l'épreuve."

	monkeypatch.setattr(GeminiClient, "chat", fake_chat)
	return state


def test_parse_evaluation():
	evaluation = parse_evaluation(EVALUATION)
	assert evaluation["coherence"] == 4
	assert evaluation["vocabulaire"] == 3
	assert evaluation["grammaire"] == 3
	assert evaluation["prononciation"] == 4
	assert evaluation["totalScore"] == 14
	assert evaluation["totalOutOf"] == 20
	assert evaluation["pointsForts"] == ["argumentation claire", "bonne prononciation"]
	assert evaluation["axesAmelioration"] == ["accords du participe passé", "connecteurs logiques"]
	assert evaluation["commentaireGlobal"] == EVALUATION
	assert "introduction" not in evaluation


def test_total_percent():
	assert total_percent(parse_evaluation("Total : 18/25")) == 72
	# Without a denominator the mark is read as out of 20
	assert total_percent(parse_evaluation("Total : 15")) == 75
	assert total_percent(parse_evaluation("Total : 30/20")) == 100
	assert total_percent(parse_evaluation("Prononciation : 4/5")) is None


def test_is_evaluation():
	assert is_evaluation(EVALUATION)
	assert not is_evaluation("Pouvez-vous développer votre argument ?")


def test_start_session_with_random_topic(client, db, student, examiner):
	r = client.post("/api/oral-exam/session", headers=student["headers"])
	assert r.status_code == 201, r.text
	body = r.json()
	assert body["aiMessage"] == "Bonjour, commençons l'épreuve."
	assert any(body["question"].startswith(t.title) for t in ORAL_TOPICS)

	[messages] = examiner["calls"]
	assert messages[0]["role"] == "system"
	assert "DELF B2" in messages[0]["content"]
	assert messages[1]["content"].startswith("Sujet de l'examen : ")

	db.expire_all()
	assert db.get(User, student["id"]).ai_requests_used == 1


def test_start_session_with_given_topic(client, student, examiner):
	r = client.post(
		"/api/oral-exam/session",
		json={"questionTitle": "Le télétravail", "questionText": "Faut-il généraliser le télétravail ?", "source": "Le Monde"},
		headers=student["headers"],
	)
	assert r.status_code == 201
	assert r.json()["question"] == "Le télétravail\n\nFaut-il généraliser le télétravail ?\n\nSource : Le Monde"

	r = client.post("/api/oral-exam/session", json={"topicId": "2"}, headers=student["headers"])
	assert r.json()["question"].startswith(ORAL_TOPICS[1].title)


def test_conversation_and_evaluation_logged_once(client, db, student, examiner):
	session_id = client.post("/api/oral-exam/session", headers=student["headers"]).json()["sessionId"]

	examiner["replies"] = ["Pouvez-vous donner un exemple ?"]
	r = client.post(f"/api/oral-exam/session/{session_id}/message", json={"userMessage": "Je pense que oui."}, headers=student["headers"])
	assert r.status_code == 200
	assert r.json()["evaluation"] is None
	assert examiner["calls"][-1][-1] == {"role": "user", "content": "Je pense que oui."}

	examiner["replies"] = [EVALUATION, EVALUATION]
	r = client.post(f"/api/oral-exam/session/{session_id}/message", json={"userMessage": "Merci."}, headers=student["headers"])
	assert r.json()["evaluation"]["totalScore"] == 14
	client.post(f"/api/oral-exam/session/{session_id}/message", json={"userMessage": "Au revoir."}, headers=student["headers"])

	db.expire_all()
	logs = db.query(ActivityLog).filter_by(user_id=student["id"], activity_type="oral_exam").all()
	assert len(logs) == 1
	# 14/20 on the 0-100 activity scale
	assert logs[0].score == 70
	assert logs[0].related_id == session_id

	session = client.get(f"/api/oral-exam/session/{session_id}", headers=student["headers"]).json()["session"]
	# system + opening + 3 exchanges
	assert len(session["messages"]) == 2 + 1 + 3 * 2
	assert session["evaluation"]["coherence"] == 4


def test_sessions_are_private(client, student, other_student, examiner):
	session_id = client.post("/api/oral-exam/session", headers=student["headers"]).json()["sessionId"]
	assert client.get(f"/api/oral-exam/session/{session_id}", headers=other_student["headers"]).status_code == 404
	r = client.post(f"/api/oral-exam/session/{session_id}/message", json={"userMessage": "Salut"}, headers=other_student["headers"])
	assert r.status_code == 404
	assert len(client.get("/api/oral-exam/sessions", headers=student["headers"]).json()["sessions"]) == 1
	assert client.get("/api/oral-exam/sessions", headers=other_student["headers"]).json()["sessions"] == []


def test_ai_quota(client, db, student, examiner):
	user = db.get(User, student["id"])
	user.ai_requests_limit = 1
	db.commit()
	assert client.post("/api/oral-exam/session", headers=student["headers"]).status_code == 201
	r = client.post("/api/oral-exam/session", headers=student["headers"])
	assert r.status_code == 429
	assert len(examiner["calls"]) == 1


def test_examiner_failure_is_bad_gateway_and_free(client, db, student, monkeypatch):
	async def broken_chat(self, messages, **kwargs):
		raise GeminiError("upstream exploded")

	monkeypatch.setattr(GeminiClient, "chat", broken_chat)
	r = client.post("/api/oral-exam/session", headers=student["headers"])
	assert r.status_code == 502

	db.expire_all()
	assert db.get(User, student["id"]).ai_requests_used == 0


def test_transcribe(client, student, transcriber):
	transcriber["text"] = "Je suis d'accord avec l'auteur."
	r = client.post("/api/oral-exam/transcribe", files={"audio": audio_file()}, headers=student["headers"])
	assert r.status_code == 200
	assert r.json() == {"transcript": "Je suis d'accord avec l'auteur.", "confidence": 0.9}
	assert transcriber["calls"][0]["language"] == "french"
	assert client.post("/api/oral-exam/transcribe", headers=student["headers"]).status_code == 400


def test_tts(client, student, monkeypatch):
	spoken = {}

	class FakeTTS:
		def __init__(self, text, lang, slow=False):
			spoken["text"], spoken["lang"] = text, lang

		def write_to_fp(self, fp):
			fp.write(b"ID3-mp3-bytes")

	monkeypatch.setattr("vocafluence.routers.oral_exam.gTTS", FakeTTS)
	r = client.post("/api/oral-exam/tts", json={"text": " Bonjour à tous "}, headers=student["headers"])
	assert r.status_code == 200
	assert r.headers["content-type"] == "audio/mpeg"
	assert r.content == b"ID3-mp3-bytes"
	assert spoken == {"text": "Bonjour à tous", "lang": "fr"}
