"""DELF B2 oral exam simulation.

The examiner is played by Gemini. Each session keeps the whole conversation;
once the examiner produces its final assessment the scores are parsed out of
the French text and the session is logged as an ``oral_exam`` activity.
"""

from __future__ import annotations
import asyncio
import logging
import re
from io import BytesIO
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response
from gtts import gTTS, gTTSError
from pydantic import Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..gemini_client import GeminiClient, GeminiError
from ..models import ActivityLog, OralExamSession, User
from ..oral_topics import get_oral_topic, random_topic, topic_prompt
from ..schemas import CamelModel, OralExamSessionOut, dump, dump_all
from ..scoring import round_half_up
from ..settings import settings
from ..transcription import TranscriptionError, transcribe_audio
from .. import storage
from .auth import get_current_user


router = APIRouter(prefix="/oral-exam", tags=["oral-exam"])
logger = logging.getLogger(__name__)

DELF_B2_SYSTEM_PROMPT = """
Vous êtes examinateur officiel du DELF B2. Vous suivez strictement la structure de l'épreuve orale :
1. Accueil et explication rapide du déroulement (en français, 1-2 phrases).
2. Présentation du sujet à l'étudiant (en français, 1 phrase, puis posez la question sélectionnée).
3. Débattez avec l'étudiant, posez des questions de relance, jouez le rôle d'examinateur officiel, restez neutre et professionnel.
4. À la fin, fournissez une évaluation structurée :
- Notez sur 5 : Cohérence, Richesse du vocabulaire, Correction grammaticale, Prononciation.
- Donnez 2 points forts et 2 axes d'amélioration.
- Terminez par un commentaire global.
Toutes vos interventions sont en français. Ne révélez jamais la liste des sujets. Ne sortez jamais de votre rôle d'examinateur.
""".strip()

_EVALUATION_RE = re.compile(
	r"Cohérence|Richesse du vocabulaire|Correction grammaticale|Prononciation|points forts|axes d'amélioration|commentaire global",
	re.IGNORECASE,
)

# key -> label as the examiner writes it
_SCORE_LABELS = {
	"introduction": r"introduction",
	"developpement": r"d[ée]veloppement",
	"conclusion": r"conclusion",
	"coherence": r"coh[ée]rence",
	"vocabulaire": r"vocabulaire",
	"grammaire": r"grammaire|correction grammaticale",
	"prononciation": r"prononciation",
	"connecteurs": r"connecteurs",
	"structure": r"structure",
	"totalScore": r"total",
}
_SCORE_PATTERNS = {
	key: re.compile(rf"(?:{label})[^\d\n]{{0,20}}?(\d+(?:[.,]\d+)?)", re.IGNORECASE)
	for key, label in _SCORE_LABELS.items()
}
_POINTS_FORTS_RE = re.compile(r"points? forts?[:\s]*([^.\n]+)", re.IGNORECASE)
_AXES_RE = re.compile(r"axes? d['’]am[ée]lioration[:\s]*([^.\n]+)", re.IGNORECASE)
_TOTAL_OUT_OF_RE = re.compile(r"total[^\d\n]{0,20}?\d+(?:[.,]\d+)?\s*/\s*(\d+)", re.IGNORECASE)
# Four criteria marked out of 5
DEFAULT_TOTAL_OUT_OF = 20


class StartSessionRequest(CamelModel):
	question_title: Optional[str] = None
	question_text: Optional[str] = None
	source: Optional[str] = None
	topic_id: Optional[str] = None


class MessageRequest(CamelModel):
	user_message: str = Field(min_length=1)


class TTSRequest(CamelModel):
	text: str = Field(min_length=1, max_length=5000)


def is_evaluation(text: str) -> bool:
	return bool(_EVALUATION_RE.search(text or ""))


def _split_items(raw: str) -> List[str]:
	return [p.strip(" -•*") for p in re.split(r"[,;]", raw) if p.strip(" -•*")]


def parse_evaluation(text: str) -> Dict[str, Any]:
	"""Pull section scores and remarks out of the examiner's final message.

	Sections the examiner did not mention are left out; the full message is
	always kept as ``commentaireGlobal``.
	"""
	evaluation: Dict[str, Any] = {}
	for key, pattern in _SCORE_PATTERNS.items():
		m = pattern.search(text)
		if m:
			value = float(m.group(1).replace(",", "."))
			evaluation[key] = int(value) if value.is_integer() else value
	m = _POINTS_FORTS_RE.search(text)
	if m:
		evaluation["pointsForts"] = _split_items(m.group(1))
	m = _AXES_RE.search(text)
	if m:
		evaluation["axesAmelioration"] = _split_items(m.group(1))
	m = _TOTAL_OUT_OF_RE.search(text)
	if m and int(m.group(1)) > 0:
		evaluation["totalOutOf"] = int(m.group(1))
	evaluation["commentaireGlobal"] = text
	return evaluation


def total_percent(evaluation: Dict[str, Any]) -> Optional[int]:
	"""Total mark on the 0-100 scale used by activity scores."""
	total = evaluation.get("totalScore")
	if total is None:
		return None
	out_of = evaluation.get("totalOutOf") or DEFAULT_TOTAL_OUT_OF
	return max(0, min(100, round_half_up(total / out_of * 100)))


def check_ai_quota(user: User) -> None:
	if user.ai_requests_used >= user.ai_requests_limit:
		raise HTTPException(status_code=429, detail="AI request limit reached.")


def charge_ai_request(db: Session, user: User) -> None:
	# Only answered examiner calls count; committed with the session update
	user.ai_requests_used += 1
	db.add(user)


async def _ask_examiner(messages: List[Dict[str, str]]) -> str:
	try:
		client = GeminiClient(model=settings.gemini_model_examiner)
	except ValueError as e:
		logger.error("Examiner unavailable: %s", e)
		raise HTTPException(status_code=502, detail="AI examiner is not available.")
	async with client:
		try:
			return await client.chat(messages, temperature=0.7, max_output_tokens=512)
		except GeminiError as e:
			logger.error("Examiner call failed: %s", e)
			raise HTTPException(status_code=502, detail="AI examiner failed to respond.")


def _own_session(db: Session, session_id: str, user: User) -> OralExamSession:
	row = (
		db.query(OralExamSession)
		.filter(OralExamSession.id == session_id, OralExamSession.user_id == user.id)
		.first()
	)
	if row is None:
		raise HTTPException(status_code=404, detail="Session not found.")
	return row


@router.post("/session", status_code=201)
async def start_session(
	req: Optional[StartSessionRequest] = None,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	req = req or StartSessionRequest()
	topic = get_oral_topic(req.topic_id) if req.topic_id else None
	if req.question_text:
		title = req.question_title or "Sujet"
		source = req.source
		question = f"{title}\n\n{req.question_text}" + (f"\n\nSource : {source}" if source else "")
		topic_id = req.topic_id
	else:
		topic = topic or random_topic()
		question = topic_prompt(topic)
		source = topic.source
		topic_id = str(topic.id)

	check_ai_quota(user)
	messages = [
		{"role": "system", "content": DELF_B2_SYSTEM_PROMPT},
		{"role": "user", "content": f"Sujet de l'examen : {question}"},
	]
	ai_message = await _ask_examiner(messages)
	charge_ai_request(db, user)
	messages.append({"role": "assistant", "content": ai_message})

	session = OralExamSession(user_id=user.id, question=question, topic_id=topic_id, source=source, messages=messages)
	db.add(session)
	db.commit()
	db.refresh(session)
	return {"sessionId": session.id, "question": question, "aiMessage": ai_message}


@router.post("/session/{session_id}/message")
async def send_message(
	session_id: str,
	req: MessageRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	session = _own_session(db, session_id, user)
	check_ai_quota(user)
	messages = list(session.messages or []) + [{"role": "user", "content": req.user_message}]
	ai_message = await _ask_examiner(messages)
	charge_ai_request(db, user)
	messages.append({"role": "assistant", "content": ai_message})
	session.messages = messages

	evaluation = None
	if is_evaluation(ai_message):
		first_evaluation = session.evaluation is None
		evaluation = parse_evaluation(ai_message)
		session.evaluation = evaluation
		if first_evaluation:
			db.add(
				ActivityLog(
					user_id=user.id,
					activity_type="oral_exam",
					title="DELF B2 - Examen oral",
					description=session.question.split("\n", 1)[0],
					text_content=session.question,
					score=total_percent(evaluation),
					feedback=ai_message,
					related_id=session.id,
				)
			)
			logger.info("Oral exam session %s evaluated for user %s", session.id, user.id)
	db.add(session)
	db.commit()
	return {"aiMessage": ai_message, "sessionId": session.id, "evaluation": evaluation}


@router.get("/sessions")
async def list_sessions(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	rows = (
		db.query(OralExamSession)
		.filter(OralExamSession.user_id == user.id)
		.order_by(OralExamSession.created_at.desc())
		.all()
	)
	return {"sessions": dump_all(OralExamSessionOut, rows)}


@router.get("/session/{session_id}")
async def get_session(session_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return {"session": dump(OralExamSessionOut, _own_session(db, session_id, user))}


@router.post("/transcribe")
async def transcribe(audio: Optional[UploadFile] = File(None), user: User = Depends(get_current_user)):
	if audio is None or not audio.filename:
		raise HTTPException(status_code=400, detail="Audio file is required.")
	data = await storage.read_audio(audio, settings.max_recording_bytes)
	try:
		result = await transcribe_audio(data, "french", audio.content_type)
	except TranscriptionError as e:
		logger.error("Oral exam transcription failed for user %s: %s", user.id, e)
		raise HTTPException(status_code=502, detail="Failed to transcribe audio.")
	return {"transcript": result.transcript, "confidence": result.confidence}


def _synthesize(text: str) -> bytes:
	buf = BytesIO()
	gTTS(text=text, lang="fr", slow=False).write_to_fp(buf)
	return buf.getvalue()


@router.post("/tts")
async def tts(req: TTSRequest, user: User = Depends(get_current_user)):
	text = req.text.strip()
	if not text:
		raise HTTPException(status_code=400, detail="Text is required.")
	try:
		data = await asyncio.to_thread(_synthesize, text)
	except (gTTSError, AssertionError) as e:
		logger.error("TTS failed: %s", e)
		raise HTTPException(status_code=502, detail="Text-to-speech failed.")
	return Response(content=data, media_type="audio/mpeg")
