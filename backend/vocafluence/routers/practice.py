from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import ActivityLog, LANGUAGES, PracticeSession, Script, User, utcnow
from ..schemas import CamelModel, PracticeSessionOut, ScriptOut, dump, page_info
from ..scoring import calculate_advanced_score, generate_feedback
from ..settings import settings
from ..transcription import TranscriptionError, transcribe_audio
from .. import storage
from .auth import get_current_user
from .users import record_practice_day


router = APIRouter(prefix="/practice", tags=["practice"])
logger = logging.getLogger(__name__)


class StartRequest(CamelModel):
	script_id: str
	language: str


class ClientScoredSubmit(CamelModel):
	score: float = Field(ge=0, le=100)
	accuracy: float = Field(ge=0, le=100)
	fluency: float = Field(ge=0, le=100)
	duration: float = Field(ge=0)
	words_per_minute: Optional[float] = Field(default=None, ge=0)
	audio_url: Optional[str] = None
	feedback: Optional[str] = None


def _own_session(db: Session, session_id: str, user: User) -> PracticeSession:
	row = (
		db.query(PracticeSession)
		.filter(PracticeSession.id == session_id, PracticeSession.user_id == user.id)
		.first()
	)
	if not row:
		raise HTTPException(status_code=404, detail="Practice session not found.")
	return row


@router.post("/start", status_code=201)
async def start(req: StartRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if req.language not in LANGUAGES:
		raise HTTPException(status_code=400, detail="Invalid language.")
	script = db.get(Script, req.script_id)
	if not script:
		raise HTTPException(status_code=404, detail="Script not found.")
	session = PracticeSession(user_id=user.id, script_id=script.id, score=0, accuracy=0, fluency=0, duration=0)
	db.add(session)
	db.commit()
	db.refresh(session)
	return {
		"message": "Practice session started.",
		"session": {"id": session.id, "scriptId": script.id, "language": req.language},
	}


@router.post("/submit")
async def submit(
	script_id: str = Form(..., alias="scriptId"),
	duration: float = Form(..., ge=0),
	audio: Optional[UploadFile] = File(None),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	if audio is None or not audio.filename:
		raise HTTPException(status_code=400, detail="Audio file is required.")
	script = db.get(Script, script_id)
	if not script:
		raise HTTPException(status_code=404, detail="Script not found.")
	data = await storage.read_audio(audio, settings.max_recording_bytes)

	try:
		result = await transcribe_audio(data, script.language, audio.content_type)
	except TranscriptionError as e:
		logger.error("Transcription failed for user %s on script %s: %s", user.id, script.id, e)
		raise HTTPException(status_code=502, detail="Failed to process audio. Please try again.")

	feedback = generate_feedback(script.text_content, result.transcript, duration)
	feedback_text = " ".join(feedback.feedback_comments)
	now = utcnow()
	session = PracticeSession(
		user_id=user.id,
		script_id=script.id,
		score=feedback.score,
		accuracy=feedback.accuracy,
		fluency=feedback.fluency,
		duration=duration,
		words_per_minute=feedback.words_per_minute,
		feedback=feedback_text,
		transcript=result.transcript,
	)
	db.add(session)
	db.flush()
	db.add(
		ActivityLog(
			user_id=user.id,
			activity_type="practice",
			title=script.title,
			description=f"Reading practice ({script.language}, {script.difficulty})",
			text_content=script.text_content,
			audio_data=data,
			audio_mime_type=audio.content_type,
			score=feedback.score,
			accuracy=feedback.accuracy,
			fluency=feedback.fluency,
			duration=duration,
			transcript=result.transcript,
			feedback=feedback_text,
			related_id=script.id,
		)
	)
	record_practice_day(user, now)
	db.add(user)
	db.commit()
	db.refresh(session)
	logger.info("User %s scored %s on script %s", user.id, session.score, script.id)
	return {
		"message": "Practice session completed successfully.",
		"session": {
			"id": session.id,
			"score": session.score,
			"accuracy": session.accuracy,
			"fluency": session.fluency,
			"duration": session.duration,
			"wordsPerMinute": session.words_per_minute,
			"feedback": session.feedback,
			"feedbackComments": feedback.feedback_comments,
			"advancedScore": calculate_advanced_score(script.text_content, result.transcript, duration),
			"confidence": result.confidence,
			"transcript": session.transcript,
			"originalScript": script.text_content,
		},
	}


@router.put("/{session_id}/submit")
async def submit_client_scored(
	session_id: str,
	req: ClientScoredSubmit,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	session = _own_session(db, session_id, user)
	for field, value in req.model_dump().items():
		setattr(session, field, value)
	db.add(session)
	db.commit()
	db.refresh(session)
	return {"message": "Practice session completed.", "session": dump(PracticeSessionOut, session)}


@router.get("/session/{session_id}")
async def get_session(session_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	session = _own_session(db, session_id, user)
	body = dump(PracticeSessionOut, session)
	script = db.get(Script, session.script_id)
	body["script"] = dump(ScriptOut, script) if script else None
	return {"session": body}


@router.get("/history")
async def history(
	page: int = Query(1, ge=1),
	limit: int = Query(10, ge=1, le=100),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	q = (
		db.query(PracticeSession, Script.title, Script.language)
		.outerjoin(Script, Script.id == PracticeSession.script_id)
		.filter(PracticeSession.user_id == user.id)
	)
	total = q.count()
	rows = q.order_by(PracticeSession.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
	sessions = []
	for session, title, language in rows:
		item = dump(PracticeSessionOut, session)
		item["scriptTitle"] = title
		item["scriptLanguage"] = language
		sessions.append(item)
	return {"sessions": sessions, "pagination": page_info(page, limit, total)}


@router.get("/script/{script_id}")
async def attempts_for_script(script_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	rows = (
		db.query(PracticeSession)
		.filter(PracticeSession.user_id == user.id, PracticeSession.script_id == script_id)
		.order_by(PracticeSession.created_at.desc())
		.all()
	)
	return {"sessions": [dump(PracticeSessionOut, r) for r in rows]}


@router.get("/stats")
async def stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	sessions = db.query(PracticeSession).filter(PracticeSession.user_id == user.id).all()
	n = len(sessions)
	if not n:
		return {
			"totalSessions": 0,
			"avgScore": 0,
			"avgAccuracy": 0,
			"avgFluency": 0,
			"totalDuration": 0,
			"avgWordsPerMinute": 0,
		}
	return {
		"totalSessions": n,
		"avgScore": sum(s.score for s in sessions) / n,
		"avgAccuracy": sum(s.accuracy for s in sessions) / n,
		"avgFluency": sum(s.fluency for s in sessions) / n,
		"totalDuration": sum(s.duration for s in sessions),
		"avgWordsPerMinute": sum(s.words_per_minute or 0 for s in sessions) / n,
	}
