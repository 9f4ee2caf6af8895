"""Daily French grammar course.

Each topic has up to ten reading days. A day is unlocked once every earlier
day has a recorded score; a reading attempt must reach the passing score to
be recorded.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from pydantic import Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..grammar_topics import DAYS_PER_TOPIC, FIRST_TOPIC_ID, TOPICS, GrammarTopic, get_topic, next_topic_after
from ..models import ActivityLog, GRAMMAR_LEVELS, GrammarLesson, GrammarProgress, User, utcnow
from ..schemas import CamelModel, GrammarLessonOut, GrammarProgressOut, dump, dump_all
from ..scoring import generate_feedback, passes, round_half_up
from ..settings import settings
from ..transcription import TranscriptionError, transcribe_audio
from .. import storage
from .auth import get_current_user, require_admin


router = APIRouter(prefix="/grammar", tags=["grammar"])
logger = logging.getLogger(__name__)


class CompleteExamRequest(CamelModel):
	topic_id: str
	score: int = Field(ge=0, le=100)
	feedback: Optional[str] = None


class LessonCreate(CamelModel):
	language: str = "french"
	level: str
	topic_id: str
	topic_name: Optional[str] = None
	topic_name_en: Optional[str] = None
	day: int = Field(ge=1, le=DAYS_PER_TOPIC)
	title: str = Field(min_length=1)
	explanation: str = Field(min_length=1)
	example_sentences: List[str] = Field(min_length=1)


class LessonUpdate(CamelModel):
	title: Optional[str] = None
	explanation: Optional[str] = None
	example_sentences: Optional[List[str]] = None
	is_active: Optional[bool] = None


def topic_out(topic: Optional[GrammarTopic]) -> Optional[Dict[str, Any]]:
	if topic is None:
		return None
	return {
		"id": topic.id,
		"language": topic.language,
		"level": topic.level,
		"topicOrder": topic.order,
		"name": topic.name,
		"frenchName": topic.french_name,
	}


def max_accessible_day(progress: Optional[GrammarProgress]) -> int:
	if progress is None:
		return 1
	return min(DAYS_PER_TOPIC, len(progress.scores or {}) + 1)


def average_score(scores: Dict[str, int]) -> int:
	values = [v for v in (scores or {}).values() if v is not None]
	if not values:
		return 0
	return round_half_up(sum(values) / len(values))


def _progress_for(db: Session, user_id: str, topic_id: str) -> Optional[GrammarProgress]:
	return (
		db.query(GrammarProgress)
		.filter(GrammarProgress.user_id == user_id, GrammarProgress.topic_id == topic_id)
		.first()
	)


def _new_progress(user_id: str, topic: GrammarTopic) -> GrammarProgress:
	return GrammarProgress(
		user_id=user_id,
		topic_id=topic.id,
		language=topic.language,
		level=topic.level,
		current_day=1,
		completed=False,
		scores={},
	)


def _current_progress(db: Session, user_id: str) -> Optional[GrammarProgress]:
	q = db.query(GrammarProgress).filter(GrammarProgress.user_id == user_id)
	row = q.filter(GrammarProgress.completed.is_(False)).order_by(GrammarProgress.created_at).first()
	if row is None:
		row = q.order_by(GrammarProgress.created_at.desc()).first()
	return row


def _find_lesson(db: Session, topic_id: str, day: int, level: Optional[str] = None) -> Optional[GrammarLesson]:
	q = db.query(GrammarLesson).filter(
		GrammarLesson.topic_id == topic_id,
		GrammarLesson.day == day,
		GrammarLesson.language == "french",
	)
	if level:
		q = q.filter(GrammarLesson.level == level)
	return q.first()


def _last_lesson_day(db: Session, topic_id: str) -> int:
	last = db.query(func.max(GrammarLesson.day)).filter(GrammarLesson.topic_id == topic_id).scalar()
	return last or DAYS_PER_TOPIC


def _advance_to_next_topic(db: Session, user_id: str, topic_id: str) -> GrammarProgress:
	"""Create the next topic's progress, or restart it when it already exists."""
	nxt = next_topic_after(topic_id)
	progress = _progress_for(db, user_id, nxt.id)
	if progress is None:
		progress = _new_progress(user_id, nxt)
	else:
		progress.current_day = 1
		progress.completed = False
		progress.completed_at = None
		progress.scores = {}
	db.add(progress)
	return progress


def _locked(unlocked: int) -> HTTPException:
	if unlocked <= 1:
		message = "You must start with Day 1. Complete it first to unlock Day 2."
	else:
		message = f"You can access up to Day {unlocked}. Complete Day {unlocked} first to unlock Day {unlocked + 1}."
	return HTTPException(status_code=403, detail={"message": message, "unlockedDays": unlocked})


@router.get("/today")
async def today(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	progress = _current_progress(db, user.id)
	if progress is None:
		progress = _new_progress(user.id, get_topic(FIRST_TOPIC_ID))
	progress.last_accessed_at = utcnow()
	db.add(progress)
	db.commit()
	db.refresh(progress)

	lesson = _find_lesson(db, progress.topic_id, progress.current_day, progress.level)
	if lesson is None:
		return JSONResponse(
			status_code=404,
			content={
				"detail": "Lesson not found",
				"message": "Lesson content not yet created for this topic. Please create lesson content in the admin panel.",
				"progress": dump(GrammarProgressOut, progress),
			},
		)
	return {
		"success": True,
		"data": {
			"progress": dump(GrammarProgressOut, progress),
			"lesson": dump(GrammarLessonOut, lesson),
			"topic": topic_out(get_topic(progress.topic_id)),
		},
	}


@router.get("/lesson/{topic_id}/{day}")
async def get_lesson(topic_id: str, day: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	try:
		day_num = int(day)
	except ValueError:
		day_num = 0
	if day_num < 1 or day_num > DAYS_PER_TOPIC:
		raise HTTPException(status_code=400, detail="Invalid day number")
	topic = get_topic(topic_id)
	if topic is None:
		raise HTTPException(status_code=404, detail="Topic not found")

	progress = _progress_for(db, user.id, topic_id)
	unlocked = max_accessible_day(progress)
	if day_num > unlocked:
		raise _locked(unlocked)

	lesson = _find_lesson(db, topic_id, day_num, topic.level)
	if lesson is None:
		raise HTTPException(status_code=404, detail="Lesson not found")
	return {
		"success": True,
		"data": dump(GrammarLessonOut, lesson),
		"userProgress": dump(GrammarProgressOut, progress) if progress else None,
	}


@router.get("/available")
async def available(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	lessons = (
		db.query(GrammarLesson)
		.filter(GrammarLesson.language == "french")
		.order_by(GrammarLesson.level, GrammarLesson.topic_id, GrammarLesson.day)
		.all()
	)
	progress = _current_progress(db, user.id)
	if progress is None:
		first_days = [l for l in lessons if l.day == 1]
		return {
			"success": True,
			"data": {"lessons": dump_all(GrammarLessonOut, first_days), "userProgress": None, "maxAccessibleDay": 1},
		}

	unlocked = max_accessible_day(progress)
	scores = progress.scores or {}
	accessible = [l for l in lessons if l.topic_id == progress.topic_id and l.day <= unlocked]
	grouped: Dict[str, Dict[str, Any]] = {}
	for lesson in accessible:
		group = grouped.setdefault(
			lesson.topic_id,
			{
				"topicId": lesson.topic_id,
				"topicName": lesson.topic_name,
				"topicNameEn": lesson.topic_name_en,
				"level": lesson.level,
				"days": [],
			},
		)
		key = f"day{lesson.day}"
		group["days"].append(
			{
				"id": lesson.id,
				"day": lesson.day,
				"title": lesson.title,
				"isCompleted": key in scores,
				"score": scores.get(key),
			}
		)
	return {
		"success": True,
		"data": {
			"lessons": list(grouped.values()),
			"userProgress": dump(GrammarProgressOut, progress),
			"maxAccessibleDay": unlocked,
			"allLessons": dump_all(GrammarLessonOut, accessible),
		},
	}


@router.post("/progress/save-reading")
async def save_reading(
	topic_id: Optional[str] = Form(None, alias="topicId"),
	day: Optional[int] = Form(None),
	duration: float = Form(10),
	audio: Optional[UploadFile] = File(None),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	if not topic_id or not day:
		raise HTTPException(status_code=400, detail="Missing required fields: topicId, day")
	if audio is None or not audio.filename:
		raise HTTPException(status_code=400, detail="Audio file is required")
	topic = get_topic(topic_id)
	if topic is None:
		raise HTTPException(status_code=400, detail="Invalid topic")
	lesson = _find_lesson(db, topic_id, day)
	if lesson is None:
		raise HTTPException(status_code=404, detail="Lesson not found")

	progress = _progress_for(db, user.id, topic_id)
	unlocked = max_accessible_day(progress)
	if day > unlocked:
		raise _locked(unlocked)

	data = await storage.read_audio(audio, settings.max_recording_bytes)
	try:
		result = await transcribe_audio(data, "french", audio.content_type)
	except TranscriptionError as e:
		logger.error("Grammar transcription failed for user %s on %s day %s: %s", user.id, topic_id, day, e)
		raise HTTPException(status_code=502, detail="Failed to evaluate recording")

	expected = " ".join([lesson.explanation] + list(lesson.example_sentences or []))
	feedback = generate_feedback(expected, result.transcript, duration if duration > 0 else 10)
	if not passes(feedback.score):
		minimum = settings.grammar_passing_score
		return JSONResponse(
			status_code=400,
			content={
				"success": False,
				"message": f"Score too low ({feedback.score}/100). You need {minimum}+ to proceed. Please try again.",
				"score": feedback.score,
				"accuracy": feedback.accuracy,
				"fluency": feedback.fluency,
				"feedback": feedback.feedback_comments,
				"minimumRequired": minimum,
			},
		)

	if progress is None:
		progress = _new_progress(user.id, topic)
	scores = dict(progress.scores or {})
	scores[f"day{day}"] = feedback.score
	progress.scores = scores

	# Completion happens once; later re-reads only refresh the day score
	if not progress.completed and day >= _last_lesson_day(db, topic_id):
		progress.completed = True
		progress.completed_at = utcnow()
		_advance_to_next_topic(db, user.id, topic_id)
		db.add(
			ActivityLog(
				user_id=user.id,
				activity_type="grammar",
				title=f"{topic.french_name or topic.name} - Completed",
				description=f"Level: {progress.level}",
				text_content=expected,
				score=average_score(scores),
				duration=0,
				related_id=topic_id,
			)
		)
		logger.info("User %s completed grammar topic %s", user.id, topic_id)
	elif not progress.completed:
		progress.current_day = max(progress.current_day or 1, day + 1)
	db.add(progress)
	db.commit()
	db.refresh(progress)
	return {
		"success": True,
		"message": f"Excellent! Score: {feedback.score}/100. Moving to next lesson...",
		"score": feedback.score,
		"accuracy": feedback.accuracy,
		"fluency": feedback.fluency,
		"feedback": feedback.feedback_comments,
		"transcript": result.transcript,
		"data": dump(GrammarProgressOut, progress),
	}


@router.post("/progress/complete-exam")
async def complete_exam(req: CompleteExamRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	progress = _progress_for(db, user.id, req.topic_id)
	if progress is None:
		raise HTTPException(status_code=404, detail="Progress record not found")
	scores = dict(progress.scores or {})
	scores[f"day{DAYS_PER_TOPIC}"] = req.score
	progress.scores = scores
	if progress.completed:
		nxt = _progress_for(db, user.id, next_topic_after(req.topic_id).id) or _advance_to_next_topic(db, user.id, req.topic_id)
	else:
		progress.completed = True
		progress.completed_at = utcnow()
		nxt = _advance_to_next_topic(db, user.id, req.topic_id)
	db.add(progress)
	db.commit()
	db.refresh(progress)
	db.refresh(nxt)
	return {
		"success": True,
		"message": "Exam completed successfully",
		"data": {
			"completedTopic": dump(GrammarProgressOut, progress),
			"nextTopic": dump(GrammarProgressOut, nxt),
		},
	}


@router.get("/stats")
async def stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	completed = (
		db.query(GrammarProgress)
		.filter(GrammarProgress.user_id == user.id, GrammarProgress.completed.is_(True))
		.count()
	)
	current = (
		db.query(GrammarProgress)
		.filter(GrammarProgress.user_id == user.id, GrammarProgress.completed.is_(False))
		.order_by(GrammarProgress.created_at)
		.first()
	)
	by_level = dict(
		db.query(GrammarProgress.level, func.count(GrammarProgress.id))
		.filter(GrammarProgress.user_id == user.id, GrammarProgress.completed.is_(True))
		.group_by(GrammarProgress.level)
		.all()
	)
	return {
		"success": True,
		"data": {
			"totalCompleted": completed,
			"currentProgress": dump(GrammarProgressOut, current) if current else None,
			"statsByLevel": by_level,
		},
	}


@router.get("/history")
async def history(
	skip: int = Query(0, ge=0),
	limit: int = Query(10, ge=1, le=100),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	q = db.query(GrammarProgress).filter(GrammarProgress.user_id == user.id, GrammarProgress.completed.is_(True))
	total = q.count()
	rows = q.order_by(GrammarProgress.completed_at.desc()).offset(skip).limit(limit).all()
	items = []
	for p in rows:
		topic = get_topic(p.topic_id)
		items.append(
			{
				"id": p.id,
				"topicId": p.topic_id,
				"topicName": (topic.french_name or topic.name) if topic else "Unknown Topic",
				"level": p.level,
				"scores": p.scores or {},
				"avgScore": average_score(p.scores),
				"completedAt": p.completed_at.isoformat() if p.completed_at else None,
				"createdAt": p.created_at.isoformat(),
			}
		)
	return {
		"success": True,
		"data": {
			"history": items,
			"pagination": {"total": total, "pages": (total + limit - 1) // limit, "current": skip // limit + 1},
		},
	}


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

def _get_lesson(db: Session, lesson_id: str) -> GrammarLesson:
	lesson = db.get(GrammarLesson, lesson_id)
	if lesson is None:
		raise HTTPException(status_code=404, detail="Lesson not found")
	return lesson


@router.post("/admin/lesson", status_code=201)
async def create_lesson(req: LessonCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	level = req.level.upper()
	if level not in GRAMMAR_LEVELS:
		raise HTTPException(status_code=400, detail="Invalid level")
	topic = get_topic(req.topic_id)
	if topic is None:
		raise HTTPException(status_code=400, detail="Invalid topic")
	if _find_lesson(db, req.topic_id, req.day) is not None:
		raise HTTPException(status_code=409, detail="A lesson already exists for this topic and day")
	lesson = GrammarLesson(
		language=req.language or "french",
		level=level,
		topic_id=topic.id,
		topic_name=req.topic_name or topic.french_name,
		topic_name_en=req.topic_name_en or topic.name,
		day=req.day,
		title=req.title.strip(),
		explanation=req.explanation,
		example_sentences=[s for s in req.example_sentences if s.strip()],
		display_order=topic.order * 100 + req.day,
		is_active=True,
	)
	db.add(lesson)
	db.commit()
	db.refresh(lesson)
	logger.info("Admin %s created grammar lesson %s day %s", admin.id, topic.id, req.day)
	return {"success": True, "message": "Lesson created successfully", "data": dump(GrammarLessonOut, lesson)}


@router.put("/admin/lesson/{lesson_id}")
async def update_lesson(lesson_id: str, req: LessonUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	lesson = _get_lesson(db, lesson_id)
	if req.title is not None and req.title.strip():
		lesson.title = req.title.strip()
	if req.explanation is not None and req.explanation.strip():
		lesson.explanation = req.explanation
	if req.example_sentences is not None:
		lesson.example_sentences = [s for s in req.example_sentences if s.strip()]
	if req.is_active is not None:
		lesson.is_active = req.is_active
	db.add(lesson)
	db.commit()
	db.refresh(lesson)
	return {"success": True, "message": "Lesson updated successfully", "data": dump(GrammarLessonOut, lesson)}


@router.delete("/admin/lesson/{lesson_id}")
async def delete_lesson(lesson_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	lesson = _get_lesson(db, lesson_id)
	db.delete(lesson)
	db.commit()
	logger.info("Admin %s deleted grammar lesson %s", admin.id, lesson_id)
	return {"success": True, "message": "Lesson deleted successfully"}


@router.get("/admin/lessons/{level}")
async def lessons_for_level(level: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	if level.upper() not in GRAMMAR_LEVELS:
		raise HTTPException(status_code=400, detail="Invalid level")
	rows = (
		db.query(GrammarLesson)
		.filter(GrammarLesson.level == level.upper(), GrammarLesson.language == "french")
		.order_by(GrammarLesson.topic_id, GrammarLesson.day)
		.all()
	)
	return {"success": True, "data": dump_all(GrammarLessonOut, rows)}


@router.get("/admin/topics")
async def admin_topics(admin: User = Depends(require_admin)):
	return {"success": True, "data": [topic_out(t) for t in TOPICS]}
