from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import LANGUAGES, PracticeSession, ROLES, Script, USER_STATUSES, User, utcnow
from ..schemas import CamelModel, UserOut, dump, dump_all, page_info
from .auth import ProfileUpdate, apply_profile_update, get_current_user, require_admin


router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


class StatusUpdate(CamelModel):
	status: str


def record_practice_day(user: User, when: Optional[datetime] = None) -> None:
	"""Advance the practice streak for a session finished at ``when`` (UTC)."""
	when = when or utcnow()
	today = when.date()
	last = user.last_practice_date.date() if user.last_practice_date else None
	if last == today:
		pass
	elif last == today - timedelta(days=1):
		user.streak_days = (user.streak_days or 0) + 1
	else:
		user.streak_days = 1
	user.longest_streak = max(user.longest_streak or 0, user.streak_days or 0)
	user.last_practice_date = when


def _current_streak(dates) -> int:
	unique = sorted({d.date() for d in dates}, reverse=True)
	streak = 0
	for i, day in enumerate(unique):
		if i == 0 or unique[i - 1] - day == timedelta(days=1):
			streak += 1
		else:
			break
	return streak


def _averages(sessions) -> dict:
	n = len(sessions)
	if not n:
		return {"avgScore": 0, "avgAccuracy": 0, "avgFluency": 0}
	return {
		"avgScore": sum(s.score for s in sessions) / n,
		"avgAccuracy": sum(s.accuracy for s in sessions) / n,
		"avgFluency": sum(s.fluency for s in sessions) / n,
	}


@router.get("")
async def list_users(
	page: int = Query(1, ge=1),
	limit: int = Query(10, ge=1, le=100),
	role: Optional[str] = None,
	status: Optional[str] = None,
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
):
	q = db.query(User)
	if role:
		if role not in ROLES:
			raise HTTPException(status_code=400, detail="Invalid role.")
		q = q.filter(User.role == role)
	if status:
		if status not in USER_STATUSES:
			raise HTTPException(status_code=400, detail="Invalid status.")
		q = q.filter(User.status == status)
	total = q.count()
	rows = q.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
	return {"users": dump_all(UserOut, rows), "pagination": page_info(page, limit, total)}


@router.put("/profile")
async def update_profile(req: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return apply_profile_update(db, user, req)


@router.get("/stats/overview")
async def stats_overview(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	sessions = db.query(PracticeSession).filter(PracticeSession.user_id == user.id).all()
	dates = [s.created_at for s in sessions]
	last_day = max(dates).replace(hour=0, minute=0, second=0, microsecond=0) if dates else None
	return {
		"totalSessions": len(sessions),
		"totalPracticeTime": sum(s.duration for s in sessions),
		**_averages(sessions),
		"currentStreak": _current_streak(dates),
		"lastPracticeDate": last_day.isoformat() if last_day else None,
	}


@router.get("/stats/languages")
async def stats_languages(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	rows = (
		db.query(PracticeSession, Script.language)
		.join(Script, Script.id == PracticeSession.script_id)
		.filter(PracticeSession.user_id == user.id)
		.all()
	)
	grouped: dict[str, list] = {}
	for session, language in rows:
		grouped.setdefault(language, []).append(session)
	language_stats = {
		language: {
			"sessions": len(sessions),
			"totalTime": sum(s.duration for s in sessions),
			**_averages(sessions),
		}
		for language, sessions in grouped.items()
	}
	return {"languageStats": language_stats}


@router.get("/achievements")
async def achievements(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	sessions = db.query(PracticeSession).filter(PracticeSession.user_id == user.id).all()
	languages = {
		lang
		for (lang,) in db.query(Script.language)
		.join(PracticeSession, PracticeSession.script_id == Script.id)
		.filter(PracticeSession.user_id == user.id)
		.distinct()
	}
	longest = max(user.longest_streak or 0, user.streak_days or 0)
	return {
		"achievements": {
			"firstSession": len(sessions) > 0,
			"tenSessions": len(sessions) >= 10,
			"fiftySessions": len(sessions) >= 50,
			"hundredSessions": len(sessions) >= 100,
			"perfectScore": any(s.score == 100 for s in sessions),
			"streakWeek": longest >= 7,
			"streakMonth": longest >= 30,
			"allLanguages": set(LANGUAGES) <= languages,
		}
	}


@router.get("/streak")
async def streak(user: User = Depends(get_current_user)):
	return {
		"streak": {
			"currentStreak": user.streak_days or 0,
			"longestStreak": user.longest_streak or 0,
			"lastPracticeDate": user.last_practice_date.isoformat() if user.last_practice_date else None,
		}
	}


@router.get("/{user_id}")
async def get_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	row = db.get(User, user_id)
	if not row:
		raise HTTPException(status_code=404, detail="User not found.")
	return {"user": dump(UserOut, row)}


@router.put("/{user_id}/status")
async def update_status(user_id: str, req: StatusUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	if req.status not in USER_STATUSES:
		raise HTTPException(status_code=400, detail="Invalid status.")
	row = db.get(User, user_id)
	if not row:
		raise HTTPException(status_code=404, detail="User not found.")
	row.status = req.status
	db.add(row)
	db.commit()
	db.refresh(row)
	logger.info("Admin %s set user %s status to %s", admin.id, row.id, row.status)
	return {"message": "User status updated successfully.", "user": dump(UserOut, row)}
