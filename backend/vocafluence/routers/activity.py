from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import ACTIVITY_TYPES, ActivityLog, User
from ..schemas import dump_activity
from .auth import get_current_user


router = APIRouter(prefix="/activity", tags=["activity"])

_EXTENSIONS = {
	"audio/webm": "webm",
	"audio/ogg": "ogg",
	"audio/wav": "wav",
	"audio/x-wav": "wav",
	"audio/mpeg": "mp3",
	"audio/mp3": "mp3",
}


def _own_activity(db: Session, activity_id: str, user: User) -> ActivityLog:
	row = db.query(ActivityLog).filter(ActivityLog.id == activity_id, ActivityLog.user_id == user.id).first()
	if not row:
		raise HTTPException(status_code=404, detail="Activity not found")
	return row


@router.get("/history")
async def history(
	type: Optional[str] = None,
	limit: int = Query(20, ge=1, le=100),
	skip: int = Query(0, ge=0),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	q = db.query(ActivityLog).filter(ActivityLog.user_id == user.id)
	# Unknown types are ignored rather than rejected
	if type in ACTIVITY_TYPES:
		q = q.filter(ActivityLog.activity_type == type)
	total = q.count()
	rows = q.order_by(ActivityLog.created_at.desc()).offset(skip).limit(limit).all()
	return {
		"activities": [dump_activity(r) for r in rows],
		"pagination": {"total": total, "limit": limit, "skip": skip, "pages": (total + limit - 1) // limit},
	}


@router.get("/history/{activity_id}")
async def get_activity(activity_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return {"activity": dump_activity(_own_activity(db, activity_id, user))}


@router.get("/history/{activity_id}/audio")
async def get_activity_audio(activity_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = _own_activity(db, activity_id, user)
	if row.audio_data is None:
		raise HTTPException(status_code=404, detail="No audio recording found for this activity")
	media_type = (row.audio_mime_type or "audio/mpeg").split(";")[0]
	ext = _EXTENSIONS.get(media_type, "bin")
	return Response(
		content=row.audio_data,
		media_type=media_type,
		headers={"Content-Disposition": f'attachment; filename="activity-{row.id}.{ext}"'},
	)


@router.get("/categories")
async def categories(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	rows = (
		db.query(ActivityLog.activity_type, func.count(ActivityLog.id), func.max(ActivityLog.created_at))
		.filter(ActivityLog.user_id == user.id)
		.group_by(ActivityLog.activity_type)
		.all()
	)
	result = {t: {"count": 0, "lastActivity": None} for t in ACTIVITY_TYPES}
	for activity_type, count, last in rows:
		result[activity_type] = {"count": count, "lastActivity": last.isoformat() if last else None}
	return {"categories": result}


@router.get("/stats")
async def stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	total, duration, avg_score, avg_accuracy, avg_fluency = (
		db.query(
			func.count(ActivityLog.id),
			func.coalesce(func.sum(ActivityLog.duration), 0),
			func.avg(ActivityLog.score),
			func.avg(ActivityLog.accuracy),
			func.avg(ActivityLog.fluency),
		)
		.filter(ActivityLog.user_id == user.id)
		.one()
	)
	return {
		"stats": {
			"totalActivities": total,
			"totalDuration": float(duration or 0),
			"avgScore": float(avg_score or 0),
			"avgAccuracy": float(avg_accuracy or 0),
			"avgFluency": float(avg_fluency or 0),
		}
	}
