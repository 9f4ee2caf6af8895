"""Admin review of student activity, plus the student side of feedback.

Mounted under ``/api/admin``. When ``REVIEW_SINCE`` is set, only students,
activities and comments created on or after that instant are considered.
"""

from __future__ import annotations
import logging
from datetime import timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import ActivityLog, COMMENT_STATUSES, Comment, User
from ..schemas import CamelModel, CommentOut, dump, dump_activity
from ..settings import settings
from .. import storage
from .auth import get_current_user, require_admin


router = APIRouter(prefix="/admin", tags=["review"])
logger = logging.getLogger(__name__)


class CommentUpdate(CamelModel):
	status: Optional[str] = None
	text: Optional[str] = None


def _since(q, column):
	cutoff = settings.review_since
	if cutoff is None:
		return q
	if cutoff.tzinfo is not None:
		cutoff = cutoff.astimezone(timezone.utc).replace(tzinfo=None)
	return q.filter(column >= cutoff)


def _names(db: Session, ids) -> Dict[str, User]:
	ids = {i for i in ids if i}
	if not ids:
		return {}
	return {u.id: u for u in db.query(User).filter(User.id.in_(ids)).all()}


def _activity_summary(activity: Optional[ActivityLog]) -> Optional[Dict[str, Any]]:
	if activity is None:
		return None
	return {
		"id": activity.id,
		"title": activity.title,
		"textContent": activity.text_content,
		"activityType": activity.activity_type,
		"createdAt": activity.created_at.isoformat(),
	}


def _person(user: Optional[User]) -> Optional[Dict[str, Any]]:
	if user is None:
		return None
	return {"id": user.id, "name": user.full_name, "email": user.email}


def _comments_out(db: Session, rows: List[Comment]) -> List[Dict[str, Any]]:
	users = _names(db, [r.admin_id for r in rows] + [r.student_id for r in rows])
	activity_ids = {r.activity_id for r in rows}
	activities = (
		{a.id: a for a in db.query(ActivityLog).filter(ActivityLog.id.in_(activity_ids)).all()}
		if activity_ids
		else {}
	)
	out = []
	for r in rows:
		item = dump(CommentOut, r)
		item["admin"] = _person(users.get(r.admin_id))
		item["student"] = _person(users.get(r.student_id))
		item["activity"] = _activity_summary(activities.get(r.activity_id))
		out.append(item)
	return out


def _get_comment(db: Session, comment_id: str) -> Comment:
	comment = db.get(Comment, comment_id)
	if not comment:
		raise HTTPException(status_code=404, detail="Comment not found")
	return comment


def _audio_download(comment: Comment) -> FileResponse:
	if not comment.reference_audio:
		raise HTTPException(status_code=404, detail="Reference audio not found")
	path = storage.reference_audio_path(comment.reference_audio)
	if not path.is_file():
		raise HTTPException(status_code=404, detail="Audio file not found")
	return FileResponse(path, filename=path.name)


@router.get("/review/students")
async def review_students(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	students = _since(db.query(User).filter(User.role == "student"), User.created_at).order_by(User.created_at.desc()).all()
	activity_counts = dict(
		_since(db.query(ActivityLog.user_id, func.count(ActivityLog.id)), ActivityLog.created_at)
		.group_by(ActivityLog.user_id)
		.all()
	)
	pending_counts = dict(
		_since(db.query(Comment.student_id, func.count(Comment.id)).filter(Comment.status == "pending"), Comment.created_at)
		.group_by(Comment.student_id)
		.all()
	)
	return [
		{
			"id": s.id,
			"name": s.full_name,
			"email": s.email,
			"createdAt": s.created_at.isoformat(),
			"activityCount": activity_counts.get(s.id, 0),
			"pendingComments": pending_counts.get(s.id, 0),
		}
		for s in students
	]


@router.get("/review/admins")
async def review_admins(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	admins = db.query(User).filter(User.role == "admin").all()
	rows = (
		_since(db.query(Comment.admin_id, Comment.status, func.count(Comment.id)), Comment.created_at)
		.group_by(Comment.admin_id, Comment.status)
		.all()
	)
	counts: Dict[str, Dict[str, int]] = {}
	for admin_id, status, n in rows:
		counts.setdefault(admin_id, {})[status] = n
	result = []
	for a in admins:
		by_status = counts.get(a.id, {})
		total = sum(by_status.values())
		# Only admins that have left feedback
		if not total:
			continue
		result.append(
			{
				"id": a.id,
				"name": a.full_name,
				"email": a.email,
				"commentCount": total,
				"pendingComments": by_status.get("pending", 0),
				"reviewedComments": by_status.get("reviewed", 0),
			}
		)
	return result


@router.get("/review/students/{student_id}/activities")
async def student_activities(
	student_id: str,
	limit: int = Query(10, ge=1, le=100),
	skip: int = Query(0, ge=0),
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
):
	q = _since(db.query(ActivityLog).filter(ActivityLog.user_id == student_id), ActivityLog.created_at)
	total = q.count()
	rows = q.order_by(ActivityLog.created_at.desc()).offset(skip).limit(limit).all()
	activities = []
	for activity in rows:
		comments = (
			db.query(Comment)
			.filter(Comment.activity_id == activity.id)
			.order_by(Comment.created_at.desc())
			.all()
		)
		item = dump_activity(activity)
		item["commentCount"] = len(comments)
		item["lastComment"] = None
		if comments:
			last = comments[0]
			author = db.get(User, last.admin_id)
			item["lastComment"] = {
				"text": last.text,
				"adminName": author.full_name if author else None,
				"createdAt": last.created_at.isoformat(),
			}
		activities.append(item)
	return {"activities": activities, "total": total}


@router.get("/review/admins/{admin_id}/comments")
async def admin_comments(
	admin_id: str,
	limit: int = Query(20, ge=1, le=100),
	skip: int = Query(0, ge=0),
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
):
	q = _since(db.query(Comment).filter(Comment.admin_id == admin_id), Comment.created_at)
	total = q.count()
	rows = q.order_by(Comment.created_at.desc()).offset(skip).limit(limit).all()
	return {"comments": _comments_out(db, rows), "total": total}


@router.post("/review/comments", status_code=201)
async def create_comment(
	activity_id: Optional[str] = Form(None, alias="activityId"),
	student_id: Optional[str] = Form(None, alias="studentId"),
	text: Optional[str] = Form(None),
	reference_audio: Optional[UploadFile] = File(None, alias="referenceAudio"),
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
):
	if not activity_id or not student_id or not (text or "").strip():
		raise HTTPException(status_code=400, detail="Missing required fields")
	activity = db.get(ActivityLog, activity_id)
	if activity is None or activity.user_id != student_id:
		raise HTTPException(status_code=404, detail="Activity not found for this student")

	audio_name = None
	if reference_audio is not None and reference_audio.filename:
		audio_name = await storage.save_reference_audio(reference_audio, "referenceAudio", storage.REVIEW_AUDIO_TYPES)
	comment = Comment(
		activity_id=activity_id,
		student_id=student_id,
		admin_id=admin.id,
		text=text.strip(),
		reference_audio=audio_name,
		status="pending",
	)
	try:
		db.add(comment)
		db.commit()
	except Exception:
		db.rollback()
		storage.delete_reference_audio(audio_name)
		raise
	db.refresh(comment)
	logger.info("Admin %s added comment to activity %s", admin.id, activity_id)
	return _comments_out(db, [comment])[0]


@router.get("/review/comments/{activity_id}")
async def activity_comments(activity_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	rows = (
		_since(db.query(Comment).filter(Comment.activity_id == activity_id), Comment.created_at)
		.order_by(Comment.created_at.desc())
		.all()
	)
	return _comments_out(db, rows)


@router.put("/review/comments/{comment_id}")
async def update_comment(comment_id: str, req: CommentUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	if req.status is not None and req.status not in COMMENT_STATUSES:
		raise HTTPException(status_code=400, detail="Invalid status")
	comment = _get_comment(db, comment_id)
	if req.status:
		comment.status = req.status
	if req.text and req.text.strip():
		comment.text = req.text.strip()
	db.add(comment)
	db.commit()
	db.refresh(comment)
	logger.info("Admin %s updated comment %s (originally by %s)", admin.id, comment_id, comment.admin_id)
	return _comments_out(db, [comment])[0]


@router.delete("/review/comments/{comment_id}")
async def delete_comment(comment_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	comment = _get_comment(db, comment_id)
	author = db.get(User, comment.admin_id)
	audio_name = comment.reference_audio
	db.delete(comment)
	db.commit()
	storage.delete_reference_audio(audio_name)
	logger.info(
		"Admin %s deleted comment %s (originally by %s)",
		admin.id, comment_id, author.full_name if author else "Unknown",
	)
	return {"message": "Comment deleted"}


@router.get("/review/comments/{comment_id}/reference-audio")
async def admin_reference_audio(comment_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	comment = db.get(Comment, comment_id)
	if not comment:
		raise HTTPException(status_code=404, detail="Reference audio not found")
	return _audio_download(comment)


@router.get("/student/comments/{comment_id}/reference-audio")
async def student_reference_audio(comment_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	comment = db.get(Comment, comment_id)
	if not comment:
		raise HTTPException(status_code=404, detail="Reference audio not found")
	if comment.student_id != user.id:
		raise HTTPException(status_code=403, detail="Forbidden")
	return _audio_download(comment)


@router.get("/student/feedback")
async def student_feedback(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	rows = (
		_since(db.query(Comment).filter(Comment.student_id == user.id), Comment.created_at)
		.order_by(Comment.created_at.desc())
		.all()
	)
	return _comments_out(db, rows)


@router.get("/review/queue")
async def review_queue(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	rows = (
		_since(db.query(Comment).filter(Comment.status == "pending"), Comment.created_at)
		.order_by(Comment.created_at.desc())
		.all()
	)
	return _comments_out(db, rows)
