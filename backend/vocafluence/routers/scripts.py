from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy import case
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import DIFFICULTIES, LANGUAGES, Script, User
from ..schemas import ScriptOut, dump, dump_all, page_info
from .. import storage
from .auth import get_current_user, get_optional_user


router = APIRouter(prefix="/scripts", tags=["scripts"])
logger = logging.getLogger(__name__)

_DIFFICULTY_RANK = case(
	{d: i for i, d in enumerate(DIFFICULTIES)},
	value=Script.difficulty,
	else_=len(DIFFICULTIES),
)


def parse_tags(raw: Optional[str]) -> List[str]:
	"""Tags arrive as a JSON array string or a comma separated list."""
	if not raw:
		return []
	try:
		parsed = json.loads(raw)
	except ValueError:
		parsed = raw.split(",")
	if isinstance(parsed, str):
		parsed = [parsed]
	if not isinstance(parsed, list):
		return []
	return [str(t).strip() for t in parsed if str(t).strip()]


def _parse_date(value: Optional[str]) -> Optional[datetime]:
	if not value:
		return None
	try:
		parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
	except ValueError:
		raise HTTPException(status_code=400, detail="Invalid fromDate.")
	if parsed.tzinfo is not None:
		parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
	return parsed


def _check_choice(value: Optional[str], allowed, field: str) -> None:
	if value is not None and value not in allowed:
		raise HTTPException(status_code=400, detail=f"Invalid {field}.")


def _list_scripts(
	db: Session,
	*,
	language: Optional[str],
	languages: Optional[str],
	difficulty: Optional[str],
	category: Optional[str],
	from_date: Optional[str],
	include_inactive: bool,
	page: int,
	limit: int,
):
	q = db.query(Script)
	if languages:
		wanted = [l.strip().lower() for l in languages.split(",") if l.strip()]
		q = q.filter(Script.language.in_(wanted))
	elif language:
		selected = language.lower()
		if selected in LANGUAGES:
			q = q.filter(Script.language == selected)
	if difficulty:
		q = q.filter(Script.difficulty == difficulty)
	if category:
		q = q.filter(Script.category == category)
	since = _parse_date(from_date)
	if since is not None:
		q = q.filter(Script.created_at >= since)
	if not include_inactive:
		q = q.filter(Script.is_active.is_(True))
	total = q.count()
	rows = (
		q.order_by(_DIFFICULTY_RANK, Script.created_at.desc())
		.offset((page - 1) * limit)
		.limit(limit)
		.all()
	)
	return {"scripts": dump_all(ScriptOut, rows), "pagination": page_info(page, limit, total)}


@router.get("")
async def list_scripts(
	language: Optional[str] = None,
	languages: Optional[str] = None,
	difficulty: Optional[str] = None,
	category: Optional[str] = None,
	from_date: Optional[str] = Query(None, alias="fromDate"),
	include_inactive: bool = Query(False, alias="includeInactive"),
	page: int = Query(1, ge=1),
	limit: int = Query(12, ge=1, le=100),
	user: Optional[User] = Depends(get_optional_user),
	db: Session = Depends(get_db),
):
	is_admin = user is not None and user.role == "admin"
	return _list_scripts(
		db,
		language=language,
		languages=languages,
		difficulty=difficulty,
		category=category,
		from_date=from_date,
		include_inactive=include_inactive and is_admin,
		page=page,
		limit=limit,
	)


@router.get("/language/{language}")
async def list_scripts_by_language(
	language: str,
	difficulty: Optional[str] = None,
	page: int = Query(1, ge=1),
	limit: int = Query(12, ge=1, le=100),
	db: Session = Depends(get_db),
):
	if language.lower() not in LANGUAGES:
		raise HTTPException(status_code=400, detail="Invalid language.")
	return _list_scripts(
		db,
		language=language,
		languages=None,
		difficulty=difficulty,
		category=None,
		from_date=None,
		include_inactive=False,
		page=page,
		limit=limit,
	)


def _get_script(db: Session, script_id: str) -> Script:
	script = db.get(Script, script_id)
	if not script:
		raise HTTPException(status_code=404, detail="Script not found.")
	return script


def _check_owner(script: Script, user: User) -> None:
	if user.role != "admin" and script.uploaded_by != user.id:
		raise HTTPException(status_code=403, detail="Only the uploader or an admin can modify this script.")


@router.get("/{script_id}")
async def get_script(script_id: str, db: Session = Depends(get_db)):
	return {"script": dump(ScriptOut, _get_script(db, script_id))}


@router.post("", status_code=201)
async def create_script(
	title: str = Form(...),
	text_content: str = Form(..., alias="textContent"),
	language: str = Form(...),
	difficulty: str = Form("beginner"),
	tags: Optional[str] = Form(None),
	category: Optional[str] = Form(None),
	description: Optional[str] = Form(None),
	reference_audio: Optional[UploadFile] = File(None, alias="referenceAudio"),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	title = title.strip()
	text_content = text_content.strip()
	if not title or not text_content:
		raise HTTPException(status_code=400, detail="Title and text content are required.")
	if len(title) > 200:
		raise HTTPException(status_code=400, detail="Title cannot be more than 200 characters.")
	_check_choice(language, LANGUAGES, "language")
	_check_choice(difficulty, DIFFICULTIES, "difficulty")

	script = Script(
		title=title,
		text_content=text_content,
		language=language,
		difficulty=difficulty,
		tags=parse_tags(tags),
		category=(category or "").strip() or None,
		description=description,
		uploaded_by=user.id,
	)
	if reference_audio is not None and reference_audio.filename:
		name = await storage.save_reference_audio(reference_audio)
		script.reference_audio_url = storage.reference_audio_url(name)
	db.add(script)
	db.commit()
	db.refresh(script)
	logger.info("User %s created script %s", user.id, script.id)
	return {"message": "Script created successfully.", "script": dump(ScriptOut, script)}


@router.put("/{script_id}")
async def update_script(
	script_id: str,
	title: Optional[str] = Form(None),
	text_content: Optional[str] = Form(None, alias="textContent"),
	language: Optional[str] = Form(None),
	difficulty: Optional[str] = Form(None),
	tags: Optional[str] = Form(None),
	category: Optional[str] = Form(None),
	description: Optional[str] = Form(None),
	is_active: Optional[bool] = Form(None, alias="isActive"),
	reference_audio: Optional[UploadFile] = File(None, alias="referenceAudio"),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	script = _get_script(db, script_id)
	_check_owner(script, user)
	_check_choice(language, LANGUAGES, "language")
	_check_choice(difficulty, DIFFICULTIES, "difficulty")
	if title is not None:
		if not title.strip() or len(title.strip()) > 200:
			raise HTTPException(status_code=400, detail="Title must be 1-200 characters.")
		script.title = title.strip()
	if text_content is not None:
		if not text_content.strip():
			raise HTTPException(status_code=400, detail="Text content cannot be empty.")
		script.text_content = text_content.strip()
	if language is not None:
		script.language = language
	if difficulty is not None:
		script.difficulty = difficulty
	if tags is not None:
		script.tags = parse_tags(tags)
	if category is not None:
		script.category = category.strip() or None
	if description is not None:
		script.description = description
	if is_active is not None:
		script.is_active = is_active
	if reference_audio is not None and reference_audio.filename:
		name = await storage.save_reference_audio(reference_audio)
		storage.delete_reference_audio(storage.name_from_url(script.reference_audio_url))
		script.reference_audio_url = storage.reference_audio_url(name)
	db.add(script)
	db.commit()
	db.refresh(script)
	return {"message": "Script updated successfully.", "script": dump(ScriptOut, script)}


@router.delete("/{script_id}")
async def delete_script(script_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	script = _get_script(db, script_id)
	_check_owner(script, user)
	audio_name = storage.name_from_url(script.reference_audio_url)
	db.delete(script)
	db.commit()
	storage.delete_reference_audio(audio_name)
	logger.info("User %s deleted script %s", user.id, script_id)
	return {"message": "Script deleted successfully."}


@router.post("/{script_id}/audio")
async def upload_script_audio(
	script_id: str,
	audio: Optional[UploadFile] = File(None),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	script = _get_script(db, script_id)
	_check_owner(script, user)
	if audio is None or not audio.filename:
		raise HTTPException(status_code=400, detail="No audio file provided.")
	name = await storage.save_reference_audio(audio)
	storage.delete_reference_audio(storage.name_from_url(script.reference_audio_url))
	script.reference_audio_url = storage.reference_audio_url(name)
	db.add(script)
	db.commit()
	db.refresh(script)
	return {"message": "Audio uploaded successfully.", "script": dump(ScriptOut, script)}
