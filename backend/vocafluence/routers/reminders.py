from __future__ import annotations
import asyncio
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User, utcnow
from ..reminders import DEFAULT_MESSAGE, REMINDER_FREQUENCIES, next_reminder_at, parse_time, send_reminder
from ..schemas import CamelModel, ReminderSettings
from .auth import get_current_user


router = APIRouter(prefix="/reminders", tags=["reminders"])
logger = logging.getLogger(__name__)


class ToggleRequest(CamelModel):
	enabled: bool


class TriggerRequest(CamelModel):
	message: str | None = None


def _iso(value):
	return value.isoformat() if value else None


def reminder_settings(user: User) -> dict:
	return ReminderSettings(
		enabled=user.reminder_enabled,
		frequency=user.reminder_frequency,
		time=user.reminder_time,
		timezone=user.reminder_timezone,
	).model_dump(by_alias=True)


@router.get("/settings")
async def get_settings(user: User = Depends(get_current_user)):
	return {"reminderSettings": reminder_settings(user)}


@router.put("/settings")
async def update_settings(req: ReminderSettings, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if req.frequency not in REMINDER_FREQUENCIES:
		raise HTTPException(status_code=400, detail="Frequency must be daily or weekly.")
	try:
		h, m = parse_time(req.time)
	except ValueError:
		raise HTTPException(status_code=400, detail="Time must be HH:MM.")
	try:
		ZoneInfo(req.timezone)
	except (ZoneInfoNotFoundError, ValueError, OSError):
		raise HTTPException(status_code=400, detail="Unknown timezone.")
	user.reminder_enabled = req.enabled
	user.reminder_frequency = req.frequency
	user.reminder_time = f"{h:02d}:{m:02d}"
	user.reminder_timezone = req.timezone
	db.add(user)
	db.commit()
	db.refresh(user)
	return {"message": "Reminder settings updated.", "reminderSettings": reminder_settings(user)}


@router.get("/status")
async def status(user: User = Depends(get_current_user)):
	return {
		"enabled": user.reminder_enabled,
		"lastReminder": _iso(user.last_reminder),
		"nextReminder": _iso(next_reminder_at(user)),
	}


@router.post("/toggle")
async def toggle(req: ToggleRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	user.reminder_enabled = req.enabled
	db.add(user)
	db.commit()
	return {"message": f"Reminders {'enabled' if req.enabled else 'disabled'}.", "enabled": user.reminder_enabled}


@router.get("/stats")
async def stats(user: User = Depends(get_current_user)):
	return {
		"totalReminders": user.total_reminders or 0,
		"streakDays": user.streak_days or 0,
		"lastPracticeDate": _iso(user.last_practice_date),
	}


@router.get("/streak")
async def streak(user: User = Depends(get_current_user)):
	return {
		"currentStreak": user.streak_days or 0,
		"longestStreak": user.longest_streak or 0,
		"lastPracticeDate": _iso(user.last_practice_date),
	}


@router.post("/trigger")
@router.post("/test")
async def trigger(
	req: TriggerRequest | None = None,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	now = utcnow()
	message = (req.message if req and req.message else None) or DEFAULT_MESSAGE
	emailed = await asyncio.to_thread(send_reminder, db, user, message, now)
	return {"message": "Reminder triggered successfully.", "emailed": emailed, "timestamp": now.isoformat()}
