from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from .emailer import send_reminder_email
from .models import User, utcnow
from .settings import settings


logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Time for your daily practice session!"
REMINDER_FREQUENCIES = ("daily", "weekly")


def user_zone(user: User) -> ZoneInfo:
	try:
		return ZoneInfo(user.reminder_timezone or "UTC")
	except (ZoneInfoNotFoundError, ValueError, OSError):
		return ZoneInfo("UTC")


def parse_time(value: str) -> tuple[int, int]:
	"""Parse ``HH:MM``; raises ValueError for anything else."""
	hours, minutes = value.split(":")
	h, m = int(hours), int(minutes)
	if not (0 <= h <= 23 and 0 <= m <= 59) or len(minutes) != 2:
		raise ValueError(f"invalid time {value!r}")
	return h, m


def _to_local(naive_utc: datetime, zone: ZoneInfo) -> datetime:
	return naive_utc.replace(tzinfo=timezone.utc).astimezone(zone)


def _to_utc(local: datetime) -> datetime:
	return local.astimezone(timezone.utc).replace(tzinfo=None)


def _window() -> timedelta:
	return timedelta(seconds=max(60, settings.reminder_check_seconds))


def _sent_this_period(user: User, now: datetime, zone: ZoneInfo) -> bool:
	if user.last_reminder is None:
		return False
	if user.reminder_frequency == "weekly":
		return now - user.last_reminder < timedelta(days=7)
	return _to_local(user.last_reminder, zone).date() == _to_local(now, zone).date()


def next_reminder_at(user: User, now: Optional[datetime] = None) -> Optional[datetime]:
	"""Next send time (naive UTC) for an enabled reminder, or None."""
	if not user.reminder_enabled:
		return None
	now = now or utcnow()
	zone = user_zone(user)
	try:
		h, m = parse_time(user.reminder_time)
	except ValueError:
		return None
	local_now = _to_local(now, zone)
	candidate = local_now.replace(hour=h, minute=m, second=0, microsecond=0)
	if candidate <= local_now - _window() or (candidate <= local_now and _sent_this_period(user, now, zone)):
		candidate += timedelta(days=1)
	if user.reminder_frequency == "weekly" and user.last_reminder is not None:
		earliest = user.last_reminder + timedelta(days=7)
		while _to_utc(candidate) < earliest:
			candidate += timedelta(days=1)
	return _to_utc(candidate)


def is_due(user: User, now: Optional[datetime] = None) -> bool:
	if not user.reminder_enabled:
		return False
	now = now or utcnow()
	zone = user_zone(user)
	try:
		h, m = parse_time(user.reminder_time)
	except ValueError:
		logger.warning("User %s has an unparseable reminder time %r", user.id, user.reminder_time)
		return False
	local_now = _to_local(now, zone)
	scheduled = local_now.replace(hour=h, minute=m, second=0, microsecond=0)
	if not (scheduled <= local_now < scheduled + _window()):
		return False
	return not _sent_this_period(user, now, zone)


def send_reminder(db: Session, user: User, message: str = DEFAULT_MESSAGE, now: Optional[datetime] = None) -> bool:
	"""E-mail a reminder and record it on the user. Returns whether the mail went out."""
	sent = send_reminder_email(user.email, user.first_name, message)
	user.last_reminder = now or utcnow()
	user.total_reminders = (user.total_reminders or 0) + 1
	db.add(user)
	db.commit()
	logger.info("Reminder recorded for user %s (emailed=%s)", user.id, sent)
	return sent


def check_and_send_reminders(db: Session, now: Optional[datetime] = None) -> int:
	now = now or utcnow()
	count = 0
	users = (
		db.query(User)
		.filter(User.reminder_enabled.is_(True), User.status == "active")
		.all()
	)
	for user in users:
		if is_due(user, now):
			send_reminder(db, user, DEFAULT_MESSAGE, now)
			count += 1
	if count:
		logger.info("Sent %d practice reminders", count)
	return count
