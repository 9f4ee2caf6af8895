import asyncio
from datetime import datetime

import pytest

from vocafluence import main, reminders
from vocafluence.models import User
from vocafluence.reminders import check_and_send_reminders, is_due, next_reminder_at, parse_time


@pytest.fixture
def sent(monkeypatch):
	outbox = []

	def fake_send(email, first_name, message):
		outbox.append((email, message))
		return True

	monkeypatch.setattr(reminders, "send_reminder_email", fake_send)
	return outbox


def _user(db, email="learner@example.com", tz="UTC", time="09:00", frequency="daily", enabled=True, **extra):
	user = User(
		email=email,
		password_hash="x",
		first_name="Lea",
		last_name="Martin",
		reminder_enabled=enabled,
		reminder_time=time,
		reminder_timezone=tz,
		reminder_frequency=frequency,
		**extra,
	)
	db.add(user)
	db.commit()
	return user


def test_parse_time():
	assert parse_time("09:05") == (9, 5)
	assert parse_time("9:05") == (9, 5)
	for bad in ("24:00", "12:60", "12:5", "noon", "12"):
		with pytest.raises(ValueError):
			parse_time(bad)


def test_due_only_inside_window(db):
	user = _user(db)
	assert is_due(user, datetime(2026, 3, 2, 9, 0, 30))
	assert not is_due(user, datetime(2026, 3, 2, 8, 59))
	assert not is_due(user, datetime(2026, 3, 2, 9, 5))


def test_due_respects_timezone(db):
	# 09:00 in Paris is 08:00 UTC in winter
	user = _user(db, tz="Europe/Paris")
	assert is_due(user, datetime(2026, 1, 15, 8, 0))
	assert not is_due(user, datetime(2026, 1, 15, 9, 0))


def test_daily_sends_once_per_day(db):
	user = _user(db, last_reminder=datetime(2026, 3, 2, 9, 0))
	assert not is_due(user, datetime(2026, 3, 2, 9, 0, 30))
	assert is_due(user, datetime(2026, 3, 3, 9, 0))


def test_weekly_waits_seven_days(db):
	user = _user(db, frequency="weekly", last_reminder=datetime(2026, 3, 2, 9, 0))
	assert not is_due(user, datetime(2026, 3, 5, 9, 0))
	assert is_due(user, datetime(2026, 3, 9, 9, 0))


def test_disabled_is_never_due(db):
	user = _user(db, enabled=False)
	assert not is_due(user, datetime(2026, 3, 2, 9, 0))
	assert next_reminder_at(user) is None


def test_next_reminder_at(db):
	user = _user(db, tz="America/New_York", time="18:30")
	# 12:00 UTC is 08:00 in New York (EDT), so the reminder is later today
	assert next_reminder_at(user, datetime(2026, 6, 1, 12, 0)) == datetime(2026, 6, 1, 22, 30)
	# After today's slot it moves to tomorrow
	assert next_reminder_at(user, datetime(2026, 6, 1, 23, 0)) == datetime(2026, 6, 2, 22, 30)


def test_next_weekly_reminder(db):
	user = _user(db, frequency="weekly", last_reminder=datetime(2026, 6, 1, 9, 0))
	assert next_reminder_at(user, datetime(2026, 6, 2, 12, 0)) == datetime(2026, 6, 8, 9, 0)


def test_check_and_send(db, sent):
	now = datetime(2026, 3, 2, 9, 0, 10)
	_user(db, email="due@example.com")
	_user(db, email="later@example.com", time="17:00")
	_user(db, email="off@example.com", enabled=False)
	_user(db, email="suspended@example.com", status="suspended")

	assert check_and_send_reminders(db, now) == 1
	assert sent == [("due@example.com", reminders.DEFAULT_MESSAGE)]
	due = db.query(User).filter_by(email="due@example.com").one()
	assert due.last_reminder == now
	assert due.total_reminders == 1

	# Second sweep in the same window sends nothing
	assert check_and_send_reminders(db, now) == 0


def test_settings_endpoints(client, student):
	r = client.get("/api/reminders/settings", headers=student["headers"])
	assert r.json()["reminderSettings"] == {"enabled": False, "frequency": "daily", "time": "09:00", "timezone": "UTC"}

	new = {"enabled": True, "frequency": "weekly", "time": "7:45", "timezone": "Africa/Nairobi"}
	r = client.put("/api/reminders/settings", json=new, headers=student["headers"])
	assert r.status_code == 200
	assert r.json()["reminderSettings"] == {**new, "time": "07:45"}

	for bad in ({**new, "frequency": "hourly"}, {**new, "time": "25:00"}, {**new, "timezone": "Nowhere/Land"}):
		assert client.put("/api/reminders/settings", json=bad, headers=student["headers"]).status_code == 400

	status = client.get("/api/reminders/status", headers=student["headers"]).json()
	assert status["enabled"] is True
	assert status["lastReminder"] is None
	assert status["nextReminder"] is not None


def test_toggle_and_trigger(client, student, sent):
	r = client.post("/api/reminders/toggle", json={"enabled": True}, headers=student["headers"])
	assert r.json() == {"message": "Reminders enabled.", "enabled": True}

	r = client.post("/api/reminders/trigger", headers=student["headers"])
	assert r.status_code == 200
	assert r.json()["emailed"] is True
	r = client.post("/api/reminders/test", json={"message": "Practice your French!"}, headers=student["headers"])
	assert r.status_code == 200
	assert sent[-1] == ("student@example.com", "Practice your French!")

	stats = client.get("/api/reminders/stats", headers=student["headers"]).json()
	assert stats["totalReminders"] == 2
	assert client.get("/api/reminders/status", headers=student["headers"]).json()["lastReminder"] is not None


def test_streak(client, student):
	r = client.get("/api/reminders/streak", headers=student["headers"]).json()
	assert r == {"currentStreak": 0, "longestStreak": 0, "lastPracticeDate": None}


def _on_event_loop():
	try:
		asyncio.get_running_loop()
	except RuntimeError:
		return False
	return True


def test_trigger_sends_mail_off_the_event_loop(client, student, monkeypatch):
	seen = []

	def fake_send(email, first_name, message):
		seen.append(_on_event_loop())
		return True

	monkeypatch.setattr(reminders, "send_reminder_email", fake_send)
	assert client.post("/api/reminders/trigger", headers=student["headers"]).status_code == 200
	assert seen == [False]


def test_background_check_runs_in_a_worker_thread(monkeypatch):
	seen = []

	def fake_check(db):
		seen.append(_on_event_loop())
		return 3

	monkeypatch.setattr(main, "check_and_send_reminders", fake_check)
	assert asyncio.run(main.check_reminders_once()) == 3
	assert seen == [False]
