from __future__ import annotations
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
	Boolean,
	Column,
	DateTime,
	Float,
	ForeignKey,
	Index,
	Integer,
	JSON,
	LargeBinary,
	String,
	Text,
	UniqueConstraint,
)
from .db import Base


LANGUAGES = ("english", "french", "swahili")
ROLES = ("student", "admin")
USER_STATUSES = ("active", "inactive", "suspended")
DIFFICULTIES = ("beginner", "intermediate", "advanced")
ACTIVITY_TYPES = ("practice", "oral_exam", "vocabulary", "listening", "grammar")
COMMENT_STATUSES = ("pending", "reviewed", "resolved")
GRAMMAR_LEVELS = ("A1", "A2", "B1", "B2", "C1")


def utcnow() -> datetime:
	# Naive UTC, as stored by SQLite
	return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
	return uuid.uuid4().hex


class User(Base):
	__tablename__ = "users"
	id = Column(String(32), primary_key=True, default=new_id)
	email = Column(String(256), unique=True, index=True, nullable=False)
	password_hash = Column(String(256), nullable=False)
	first_name = Column(String(128), nullable=False)
	last_name = Column(String(128), nullable=False)
	role = Column(String(16), default="student", nullable=False)
	preferred_language = Column(String(16), default="english", nullable=False)
	# {"frequency": "daily|weekly|custom", "custom_days": [...], "reminder_time": "09:00"}
	schedule = Column(JSON, nullable=True)
	reminder_enabled = Column(Boolean, default=False, nullable=False)
	reminder_frequency = Column(String(16), default="daily", nullable=False)
	reminder_time = Column(String(5), default="09:00", nullable=False)
	reminder_timezone = Column(String(64), default="UTC", nullable=False)
	last_reminder = Column(DateTime, nullable=True)
	total_reminders = Column(Integer, default=0, nullable=False)
	streak_days = Column(Integer, default=0, nullable=False)
	longest_streak = Column(Integer, default=0, nullable=False)
	last_practice_date = Column(DateTime, nullable=True)
	status = Column(String(16), default="active", nullable=False)
	ai_requests_used = Column(Integer, default=0, nullable=False)
	ai_requests_limit = Column(Integer, default=1000, nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

	@property
	def full_name(self) -> str:
		return f"{self.first_name} {self.last_name}".strip()


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# Token jti
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=utcnow, nullable=False)


class Script(Base):
	__tablename__ = "scripts"
	__table_args__ = (Index("ix_scripts_language_active", "language", "is_active"),)
	id = Column(String(32), primary_key=True, default=new_id)
	title = Column(String(200), nullable=False)
	text_content = Column(Text, nullable=False)
	language = Column(String(16), nullable=False)
	reference_audio_url = Column(String(512), nullable=True)
	uploaded_by = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	difficulty = Column(String(16), default="beginner", nullable=False)
	category = Column(String(100), nullable=True)
	description = Column(Text, nullable=True)
	tags = Column(JSON, default=list, nullable=False)
	is_active = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class PracticeSession(Base):
	__tablename__ = "practice_sessions"
	id = Column(String(32), primary_key=True, default=new_id)
	user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	script_id = Column(String(32), ForeignKey("scripts.id", ondelete="CASCADE"), index=True, nullable=False)
	score = Column(Float, default=0, nullable=False)
	accuracy = Column(Float, default=0, nullable=False)
	fluency = Column(Float, default=0, nullable=False)
	duration = Column(Float, default=0, nullable=False)
	words_per_minute = Column(Float, nullable=True)
	audio_url = Column(String(512), nullable=True)
	feedback = Column(Text, nullable=True)
	transcript = Column(Text, nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class ActivityLog(Base):
	__tablename__ = "activity_logs"
	__table_args__ = (Index("ix_activity_user_type_created", "user_id", "activity_type", "created_at"),)
	id = Column(String(32), primary_key=True, default=new_id)
	user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	activity_type = Column(String(16), nullable=False)
	title = Column(String(256), nullable=False)
	description = Column(Text, nullable=True)
	text_content = Column(Text, nullable=True)
	audio_url = Column(String(512), nullable=True)
	audio_data = Column(LargeBinary, nullable=True)
	audio_mime_type = Column(String(64), nullable=True)
	score = Column(Float, nullable=True)
	accuracy = Column(Float, nullable=True)
	fluency = Column(Float, nullable=True)
	duration = Column(Float, default=0, nullable=False)
	transcript = Column(Text, nullable=True)
	feedback = Column(Text, nullable=True)
	# Script, oral exam session or grammar progress this entry refers to
	related_id = Column(String(32), nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Comment(Base):
	__tablename__ = "comments"
	id = Column(String(32), primary_key=True, default=new_id)
	activity_id = Column(String(32), ForeignKey("activity_logs.id", ondelete="CASCADE"), index=True, nullable=False)
	student_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	admin_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	text = Column(Text, nullable=False)
	# File name under the reference-audio upload directory
	reference_audio = Column(String(256), nullable=True)
	status = Column(String(16), default="pending", nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class GrammarLesson(Base):
	__tablename__ = "grammar_lessons"
	__table_args__ = (Index("ix_grammar_lessons_level_topic_day", "level", "topic_id", "day"),)
	id = Column(String(32), primary_key=True, default=new_id)
	language = Column(String(16), default="french", nullable=False)
	level = Column(String(4), nullable=False)
	topic_id = Column(String(16), index=True, nullable=False)
	topic_name = Column(String(256), nullable=False)
	topic_name_en = Column(String(256), nullable=False)
	day = Column(Integer, nullable=False)
	title = Column(String(256), nullable=False)
	explanation = Column(Text, nullable=False)
	example_sentences = Column(JSON, default=list, nullable=False)
	display_order = Column(Integer, default=0, nullable=False)
	is_active = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class GrammarProgress(Base):
	__tablename__ = "grammar_progress"
	__table_args__ = (UniqueConstraint("user_id", "topic_id", name="uq_grammar_progress_user_topic"),)
	id = Column(String(32), primary_key=True, default=new_id)
	user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	topic_id = Column(String(16), nullable=False)
	language = Column(String(16), default="french", nullable=False)
	level = Column(String(4), nullable=False)
	current_day = Column(Integer, default=1, nullable=False)
	completed = Column(Boolean, default=False, index=True, nullable=False)
	# {"day1": 82, "day2": 75, ...}
	scores = Column(JSON, default=dict, nullable=False)
	last_accessed_at = Column(DateTime, default=utcnow, nullable=False)
	completed_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class OralExamSession(Base):
	__tablename__ = "oral_exam_sessions"
	id = Column(String(32), primary_key=True, default=new_id)
	user_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
	question = Column(Text, nullable=False)
	topic_id = Column(String(32), nullable=True)
	source = Column(String(256), nullable=True)
	# [{"role": "system|user|assistant", "content": "..."}]
	messages = Column(JSON, default=list, nullable=False)
	evaluation = Column(JSON, nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
