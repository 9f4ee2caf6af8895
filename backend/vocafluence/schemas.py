"""Wire schemas shared by the routers.

The client speaks camelCase JSON; Python code uses snake_case. Every model
here derives from ``CamelModel`` so both spellings are accepted on input and
camelCase is produced on output.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


M = TypeVar("M", bound=CamelModel)


def dump(model: Type[M], obj: Any) -> Dict[str, Any]:
	"""Serialize an ORM row (or dict) through ``model`` to a camelCase dict."""
	return model.model_validate(obj).model_dump(by_alias=True, mode="json")


def dump_all(model: Type[M], rows: List[Any]) -> List[Dict[str, Any]]:
	return [dump(model, r) for r in rows]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserSummary(CamelModel):
	id: str
	email: str
	first_name: str
	last_name: str
	role: str


class ReminderSettings(CamelModel):
	enabled: bool = False
	frequency: str = "daily"
	time: str = "09:00"
	timezone: str = "UTC"


class UserOut(UserSummary):
	preferred_language: str
	schedule: Optional[Dict[str, Any]] = None
	status: str
	streak_days: int = 0
	longest_streak: int = 0
	last_practice_date: Optional[datetime] = None
	last_reminder: Optional[datetime] = None
	total_reminders: int = 0
	created_at: datetime
	updated_at: datetime


class Pagination(CamelModel):
	page: int
	limit: int
	total: int
	pages: int


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

class ScriptOut(CamelModel):
	id: str
	title: str
	text_content: str
	language: str
	reference_audio_url: Optional[str] = Field(default=None, serialization_alias="referenceAudioURL")
	uploaded_by: str
	difficulty: str
	category: Optional[str] = None
	description: Optional[str] = None
	tags: List[str] = []
	is_active: bool
	created_at: datetime
	updated_at: datetime


class PracticeSessionOut(CamelModel):
	id: str
	user_id: str
	script_id: str
	score: float
	accuracy: float
	fluency: float
	duration: float
	words_per_minute: Optional[float] = None
	audio_url: Optional[str] = None
	feedback: Optional[str] = None
	transcript: Optional[str] = None
	created_at: datetime
	updated_at: datetime


class ActivityOut(CamelModel):
	id: str
	user_id: str
	activity_type: str
	title: str
	description: Optional[str] = None
	text_content: Optional[str] = None
	audio_url: Optional[str] = None
	has_audio: bool = False
	score: Optional[float] = None
	accuracy: Optional[float] = None
	fluency: Optional[float] = None
	duration: float = 0
	transcript: Optional[str] = None
	feedback: Optional[str] = None
	related_id: Optional[str] = None
	created_at: datetime


def dump_activity(row: Any) -> Dict[str, Any]:
	data = dump(ActivityOut, row)
	data["hasAudio"] = row.audio_data is not None
	return data


class CommentOut(CamelModel):
	id: str
	activity_id: str
	student_id: str
	admin_id: str
	text: str
	reference_audio: Optional[str] = None
	status: str
	created_at: datetime
	updated_at: datetime


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------

class GrammarLessonOut(CamelModel):
	id: str
	language: str
	level: str
	topic_id: str
	topic_name: str
	topic_name_en: str
	day: int
	title: str
	explanation: str
	example_sentences: List[str] = []
	display_order: int = 0
	is_active: bool = True
	created_at: datetime
	updated_at: datetime


class GrammarProgressOut(CamelModel):
	id: str
	user_id: str
	topic_id: str
	language: str
	level: str
	current_day: int
	completed: bool
	scores: Dict[str, int] = {}
	last_accessed_at: datetime
	completed_at: Optional[datetime] = None
	created_at: datetime


# ---------------------------------------------------------------------------
# Oral exam
# ---------------------------------------------------------------------------

class ChatMessage(CamelModel):
	role: str
	content: str


class OralExamSessionOut(CamelModel):
	id: str
	user_id: str
	question: str
	topic_id: Optional[str] = None
	source: Optional[str] = None
	messages: List[ChatMessage] = []
	evaluation: Optional[Dict[str, Any]] = None
	created_at: datetime


def page_info(page: int, limit: int, total: int) -> Dict[str, Any]:
	pages = (total + limit - 1) // limit if limit > 0 else 0
	return dump(Pagination, {"page": page, "limit": limit, "total": total, "pages": pages})
