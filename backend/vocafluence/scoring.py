"""Reading-aloud scoring.

Compares what the student was supposed to read with what the transcription
service heard, and turns the comparison into 0-100 scores plus short
feedback comments.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import List

from .settings import settings


_WORD_RE = re.compile(r"[^\w\s'’-]+", re.UNICODE)


def round_half_up(value: float) -> int:
	# Halves always go up: 72.5 -> 73, 0.5 -> 1
	return int(math.floor(value + 0.5))


@dataclass
class FeedbackResult:
	score: int
	accuracy: int
	fluency: int
	words_per_minute: int
	feedback_comments: List[str] = field(default_factory=list)


def _words(text: str) -> List[str]:
	cleaned = _WORD_RE.sub(" ", (text or "").lower())
	return [w for w in cleaned.split() if w]


def generate_feedback(original_text: str, transcript: str, duration: float) -> FeedbackResult:
	original_words = _words(original_text)
	user_words = _words(transcript)
	original_set = set(original_words)

	matched = sum(1 for w in user_words if w in original_set)
	accuracy = min(100.0, matched / len(original_words) * 100) if original_words else 0.0

	wpm = round_half_up(len(user_words) / duration * 60) if duration and duration > 0 else 0

	fluency = min(100.0, accuracy * 0.7 + min(100, wpm) * 0.3)
	score = round_half_up(accuracy * 0.6 + fluency * 0.4)

	comments = _feedback_comments(accuracy, fluency, len(original_words), len(user_words))
	return FeedbackResult(
		score=score,
		accuracy=round_half_up(accuracy),
		fluency=round_half_up(fluency),
		words_per_minute=wpm,
		feedback_comments=comments,
	)


def _feedback_comments(accuracy: float, fluency: float, original_count: int, user_count: int) -> List[str]:
	comments: List[str] = []
	if accuracy >= 90:
		comments.append("Excellent word accuracy!")
	elif accuracy >= 70:
		comments.append("Good accuracy, keep practicing.")
	elif accuracy >= 50:
		comments.append("Focus on word pronunciation.")
	else:
		comments.append("Review the script carefully.")

	if fluency >= 85:
		comments.append("Great speaking pace!")
	elif fluency >= 60:
		comments.append("Work on speaking speed.")
	else:
		comments.append("Practice reading aloud more.")

	difference = original_count - user_count
	if difference > 3:
		comments.append(f"Skipped {difference} words.")
	elif difference < -2:
		comments.append("Added extra words.")

	while len(comments) < 3:
		comments.append("Keep up the good work!")
	return comments[:3]


def calculate_advanced_score(original_text: str, transcript: str, duration: float) -> int:
	"""Weighted score: 60% word accuracy, 20% timing, 20% completeness.

	Timing assumes half a second per word of the original text.
	"""
	original_words = _words(original_text)
	user_words = _words(transcript)
	if not original_words:
		return 0
	original_set = set(original_words)

	matched = sum(1 for w in user_words if w in original_set)
	word_accuracy = matched / len(original_words) * 100

	expected_duration = len(original_words) * 0.5
	timing_accuracy = max(0.0, 100 - abs(duration - expected_duration) / expected_duration * 100)

	completeness = min(100.0, len(user_words) / len(original_words) * 100)

	final = word_accuracy * 0.6 + timing_accuracy * 0.2 + completeness * 0.2
	return round_half_up(min(100.0, max(0.0, final)))


def passes(score: float) -> bool:
	return score >= settings.grammar_passing_score
