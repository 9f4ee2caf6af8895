from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from google.cloud import speech_v1p1beta1 as speech
from google.api_core.exceptions import GoogleAPIError

from .settings import settings


logger = logging.getLogger(__name__)

LANGUAGE_CODES = {
	"english": "en-US",
	"french": "fr-FR",
	"swahili": "sw-KE",
}

_ENCODINGS = {
	"audio/webm": speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
	"audio/ogg": speech.RecognitionConfig.AudioEncoding.OGG_OPUS,
	"audio/mpeg": speech.RecognitionConfig.AudioEncoding.MP3,
	"audio/mp3": speech.RecognitionConfig.AudioEncoding.MP3,
	"audio/wav": speech.RecognitionConfig.AudioEncoding.LINEAR16,
	"audio/x-wav": speech.RecognitionConfig.AudioEncoding.LINEAR16,
	"audio/flac": speech.RecognitionConfig.AudioEncoding.FLAC,
}


class TranscriptionError(RuntimeError):
	pass


@dataclass
class TranscriptResult:
	transcript: str
	confidence: float


def _encoding_for(content_type: Optional[str]):
	base = (content_type or "").split(";")[0].strip().lower()
	return _ENCODINGS.get(base, speech.RecognitionConfig.AudioEncoding.ENCODING_UNSPECIFIED)


def _recognize(data: bytes, language: str, content_type: Optional[str]) -> TranscriptResult:
	try:
		client = speech.SpeechClient()
	except Exception as e:
		raise TranscriptionError(f"Speech client unavailable: {e}") from e

	config = speech.RecognitionConfig(
		encoding=_encoding_for(content_type),
		language_code=LANGUAGE_CODES.get(language, "en-US"),
		model=settings.speech_model,
		enable_automatic_punctuation=True,
	)
	audio = speech.RecognitionAudio(content=data)
	try:
		response = client.recognize(config=config, audio=audio)
	except GoogleAPIError as e:
		raise TranscriptionError(f"Speech API error: {e}") from e

	pieces = []
	confidences = []
	for result in response.results:
		if not result.alternatives:
			continue
		best = result.alternatives[0]
		pieces.append(best.transcript.strip())
		confidences.append(best.confidence)
	if not pieces:
		return TranscriptResult(transcript="", confidence=0.0)
	return TranscriptResult(
		transcript=" ".join(p for p in pieces if p),
		confidence=sum(confidences) / len(confidences),
	)


async def transcribe_audio(data: bytes, language: str = "english", content_type: Optional[str] = None) -> TranscriptResult:
	"""Transcribe a short recording in the given learning language."""
	if not settings.speech_enabled:
		raise TranscriptionError("Speech transcription is disabled")
	if not data:
		raise TranscriptionError("Empty audio payload received")
	logger.info("Transcribing %d bytes of %s audio (%s)", len(data), language, content_type or "unknown")
	# The Speech client is blocking
	return await asyncio.to_thread(_recognize, data, language, content_type)
