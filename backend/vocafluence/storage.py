from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import Iterable, Optional

from fastapi import HTTPException, UploadFile

from .settings import settings


logger = logging.getLogger(__name__)

REFERENCE_AUDIO_SUBDIR = "reference-audio"
REFERENCE_AUDIO_URL_PREFIX = f"/uploads/{REFERENCE_AUDIO_SUBDIR}/"
REVIEW_AUDIO_TYPES = ("audio/wav", "audio/mpeg", "audio/mp3", "audio/webm", "audio/ogg")


def upload_root() -> Path:
	root = Path(settings.upload_dir)
	root.mkdir(parents=True, exist_ok=True)
	return root


def reference_audio_dir() -> Path:
	path = upload_root() / REFERENCE_AUDIO_SUBDIR
	path.mkdir(parents=True, exist_ok=True)
	return path


def _base_type(content_type: Optional[str]) -> str:
	return (content_type or "").split(";")[0].strip().lower()


def check_audio_type(file: UploadFile, allowed: Optional[Iterable[str]] = None) -> None:
	ctype = _base_type(file.content_type)
	if allowed is not None:
		if ctype not in allowed:
			raise HTTPException(status_code=415, detail="Invalid file type. Only audio files are allowed.")
	elif not ctype.startswith("audio/"):
		raise HTTPException(status_code=415, detail="Only audio files are allowed")


async def read_audio(file: UploadFile, max_bytes: int, allowed: Optional[Iterable[str]] = None) -> bytes:
	check_audio_type(file, allowed)
	data = await file.read()
	if len(data) > max_bytes:
		raise HTTPException(status_code=413, detail=f"Audio file exceeds {max_bytes // (1024 * 1024)}MB limit")
	if not data:
		raise HTTPException(status_code=400, detail="Audio file is empty")
	return data


def unique_name(prefix: str, original_name: Optional[str]) -> str:
	suffix = Path(original_name or "").suffix.lower()
	return f"{prefix}-{int(time.time() * 1000)}-{random.randint(0, 10**9)}{suffix}"


async def save_reference_audio(file: UploadFile, prefix: str = "referenceAudio", allowed: Optional[Iterable[str]] = None) -> str:
	"""Store an uploaded reference clip and return its file name."""
	data = await read_audio(file, settings.max_reference_audio_bytes, allowed)
	name = unique_name(prefix, file.filename)
	(reference_audio_dir() / name).write_bytes(data)
	logger.info("Stored reference audio %s (%d bytes)", name, len(data))
	return name


def reference_audio_url(name: str) -> str:
	return REFERENCE_AUDIO_URL_PREFIX + name


def reference_audio_path(name: str) -> Path:
	# Only the final path component is honoured
	return reference_audio_dir() / Path(name).name


def name_from_url(url: Optional[str]) -> Optional[str]:
	if not url or not url.startswith(REFERENCE_AUDIO_URL_PREFIX):
		return None
	return url[len(REFERENCE_AUDIO_URL_PREFIX):]


def delete_reference_audio(name: Optional[str]) -> None:
	if not name:
		return
	path = reference_audio_path(name)
	try:
		path.unlink()
	except FileNotFoundError:
		pass
	except OSError as e:
		logger.warning("Could not delete reference audio %s: %s", path, e)
