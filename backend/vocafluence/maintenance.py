from __future__ import annotations
import logging
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import AuthSession, Script, utcnow
from .settings import settings
from . import storage


logger = logging.getLogger(__name__)


def purge_stale_sessions(db: Session) -> int:
	# A session idle for longer than a token lives can never be used again
	threshold = utcnow() - settings.access_token_lifetime
	res = db.execute(delete(AuthSession).where(AuthSession.last_activity_at < threshold))
	db.commit()
	removed = res.rowcount or 0
	if removed:
		logger.info("Purged %d stale auth sessions", removed)
	return removed


def fix_audio_references(db: Session) -> int:
	"""Clear reference audio URLs on scripts whose file is gone from disk."""
	fixed = 0
	scripts = db.query(Script).filter(Script.reference_audio_url.isnot(None), Script.reference_audio_url != "").all()
	for script in scripts:
		name = storage.name_from_url(script.reference_audio_url)
		if name is None:
			# Externally hosted audio is left alone
			continue
		if storage.reference_audio_path(name).exists():
			continue
		logger.warning("Missing reference audio for script %r: %s", script.title, script.reference_audio_url)
		script.reference_audio_url = None
		db.add(script)
		fixed += 1
	db.commit()
	logger.info("Checked %d scripts with reference audio, cleared %d", len(scripts), fixed)
	return fixed
