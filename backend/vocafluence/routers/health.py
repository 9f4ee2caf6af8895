from fastapi import APIRouter

from ..models import utcnow
from ..settings import settings


router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
	return {"status": "OK", "timestamp": utcnow().isoformat() + "Z"}


def service_info() -> dict:
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"openrouter_configured": bool(settings.openrouter_api_key),
		"speech_enabled": settings.speech_enabled,
		"smtp_configured": settings.email_configured,
	}
