from datetime import datetime, timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Optional: model override for the oral exam examiner
	gemini_model_examiner: str | None = Field(default=None, validation_alias="GEMINI_MODEL_EXAMINER")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="VocaFluence", validation_alias="OPENROUTER_TITLE")

	# Google Cloud Speech-to-Text (credentials come from GOOGLE_APPLICATION_CREDENTIALS)
	speech_enabled: bool = Field(default=True, validation_alias="SPEECH_ENABLED")
	speech_model: str = Field(default="default", validation_alias="SPEECH_MODEL")

	# Auth
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=24 * 60, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	reset_token_expire_minutes: int = Field(default=60, validation_alias="RESET_TOKEN_EXPIRE_MINUTES")
	bcrypt_rounds: int = Field(default=12, validation_alias="BCRYPT_ROUNDS")
	allow_admin_registration: bool = Field(default=False, validation_alias="ALLOW_ADMIN_REGISTRATION")
	# Seed admin created at startup when both are set
	seed_admin_email: str | None = Field(default=None, validation_alias="SEED_ADMIN_EMAIL")
	seed_admin_password: str | None = Field(default=None, validation_alias="SEED_ADMIN_PASSWORD")

	# Per-user budget of AI examiner calls
	ai_requests_limit: int = Field(default=1000, validation_alias="AI_REQUESTS_LIMIT")

	# Grammar gating
	grammar_passing_score: int = Field(default=60, validation_alias="GRAMMAR_PASSING_SCORE")

	# Uploads
	upload_dir: str = Field(default="uploads", validation_alias="UPLOAD_DIR")
	max_reference_audio_bytes: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_REFERENCE_AUDIO_BYTES")
	max_recording_bytes: int = Field(default=25 * 1024 * 1024, validation_alias="MAX_RECORDING_BYTES")

	# Admin review only considers records created on or after this instant (unset = everything)
	review_since: datetime | None = Field(default=None, validation_alias="REVIEW_SINCE")

	# E-mail
	email_host: str = Field(default="smtp.gmail.com", validation_alias="EMAIL_HOST")
	email_port: int = Field(default=587, validation_alias="EMAIL_PORT")
	email_secure: bool = Field(default=False, validation_alias="EMAIL_SECURE")
	email_user: str | None = Field(default=None, validation_alias="EMAIL_USER")
	email_pass: str | None = Field(default=None, validation_alias="EMAIL_PASS")
	frontend_url: str = Field(default="http://localhost:5173", validation_alias="FRONTEND_URL")

	cors_origins: list[str] = Field(
		default=["https://voca-fluence-client.vercel.app", "http://localhost:5173"],
		validation_alias="CORS_ORIGINS",
	)

	# Background loops (reminders, session cleanup)
	background_jobs_enabled: bool = Field(default=True, validation_alias="BACKGROUND_JOBS_ENABLED")
	reminder_check_seconds: int = Field(default=60, validation_alias="REMINDER_CHECK_SECONDS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def access_token_lifetime(self) -> timedelta:
		# Zero or negative means long lived tokens
		minutes = self.access_token_expire_minutes
		return timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)

	@property
	def email_configured(self) -> bool:
		return bool(self.email_user and self.email_pass)

settings = Settings()
