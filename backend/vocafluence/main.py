import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .db import Base, SessionLocal, engine, ensure_schema
from .maintenance import purge_stale_sessions
from .reminders import check_and_send_reminders
from .seed import ensure_admin
from .settings import settings
from . import storage
from .routers import health
from .routers import auth
from .routers import users
from .routers import scripts
from .routers import practice
from .routers import activity
from .routers import review
from .routers import grammar
from .routers import oral_exam
from .routers import reminders

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logging.getLogger("passlib").setLevel(logging.ERROR)
logger = logging.getLogger(__name__)

app = FastAPI(title="VocaFluence API")
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

for module in (health, auth, users, scripts, practice, activity, review, grammar, oral_exam, reminders):
	app.include_router(module.router, prefix="/api")

# Reference audio uploaded for scripts and review comments
app.mount("/uploads", StaticFiles(directory=storage.upload_root()), name="uploads")


@app.get("/info")
def info():
	return health.service_info()


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
	logger.exception("Unhandled error on %s %s", request.method, request.url.path)
	return JSONResponse(status_code=500, content={"detail": "Something went wrong!"})


def _run_job(job, *args):
	db = SessionLocal()
	try:
		return job(db, *args)
	finally:
		db.close()


async def check_reminders_once() -> int:
	# SMTP and the database are blocking, keep them off the event loop
	return await asyncio.to_thread(_run_job, check_and_send_reminders)


async def _reminder_watcher():
	while True:
		await asyncio.sleep(max(1, settings.reminder_check_seconds))
		try:
			await check_reminders_once()
		except Exception:
			logger.exception("Reminder check failed")


async def _cleanup_watcher():
	# Run once at startup, then daily
	while True:
		try:
			await asyncio.to_thread(_run_job, purge_stale_sessions)
		except Exception:
			logger.exception("Session cleanup failed")
		await asyncio.sleep(24 * 60 * 60)


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	ensure_schema()
	if settings.seed_admin_email and settings.seed_admin_password:
		_run_job(ensure_admin, settings.seed_admin_email, settings.seed_admin_password)
	if settings.background_jobs_enabled:
		asyncio.create_task(_reminder_watcher())
		asyncio.create_task(_cleanup_watcher())
		logger.info("Background jobs started (reminders every %ss)", settings.reminder_check_seconds)
