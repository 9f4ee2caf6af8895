from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import uuid
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import Field, field_validator
import logging

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import User, AuthSession, LANGUAGES, utcnow
from ..schemas import CamelModel, UserSummary, UserOut, dump
from ..emailer import send_password_reset_email, send_welcome_email

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

RESET_PURPOSE = "reset"
SCHEDULE_FREQUENCIES = ("daily", "weekly", "custom")


def _bcrypt_safe(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return password_bytes.decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
	return pwd_context.hash(_bcrypt_safe(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	try:
		return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)
	except ValueError:
		return False


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	"""Return a safe JWT expiry timestamp."""
	delta = expires_delta if expires_delta is not None else settings.access_token_lifetime
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = _resolve_expiry(expires_delta)
	to_encode.update({"exp": expire})
	encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
	return encoded_jwt


def open_session(db: Session, user: User) -> str:
	"""Persist a server-side session and return a bearer token bound to it."""
	session_id = uuid.uuid4().hex
	db.add(AuthSession(session_id=session_id, user_id=user.id))
	db.commit()
	return create_access_token({"sub": user.id, "jti": session_id})


def revoke_sessions(db: Session, user_id: str) -> int:
	removed = db.query(AuthSession).filter(AuthSession.user_id == user_id).delete()
	db.commit()
	return removed


def _password_fingerprint(user: User) -> str:
	# Changes whenever the password does, so a reset link works once
	return user.password_hash[-12:]


def create_reset_token(user: User) -> str:
	return create_access_token(
		{"sub": user.id, "purpose": RESET_PURPOSE, "pwh": _password_fingerprint(user)},
		timedelta(minutes=settings.reset_token_expire_minutes),
	)


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Invalid token.")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		user_id: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if user_id is None or jti is None or payload.get("purpose"):
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# A missing session row means the token was revoked (logout, password reset)
	row = db.get(AuthSession, jti)
	if not row or row.user_id != user_id:
		raise credentials_exception
	user = db.get(User, user_id)
	if user is None:
		raise credentials_exception
	if user.status == "suspended":
		raise HTTPException(status_code=403, detail="Account suspended.")
	row.last_activity_at = utcnow()
	db.add(row)
	db.commit()
	return user


_optional_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def get_optional_user(token: Optional[str] = Depends(_optional_scheme), db: Session = Depends(get_db)) -> Optional[User]:
	"""Like get_current_user, but anonymous callers get None instead of a 401."""
	if not token:
		return None
	try:
		return get_current_user(token, db)
	except HTTPException:
		return None


def get_current_session_id(token: str = Depends(oauth2_scheme)) -> Optional[str]:
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		return None
	return payload.get("jti")


def require_admin(user: User = Depends(get_current_user)) -> User:
	if user.role != "admin":
		raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")
	return user


def require_student(user: User = Depends(get_current_user)) -> User:
	if user.role != "student":
		raise HTTPException(status_code=403, detail="Access denied. Student privileges required.")
	return user


class RegisterRequest(CamelModel):
	email: str
	password: str = Field(min_length=6)
	first_name: str = Field(min_length=1)
	last_name: str = Field(min_length=1)
	role: str = "student"

	@field_validator("email")
	@classmethod
	def _email(cls, v: str) -> str:
		v = (v or "").strip().lower()
		local, _, domain = v.partition("@")
		if not local or "." not in domain:
			raise ValueError("Please enter a valid email")
		return v

	@field_validator("role")
	@classmethod
	def _role(cls, v: str) -> str:
		if v not in ("student", "admin"):
			raise ValueError("Role must be student or admin")
		return v


class LoginRequest(CamelModel):
	email: str
	password: str


class ChangePasswordRequest(CamelModel):
	current_password: str
	new_password: str = Field(min_length=6)


class ForgotPasswordRequest(CamelModel):
	email: str


class ResetPasswordRequest(CamelModel):
	token: str
	new_password: str = Field(min_length=6)


class ScheduleIn(CamelModel):
	frequency: str = "daily"
	custom_days: list[str] = []
	reminder_time: str = "09:00"

	@field_validator("frequency")
	@classmethod
	def _frequency(cls, v: str) -> str:
		if v not in SCHEDULE_FREQUENCIES:
			raise ValueError("frequency must be daily, weekly or custom")
		return v


class ProfileUpdate(CamelModel):
	first_name: Optional[str] = Field(default=None, min_length=1)
	last_name: Optional[str] = Field(default=None, min_length=1)
	preferred_language: Optional[str] = None
	schedule: Optional[ScheduleIn] = None
	timezone: Optional[str] = None

	@field_validator("preferred_language")
	@classmethod
	def _language(cls, v: Optional[str]) -> Optional[str]:
		if v is not None and v not in LANGUAGES:
			raise ValueError("Unsupported language")
		return v


def apply_profile_update(db: Session, user: User, req: ProfileUpdate) -> Dict[str, Any]:
	if req.timezone is not None:
		try:
			ZoneInfo(req.timezone)
		except (ZoneInfoNotFoundError, ValueError, OSError):
			raise HTTPException(status_code=400, detail="Unknown timezone.")
	if req.first_name is not None:
		user.first_name = req.first_name.strip()
	if req.last_name is not None:
		user.last_name = req.last_name.strip()
	if req.preferred_language is not None:
		user.preferred_language = req.preferred_language
	if req.schedule is not None:
		user.schedule = req.schedule.model_dump()
	if req.timezone is not None:
		user.reminder_timezone = req.timezone
	db.add(user)
	db.commit()
	db.refresh(user)
	return {"message": "Profile updated successfully.", "user": dump(UserOut, user)}


def _auth_response(message: str, token: str, user: User) -> Dict[str, Any]:
	return {"message": message, "token": token, "user": dump(UserSummary, user)}


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, background: BackgroundTasks, db: Session = Depends(get_db)):
	if req.role == "admin" and not settings.allow_admin_registration:
		raise HTTPException(status_code=403, detail="Admin registration is disabled.")
	existing = db.query(User).filter(User.email == req.email).first()
	if existing:
		raise HTTPException(status_code=409, detail="User already exists.")
	user = User(
		email=req.email,
		password_hash=hash_password(req.password),
		first_name=req.first_name.strip(),
		last_name=req.last_name.strip(),
		role=req.role,
		ai_requests_limit=settings.ai_requests_limit,
	)
	db.add(user)
	db.commit()
	db.refresh(user)
	logger.info("Registered %s account %s", user.role, user.id)
	background.add_task(send_welcome_email, user.email, user.first_name, user.last_name)
	return _auth_response("User registered successfully.", open_session(db, user), user)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
	user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
	if user and verify_password(password, user.password_hash):
		return user
	return None


def _check_can_login(user: Optional[User]) -> User:
	if not user:
		raise HTTPException(status_code=400, detail="Invalid credentials.")
	if user.status == "suspended":
		raise HTTPException(status_code=403, detail="Account suspended.")
	return user


@router.post("/login")
async def login(req: LoginRequest, db: Session = Depends(get_db)):
	user = _check_can_login(authenticate_user(db, req.email, req.password))
	return _auth_response("Login successful.", open_session(db, user), user)


@router.post("/token")
async def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = _check_can_login(authenticate_user(db, form_data.username, form_data.password))
	return {"access_token": open_session(db, user), "token_type": "bearer"}


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
	return {"user": dump(UserOut, user)}


@router.put("/profile")
async def update_profile(req: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return apply_profile_update(db, user, req)


@router.put("/change-password")
async def change_password(req: ChangePasswordRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if not verify_password(req.current_password, user.password_hash):
		raise HTTPException(status_code=400, detail="Current password is incorrect.")
	user.password_hash = hash_password(req.new_password)
	db.add(user)
	db.commit()
	return {"message": "Password changed successfully."}


@router.post("/forgot-password")
async def forgot_password(req: ForgotPasswordRequest, background: BackgroundTasks, db: Session = Depends(get_db)):
	user = db.query(User).filter(User.email == req.email.strip().lower()).first()
	if not user:
		raise HTTPException(status_code=404, detail="User not found.")
	reset_token = create_reset_token(user)
	body: Dict[str, Any] = {"message": "Password reset email sent."}
	if settings.email_configured:
		background.add_task(send_password_reset_email, user.email, reset_token, user.first_name)
	else:
		# Without SMTP the token has no other way to reach the user
		logger.warning("SMTP not configured; returning reset token for %s in the response", user.id)
		body["resetToken"] = reset_token
	return body


@router.post("/reset-password")
async def reset_password(req: ResetPasswordRequest, db: Session = Depends(get_db)):
	invalid = HTTPException(status_code=400, detail="Invalid or expired reset token.")
	try:
		payload = jwt.decode(req.token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise invalid
	if payload.get("purpose") != RESET_PURPOSE:
		raise invalid
	user = db.get(User, payload["sub"]) if payload.get("sub") else None
	if user is None or payload.get("pwh") != _password_fingerprint(user):
		raise invalid
	user.password_hash = hash_password(req.new_password)
	db.add(user)
	db.commit()
	revoked = revoke_sessions(db, user.id)
	logger.info("Password reset for %s; revoked %d sessions", user.id, revoked)
	return {"message": "Password has been reset successfully."}


@router.post("/logout")
async def logout(
	user: User = Depends(get_current_user),
	session_id: Optional[str] = Depends(get_current_session_id),
	db: Session = Depends(get_db),
):
	if session_id:
		db.query(AuthSession).filter(AuthSession.session_id == session_id).delete()
		db.commit()
	return {"message": "Logged out."}
