from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from .settings import settings


logger = logging.getLogger(__name__)


def _mask(address: str | None) -> str:
	if not address or "@" not in address:
		return "undefined"
	user, domain = address.split("@", 1)
	return f"{user[:2]}***@{domain}"


def send_email(to: str, subject: str, body: str) -> bool:
	"""Send a plain text e-mail over SMTP.

	When EMAIL_USER/EMAIL_PASS are missing the message is only logged.
	"""
	if not settings.email_configured:
		logger.info("Email not configured; would send %r to %s:\n%s", subject, to, body)
		return False

	msg = EmailMessage()
	msg["Subject"] = subject
	msg["From"] = f"VocaFluence <{settings.email_user}>"
	msg["To"] = to
	msg.set_content(body)

	try:
		if settings.email_secure or settings.email_port == 465:
			with smtplib.SMTP_SSL(settings.email_host, settings.email_port, timeout=30) as server:
				server.login(settings.email_user, settings.email_pass)
				server.send_message(msg)
		else:
			with smtplib.SMTP(settings.email_host, settings.email_port, timeout=30) as server:
				server.starttls()
				server.login(settings.email_user, settings.email_pass)
				server.send_message(msg)
	except (smtplib.SMTPException, OSError) as e:
		logger.error("Error sending %r to %s via %s: %s", subject, _mask(to), settings.email_host, e)
		return False
	logger.info("Sent %r to %s", subject, _mask(to))
	return True


def send_password_reset_email(email: str, reset_token: str, first_name: str | None = None) -> bool:
	reset_url = f"{settings.frontend_url.rstrip('/')}/reset-password?token={reset_token}"
	body = (
		f"Hi {first_name or 'there'},\n\n"
		"You requested a password reset for your VocaFluence account.\n\n"
		f"Click this link to set a new password (valid for {settings.reset_token_expire_minutes} minutes):\n"
		f"{reset_url}\n\n"
		"If you didn't request this, you can safely ignore this email.\n"
	)
	return send_email(email, "Password Reset Request - VocaFluence", body)


def send_welcome_email(email: str, first_name: str, last_name: str) -> bool:
	body = (
		f"Welcome {first_name} {last_name}!\n\n"
		"Your VocaFluence account is ready. Record yourself reading scripts, "
		"try the oral exam simulator and work through the daily grammar lessons.\n\n"
		f"Start here: {settings.frontend_url}\n"
	)
	return send_email(email, "Welcome to VocaFluence", body)


def send_reminder_email(email: str, first_name: str, message: str) -> bool:
	body = (
		f"Hi {first_name},\n\n"
		f"{message}\n\n"
		f"Open VocaFluence: {settings.frontend_url}\n"
	)
	return send_email(email, "Your VocaFluence practice reminder", body)
