"""Sample content and admin bootstrap.

Run ``vocafluence-seed scripts|lessons|admin|fix-audio``. Every command is
safe to re-run: rows that already exist are skipped.
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from sqlalchemy.orm import Session

from .db import Base, SessionLocal, engine, ensure_schema
from .grammar_topics import get_topic
from .maintenance import fix_audio_references
from .models import GrammarLesson, Script, User
from .routers.auth import hash_password
from .settings import settings


logger = logging.getLogger(__name__)


SAMPLE_SCRIPTS = [
	{
		"title": "Basic French Greetings",
		"text_content": "Bonjour! Comment allez-vous aujourd'hui? Je m'appelle Marie et je suis ravie de vous rencontrer. Comment vous appelez-vous?",
		"language": "french",
		"difficulty": "beginner",
		"tags": ["greetings", "basic", "introduction"],
	},
	{
		"title": "French Weather Conversation",
		"text_content": "Quel temps fait-il aujourd'hui? Il fait beau et ensoleillé. J'aime quand il fait chaud en été. Et vous, quel temps préférez-vous?",
		"language": "french",
		"difficulty": "intermediate",
		"tags": ["weather", "conversation", "summer"],
	},
	{
		"title": "English Daily Routine",
		"text_content": "Good morning! I wake up at 7 AM every day. First, I brush my teeth and take a shower. Then I have breakfast and go to work. What's your daily routine like?",
		"language": "english",
		"difficulty": "beginner",
		"tags": ["daily routine", "morning", "basic"],
	},
	{
		"title": "English Job Interview",
		"text_content": "Hello, I'm here for the job interview. I have five years of experience in software development. I'm passionate about creating innovative solutions and working in a team environment.",
		"language": "english",
		"difficulty": "intermediate",
		"tags": ["job interview", "professional", "experience"],
	},
	{
		"title": "Swahili Basic Phrases",
		"text_content": "Jambo! Habari yako? Nzuri sana, asante. Jina langu ni Amina. Unatoka wapi? Mimi natoka Tanzania.",
		"language": "swahili",
		"difficulty": "beginner",
		"tags": ["basic phrases", "introduction", "tanzania"],
	},
	{
		"title": "Swahili Market Conversation",
		"text_content": "Karibu! Bei ya mboga ni shilingi elfu tano. Unaweza kupunguza kidogo? Sawa, itakuwa shilingi elfu nne tu. Asante sana!",
		"language": "swahili",
		"difficulty": "intermediate",
		"tags": ["market", "bargaining", "vegetables"],
	},
	{
		"title": "French Restaurant Order",
		"text_content": "Bonjour monsieur! Je voudrais une table pour deux personnes, s'il vous plaît. Avez-vous une table libre? Oui, parfait. Je vais prendre le menu du jour.",
		"language": "french",
		"difficulty": "intermediate",
		"tags": ["restaurant", "ordering", "menu"],
	},
	{
		"title": "English Travel Planning",
		"text_content": "I'm planning a trip to Europe next summer. I want to visit Paris, Rome, and Barcelona. Do you have any recommendations for places to stay? I'm looking for affordable but comfortable accommodations.",
		"language": "english",
		"difficulty": "advanced",
		"tags": ["travel", "planning", "europe"],
	},
]


# (topic_id, day, title, explanation, example sentences)
STARTER_LESSONS = [
	(
		"a1-01", 1, "Introduction to Personal Pronouns",
		"Personal pronouns replace nouns that refer to people. In French they are: je (I), tu (you, informal), "
		"il/elle (he/she), nous (we), vous (you, formal or plural), ils/elles (they). The pronoun decides how the verb is conjugated.",
		["Je suis étudiant.", "Tu es professeur.", "Il est médecin.", "Elle est avocate.", "Nous sommes amis.", "Vous êtes gentils."],
	),
	(
		"a1-01", 2, "Using Personal Pronouns with Verbs",
		"Each pronoun takes its own verb form. With parler (to speak): je parle, tu parles, il/elle parle, "
		"nous parlons, vous parlez, ils/elles parlent.",
		["Je parle français.", "Tu parles anglais.", "Il parle espagnol.", "Nous parlons italien.", "Vous parlez allemand.", "Elles parlent portugais."],
	),
	(
		"a1-02", 1, "The Verb Être (To Be)",
		"Être is irregular: je suis, tu es, il/elle est, nous sommes, vous êtes, ils/elles sont. "
		"It describes states and characteristics.",
		["Je suis content.", "Tu es intelligente.", "Il est grand.", "Elle est petite.", "Nous sommes heureux.", "Ils sont sportifs."],
	),
	(
		"a1-02", 2, "Être with Professions and Nationalities",
		"After être, French drops the article before a profession or nationality: « Je suis médecin », not « Je suis un médecin ».",
		["Je suis dentiste.", "Tu es professeur.", "Il est acteur.", "Nous sommes français.", "Vous êtes anglais.", "Elles sont allemandes."],
	),
	(
		"a1-03", 1, "The Verb Avoir (To Have)",
		"Avoir is irregular: j'ai, tu as, il/elle a, nous avons, vous avez, ils/elles ont. "
		"French also uses avoir to give an age: « J'ai vingt ans ».",
		["J'ai un chat.", "Tu as une voiture.", "Il a faim.", "Nous avons deux enfants.", "Vous avez raison.", "Ils ont vingt ans."],
	),
]


def seed_scripts(db: Session, uploader: User) -> int:
	existing = {t for (t,) in db.query(Script.title).all()}
	added = 0
	for data in SAMPLE_SCRIPTS:
		if data["title"] in existing:
			continue
		db.add(Script(uploaded_by=uploader.id, is_active=True, **data))
		added += 1
	db.commit()
	logger.info("Added %d sample scripts", added)
	return added


def seed_grammar_lessons(db: Session) -> int:
	existing = {(t, d) for (t, d) in db.query(GrammarLesson.topic_id, GrammarLesson.day).all()}
	added = 0
	for topic_id, day, title, explanation, examples in STARTER_LESSONS:
		if (topic_id, day) in existing:
			continue
		topic = get_topic(topic_id)
		db.add(
			GrammarLesson(
				language=topic.language,
				level=topic.level,
				topic_id=topic.id,
				topic_name=topic.french_name,
				topic_name_en=topic.name,
				day=day,
				title=title,
				explanation=explanation,
				example_sentences=examples,
				display_order=topic.order * 100 + day,
			)
		)
		added += 1
	db.commit()
	logger.info("Added %d grammar lessons", added)
	return added


def ensure_admin(db: Session, email: str, password: str, first_name: str = "Admin", last_name: str = "User") -> User:
	email = email.strip().lower()
	user = db.query(User).filter(User.email == email).first()
	if user is not None:
		if user.role != "admin":
			user.role = "admin"
			db.add(user)
			db.commit()
			logger.info("Promoted %s to admin", email)
		return user
	user = User(
		email=email,
		password_hash=hash_password(password),
		first_name=first_name,
		last_name=last_name,
		role="admin",
		ai_requests_limit=settings.ai_requests_limit,
	)
	db.add(user)
	db.commit()
	db.refresh(user)
	logger.info("Created admin account %s", email)
	return user


def _first_admin(db: Session) -> Optional[User]:
	return db.query(User).filter(User.role == "admin").order_by(User.created_at).first()


def parse_args(argv=None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(prog="vocafluence-seed", description="Seed and maintain the VocaFluence database.")
	sub = parser.add_subparsers(dest="command", required=True)
	sub.add_parser("scripts", help="Add the sample reading scripts")
	sub.add_parser("lessons", help="Add the starter grammar lessons")
	admin = sub.add_parser("admin", help="Create or promote an admin account")
	admin.add_argument("--email", default=settings.seed_admin_email)
	admin.add_argument("--password", default=settings.seed_admin_password)
	admin.add_argument("--first-name", default="Admin")
	admin.add_argument("--last-name", default="User")
	sub.add_parser("fix-audio", help="Clear script audio URLs whose file is missing")
	return parser.parse_args(argv)


def main(argv=None) -> int:
	logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
	args = parse_args(argv)
	Base.metadata.create_all(bind=engine)
	ensure_schema()
	db = SessionLocal()
	try:
		if args.command == "scripts":
			uploader = _first_admin(db)
			if uploader is None:
				print("No admin account found; run `vocafluence-seed admin` first.")
				return 1
			print(f"Added {seed_scripts(db, uploader)} script(s).")
		elif args.command == "lessons":
			print(f"Added {seed_grammar_lessons(db)} lesson(s).")
		elif args.command == "admin":
			if not args.email or not args.password:
				print("--email and --password (or SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD) are required.")
				return 1
			user = ensure_admin(db, args.email, args.password, args.first_name, args.last_name)
			print(f"Admin ready: {user.email}")
		elif args.command == "fix-audio":
			print(f"Cleared {fix_audio_references(db)} missing audio reference(s).")
	finally:
		db.close()
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
