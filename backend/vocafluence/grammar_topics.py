"""Ordered catalogue of the French grammar course.

Learners move through the topics in ``order``; each topic holds up to ten
daily reading lessons stored in ``grammar_lessons``.
"""

from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional


class GrammarTopic(NamedTuple):
	id: str
	level: str
	order: int
	name: str
	french_name: str
	language: str = "french"


TOPICS: List[GrammarTopic] = [
	GrammarTopic("a1-01", "A1", 1, "Personal Pronouns", "Pronoms personnels"),
	GrammarTopic("a1-02", "A1", 2, "Verb \"To Be\" (Être)", "Le verbe être"),
	GrammarTopic("a1-03", "A1", 3, "Verb \"To Have\" (Avoir)", "Le verbe avoir"),
	GrammarTopic("a1-04", "A1", 4, "Present Indicative - Regular -ER Verbs", "Présent indicatif - verbes réguliers -ER"),
	GrammarTopic("a1-05", "A1", 5, "Present Indicative - Regular -IR Verbs", "Présent indicatif - verbes réguliers -IR"),
	GrammarTopic("a1-06", "A1", 6, "Present Indicative - Regular -RE Verbs", "Présent indicatif - verbes réguliers -RE"),
	GrammarTopic("a1-07", "A1", 7, "Definite Articles", "Les articles définis"),
	GrammarTopic("a1-08", "A1", 8, "Indefinite Articles", "Les articles indéfinis"),
	GrammarTopic("a1-09", "A1", 9, "Noun Gender and Number", "Genre et nombre des noms"),
	GrammarTopic("a1-10", "A1", 10, "Adjective Agreement", "Accord des adjectifs"),
	GrammarTopic("a1-11", "A1", 11, "Basic Prepositions", "Prépositions basiques"),
	GrammarTopic("a1-12", "A1", 12, "Question Formation", "Formation des questions"),
	GrammarTopic("a1-13", "A1", 13, "Negation (Ne...Pas)", "Négation (ne...pas)"),
	GrammarTopic("a2-01", "A2", 14, "Possessive Adjectives", "Adjectifs possessifs"),
	GrammarTopic("a2-02", "A2", 15, "Demonstrative Adjectives", "Adjectifs démonstratifs"),
	GrammarTopic("a2-03", "A2", 16, "Partitive Articles", "Articles partitifs"),
	GrammarTopic("a2-04", "A2", 17, "Direct Object Pronouns", "Pronoms compléments d'objet direct"),
	GrammarTopic("a2-05", "A2", 18, "Indirect Object Pronouns", "Pronoms compléments d'objet indirect"),
	GrammarTopic("a2-06", "A2", 19, "Present Indicative - Irregular Verbs", "Présent indicatif - verbes irréguliers"),
	GrammarTopic("a2-07", "A2", 20, "Passé Composé", "Passé composé"),
	GrammarTopic("a2-08", "A2", 21, "Imparfait", "Imparfait"),
	GrammarTopic("a2-09", "A2", 22, "Comparative Adjectives", "Adjectifs comparatifs"),
	GrammarTopic("a2-10", "A2", 23, "Superlative Adjectives", "Adjectifs superlatifs"),
	GrammarTopic("a2-11", "A2", 24, "Comparative Adverbs", "Adverbes comparatifs"),
	GrammarTopic("a2-12", "A2", 25, "Superlative Adverbs", "Adverbes superlatifs"),
	GrammarTopic("a2-13", "A2", 26, "Near Future (Aller + Infinitive)", "Futur proche (aller + infinitif)"),
	GrammarTopic("a2-14", "A2", 27, "Conditional Present", "Conditionnel présent"),
	GrammarTopic("a2-15", "A2", 28, "Relative Pronouns (Qui, Que)", "Pronoms relatifs (qui, que)"),
	GrammarTopic("a2-16", "A2", 29, "Reflexive Verbs", "Verbes pronominaux"),
	GrammarTopic("a2-17", "A2", 30, "Past Participle Agreement", "Accord du participe passé"),
	GrammarTopic("a2-18", "A2", 31, "More Prepositions", "Plus de prépositions"),
	GrammarTopic("b1-01", "B1", 32, "Pluperfect (Plus-que-parfait)", "Plus-que-parfait"),
	GrammarTopic("b1-02", "B1", 33, "Simple Future Tense", "Futur simple"),
	GrammarTopic("b1-03", "B1", 34, "Simple Past Tense (Passé Simple)", "Passé simple"),
	GrammarTopic("b1-04", "B1", 35, "Present Subjunctive", "Subjonctif présent"),
	GrammarTopic("b1-05", "B1", 36, "Subjunctive vs Indicative Usage", "Utilisation du subjonctif vs indicatif"),
	GrammarTopic("b1-06", "B1", 37, "Stressed Pronouns (Toniques)", "Pronoms toniques"),
	GrammarTopic("b1-07", "B1", 38, "Relative Pronouns (Dont, Où)", "Pronoms relatifs (dont, où)"),
	GrammarTopic("b1-08", "B1", 39, "Y and EN Pronouns", "Pronoms y et en"),
	GrammarTopic("b1-09", "B1", 40, "Present Participle and Gerund", "Participe présent et gérondif"),
	GrammarTopic("b1-10", "B1", 41, "Causative Construction (Faire + Infinitive)", "Construction causative (faire + infinitif)"),
	GrammarTopic("b1-11", "B1", 42, "Passive Voice", "Voix passive"),
	GrammarTopic("b1-12", "B1", 43, "Conditional Clauses (Si...)", "Phrases conditionnelles"),
	GrammarTopic("b1-13", "B1", 44, "Indefinite Pronouns (Quelqu'un, Personne)", "Pronoms indéfinis"),
	GrammarTopic("b1-14", "B1", 45, "Interrogative Pronouns (Lequel, Duquel)", "Pronoms interrogatifs"),
	GrammarTopic("b1-15", "B1", 46, "Adverbial Phrases", "Locutions adverbiales"),
	GrammarTopic("b1-16", "B1", 47, "Agreement with Collective Nouns", "Accord avec les noms collectifs"),
	GrammarTopic("b1-17", "B1", 48, "Indefinite Adjectives", "Adjectifs indéfinis"),
	GrammarTopic("b2-01", "B2", 49, "Past Subjunctive", "Subjonctif passé"),
	GrammarTopic("b2-02", "B2", 50, "Imperfect Subjunctive", "Subjonctif imparfait"),
	GrammarTopic("b2-03", "B2", 51, "Pluperfect Subjunctive", "Subjonctif plus-que-parfait"),
	GrammarTopic("b2-04", "B2", 52, "Conditional Perfect", "Conditionnel passé"),
	GrammarTopic("b2-05", "B2", 53, "Future Perfect Tense", "Futur antérieur"),
	GrammarTopic("b2-06", "B2", 54, "Narrative Tenses", "Temps narratifs"),
	GrammarTopic("b2-07", "B2", 55, "Stylistic Inversion in Questions", "Inversion stylistique"),
	GrammarTopic("b2-08", "B2", 56, "Pronominal Adverbs and Pronouns", "Adverbes et pronoms adverbiens"),
	GrammarTopic("b2-09", "B2", 57, "Complex Relative Clauses", "Propositions relatives complexes"),
	GrammarTopic("b2-10", "B2", 58, "Concessive Clauses (Bien que, Quoique)", "Propositions concessives"),
	GrammarTopic("b2-11", "B2", 59, "Causal Clauses (Car, Parce que)", "Propositions causales"),
	GrammarTopic("b2-12", "B2", 60, "Consecutive Clauses (Si bien que)", "Propositions consécutives"),
	GrammarTopic("b2-13", "B2", 61, "Temporal Clauses (Quand, Lorsque)", "Propositions temporelles"),
	GrammarTopic("b2-14", "B2", 62, "Advanced Passive Constructions", "Constructions passives avancées"),
	GrammarTopic("b2-15", "B2", 63, "Register and Stylistic Variations", "Registre et variations stylistiques"),
]

_BY_ID: Dict[str, GrammarTopic] = {t.id: t for t in TOPICS}

DAYS_PER_TOPIC = 10
FIRST_TOPIC_ID = TOPICS[0].id


def get_topic(topic_id: str) -> Optional[GrammarTopic]:
	return _BY_ID.get(topic_id)


def next_topic_after(topic_id: str) -> GrammarTopic:
	"""Topic that follows ``topic_id``; wraps to the first one after the last topic."""
	current = _BY_ID.get(topic_id)
	if current is None:
		return TOPICS[0]
	ordered = sorted(TOPICS, key=lambda t: t.order)
	idx = ordered.index(current)
	return ordered[(idx + 1) % len(ordered)]


def topics_for_level(level: str) -> List[GrammarTopic]:
	return [t for t in TOPICS if t.level == level.upper()]
