from vocafluence.grammar_topics import DAYS_PER_TOPIC, FIRST_TOPIC_ID, TOPICS, get_topic, next_topic_after, topics_for_level
from vocafluence.oral_topics import ORAL_TOPICS, get_oral_topic, random_topic, topic_prompt


def test_grammar_catalogue():
	assert len(TOPICS) == 63
	assert [t.order for t in TOPICS] == list(range(1, 64))
	assert len({t.id for t in TOPICS}) == 63
	assert FIRST_TOPIC_ID == "a1-01"
	assert DAYS_PER_TOPIC == 10
	assert [len(topics_for_level(level)) for level in ("A1", "A2", "B1", "B2")] == [13, 18, 17, 15]
	assert topics_for_level("b2")[-1].id == "b2-15"


def test_next_topic():
	assert next_topic_after("a1-01").id == "a1-02"
	assert next_topic_after("a1-13").level == "A2"
	# Last topic wraps, unknown ids restart the course
	assert next_topic_after("b2-15").id == "a1-01"
	assert next_topic_after("zz-99").id == "a1-01"
	assert get_topic("zz-99") is None


def test_oral_topics():
	assert get_oral_topic("3") is ORAL_TOPICS[2]
	assert get_oral_topic(1) is ORAL_TOPICS[0]
	assert get_oral_topic("abc") is None
	assert get_oral_topic(99) is None
	assert random_topic() in ORAL_TOPICS

	topic = ORAL_TOPICS[0]
	prompt = topic_prompt(topic)
	assert prompt.startswith(topic.title + "\n\n")
	assert prompt.endswith("Source : " + topic.source)
