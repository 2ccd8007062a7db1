from atlasfeed.ranking import extract_topics
from atlasfeed.ranking.topics import ALLOWED_TOPIC_CODES, normalize_topic


def test_section_rules_match_text():
    topics = extract_topics("tech", "New ransomware breach hits cloud provider")
    assert topics == ["cybersecurity", "cloud"]


def test_feed_categories_map_to_known_codes():
    topics = extract_topics("universe", "Quiet week", categories=["Physics", "Random stuff"])
    assert topics == ["physics"]


def test_topics_are_limited():
    topics = extract_topics(
        "global",
        "Election sanctions as war and inflation hit markets",
        "Stocks fall while court ruling looms",
    )
    assert len(topics) == 2
    assert topics[0] == "geopolitics"


def test_cross_section_codes():
    assert extract_topics("history", "Museum culture night") == ["culture"]


def test_normalize_topic():
    assert normalize_topic("  Climate Tech ") == "climate-tech"
    assert "climate-tech" in ALLOWED_TOPIC_CODES
