"""Topic extraction: map entry text and feed categories to topic codes."""

import re
from typing import Dict, Iterable, List

CATEGORY_RULES: Dict[str, List[tuple]] = {
    "global": [
        ("geopolitics", ["election", "diplom", "sanction", "summit", "treaty"]),
        ("conflict", ["war", "strike", "missile", "ceasefire", "hostage", "invasion"]),
        ("economy", ["inflation", "rates", "gdp", "recession", "debt", "budget"]),
        ("markets", ["stocks", "bond", "oil", "gold", "bitcoin", "currency"]),
        ("climate", ["climate", "flood", "storm", "hurricane", "wildfire", "heatwave"]),
        ("health", ["health", "outbreak", "vaccine", "hospital", "disease"]),
        ("law", ["court", "trial", "ruling", "law", "supreme"]),
    ],
    "tech": [
        ("ai", ["ai", "llm", "model", "agent", "openai", "gemini", "anthropic"]),
        ("cybersecurity", ["security", "breach", "ransomware", "vulnerability", "cve", "phishing"]),
        ("cloud", ["cloud", "kubernetes", "docker", "aws", "azure", "gcp"]),
        ("hardware", ["chip", "semiconductor", "gpu", "nvidia", "amd", "arm"]),
        ("devtools", ["github", "git", "compiler", "sdk", "api", "framework"]),
        ("startups", ["startup", "funding", "seed", "series", "venture", "yc"]),
    ],
    "innovators": [
        ("robotics", ["robot", "robotics", "autonomous", "drone"]),
        ("aerospace", ["rocket", "spacecraft", "satellite", "launch"]),
        ("biotech", ["biotech", "gene", "crispr", "clinical", "drug"]),
        ("manufacturing", ["manufacturing", "factory", "supply chain", "automation"]),
        ("climate-tech", ["carbon", "battery", "solar", "wind", "hydrogen"]),
    ],
    "early": [
        ("patents", ["patent", "filing", "application"]),
        ("preprints", ["arxiv", "preprint", "biorxiv", "medrxiv"]),
        ("research", ["paper", "study", "dataset", "benchmark"]),
        ("standards", ["standard", "draft", "rfc", "spec"]),
    ],
    "creators": [
        ("open-source", ["open source", "oss", "repository", "license"]),
        ("tutorials", ["tutorial", "guide", "how to", "course", "workshop"]),
        ("design", ["design", "ux", "ui", "typography"]),
        ("writing", ["essay", "newsletter", "blog", "writing"]),
        ("video", ["youtube", "video", "podcast", "channel"]),
    ],
    "universe": [
        ("space", ["nasa", "esa", "launch", "orbit", "rocket", "mars"]),
        ("astronomy", ["telescope", "exoplanet", "galaxy", "nebula", "jwst"]),
        ("physics", ["physics", "quantum", "relativity", "particle"]),
        ("earth-science", ["earth", "ocean", "atmosphere", "geology"]),
    ],
    "history": [
        ("islamic-history", ["caliphate", "andalus", "abbasid", "umayyad", "ottoman"]),
        ("empires", ["empire", "dynasty", "sultan", "kingdom"]),
        ("archaeology", ["archaeology", "excavation", "artifact", "ruins"]),
        ("trade", ["trade", "silk road", "caravan", "maritime"]),
    ],
    "faith": [
        ("quran", ["quran", "surah", "ayat"]),
        ("hadith", ["hadith", "sahih", "bukhari", "muslim"]),
        ("fiqh", ["fiqh", "fatwa", "madhhab", "sharia"]),
        ("spirituality", ["spiritual", "tazkiyah", "dua", "dhikr"]),
        ("ethics", ["ethic", "akhlaq", "character"]),
    ],
}

EXTRA_TOPIC_CODES = ("science", "culture", "policy", "education")

MAX_TOPICS = 2


def normalize_topic(value: str) -> str:
    return re.sub(r"\s+", "-", (value or "").strip().lower())[:40]


ALLOWED_TOPIC_CODES = frozenset(
    normalize_topic(code)
    for rules in CATEGORY_RULES.values()
    for code, _ in rules
) | frozenset(EXTRA_TOPIC_CODES)


def extract_topics(
    section: str,
    title: str,
    snippet: str = "",
    categories: Iterable[str] = (),
    limit: int = MAX_TOPICS,
) -> List[str]:
    """Ordered topic codes for an entry, at most ``limit``.

    Section rules come first, then feed categories that match a known code,
    then a few cross-section codes.
    """
    text = f"{title} {snippet}".lower()
    topics: List[str] = []

    def add(code: str) -> None:
        code = normalize_topic(code)
        if code and code not in topics:
            topics.append(code)

    for code, keywords in CATEGORY_RULES.get(section, []):
        if any(k in text for k in keywords):
            add(code)

    for category in categories:
        code = normalize_topic(category)
        if code in ALLOWED_TOPIC_CODES:
            add(code)

    if "climate" in text:
        add("climate")
    if "education" in text:
        add("education")
    if "culture" in text or "art" in text:
        add("culture")
    if "science" in text or "research" in text:
        add("science")

    return topics[:limit]
