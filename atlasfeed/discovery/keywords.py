"""Per-section discovery vocabulary."""

from typing import Dict, List

SECTION_KEYWORDS: Dict[str, List[str]] = {
    "global": [
        "global news", "world news", "geopolitics", "diplomacy", "election", "conflict",
        "sanctions", "summit", "economy", "inflation", "trade", "markets", "climate",
        "energy", "public health", "policy",
    ],
    "tech": [
        "ai", "machine learning", "llm", "openai", "gemini", "programming", "software",
        "developer", "cybersecurity", "breach", "ransomware", "cloud", "kubernetes",
        "open source", "devtools", "semiconductor",
    ],
    "innovators": [
        "innovation", "startup", "funding", "prototype", "robotics", "autonomous",
        "aerospace", "biotech", "hardware", "manufacturing", "climate tech", "battery",
        "hydrogen", "drone", "supply chain",
    ],
    "early": [
        "early signal", "preprint", "arxiv", "patent", "filing", "benchmark", "dataset",
        "standard", "rfc", "emerging", "under the radar", "low hype", "research note",
        "prototype",
    ],
    "creators": [
        "creator", "open source", "release", "library", "tool", "tutorial", "guide",
        "course", "design", "ux", "writing", "newsletter", "podcast", "video", "community",
    ],
    "universe": [
        "space", "nasa", "esa", "telescope", "jwst", "exoplanet", "galaxy", "astronomy",
        "cosmology", "rocket", "launch", "mars", "physics", "planetary",
    ],
    "history": [
        "history", "islamic history", "caliphate", "ottoman", "andalus", "abbasid",
        "umayyad", "archaeology", "ancient", "heritage", "museum", "manuscript",
        "civilization",
    ],
    "faith": [
        "islam", "quran", "hadith", "fiqh", "sunnah", "spirituality", "ethics",
        "interfaith", "dua", "dhikr", "faith", "religion",
    ],
}

# YouTube video categories: 25 News & Politics, 27 Education, 28 Science & Technology.
YOUTUBE_CATEGORY_IDS: Dict[str, str] = {
    "global": "25",
    "tech": "28",
    "innovators": "28",
    "early": "28",
    "creators": "27",
    "universe": "28",
    "history": "27",
    "faith": "27",
}


def section_query(section: str, limit: int = 14) -> str:
    """OR-joined search query from the first ``limit`` section keywords."""
    keywords = list(dict.fromkeys(k.strip() for k in SECTION_KEYWORDS.get(section, []) if k.strip()))
    if not keywords:
        return "news"
    return " OR ".join(keywords[:limit])


def matches_keywords(section: str, text: str) -> bool:
    keywords = SECTION_KEYWORDS.get(section) or []
    if not keywords:
        return True
    lowered = text.lower()
    return any(k in lowered for k in keywords)
