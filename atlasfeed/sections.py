"""Canonical sections and legacy section-label normalization.

Older source rows carry free-text section labels ("Early Signals", "/global",
"universe + faith"). They are mapped to canonical keys only when sources are
read at the ingestion boundary; admission and pruning never see legacy labels.
"""

import re
from typing import Dict, List, Tuple

SECTIONS: Tuple[str, ...] = (
    "global",
    "tech",
    "innovators",
    "early",
    "creators",
    "universe",
    "history",
    "faith",
)

# Bump whenever LEGACY_SECTION_MAP or the heuristics below change meaning.
LEGACY_MAPPING_VERSION = 2

LEGACY_SECTION_MAP: Dict[str, str] = {
    "news": "global",
    "global-news": "global",
    "cosmos": "universe",
    "universe-faith": "faith",
    "universe-and-faith": "faith",
    "signals": "early",
    "early-signals": "early",
    "great-creators": "creators",
}

_HEURISTICS: List[Tuple[str, str]] = [
    (r"(global|world|news)", "global"),
    (r"(tech|technology|software|security|cyber)", "tech"),
    (r"(innovator|innovation|startup|builder)", "innovators"),
    (r"(early|signal|trend)", "early"),
    (r"(creator|design|maker)", "creators"),
    (r"(universe|space|cosmo|astronomy|physics)", "universe"),
    (r"(history|heritage|ancient)", "history"),
    (r"(faith|islam|quran|hadith|religion)", "faith"),
]


def normalize_section_key(raw: str) -> str:
    """Lowercase, strip leading slashes and collapse separators to '-'."""
    key = (raw or "").strip().lstrip("/").lower()
    key = key.replace("+", " ").replace("_", " ")
    key = re.sub(r"[^a-z0-9]+", "-", key)
    return key.strip("-")


def to_canonical_section(raw: str) -> str:
    """Map any stored section label to a canonical section key.

    Unknown labels fall back to ``global``.
    """
    key = normalize_section_key(raw)
    mapped = LEGACY_SECTION_MAP.get(key, key)
    if mapped in SECTIONS:
        return mapped

    for pattern, section in _HEURISTICS:
        if re.search(pattern, key):
            return section

    return "global"


def section_aliases(section: str) -> List[str]:
    """Canonical key plus every legacy label that maps onto it."""
    aliases = [label for label, target in LEGACY_SECTION_MAP.items() if target == section]
    return [section] + aliases


def window_field(section: str) -> str:
    """Timestamp column used for window/cap arithmetic in a section.

    Curated history content can be arbitrarily old, so its windows follow
    collection time instead of publication time.
    """
    return "created_at" if section == "history" else "published_at"
