import pytest

from atlasfeed.sections import (
    LEGACY_MAPPING_VERSION,
    SECTIONS,
    normalize_section_key,
    section_aliases,
    to_canonical_section,
    window_field,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("global", "global"),
        ("/global", "global"),
        ("Early Signals", "early"),
        ("universe + faith", "faith"),
        ("Cosmos", "universe"),
        ("Great_Creators", "creators"),
        ("World News", "global"),
        ("Cyber Security", "tech"),
        ("Islamic Heritage", "history"),
        ("something else entirely", "global"),
        ("", "global"),
    ],
)
def test_to_canonical_section(raw, expected):
    assert to_canonical_section(raw) == expected


def test_canonical_sections_map_to_themselves():
    for section in SECTIONS:
        assert to_canonical_section(section) == section


def test_normalize_section_key():
    assert normalize_section_key("  /Early  Signals ") == "early-signals"
    assert normalize_section_key("universe+faith") == "universe-faith"


def test_section_aliases_include_legacy_labels():
    aliases = section_aliases("early")
    assert aliases[0] == "early"
    assert "early-signals" in aliases


def test_window_field_only_history_uses_collection_time():
    assert window_field("history") == "created_at"
    for section in SECTIONS:
        if section != "history":
            assert window_field(section) == "published_at"


def test_mapping_is_versioned():
    assert isinstance(LEGACY_MAPPING_VERSION, int)
