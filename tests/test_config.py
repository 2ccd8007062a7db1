import pytest
import yaml
from pydantic import ValidationError

from atlasfeed.config import (
    Config,
    ConfigModel,
    ScoringConfig,
    SourceConfig,
    load_config,
    load_sources,
    save_config,
    save_sources,
)


def test_defaults():
    config = ConfigModel()
    assert config.ingest.time_budget_seconds == 25
    assert config.ingest.no_repeat_hours == 12
    assert config.ingest.source_cooldown_hours == 6
    assert config.ingest.auto_disable_failing_sources is False
    assert config.ingest.auto_disable_threshold == 25
    assert config.discovery.per_run_cap == 3
    assert config.discovery.daily_cap == 6
    assert config.discovery.weekly_cap == 42
    assert set(config.sections) == {
        "global", "tech", "innovators", "early", "creators", "universe", "history", "faith",
    }


def test_scoring_weights_must_sum_to_one():
    with pytest.raises(ValidationError):
        ScoringConfig(trust_weight=0.5, recency_weight=0.5, quality_weight=0.5, keyword_weight=0.1)


def test_two_term_variant_is_expressible():
    scoring = ScoringConfig(trust_weight=0.55, recency_weight=0.35, quality_weight=0.0, keyword_weight=0.10)
    assert scoring.quality_weight == 0.0


def test_partial_section_override_keeps_defaults():
    config = ConfigModel(sections={"tech": {"daily_cap": 5}})
    assert config.sections["tech"].daily_cap == 5
    assert config.sections["tech"].recency_half_life_hours == 16
    assert config.sections["history"].recency_half_life_hours == 240


def test_unknown_section_rejected():
    with pytest.raises(ValidationError):
        ConfigModel(sections={"sports": {"daily_cap": 5}})


def test_load_config_round_trip(tmp_path):
    path = tmp_path / "config.yaml"
    save_config(ConfigModel(ingest={"time_budget_seconds": 10}), path)

    loaded = load_config(path)
    assert loaded.ingest.time_budget_seconds == 10


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("ingest: [unclosed")
    with pytest.raises(ValueError):
        load_config(path)


def test_load_sources_skips_invalid_entries(tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text(
        yaml.dump(
            {
                "sources": [
                    {"section": "tech", "name": "Good", "url": "https://good.example/feed"},
                    {"section": "tech", "name": "Bad trust", "url": "https://bad.example/feed", "trust_score": 400},
                ]
            }
        )
    )
    sources = load_sources(path)
    assert [s.name for s in sources] == ["Good"]


def test_save_sources_round_trip(tmp_path):
    path = tmp_path / "sources.yaml"
    save_sources([SourceConfig(section="universe", name="NASA", url="https://nasa.example/rss")], path)
    assert load_sources(path)[0].url == "https://nasa.example/rss"


def test_config_manager_resolves_sources_and_secrets(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    save_config(ConfigModel(postgres={"password_env": "TEST_DB_PW"}), path)
    monkeypatch.setenv("TEST_DB_PW", "s3cret")
    monkeypatch.setenv("YOUTUBE_API_KEY", "yt-key")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("X_BEARER_TOKEN", raising=False)

    config = Config(path)
    assert config.sources_path == tmp_path / "sources.yaml"
    assert config.get_db_config()["password"] == "s3cret"
    assert config.get_discovery_credentials() == {
        "github_token": None,
        "youtube_api_key": "yt-key",
        "x_bearer_token": None,
    }


def test_config_path_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("ATLASFEED_CONFIG", str(tmp_path / "custom.yaml"))
    assert Config().config_path == tmp_path / "custom.yaml"
