import pytest

from config import DEFAULT_WEIGHTS, load_settings, parse_weights

ENV_KEYS = ["MATCH_WEIGHTS", "MATCH_CAPACITY", "MATCH_LIST_SIZE", "MATCH_EDUCATION_MISSING_SCORE",
            "SHEET_ID", "GCRED_PATH", "ASSIGNMENTS_WORKSHEET", "MATCH_OUTDIR"]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_parse_weights_overrides_only_given_keys():
    weights = parse_weights("skills=0.5, hobbies = 0")
    assert weights == {"skills": 0.5, "industry": 0.35, "education": 0.15, "hobbies": 0.0}
    assert parse_weights(None) == DEFAULT_WEIGHTS
    assert parse_weights("") == DEFAULT_WEIGHTS


@pytest.mark.parametrize("raw", ["skill=1", "skills", "skills=abc"])
def test_parse_weights_rejects_bad_entries(raw):
    with pytest.raises(ValueError):
        parse_weights(raw)


def test_load_settings_defaults(clean_env):
    settings = load_settings()
    assert settings["weights"] == DEFAULT_WEIGHTS
    assert settings["capacity"] == 2
    assert settings["list_size"] == 5
    assert settings["education_missing_score"] == 0.6
    assert settings["sheet_id"] is None
    assert settings["assignments_worksheet"] == "Assignments"
    assert settings["outdir"] == "out"


def test_load_settings_reads_environment(clean_env):
    clean_env.setenv("MATCH_WEIGHTS", "industry=1")
    clean_env.setenv("MATCH_CAPACITY", "3")
    clean_env.setenv("MATCH_LIST_SIZE", " ")
    clean_env.setenv("MATCH_EDUCATION_MISSING_SCORE", "0")
    clean_env.setenv("SHEET_ID", "abc123")
    settings = load_settings()
    assert settings["weights"]["industry"] == 1.0
    assert settings["capacity"] == 3
    assert settings["list_size"] == 5
    assert settings["education_missing_score"] == 0.0
    assert settings["sheet_id"] == "abc123"
