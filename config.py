import os
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()

# Default weights. Normalized by their sum, so they need not add up to 1.
DEFAULT_WEIGHTS = {
    "skills": 0.40,
    "industry": 0.35,
    "education": 0.15,
    "hobbies": 0.10,
}

# Per-mentor capacity in the base recommendation, and visible list length.
TOP_K_UNIQUE = 2
TOP_LIST_SIZE = 5

# Score used when either side has no resolvable education level.
EDUCATION_MISSING_SCORE = 0.6

ASSIGNMENTS_WORKSHEET = "Assignments"
OUTDIR = "out"


def parse_weights(raw: Optional[str]) -> Dict[str, float]:
    """
    Parse a weight override such as "skills=0.5,industry=0.3".
    Keys left out keep their default value.
    """
    weights = dict(DEFAULT_WEIGHTS)
    if not raw:
        return weights
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        key = key.strip().lower()
        if not sep or key not in weights:
            raise ValueError(f"Bad MATCH_WEIGHTS entry '{item}'. Expected one of {sorted(weights)} as key=value")
        weights[key] = float(value)
    return weights


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def load_settings() -> Dict[str, object]:
    """Read matching settings from the environment (and .env), falling back to the defaults above."""
    return {
        "weights": parse_weights(os.getenv("MATCH_WEIGHTS")),
        "capacity": _env_int("MATCH_CAPACITY", TOP_K_UNIQUE),
        "list_size": _env_int("MATCH_LIST_SIZE", TOP_LIST_SIZE),
        "education_missing_score": _env_float("MATCH_EDUCATION_MISSING_SCORE", EDUCATION_MISSING_SCORE),
        "sheet_id": os.getenv("SHEET_ID"),
        "gcred_path": os.getenv("GCRED_PATH"),
        "assignments_worksheet": os.getenv("ASSIGNMENTS_WORKSHEET", ASSIGNMENTS_WORKSHEET),
        "outdir": os.getenv("MATCH_OUTDIR", OUTDIR),
    }
