"""
Similarity scoring for a mentor/mentee pair.

Four independent components, each in [0, 1] and symmetric in its two
arguments, combined with a weight vector normalized by its own sum.
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from config import DEFAULT_WEIGHTS, EDUCATION_MISSING_SCORE
from profiles import Person

# rank distance -> score; anything further apart gets _EDUCATION_FAR
_EDUCATION_DECAY = {0: 1.0, 1: 0.85, 2: 0.6}
_EDUCATION_FAR = 0.3

WEIGHT_KEYS = ("skills", "industry", "education", "hobbies")


class WeightConfigError(ValueError):
    """Raised when a weight vector cannot be used to normalize scores."""


@dataclass(frozen=True)
class WeightVector:
    skills: float = DEFAULT_WEIGHTS["skills"]
    industry: float = DEFAULT_WEIGHTS["industry"]
    education: float = DEFAULT_WEIGHTS["education"]
    hobbies: float = DEFAULT_WEIGHTS["hobbies"]

    def __post_init__(self):
        for key in WEIGHT_KEYS:
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise WeightConfigError(f"Weight '{key}' must be a number, got {value!r}")
            if math.isnan(value) or math.isinf(value) or value < 0:
                raise WeightConfigError(f"Weight '{key}' must be a finite non-negative number, got {value!r}")
        if self.total <= 0:
            raise WeightConfigError("At least one weight must be positive")

    @property
    def total(self) -> float:
        return self.skills + self.industry + self.education + self.hobbies

    @classmethod
    def from_mapping(cls, weights: Mapping[str, float]) -> "WeightVector":
        unknown = set(weights) - set(WEIGHT_KEYS)
        if unknown:
            raise WeightConfigError(f"Unknown weight key(s): {sorted(unknown)}")
        return cls(**dict(weights))

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class ComponentScores:
    skill: float
    industry: float
    education: float
    hobby: float


@dataclass(frozen=True)
class PairScore:
    mentor_id: str
    mentee_id: str
    skill_score: float
    industry_score: float
    education_score: float
    hobby_score: float
    overall_score: float
    reasons: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.mentor_id, self.mentee_id)

    @property
    def scores(self) -> Dict[str, float]:
        return {
            "skill": self.skill_score,
            "industry": self.industry_score,
            "education": self.education_score,
            "hobby": self.hobby_score,
        }

    def to_dict(self) -> Dict[str, object]:
        return {
            "mentorId": self.mentor_id,
            "menteeId": self.mentee_id,
            "scores": self.scores,
            "overallScore": self.overall_score,
            "reasons": list(self.reasons),
        }


def shared_terms(a: Sequence[str], b: Sequence[str]) -> List[str]:
    """Items of `a` also in `b`, in `a`'s order."""
    other = set(b)
    return [x for x in a if x in other]


def jaccard(a: Sequence[str], b: Sequence[str]) -> float:
    set_a, set_b = set(a), set(b)
    if not set_a and not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def industry_similarity(a: Sequence[str], b: Sequence[str]) -> float:
    return 1.0 if set(a) & set(b) else 0.0


def education_similarity(a: Optional[int], b: Optional[int], missing_score: float = EDUCATION_MISSING_SCORE) -> float:
    if a is None or b is None:
        return missing_score
    return _EDUCATION_DECAY.get(abs(a - b), _EDUCATION_FAR)


def check_missing_score(value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
        raise ValueError(f"education_missing_score must be within [0, 1], got {value!r}")
    return float(value)


def component_scores(mentor: Person, mentee: Person, education_missing_score: float = EDUCATION_MISSING_SCORE) -> ComponentScores:
    return ComponentScores(
        skill=jaccard(mentor.skills, mentee.skills),
        industry=industry_similarity(mentor.industry_sectors, mentee.industry_sectors),
        education=education_similarity(mentor.education_level, mentee.education_level, education_missing_score),
        hobby=jaccard(mentor.hobbies, mentee.hobbies),
    )


def aggregate(components: ComponentScores, weights: WeightVector) -> float:
    weighted = (
        weights.skills * components.skill
        + weights.industry * components.industry
        + weights.education * components.education
        + weights.hobbies * components.hobby
    )
    return min(1.0, max(0.0, weighted / weights.total))


def score_breakdown(mentor: Person, mentee: Person, components: ComponentScores, weights: WeightVector) -> List[Dict[str, object]]:
    """Per-component parts for exports: label, raw score, weight, weighted contribution and a detail string."""
    def _terms(items):
        return ", ".join(items) or "-"

    parts = [
        ("Skills", components.skill, weights.skills, _terms(shared_terms(mentor.skills, mentee.skills))),
        ("Industry", components.industry, weights.industry,
         _terms(shared_terms(mentor.industry_sectors, mentee.industry_sectors))),
        ("Education", components.education, weights.education,
         f"{mentor.education_label or '?'} / {mentee.education_label or '?'}"),
        ("Hobbies", components.hobby, weights.hobbies, _terms(shared_terms(mentor.hobbies, mentee.hobbies))),
    ]
    return [
        {
            "label": label,
            "score": score,
            "weight": weight,
            "weighted": score * weight / weights.total,
            "details": details,
        }
        for label, score, weight, details in parts
    ]
