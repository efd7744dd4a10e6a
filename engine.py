"""
Mentor/mentee matching engine.

`compute_matches` is a pure function of its inputs: it normalizes both pools,
scores every mentor/mentee pair, ranks candidates per mentor, picks a greedy
capacity-limited recommendation with unique mentees, and backfills each
mentor's visible list for manual override. `Selection` holds the
human-edited set on top of that and reports (never blocks) mentees claimed by
more than one mentor.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from config import EDUCATION_MISSING_SCORE, TOP_K_UNIQUE, TOP_LIST_SIZE
from matching_algos import (
    MatchCandidate,
    build_display_lists,
    detect_conflicts,
    greedy_assign_with_capacity,
    group_by_mentor,
    pair_key,
    rank_pairs,
)
from profiles import Person, normalize_pool
from reasons import build_reasons
from scoring import PairScore, WeightVector, aggregate, check_missing_score, component_scores

logger = logging.getLogger(__name__)

__all__ = [
    "Assignment",
    "MatchResult",
    "Selection",
    "UnconfirmedConflictError",
    "compute_matches",
    "detect_conflicts",
    "save_selection",
    "score_pair",
]


class UnconfirmedConflictError(RuntimeError):
    """A conflicted selection was handed to a store without the caller confirming it."""

    def __init__(self, conflicts: Dict[str, List[str]]):
        self.conflicts = conflicts
        super().__init__(
            f"There are {len(conflicts)} conflict(s) in the selection. "
            "Each mentee should only be assigned to one mentor; pass confirm_conflicts=True to save anyway."
        )


def _as_weights(weights: Union[None, WeightVector, Mapping[str, float]]) -> WeightVector:
    if weights is None:
        return WeightVector()
    if isinstance(weights, WeightVector):
        return weights
    return WeightVector.from_mapping(weights)


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


def score_pair(
    mentor: Person,
    mentee: Person,
    weights: Optional[WeightVector] = None,
    education_missing_score: float = EDUCATION_MISSING_SCORE,
) -> PairScore:
    weights = weights or WeightVector()
    components = component_scores(mentor, mentee, education_missing_score)
    return PairScore(
        mentor_id=mentor.id,
        mentee_id=mentee.id,
        skill_score=components.skill,
        industry_score=components.industry,
        education_score=components.education,
        hobby_score=components.hobby,
        overall_score=aggregate(components, weights),
        reasons=build_reasons(mentor, mentee, components),
    )


@dataclass(frozen=True)
class MatchResult:
    """
    by_mentor: mentor id -> display list, in mentor input order.
    recommended: the base recommendation, in global rank order.
    pairs: every scored pair, in global rank order.
    """
    by_mentor: Dict[str, List[MatchCandidate]] = field(default_factory=dict)
    recommended: List[PairScore] = field(default_factory=list)
    pairs: List[PairScore] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.by_mentor)

    def for_mentor(self, mentor_id: str) -> List[MatchCandidate]:
        return self.by_mentor.get(mentor_id, [])

    def recommended_for(self, mentor_id: str) -> List[PairScore]:
        return [c.pair for c in self.for_mentor(mentor_id) if c.is_recommended]

    def to_frame(self) -> pd.DataFrame:
        """One row per display-list entry."""
        columns = ["Mentor", "Mentee", "Rank", "Recommended", "Score",
                   "Skill Score", "Industry Score", "Education Score", "Hobby Score", "Reasons"]
        rows = []
        for mentor_id, candidates in self.by_mentor.items():
            for c in candidates:
                rows.append({
                    "Mentor": mentor_id,
                    "Mentee": c.mentee_id,
                    "Rank": c.rank,
                    "Recommended": c.is_recommended,
                    "Score": round(c.pair.overall_score, 4),
                    "Skill Score": round(c.pair.skill_score, 4),
                    "Industry Score": c.pair.industry_score,
                    "Education Score": round(c.pair.education_score, 4),
                    "Hobby Score": round(c.pair.hobby_score, 4),
                    "Reasons": " | ".join(c.pair.reasons),
                })
        return pd.DataFrame(rows, columns=columns)


def compute_matches(
    mentors: Sequence[Any],
    mentees: Sequence[Any],
    weights: Union[None, WeightVector, Mapping[str, float]] = None,
    capacity: Optional[int] = None,
    list_size: Optional[int] = None,
    education_missing_score: Optional[float] = None,
) -> MatchResult:
    """
    Score, rank and recommend mentor/mentee pairs.

    Invalid weights, capacity, list size or education default raise before
    any profile is looked at. Malformed profiles are dropped with a warning.
    An empty pool on either side gives an empty result.
    """
    weights = _as_weights(weights)
    capacity = _positive_int("capacity", TOP_K_UNIQUE if capacity is None else capacity)
    list_size = _positive_int("list_size", TOP_LIST_SIZE if list_size is None else list_size)
    missing_score = check_missing_score(
        EDUCATION_MISSING_SCORE if education_missing_score is None else education_missing_score
    )

    mentor_pool = normalize_pool(mentors, role="mentor")
    mentee_pool = normalize_pool(mentees, role="mentee")
    if not mentor_pool or not mentee_pool:
        logger.info("Nothing to match: %d mentor(s), %d mentee(s)", len(mentor_pool), len(mentee_pool))
        return MatchResult()

    pairs = [
        score_pair(mentor, mentee, weights, missing_score)
        for mentor in mentor_pool
        for mentee in mentee_pool
    ]
    ranked_by_mentor = group_by_mentor(pairs, [m.id for m in mentor_pool])
    recommended = greedy_assign_with_capacity(pairs, capacity)
    display = build_display_lists(ranked_by_mentor, recommended, list_size)

    logger.debug(
        "Scored %d pair(s) for %d mentor(s) x %d mentee(s); %d recommended",
        len(pairs), len(mentor_pool), len(mentee_pool), len(recommended),
    )
    return MatchResult(by_mentor=display, recommended=recommended, pairs=rank_pairs(pairs))


@dataclass(frozen=True)
class Assignment:
    mentor_id: str
    mentee_id: str
    score: Optional[float]
    status: str  # computed | edited | conflicted

    @property
    def conflicted(self) -> bool:
        return self.status == "conflicted"

    def to_row(self) -> Dict[str, Any]:
        return {
            "mentor_id": self.mentor_id,
            "mentee_id": self.mentee_id,
            "score": None if self.score is None else round(self.score, 4),
            "approved": True,
        }


class Selection:
    """
    The currently selected pairs. Starts from the base recommendation and is
    freely edited afterwards; conflicts are reported, never prevented.
    """

    def __init__(self, pairs: Iterable = (), result: Optional[MatchResult] = None):
        self._scores: Dict[Tuple[str, str], PairScore] = {}
        if result is not None:
            self._scores = {p.key: p for p in result.pairs}
        self._selected: Dict[Tuple[str, str], None] = {}
        for item in pairs:
            key = pair_key(item)
            self._selected[key] = None
            if isinstance(item, PairScore):
                self._scores.setdefault(key, item)
        self._initial = frozenset(self._selected)

    @classmethod
    def from_result(cls, result: MatchResult) -> "Selection":
        return cls(result.recommended, result=result)

    @property
    def pairs(self) -> List[Tuple[str, str]]:
        return list(self._selected)

    @property
    def edited(self) -> bool:
        return frozenset(self._selected) != self._initial

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, item) -> bool:
        return pair_key(item) in self._selected

    def select(self, mentor_id: str, mentee_id: str) -> None:
        self._selected[(str(mentor_id), str(mentee_id))] = None

    def deselect(self, mentor_id: str, mentee_id: str) -> None:
        self._selected.pop((str(mentor_id), str(mentee_id)), None)

    def toggle(self, mentor_id: str, mentee_id: str) -> bool:
        """Flip one pair; returns whether it is selected afterwards."""
        key = (str(mentor_id), str(mentee_id))
        if key in self._selected:
            del self._selected[key]
            return False
        self._selected[key] = None
        return True

    def clear(self) -> None:
        self._selected.clear()

    def conflicts(self) -> Dict[str, List[str]]:
        return detect_conflicts(self._selected)

    def assignments(self) -> List[Assignment]:
        conflicted_mentees = set(self.conflicts())
        out = []
        for key in self._selected:
            mentor_id, mentee_id = key
            if mentee_id in conflicted_mentees:
                status = "conflicted"
            elif key in self._initial:
                status = "computed"
            else:
                status = "edited"
            pair = self._scores.get(key)
            out.append(Assignment(mentor_id, mentee_id, pair.overall_score if pair else None, status))
        return out


def save_selection(
    selection: Selection,
    store: Callable[[List[Dict[str, Any]]], Any],
    confirm_conflicts: bool = False,
) -> int:
    """
    Hand the selected assignments to `store` as rows keyed on (mentor_id, mentee_id).
    A conflicted selection is only passed on when the caller confirms it.
    """
    if not len(selection):
        raise ValueError("No matches selected to save")
    conflicts = selection.conflicts()
    if conflicts:
        if not confirm_conflicts:
            raise UnconfirmedConflictError(conflicts)
        logger.warning("Saving %d conflicted mentee(s): %s", len(conflicts), ", ".join(conflicts))
    rows = [a.to_row() for a in selection.assignments()]
    store(rows)
    logger.info("Saved %d match(es)", len(rows))
    return len(rows)
