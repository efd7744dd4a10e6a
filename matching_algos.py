from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from scoring import PairScore

# Total order used everywhere: overall, then each component (all descending),
# then mentor id and mentee id ascending so exact ties rank the same every run.
RANK_COLUMNS = ["Score", "Skill", "Industry", "Education", "Hobby", "Mentor", "Mentee"]
RANK_ASCENDING = [False, False, False, False, False, True, True]


@dataclass(frozen=True)
class MatchCandidate:
    """One entry of a mentor's display list."""
    pair: PairScore
    is_recommended: bool
    rank: int

    @property
    def mentor_id(self) -> str:
        return self.pair.mentor_id

    @property
    def mentee_id(self) -> str:
        return self.pair.mentee_id

    @property
    def key(self) -> Tuple[str, str]:
        return self.pair.key


def pairs_frame(pairs: Iterable[PairScore]) -> pd.DataFrame:
    """One row per pair with the rank columns; the PairScore itself rides along in "Pair"."""
    rows = [{
        "Score": p.overall_score,
        "Skill": p.skill_score,
        "Industry": p.industry_score,
        "Education": p.education_score,
        "Hobby": p.hobby_score,
        "Mentor": p.mentor_id,
        "Mentee": p.mentee_id,
        "Pair": p,
    } for p in pairs]
    return pd.DataFrame(rows, columns=RANK_COLUMNS + ["Pair"])


def _ranked(df: pd.DataFrame) -> List[PairScore]:
    return list(df.sort_values(RANK_COLUMNS, ascending=RANK_ASCENDING)["Pair"])


def rank_pairs(pairs: Iterable[PairScore]) -> List[PairScore]:
    return _ranked(pairs_frame(pairs))


def group_by_mentor(pairs: Iterable[PairScore], mentor_ids: Optional[Sequence[str]] = None) -> Dict[str, List[PairScore]]:
    """
    Group pairs per mentor, each group ranked. Groups follow `mentor_ids` when
    given (mentors without pairs get an empty list), else first appearance.
    """
    groups: Dict[str, List[PairScore]] = {m: [] for m in (mentor_ids or [])}
    for mentor, group in pairs_frame(pairs).groupby("Mentor", sort=False):
        groups[mentor] = _ranked(group)
    return groups


def greedy_assign_with_capacity(pairs: Iterable[PairScore], capacity: int) -> List[PairScore]:
    """
    Greedy assignment of mentees to mentors with a per-mentor capacity.
    - Pairs are scanned once in global rank order.
    - A mentor takes at most `capacity` mentees.
    - A mentee is claimed by at most one mentor; later pairs for it are skipped.
    No backtracking, so this is not a global optimum.
    """
    if capacity < 1:
        raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
    mentor_assigned_count: Dict[str, int] = {}
    used_mentees = set()
    assigned = []

    for pair in rank_pairs(pairs):
        if pair.mentee_id in used_mentees:
            continue
        used = mentor_assigned_count.get(pair.mentor_id, 0)
        if used >= capacity:
            continue
        assigned.append(pair)
        mentor_assigned_count[pair.mentor_id] = used + 1
        used_mentees.add(pair.mentee_id)

    return assigned


def build_display_lists(
    ranked_by_mentor: Dict[str, List[PairScore]],
    recommended: Iterable[PairScore],
    list_size: int,
) -> Dict[str, List[MatchCandidate]]:
    """
    Each mentor's visible list: its recommended pairs first (ranked), then its
    next-best other pairs, up to `list_size`. The backfill may repeat mentees
    recommended to someone else; it exists for manual override only.
    """
    if list_size < 1:
        raise ValueError(f"list_size must be a positive integer, got {list_size!r}")
    base_keys = {p.key for p in recommended}
    lists: Dict[str, List[MatchCandidate]] = {}
    for mentor_id, ranked in ranked_by_mentor.items():
        base = [p for p in ranked if p.key in base_keys]
        fill = [p for p in ranked if p.key not in base_keys]
        lists[mentor_id] = [
            MatchCandidate(pair=p, is_recommended=p.key in base_keys, rank=i)
            for i, p in enumerate((base + fill)[:list_size], start=1)
        ]
    return lists


def pair_key(item) -> Tuple[str, str]:
    """(mentor_id, mentee_id) from a plain pair, a PairScore or a MatchCandidate."""
    if isinstance(item, (PairScore, MatchCandidate)):
        return item.key
    mentor_id, mentee_id = item
    return (str(mentor_id), str(mentee_id))


def detect_conflicts(selected: Iterable) -> Dict[str, List[str]]:
    """
    Mentees claimed by more than one mentor in the current selection,
    mapped to every mentor claiming them. Advisory only: nothing is removed.
    """
    mentee_assignments: Dict[str, List[str]] = {}
    for item in selected:
        mentor_id, mentee_id = pair_key(item)
        mentors = mentee_assignments.setdefault(mentee_id, [])
        if mentor_id not in mentors:
            mentors.append(mentor_id)
    return {mentee: mentors for mentee, mentors in mentee_assignments.items() if len(mentors) > 1}
