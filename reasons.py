"""
Human-readable match explanations.

Every string is built from the same overlaps the scorer uses, in the fixed
order skills, industry, education, hobbies, with at most one string per
dimension.
"""

import math
from typing import List, Optional, Sequence, Tuple

from profiles import Person
from scoring import ComponentScores, shared_terms

MAX_SHARED_SKILLS = 3
MAX_SHOWCASE_SKILLS = 2
MAX_SHARED_SECTORS = 2
MAX_SHARED_HOBBIES = 2

CROSS_INDUSTRY = "Cross-industry match; transferable skills"
PARTIAL_EDUCATION = "Education info partially provided"

_STRENGTH_BUCKETS = [(0.85, "Strong"), (0.60, "Good"), (0.35, "Some")]


def strength_label(score: float) -> str:
    for threshold, label in _STRENGTH_BUCKETS:
        if score >= threshold:
            return label
    return "Low"


def percent(score: float) -> int:
    # half-up, so 0.125 -> 13 rather than banker's 12
    return int(math.floor(score * 100 + 0.5))


def list_to_text(items: Sequence[str]) -> str:
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"


def skills_reason(mentor: Person, mentee: Person, skill_score: float) -> Optional[str]:
    common = shared_terms(mentor.skills, mentee.skills)[:MAX_SHARED_SKILLS]
    if common:
        return f"{strength_label(skill_score)} skill overlap ({percent(skill_score)}%): {list_to_text(common)}"
    showcase = mentor.skills[:MAX_SHOWCASE_SKILLS]
    if showcase:
        return f"Complementary skills: mentor brings {', '.join(showcase)}"
    return None


def industry_reason(mentor: Person, mentee: Person, industry_score: float) -> str:
    common = shared_terms(mentor.industry_sectors, mentee.industry_sectors)[:MAX_SHARED_SECTORS]
    if industry_score >= 1 and common:
        return f"Industry aligned on {list_to_text(common)}"
    return CROSS_INDUSTRY


def ladder_text(mentor: Person, mentee: Person) -> str:
    m_rank, t_rank = mentor.education_level, mentee.education_level
    if m_rank == t_rank:
        return f"Similar education ({mentee.education_label})"
    if m_rank > t_rank:
        return f"Step-up path: mentee {mentee.education_label} → mentor {mentor.education_label}"
    return f"Peer / cross-level: mentee {mentee.education_label} vs mentor {mentor.education_label}"


def education_reason(mentor: Person, mentee: Person) -> Optional[str]:
    if mentor.education_level is not None and mentee.education_level is not None:
        text = ladder_text(mentor, mentee)
    elif mentor.has_education or mentee.has_education:
        text = PARTIAL_EDUCATION
    else:
        return None
    if mentor.education_field and mentor.education_field == mentee.education_field:
        text += f" (both in {mentee.education_field})"
    return text


def hobbies_reason(mentor: Person, mentee: Person) -> Optional[str]:
    common = shared_terms(mentor.hobbies, mentee.hobbies)[:MAX_SHARED_HOBBIES]
    if common:
        return f"Shared interests: {list_to_text(common)}"
    return None


def build_reasons(mentor: Person, mentee: Person, scores: ComponentScores) -> Tuple[str, ...]:
    reasons: List[Optional[str]] = [
        skills_reason(mentor, mentee, scores.skill),
        industry_reason(mentor, mentee, scores.industry),
        education_reason(mentor, mentee),
        hobbies_reason(mentor, mentee),
    ]
    return tuple(r for r in reasons if r)
