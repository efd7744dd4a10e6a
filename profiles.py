"""
Profile normalization.

Raw profiles arrive as loosely-typed attribute bags (JSON from the profile
store, rows from a CSV or Google Sheet). They are validated once here and
converted into `Person` records; nothing downstream sees the raw shape.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)

logger = logging.getLogger(__name__)

# Ordered vocabulary; index is the ordinal rank.
EDUCATION_LEVELS = [
    "Secondary School",
    "ITE",
    "Polytechnic",
    "Junior College",
    "Bachelor's",
    "Master's",
    "PhD",
]

# Checked from the highest rank down. Short abbreviations must stand as words ("elite" is not ITE).
_EDUCATION_PATTERNS = [
    (6, re.compile(r"phd|doctor")),
    (5, re.compile(r"master")),
    (4, re.compile(r"bachelor|university")),
    (3, re.compile(r"junior college")),
    (2, re.compile(r"polytechnic|\bpoly\b")),
    (1, re.compile(r"institute of technical education|\bite\b")),
    (0, re.compile(r"secondary|o level")),
]


class RawAttributes(BaseModel):
    model_config = ConfigDict(extra="ignore")

    skills: List[StrictStr] = Field(default_factory=list)
    hobbies: List[StrictStr] = Field(default_factory=list)
    industry_sectors: List[StrictStr] = Field(
        default_factory=list,
        validation_alias=AliasChoices("industrySectors", "industrySector", "industry_sectors"),
    )
    # [["Bachelor's", "Computer Science"], ["Master's", "Data Science"]]
    educational_background: List[Tuple[StrictStr, StrictStr]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("educationalBackground", "educational_background"),
    )


class RawProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Union[StrictStr, StrictInt]
    display_name: Optional[StrictStr] = Field(
        default=None,
        validation_alias=AliasChoices("displayName", "display_name", "name"),
    )
    attributes: RawAttributes = Field(
        default_factory=RawAttributes,
        validation_alias=AliasChoices("attributes", "details"),
    )

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value):
        if isinstance(value, str) and not value.strip():
            raise ValueError("id must not be blank")
        return value


@dataclass(frozen=True)
class Person:
    """Canonical profile used by the scorer. Attribute tuples are lowercase, trimmed and deduplicated."""
    id: str
    display_name: Optional[str] = None
    skills: Tuple[str, ...] = ()
    hobbies: Tuple[str, ...] = ()
    industry_sectors: Tuple[str, ...] = ()
    education_level: Optional[int] = None
    education_field: Optional[str] = None
    # some level string was given, even if it did not resolve
    education_provided: bool = False

    @property
    def has_education(self) -> bool:
        return self.education_level is not None or self.education_provided

    @property
    def education_label(self) -> Optional[str]:
        if self.education_level is None:
            return None
        return EDUCATION_LEVELS[self.education_level]


def normalize_terms(items: Iterable[str]) -> Tuple[str, ...]:
    # dict keeps first-seen order, so output is stable for display
    cleaned = (str(s).strip().lower() for s in items)
    return tuple(dict.fromkeys(s for s in cleaned if s))


def resolve_education_level(raw: Optional[str]) -> Optional[int]:
    """Map a free-text level such as "B.Sc (Hons), University" to its rank, or None if unknown."""
    if raw is None:
        return None
    s = str(raw).lower().replace(".", "").strip()
    if not s:
        return None
    for rank, pattern in _EDUCATION_PATTERNS:
        if pattern.search(s):
            return rank
    return None


def highest_education(entries: Sequence[Tuple[str, str]]) -> Tuple[Optional[int], Optional[str]]:
    """
    Return (rank, field) of the highest-ranked resolvable entry.
    The first entry wins a tie; (None, None) when nothing resolves.
    """
    best_rank = None
    best_field = None
    for level, field in entries:
        rank = resolve_education_level(level)
        if rank is None:
            continue
        if best_rank is None or rank > best_rank:
            best_rank = rank
            best_field = str(field).strip().lower() or None
    return best_rank, best_field


def normalize_profile(raw: Any) -> Person:
    """Validate one raw profile and build its Person. Raises pydantic.ValidationError on a bad shape."""
    if isinstance(raw, Person):
        return raw
    parsed = RawProfile.model_validate(raw)
    attrs = parsed.attributes
    level, field = highest_education(attrs.educational_background)
    given = [(lvl, fld) for lvl, fld in attrs.educational_background if lvl.strip()]
    if level is None and given:
        # unresolved level; keep the first stated field for the reason text
        field = given[0][1].strip().lower() or None
    display_name = parsed.display_name.strip() if parsed.display_name else None
    return Person(
        id=str(parsed.id).strip(),
        display_name=display_name or None,
        skills=normalize_terms(attrs.skills),
        hobbies=normalize_terms(attrs.hobbies),
        industry_sectors=normalize_terms(attrs.industry_sectors),
        education_level=level,
        education_field=field,
        education_provided=bool(given),
    )


def normalize_pool(raws: Iterable[Any], role: str = "profile") -> List[Person]:
    """
    Normalize a whole pool. Malformed profiles and repeated ids are dropped
    with a warning; the rest keep their input order.
    """
    people = []
    seen = set()
    for idx, raw in enumerate(raws):
        try:
            person = normalize_profile(raw)
        except ValidationError as e:
            logger.warning(
                "Dropping %s #%d: invalid profile (%d error(s)): %s",
                role, idx, e.error_count(), _summarize_errors(e),
            )
            continue
        if person.id in seen:
            logger.warning("Dropping %s #%d: duplicate id %r", role, idx, person.id)
            continue
        seen.add(person.id)
        people.append(person)
    return people


def _summarize_errors(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def profile_id(profile: Union[Person, Mapping[str, Any]]) -> Optional[str]:
    if isinstance(profile, Person):
        return profile.id
    if isinstance(profile, Mapping) and profile.get("id") is not None:
        return str(profile["id"]).strip()
    return None


def exclude_assigned(mentors, mentees, assigned_pairs):
    """
    Drop mentors and mentees that already appear in a saved (mentor_id, mentee_id) pair.
    Accepts raw profiles or Person records and returns new lists; inputs are left untouched.
    """
    assigned_mentors = set()
    assigned_mentees = set()
    for mentor_id, mentee_id in assigned_pairs:
        assigned_mentors.add(str(mentor_id).strip())
        assigned_mentees.add(str(mentee_id).strip())
    kept_mentors = [m for m in mentors if profile_id(m) not in assigned_mentors]
    kept_mentees = [m for m in mentees if profile_id(m) not in assigned_mentees]
    dropped = (len(mentors) - len(kept_mentors), len(mentees) - len(kept_mentees))
    if any(dropped):
        logger.info("Excluded %d mentor(s) and %d mentee(s) already assigned", *dropped)
    return kept_mentors, kept_mentees
