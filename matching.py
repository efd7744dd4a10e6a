"""
mentor/mentee matching batch runner

Reads mentor and mentee profiles, runs the matching engine and writes:
  - full score table for every pair (with per-component breakdown)
  - top-L candidates per mentor, recommended ones flagged
  - the recommended (unique, capacity-limited) assignments
and optionally upserts the recommended assignments to a Google worksheet.

Inputs, in order of precedence:
  --input profiles.json   {"mentors": [...], "mentees": [...]}
  --input responses.csv   form export, one row per person with a Mentee/Mentor column
  SHEET_ID + GCRED_PATH   Google Sheet with the same columns as the CSV

Mentors and mentees that already appear in --existing assignments.csv are
left out of the pools before matching.

Usage:
  python matching.py --input responses.csv --outdir out --capacity 2 --list-size 5
"""

from pathlib import Path
import argparse
import json
import logging
from time import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from config import load_settings
from engine import MatchResult, Selection, compute_matches, save_selection
from profiles import Person, exclude_assigned, normalize_pool
from scoring import ComponentScores, WeightVector, score_breakdown, shared_terms
from sheet_helper import (
    assigned_pairs_from_frame,
    normalize_responses,
    open_assignments_worksheet,
    profiles_from_frame,
    read_google_sheet,
    upsert_assignments,
)

logger = logging.getLogger(__name__)


def load_profiles_json(path: Path) -> Tuple[List[Any], List[Any]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise SystemExit(f"{path} must contain an object with 'mentors' and 'mentees' lists")
    return list(data.get("mentors") or []), list(data.get("mentees") or [])


def load_profiles(input_path: Optional[str], sheet_id: Optional[str], gcred_path: Optional[str],
                  out_dir: Path) -> Tuple[List[Any], List[Any]]:
    if input_path:
        path = Path(input_path)
        if path.suffix.lower() == ".json":
            mentors, mentees = load_profiles_json(path)
            logger.info("Loaded JSON %s (%d mentors, %d mentees)", path, len(mentors), len(mentees))
            return mentors, mentees
        df = normalize_responses(pd.read_csv(path, dtype=str))
        logger.info("Loaded CSV %s (%d rows)", path, len(df))
        return profiles_from_frame(df)
    if sheet_id:
        if not gcred_path:
            raise SystemExit('When using SHEET_ID you must provide GCRED_PATH to service account JSON')
        df = normalize_responses(read_google_sheet(sheet_id, gcred_path))
        logger.info("Loaded %d rows from Google Sheet %s", len(df), sheet_id)
        df.to_csv(out_dir / 'google_sheet_responses.csv', index=False)
        return profiles_from_frame(df)
    raise SystemExit('You must provide either --input or SHEET_ID to load data')


# Full score table
def build_match_table(result: MatchResult, mentors: Sequence[Person], mentees: Sequence[Person],
                      weights: WeightVector) -> pd.DataFrame:
    mentor_by_id = {m.id: m for m in mentors}
    mentee_by_id = {m.id: m for m in mentees}
    recommended = {p.key for p in result.recommended}

    rows = []
    for pair in result.pairs:
        mr = mentor_by_id[pair.mentor_id]
        me = mentee_by_id[pair.mentee_id]
        components = ComponentScores(pair.skill_score, pair.industry_score, pair.education_score, pair.hobby_score)
        parts = score_breakdown(mr, me, components, weights)
        rows.append({
            'Mentor': mr.id,
            'Mentor Name': mr.display_name or '',
            'Mentee': me.id,
            'Mentee Name': me.display_name or '',
            'Score': round(pair.overall_score, 4),
            'Recommended': pair.key in recommended,
            'Shared Skills': ', '.join(shared_terms(mr.skills, me.skills)),
            'Shared Industries': ', '.join(shared_terms(mr.industry_sectors, me.industry_sectors)),
            'Education (mentor | mentee)': f"{mr.education_label or ''} | {me.education_label or ''}",
            'Shared Hobbies': ', '.join(shared_terms(mr.hobbies, me.hobbies)),
            'Reasons': ' | '.join(pair.reasons),
            **{f"BRK::{p['label'].lower()}": round(p['weighted'], 4) for p in parts},
        })
    return pd.DataFrame(rows)


# Write analysis tables
def write_analysis_tables(result: MatchResult, scores_df: pd.DataFrame, selection: Selection,
                          out_dir: Path, list_size: int) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)

    full_scores_path = out_dir / 'mentor_mentee_full_scores.csv'
    scores_df.to_csv(full_scores_path, index=False)

    top_path = out_dir / f'mentor_mentee_top{list_size}_per_mentor.csv'
    result.to_frame().to_csv(top_path, index=False)

    pairs_path = out_dir / 'mentor_mentee_recommended_pairs.csv'
    assignments = pd.DataFrame([a.to_row() for a in selection.assignments()],
                               columns=["mentor_id", "mentee_id", "score", "approved"])
    assignments.to_csv(pairs_path, index=False)

    return [full_scores_path, top_path, pairs_path]


def build_parser(settings: Dict[str, Any]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mentor/mentee matching")
    parser.add_argument("--input", help="profiles .json or form responses .csv (default: Google Sheet from SHEET_ID)")
    parser.add_argument("--existing", help="CSV of saved assignments (mentor_id, mentee_id) to exclude from the pools")
    parser.add_argument("--outdir", default=settings["outdir"])
    parser.add_argument("--capacity", type=int, default=settings["capacity"], help="max recommended mentees per mentor")
    parser.add_argument("--list-size", type=int, default=settings["list_size"], help="candidates shown per mentor")
    parser.add_argument("--education-missing-score", type=float, default=settings["education_missing_score"])
    parser.add_argument("--save-sheet", action="store_true",
                        help="upsert the recommended assignments to the ASSIGNMENTS_WORKSHEET of SHEET_ID")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


# Main CLI
def main(argv: Optional[Sequence[str]] = None) -> int:
    start_time = time()
    settings = load_settings()
    args = build_parser(settings).parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s] %(message)s")

    # Fail on bad weights before touching any input
    weights = WeightVector.from_mapping(settings["weights"])

    out_dir = Path(args.outdir)
    out_dir.mkdir(parents=True, exist_ok=True)

    raw_mentors, raw_mentees = load_profiles(args.input, settings["sheet_id"], settings["gcred_path"], out_dir)
    if args.existing:
        assigned = assigned_pairs_from_frame(pd.read_csv(args.existing, dtype=str))
        raw_mentors, raw_mentees = exclude_assigned(raw_mentors, raw_mentees, assigned)

    mentors = normalize_pool(raw_mentors, role="mentor")
    mentees = normalize_pool(raw_mentees, role="mentee")

    result = compute_matches(mentors, mentees, weights=weights, capacity=args.capacity,
                             list_size=args.list_size, education_missing_score=args.education_missing_score)
    selection = Selection.from_result(result)
    scores_df = build_match_table(result, mentors, mentees, weights)
    written = write_analysis_tables(result, scores_df, selection, out_dir, args.list_size)

    if args.save_sheet:
        if not settings["sheet_id"] or not settings["gcred_path"]:
            raise SystemExit('--save-sheet needs SHEET_ID and GCRED_PATH')
        if len(selection):
            ws = open_assignments_worksheet(settings["sheet_id"], settings["gcred_path"],
                                            settings["assignments_worksheet"])
            save_selection(selection, lambda rows: upsert_assignments(ws, rows))
        else:
            logger.warning("No recommended assignments to save")

    end_time = time()

    print('[OK] Wrote:')
    for path in written:
        print(f' - {path}')
    logger.info("Mentors: %d, Mentees: %d, Scored pairs: %d, Recommended: %d",
                len(mentors), len(mentees), len(result.pairs), len(result.recommended))
    logger.info("Time elapsed: %.2f seconds", end_time - start_time)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
