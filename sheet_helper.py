import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import gspread
import pandas as pd
from google.oauth2.service_account import Credentials

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/spreadsheets', 'https://www.googleapis.com/auth/drive']

ASSIGNMENT_HEADER = ["mentor_id", "mentee_id", "score", "approved"]

# Google Form question -> column name used below
RENAME_MAP = {
    "Full Name": "Name",
    "Email (School or University Email)": "Email",
    "Do you want to be a Mentor or Mentee?": "Mentee/Mentor",
    "What are your skills?": "Skills",
    "Which industry sectors are you in or interested in?": "Industry Sectors",
    "Industry Sector": "Industry Sectors",
    "Interests/Hobbies": "Hobbies",
    "Interest/Hobbies": "Hobbies",
    "Education (level: field; ...)": "Educational Background",
}


def normalize_responses(df: pd.DataFrame) -> pd.DataFrame:
    df = df.rename(columns=RENAME_MAP)
    # Treat empty strings as NaN so blank cells read as missing
    for col in ["Id", "Email", "Name"]:
        if col in df.columns:
            df[col] = df[col].replace("", pd.NA)
    return df


def parse_list_cell(cell: Optional[Any]) -> List[str]:
    """Split "Python, SQL; Data" into its items, keeping order. Case is left to the normalizer."""
    if cell is None or (not isinstance(cell, (list, tuple)) and pd.isna(cell)):
        return []
    if isinstance(cell, (list, tuple)):
        return [str(it).strip() for it in cell if str(it).strip()]
    items = re.split(r"[,;]", str(cell))
    return [it.strip() for it in items if it.strip()]


def parse_education_cell(cell: Optional[Any]) -> List[List[str]]:
    """
    "Bachelor's: Computer Science; Master's: Data Science" ->
    [["Bachelor's", "Computer Science"], ["Master's", "Data Science"]].
    An entry without a field gets an empty one.
    """
    if isinstance(cell, (list, tuple)):
        return [list(entry) for entry in cell]
    if cell is None or pd.isna(cell):
        return []
    entries = []
    for entry in str(cell).split(";"):
        entry = entry.strip()
        if not entry:
            continue
        level, _, field = entry.partition(":")
        entries.append([level.strip(), field.strip()])
    return entries


def id_text(value: Any) -> str:
    # a numeric column with blanks comes back as float: 1.0 -> "1"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _row_id(row: pd.Series) -> Optional[str]:
    for col in ("Id", "Email", "Name"):
        value = row.get(col)
        if value is not None and not pd.isna(value) and id_text(value):
            return id_text(value)
    return None


def profiles_from_frame(df: pd.DataFrame) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Split form responses into raw mentor and mentee profiles.
    The id is the "Id" column, else Email, else Name. Rows with another role are skipped.
    """
    mentors, mentees = [], []
    skipped = 0
    for _, row in df.iterrows():
        role = str(row.get("Mentee/Mentor", "")).strip().lower()
        name = row.get("Name")
        raw = {
            "id": _row_id(row),
            "displayName": None if name is None or pd.isna(name) else str(name),
            "attributes": {
                "skills": parse_list_cell(row.get("Skills")),
                "industrySectors": parse_list_cell(row.get("Industry Sectors")),
                "hobbies": parse_list_cell(row.get("Hobbies")),
                "educationalBackground": parse_education_cell(row.get("Educational Background")),
            },
        }
        if role == "mentor":
            mentors.append(raw)
        elif role == "mentee":
            mentees.append(raw)
        else:
            skipped += 1
    if skipped:
        logger.warning("Skipped %d row(s) with no Mentor/Mentee role", skipped)
    return mentors, mentees


def assigned_pairs_from_frame(df: pd.DataFrame) -> List[Tuple[str, str]]:
    missing = [c for c in ("mentor_id", "mentee_id") if c not in df.columns]
    if missing:
        raise ValueError(f"Assignments table is missing column(s): {missing}")
    pairs = []
    for _, row in df.iterrows():
        if pd.isna(row["mentor_id"]) or pd.isna(row["mentee_id"]):
            continue
        pairs.append((id_text(row["mentor_id"]), id_text(row["mentee_id"])))
    return pairs


def _authorize(creds_json: str) -> gspread.Client:
    creds = Credentials.from_service_account_file(creds_json, scopes=SCOPES)
    return gspread.authorize(creds)


# Google Sheets import helper
def read_google_sheet(sheet_id: str, creds_json: str, worksheet_name: Optional[str] = None) -> pd.DataFrame:
    sh = _authorize(creds_json).open_by_key(sheet_id)

    # If no worksheet name is provided, use the first worksheet with data
    if worksheet_name is None:
        for ws in sh.worksheets():
            data = ws.get_all_records()
            if data:
                logger.info("Reading from worksheet: '%s'", ws.title)
                return pd.DataFrame(data)
        logger.warning("No worksheets contain data. Using first sheet: '%s'", sh.sheet1.title)
        ws = sh.sheet1
    else:
        ws = sh.worksheet(worksheet_name)
        logger.info("Reading from worksheet: '%s'", worksheet_name)

    data = ws.get_all_records()
    return pd.DataFrame(data)


def open_assignments_worksheet(sheet_id: str, creds_json: str, worksheet_name: str) -> gspread.Worksheet:
    sh = _authorize(creds_json).open_by_key(sheet_id)
    try:
        return sh.worksheet(worksheet_name)
    except gspread.WorksheetNotFound:
        logger.info("Creating worksheet '%s'", worksheet_name)
        return sh.add_worksheet(title=worksheet_name, rows=1000, cols=len(ASSIGNMENT_HEADER))


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return value


def upsert_assignments(worksheet, rows: Sequence[Dict[str, Any]]) -> Tuple[int, int]:
    """
    Upsert assignment rows keyed on (mentor_id, mentee_id).
    Existing keys are rewritten in place, new keys appended. Returns (updated, appended).
    """
    values = worksheet.get_all_values()
    if values:
        header = values[0]
        existing = values[1:]
    else:
        header = list(ASSIGNMENT_HEADER)
        existing = []
        worksheet.append_row(header)
    missing = [c for c in ("mentor_id", "mentee_id") if c not in header]
    if missing:
        raise ValueError(f"Worksheet header is missing column(s): {missing}")
    i_mentor = header.index("mentor_id")
    i_mentee = header.index("mentee_id")

    # sheet rows are 1-based and row 1 is the header
    positions = {}
    for offset, r in enumerate(existing):
        if len(r) > max(i_mentor, i_mentee):
            positions.setdefault((r[i_mentor], r[i_mentee]), offset + 2)

    updated = 0
    pending: Dict[Tuple[str, str], List[Any]] = {}
    for row in rows:
        key = (str(row["mentor_id"]), str(row["mentee_id"]))
        cells = [_cell(row.get(col)) for col in header]
        if key in positions:
            worksheet.update(range_name=f"A{positions[key]}", values=[cells])
            updated += 1
        else:
            pending[key] = cells

    if pending:
        worksheet.append_rows(list(pending.values()), value_input_option="USER_ENTERED")
    logger.info("Upserted assignments: %d updated, %d appended", updated, len(pending))
    return updated, len(pending)
