from unittest.mock import MagicMock

import gspread
import pandas as pd
import pytest

import sheet_helper
from engine import compute_matches
from sheet_helper import (
    ASSIGNMENT_HEADER,
    assigned_pairs_from_frame,
    id_text,
    normalize_responses,
    open_assignments_worksheet,
    parse_education_cell,
    parse_list_cell,
    profiles_from_frame,
    read_google_sheet,
    upsert_assignments,
)


def test_parse_list_cell():
    assert parse_list_cell("Python, SQL; Data Analysis ,") == ["Python", "SQL", "Data Analysis"]
    assert parse_list_cell(None) == []
    assert parse_list_cell(float("nan")) == []
    assert parse_list_cell(["Go", " ", "Rust"]) == ["Go", "Rust"]


def test_parse_education_cell():
    assert parse_education_cell("Bachelor's: Computer Science; Master's: Data Science") == [
        ["Bachelor's", "Computer Science"],
        ["Master's", "Data Science"],
    ]
    assert parse_education_cell("Polytechnic") == [["Polytechnic", ""]]
    assert parse_education_cell(pd.NA) == []
    assert parse_education_cell([["PhD", "AI"]]) == [["PhD", "AI"]]


def _responses():
    return pd.DataFrame([
        {"Full Name": "Ada", "Email (School or University Email)": "ada@uni.edu",
         "Do you want to be a Mentor or Mentee?": "Mentor", "What are your skills?": "Python, SQL",
         "Industry Sector": "Tech", "Interests/Hobbies": "Chess",
         "Educational Background": "Master's: CS"},
        {"Full Name": "Ben", "Email (School or University Email)": "",
         "Do you want to be a Mentor or Mentee?": "mentee ", "What are your skills?": "python",
         "Industry Sector": "Tech; Finance", "Interests/Hobbies": None,
         "Educational Background": "Bachelor's: CS"},
        {"Full Name": "Cy", "Email (School or University Email)": "cy@x.com",
         "Do you want to be a Mentor or Mentee?": "", "What are your skills?": "",
         "Industry Sector": "", "Interests/Hobbies": "", "Educational Background": ""},
    ])


def test_normalize_responses_renames_form_columns():
    df = normalize_responses(_responses())
    for col in ["Name", "Email", "Mentee/Mentor", "Skills", "Industry Sectors", "Hobbies"]:
        assert col in df.columns
    assert pd.isna(df.loc[1, "Email"])


def test_profiles_from_frame_splits_roles_and_feeds_engine():
    mentors, mentees = profiles_from_frame(normalize_responses(_responses()))
    assert mentors == [{
        "id": "ada@uni.edu",
        "displayName": "Ada",
        "attributes": {
            "skills": ["Python", "SQL"],
            "industrySectors": ["Tech"],
            "hobbies": ["Chess"],
            "educationalBackground": [["Master's", "CS"]],
        },
    }]
    # no email, so the name is the id
    assert mentees[0]["id"] == "Ben"
    assert mentees[0]["attributes"]["hobbies"] == []

    result = compute_matches(mentors, mentees)
    pair = result.for_mentor("ada@uni.edu")[0].pair
    assert pair.mentee_id == "Ben"
    assert "Step-up path: mentee Bachelor's → mentor Master's (both in cs)" in pair.reasons


def test_assigned_pairs_from_frame():
    df = pd.DataFrame({"mentor_id": ["m1", None, "m2"], "mentee_id": ["t1", "t2", "t3"]})
    assert assigned_pairs_from_frame(df) == [("m1", "t1"), ("m2", "t3")]
    with pytest.raises(ValueError):
        assigned_pairs_from_frame(pd.DataFrame({"mentor": ["m1"]}))


def test_upsert_assignments_updates_existing_and_appends_new():
    ws = MagicMock()
    ws.get_all_values.return_value = [
        ["mentor_id", "mentee_id", "score", "approved"],
        ["m0", "t0", "0.1", "TRUE"],
        ["m1", "t1", "0.5", "TRUE"],
    ]
    rows = [
        {"mentor_id": "m1", "mentee_id": "t1", "score": 0.9, "approved": True},
        {"mentor_id": "m2", "mentee_id": "t2", "score": 0.7, "approved": True},
    ]
    assert upsert_assignments(ws, rows) == (1, 1)
    ws.update.assert_called_once_with(range_name="A3", values=[["m1", "t1", 0.9, "TRUE"]])
    ws.append_rows.assert_called_once_with([["m2", "t2", 0.7, "TRUE"]], value_input_option="USER_ENTERED")
    ws.append_row.assert_not_called()


def test_upsert_assignments_writes_header_on_empty_sheet():
    ws = MagicMock()
    ws.get_all_values.return_value = []
    rows = [{"mentor_id": "m1", "mentee_id": "t1", "score": None, "approved": True}]
    assert upsert_assignments(ws, rows) == (0, 1)
    ws.append_row.assert_called_once_with(ASSIGNMENT_HEADER)
    ws.append_rows.assert_called_once_with([["m1", "t1", "", "TRUE"]], value_input_option="USER_ENTERED")


def test_upsert_assignments_rejects_foreign_header():
    ws = MagicMock()
    ws.get_all_values.return_value = [["Mentor", "Mentee"]]
    with pytest.raises(ValueError):
        upsert_assignments(ws, [])


def test_id_text_drops_float_suffix():
    assert id_text(1.0) == "1"
    assert id_text(" 42 ") == "42"
    assert id_text(1.5) == "1.5"
    assert id_text("1.0") == "1.0"


def test_profiles_from_frame_float_ids_match_assigned_pairs():
    # a blank Id turns the whole column into floats
    df = pd.DataFrame({
        "Id": [1.0, None, 3.0],
        "Email": ["a@x.com", "b@x.com", "c@x.com"],
        "Mentee/Mentor": ["Mentor", "Mentor", "Mentee"],
    })
    mentors, mentees = profiles_from_frame(df)
    assert [m["id"] for m in mentors] == ["1", "b@x.com"]
    assert [m["id"] for m in mentees] == ["3"]

    assigned = pd.DataFrame({"mentor_id": [1.0, None], "mentee_id": [3.0, 4.0]})
    assert assigned_pairs_from_frame(assigned) == [("1", "3")]


def _worksheet(title, records):
    ws = MagicMock()
    ws.title = title
    ws.get_all_records.return_value = records
    return ws


@pytest.fixture
def spreadsheet(monkeypatch):
    sh = MagicMock()
    client = MagicMock()
    client.open_by_key.return_value = sh
    monkeypatch.setattr(sheet_helper, "_authorize", lambda creds: client)
    return sh


def test_read_google_sheet_uses_first_worksheet_with_data(spreadsheet):
    spreadsheet.worksheets.return_value = [
        _worksheet("Notes", []),
        _worksheet("Form Responses 1", [{"Full Name": "Ada"}, {"Full Name": "Ben"}]),
        _worksheet("Archive", [{"Full Name": "Old"}]),
    ]
    df = read_google_sheet("sheet", "creds.json")
    assert list(df["Full Name"]) == ["Ada", "Ben"]


def test_read_google_sheet_falls_back_to_first_sheet(spreadsheet):
    spreadsheet.worksheets.return_value = [_worksheet("Notes", [])]
    spreadsheet.sheet1 = _worksheet("Sheet1", [])
    df = read_google_sheet("sheet", "creds.json")
    assert df.empty
    spreadsheet.sheet1.get_all_records.assert_called_once_with()


def test_read_google_sheet_named_worksheet(spreadsheet):
    spreadsheet.worksheet.return_value = _worksheet("Form", [{"Full Name": "Cy"}])
    df = read_google_sheet("sheet", "creds.json", worksheet_name="Form")
    spreadsheet.worksheet.assert_called_once_with("Form")
    spreadsheet.worksheets.assert_not_called()
    assert list(df["Full Name"]) == ["Cy"]


def test_open_assignments_worksheet_returns_existing(spreadsheet):
    existing = _worksheet("Assignments", [])
    spreadsheet.worksheet.return_value = existing
    assert open_assignments_worksheet("sheet", "creds.json", "Assignments") is existing
    spreadsheet.add_worksheet.assert_not_called()


def test_open_assignments_worksheet_creates_missing(spreadsheet):
    spreadsheet.worksheet.side_effect = gspread.WorksheetNotFound("Assignments")
    created = open_assignments_worksheet("sheet", "creds.json", "Assignments")
    spreadsheet.add_worksheet.assert_called_once_with(title="Assignments", rows=1000, cols=len(ASSIGNMENT_HEADER))
    assert created is spreadsheet.add_worksheet.return_value
