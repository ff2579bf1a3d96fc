from src.applytrack.core.jobs_schema import (
    COVER_LETTER_PENDING,
    JOB_COLUMNS,
    MAX_CELL_CHARS,
    JobRecord,
    column_letter,
    column_letters,
    parse_checkbox,
    parse_job_id,
    resolve_column_name,
)


def test_columns_and_letters():
    assert len(JOB_COLUMNS) == 14
    assert column_letter("Job ID") == "A"
    assert column_letter("Not Applying") == "L"
    assert column_letter("Cover Letter") == "M"
    assert column_letters(27) == "AA"


def test_resolve_column_name_accepts_letters_indexes_and_headers():
    assert resolve_column_name("K") == "Applied"
    assert resolve_column_name("l") == "Not Applying"
    assert resolve_column_name(12) == "Not Applying"
    assert resolve_column_name("11") == "Applied"
    assert resolve_column_name("not applying") == "Not Applying"
    assert resolve_column_name("ZZ") is None
    assert resolve_column_name(0) is None
    assert resolve_column_name(True) is None


def test_parse_checkbox_and_job_id():
    assert parse_checkbox(True) is True
    assert parse_checkbox("TRUE") is True
    assert parse_checkbox("false") is False
    assert parse_checkbox("") is False
    assert parse_checkbox(None) is False
    assert parse_job_id("123") == 123
    assert parse_job_id(123.0) == 123
    assert parse_job_id("1.5e3") == 1500
    assert parse_job_id("abc") is None
    assert parse_job_id(True) is None


def test_to_sheet_values_renders_formulas():
    record = JobRecord(
        job_id=42,
        title="Engineer",
        company="Acme",
        pay="$50/hr",
        hourly_rate=50.0,
        link="https://jobs.test/42",
        hiring_manager="Jane Doe",
        hiring_manager_link="https://linkedin.test/jane",
        description="x" * (MAX_CELL_CHARS + 10),
    )
    values = record.to_sheet_values()
    assert len(values) == len(JOB_COLUMNS)
    assert values[0] == 42
    assert values[4] == 50.0
    assert values[5] == '=HYPERLINK("https://jobs.test/42","Apply")'
    assert values[6] == '=HYPERLINK("https://linkedin.test/jane","Jane Doe")'
    assert values[10] is False and values[11] is False
    assert values[12] == COVER_LETTER_PENDING
    assert len(values[13]) == MAX_CELL_CHARS


def test_to_sheet_values_blank_rate_and_plain_manager():
    values = JobRecord(job_id=1, hiring_manager="Sam").to_sheet_values()
    assert values[4] == ""
    assert values[5] == ""
    assert values[6] == "Sam"


def test_from_sheet_values_parses_formula_row():
    row = [
        "77",
        "Analyst",
        "Beta",
        "$30/hr",
        30,
        '=HYPERLINK("https://jobs.test/77","Apply")',
        '=HYPERLINK("https://linkedin.test/pat","Pat")',
        "2026-02-01",
        "FULL_TIME",
        "Finance",
        True,
        "FALSE",
        '=HYPERLINK("https://docs.google.com/document/d/1DocId123456/edit","Cover Letter")',
    ]
    record = JobRecord.from_sheet_values(row)
    assert record is not None
    assert record.job_id == 77
    assert record.hourly_rate == 30.0
    assert record.link == "https://jobs.test/77"
    assert record.hiring_manager == "Pat"
    assert record.hiring_manager_link == "https://linkedin.test/pat"
    assert record.applied is True
    assert record.not_applying is False
    assert record.cover_letter_url == "https://docs.google.com/document/d/1DocId123456/edit"
    assert record.description == ""
    assert record.summary()["cover_letter"] == record.cover_letter_url


def test_from_sheet_values_without_id_is_none():
    assert JobRecord.from_sheet_values(["", "Title"]) is None
    assert JobRecord.from_sheet_values([]) is None


def test_pending_record_has_no_document_url():
    record = JobRecord(job_id=5)
    assert record.cover_letter == COVER_LETTER_PENDING
    assert record.cover_letter_url is None
    assert record.summary()["cover_letter"] == COVER_LETTER_PENDING
