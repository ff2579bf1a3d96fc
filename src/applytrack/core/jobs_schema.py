"""Column contract for the Jobs tab and the job record it stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .links import cell_url, hyperlink_formula, parse_hyperlink

JOB_COLUMNS = (
    "Job ID",
    "Title",
    "Company",
    "Pay",
    "Hourly Rate",
    "Link",
    "Hiring Manager",
    "Date Posted",
    "Employment Status",
    "Industry",
    "Applied",
    "Not Applying",
    "Cover Letter",
    "Description",
)

COLUMN_INDEX = {name: index for index, name in enumerate(JOB_COLUMNS)}

# Artifact-reference states kept in the Cover Letter column.
COVER_LETTER_PENDING = "Pending..."
COVER_LETTER_GENERATING = "Generating..."
COVER_LETTER_ERROR = "Error creating document"
COVER_LETTER_LINK_LABEL = "Cover Letter"
JOB_LINK_LABEL = "Apply"

# Google Sheets rejects cells longer than 50000 characters.
MAX_CELL_CHARS = 50000

STATUS_COLUMNS = ("Applied", "Not Applying")
# (column, descending) in priority order.
SORT_ORDER = (
    ("Not Applying", False),
    ("Applied", False),
    ("Hourly Rate", True),
)

_TRUE_STRINGS = {"true", "yes", "1", "checked", "x"}


def column_letters(one_based_index: int) -> str:
    if one_based_index <= 0:
        raise ValueError("one_based_index must be >= 1")
    out: list[str] = []
    value = one_based_index
    while value > 0:
        value, remainder = divmod(value - 1, 26)
        out.append(chr(ord("A") + remainder))
    return "".join(reversed(out))


def column_letter(name: str) -> str:
    return column_letters(COLUMN_INDEX[name] + 1)


def resolve_column_name(column: str | int) -> str | None:
    """Map a column letter, 1-based index or header name to a header name."""
    if isinstance(column, bool):
        return None
    if isinstance(column, int):
        if 1 <= column <= len(JOB_COLUMNS):
            return JOB_COLUMNS[column - 1]
        return None
    text = str(column).strip()
    if not text:
        return None
    if text.isdigit():
        return resolve_column_name(int(text))
    for name in JOB_COLUMNS:
        if name.lower() == text.lower():
            return name
    if text.isalpha():
        for index in range(len(JOB_COLUMNS)):
            if column_letters(index + 1) == text.upper():
                return JOB_COLUMNS[index]
    return None


def parse_checkbox(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def parse_job_id(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() else None


def _parse_rate(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass(slots=True)
class JobRecord:
    """One row of the Jobs tab."""

    job_id: int
    title: str = ""
    company: str = ""
    pay: str = ""
    hourly_rate: float | None = None
    link: str = ""
    hiring_manager: str = ""
    hiring_manager_link: str = ""
    date_posted: str = ""
    employment_status: str = ""
    industry: str = ""
    applied: bool = False
    not_applying: bool = False
    cover_letter: str = COVER_LETTER_PENDING
    description: str = ""

    @property
    def cover_letter_url(self) -> str | None:
        """Document URL when the Cover Letter cell holds a link, else None."""
        return cell_url(self.cover_letter)

    def to_sheet_values(self) -> list[Any]:
        """Render the row for a USER_ENTERED write."""
        manager = self.hiring_manager
        if self.hiring_manager_link:
            manager = hyperlink_formula(self.hiring_manager_link, self.hiring_manager or self.hiring_manager_link)
        return [
            self.job_id,
            self.title,
            self.company,
            self.pay,
            self.hourly_rate if self.hourly_rate is not None else "",
            hyperlink_formula(self.link, JOB_LINK_LABEL) if self.link else "",
            manager,
            self.date_posted,
            self.employment_status,
            self.industry,
            bool(self.applied),
            bool(self.not_applying),
            self.cover_letter,
            self.description[:MAX_CELL_CHARS],
        ]

    @classmethod
    def from_sheet_values(cls, values: Sequence[Any]) -> "JobRecord | None":
        """Parse a FORMULA-rendered row; return None when the row has no job ID."""
        padded = list(values) + [""] * (len(JOB_COLUMNS) - len(values))
        job_id = parse_job_id(padded[COLUMN_INDEX["Job ID"]])
        if job_id is None:
            return None

        link_url, _ = parse_hyperlink(_text(padded[COLUMN_INDEX["Link"]]))
        manager_url, manager_label = parse_hyperlink(_text(padded[COLUMN_INDEX["Hiring Manager"]]))
        return cls(
            job_id=job_id,
            title=_text(padded[COLUMN_INDEX["Title"]]),
            company=_text(padded[COLUMN_INDEX["Company"]]),
            pay=_text(padded[COLUMN_INDEX["Pay"]]),
            hourly_rate=_parse_rate(padded[COLUMN_INDEX["Hourly Rate"]]),
            link=link_url or "",
            hiring_manager=manager_label,
            hiring_manager_link=manager_url or "",
            date_posted=_text(padded[COLUMN_INDEX["Date Posted"]]),
            employment_status=_text(padded[COLUMN_INDEX["Employment Status"]]),
            industry=_text(padded[COLUMN_INDEX["Industry"]]),
            applied=parse_checkbox(padded[COLUMN_INDEX["Applied"]]),
            not_applying=parse_checkbox(padded[COLUMN_INDEX["Not Applying"]]),
            cover_letter=_text(padded[COLUMN_INDEX["Cover Letter"]]),
            description=_text(padded[COLUMN_INDEX["Description"]]),
        )

    def summary(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "title": self.title,
            "company": self.company,
            "pay": self.pay,
            "hourly_rate": self.hourly_rate,
            "link": self.link,
            "applied": self.applied,
            "not_applying": self.not_applying,
            "cover_letter": self.cover_letter_url or self.cover_letter,
        }
