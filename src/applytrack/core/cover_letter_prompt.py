"""Prompt templates for cover-letter generation."""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from .jobs_schema import JobRecord

MAX_RESUME_CHARS = 12000
MAX_DESCRIPTION_CHARS = 8000

SYSTEM_PROMPT = """You write tailored, one-page cover letters for job applications.
Use only facts present in the candidate's resume. Do not invent employers, dates, titles or skills.
Write plain text paragraphs with no markdown, no placeholders in square brackets and no commentary."""

COVER_LETTER_PROMPT = """**Candidate Resume:**
{resume_text}

**Target Position:**
- Company: {company}
- Role: {title}
- Employment type: {employment_status}
- Industry: {industry}
- Pay: {pay}
- Posting: {link}

**Job Description:**
{description}

**Instructions:**
Write a cover letter dated {today} that:
1. Opens by addressing {salutation}
2. Shows genuine interest in {company} and the {title} role
3. Highlights 2-3 experiences from the resume that match the role
4. Ends with a confident call to action and is signed by {signature}
{extra_instructions}
Cover Letter:"""

_MARKDOWN_PATTERN = re.compile(r"^\s*(?:#+\s*|\*\*|__)|(?:\*\*|__)\s*$")


def _or_unknown(value: str) -> str:
    return value.strip() or "Not specified"


def build_cover_letter_messages(
    *,
    job: JobRecord,
    resume_text: str,
    applicant_name: str = "",
    instructions: str = "",
    today: date | None = None,
) -> list[dict[str, Any]]:
    manager = job.hiring_manager.strip()
    prompt = COVER_LETTER_PROMPT.format(
        resume_text=resume_text.strip()[:MAX_RESUME_CHARS],
        company=_or_unknown(job.company),
        title=_or_unknown(job.title),
        employment_status=_or_unknown(job.employment_status),
        industry=_or_unknown(job.industry),
        pay=_or_unknown(job.pay),
        link=_or_unknown(job.link),
        description=job.description.strip()[:MAX_DESCRIPTION_CHARS] or "Not provided.",
        today=(today or date.today()).strftime("%B %d, %Y"),
        salutation=f"{manager} by name" if manager else "the hiring manager",
        signature=applicant_name.strip() or "the candidate's name as written on the resume",
        extra_instructions=f"5. Also follow these instructions: {instructions.strip()}\n" if instructions.strip() else "",
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def letter_paragraphs(text: str) -> list[str]:
    """Split model output into paragraphs, dropping markdown markers and blank lines."""
    paragraphs: list[str] = []
    for block in re.split(r"\n\s*\n", text.strip()):
        lines = [_MARKDOWN_PATTERN.sub("", line).strip() for line in block.splitlines()]
        joined = "\n".join(line for line in lines if line)
        if joined:
            paragraphs.append(joined)
    return paragraphs


def document_name(job: JobRecord) -> str:
    parts = [part.strip() for part in (job.company, job.title) if part.strip()]
    label = " - ".join(parts) if parts else f"Job {job.job_id}"
    return f"Cover Letter - {label}"
