"""CSV review import.

Review exports are named ``Apple-{Location}.csv`` and carry the columns
``Review date``, ``Author name``, ``Star rating`` and ``Review content``.
Dates stay free text on the review and are only parsed when filtering.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import datetime, timezone

from review_compare.models.review import ReviewCreate

logger = logging.getLogger(__name__)

COLUMN_MAP: dict[str, str] = {
    "review date": "review_date",
    "author name": "author_name",
    "star rating": "star_rating",
    "review content": "review_content",
}

_FILENAME_RE = re.compile(r"Apple-(.+)\.csv", re.IGNORECASE)
_RATING_RE = re.compile(r"(\d+)")
_ON_DATE_RE = re.compile(r"on\s+([A-Za-z]+\s+\d{1,2},\s+\d{4})")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%y",
    "%d/%m/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def extract_location_from_filename(filename: str) -> str:
    """``Apple-Fifth Avenue.csv`` -> ``Fifth Avenue``; ``Unknown`` if nothing is left."""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    match = _FILENAME_RE.search(name)
    if match:
        return match.group(1).strip()

    location = re.sub(r"apple-", "", name, flags=re.IGNORECASE)
    location = re.sub(r"\.csv", "", location, flags=re.IGNORECASE).strip()
    return location or "Unknown"


def parse_rating(value: str | None) -> int:
    """First integer in the cell, clamped to 1-5; 3 when absent.

    Examples:
        "5" -> 5
        "4 out of 5 stars" -> 4
    """
    if not value:
        return 3
    match = _RATING_RE.search(str(value))
    if match is None:
        return 3
    return max(1, min(5, int(match.group(1))))


def parse_review_date(value: str | None) -> datetime | None:
    """Best-effort parse of a free-text review date to a naive UTC datetime."""
    if not value or not value.strip():
        return None
    text = value.strip()

    match = _ON_DATE_RE.search(text)
    if match:
        text = match.group(1)

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _normalize_header(header: str) -> str:
    key = header.strip().lstrip("\ufeff").lower()
    return COLUMN_MAP.get(key, key)


def parse_reviews_csv(content: str | bytes, filename: str) -> list[ReviewCreate]:
    """Parse one CSV export into reviews tagged with the file's location.

    Rows without review content are skipped.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig", errors="replace")

    location = extract_location_from_filename(filename)
    reader = csv.DictReader(io.StringIO(content))
    if reader.fieldnames is None:
        return []
    reader.fieldnames = [_normalize_header(h) for h in reader.fieldnames]

    reviews: list[ReviewCreate] = []
    skipped = 0
    for row in reader:
        review_content = (row.get("review_content") or "").strip()
        if not review_content:
            skipped += 1
            continue
        reviews.append(
            ReviewCreate(
                review_date=(row.get("review_date") or "").strip(),
                author_name=(row.get("author_name") or "").strip(),
                star_rating=parse_rating(row.get("star_rating")),
                review_content=review_content,
                location=location,
            )
        )

    logger.info(
        "csv_parsed",
        extra={
            "file_name": filename,
            "location": location,
            "review_count": len(reviews),
            "skipped_rows": skipped,
        },
    )
    return reviews
