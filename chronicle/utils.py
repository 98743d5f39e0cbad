"""Shared utility functions."""
import json
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Union

from dateutil import parser as dateparser

from chronicle.models import CandidateArticle

logger = logging.getLogger(__name__)

_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """Parse a duration like '30m', '6h', '48h', '2d' into a timedelta.

    Bare numbers are taken as seconds.  Raises ValueError on invalid input.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    match = re.match(r"^(\d+)\s*([smhdw]?)$", str(value).strip())
    if not match:
        raise ValueError(f"Invalid duration '{value}'. Use e.g. 30m, 6h, 48h, 2d")
    amount, unit = int(match.group(1)), match.group(2) or "s"
    return timedelta(seconds=amount * _UNITS[unit])


def format_duration(delta: timedelta) -> str:
    """Inverse of parse_duration for whole units: 6h, 48h, 90m."""
    seconds = int(delta.total_seconds())
    for unit in ("h", "m"):
        if seconds and seconds % _UNITS[unit] == 0:
            return f"{seconds // _UNITS[unit]}{unit}"
    return f"{seconds}s"


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-ish timestamp string into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = dateparser.parse(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def relative_time(dt: datetime) -> str:
    """Return a human-friendly relative time string like '2h ago'."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    diff = datetime.now(timezone.utc) - dt
    seconds = int(diff.total_seconds())
    if seconds < 0:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    weeks = days // 7
    return f"{weeks}w ago"


def read_candidates(path: Union[str, Path], source_id: Optional[str] = None) -> List[CandidateArticle]:
    """Load candidate records from a JSON Lines file.

    Each line is an object with at least ``title`` and ``source_url`` (``url``
    is accepted as an alias).  ``source_id`` defaults to the file stem so one
    file maps to one outlet batch.  Malformed lines are logged and skipped.
    """
    path = Path(path)
    outlet = source_id or path.stem
    candidates: List[CandidateArticle] = []
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                d = json.loads(line)
                url = d.get("source_url") or d.get("url")
                if not url:
                    raise ValueError("missing source_url")
                candidates.append(CandidateArticle(
                    title=d.get("title") or "",
                    source_url=url,
                    content=d.get("content") or "",
                    source_id=d.get("source_id") or outlet,
                    published_at=parse_timestamp(d.get("published_at")),
                    summary=d.get("summary") or "",
                    original_id=str(d.get("original_id") or d.get("id") or ""),
                ))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"[Input] {path.name}:{lineno} skipped: {e}")
    return candidates
