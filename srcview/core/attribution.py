"""
Line attribution (blame) index and age classification.

Records are supplied by an external history source (see
srcview.services.blame_source) and kept sorted and non-overlapping so
that any line maps to at most one record.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from srcview.core.models import AgeBucket, AttributionRecord


# Minimum age in days for each bucket, oldest first
AGE_THRESHOLDS: Tuple[Tuple[float, AgeBucket], ...] = (
    (540, AgeBucket.ANCIENT),   # ~18 months
    (365, AgeBucket.OLD),       # 12-18 months
    (180, AgeBucket.MEDIUM),    # 6-12 months
    (30, AgeBucket.RECENT),     # 1-6 months
    (7, AgeBucket.FRESH),       # 1 week - 1 month
)

SECONDS_PER_DAY = 24 * 60 * 60


class OverlappingAttributionError(ValueError):
    """Raised by a strict index when two records cover the same line."""
    pass


def classify(timestamp: datetime, now: datetime) -> AgeBucket:
    """
    Bucket the age of a change.

    A value exactly on a threshold belongs to the older bucket: 540 days
    is ancient and 365 days is old.
    """
    age_days = (now - timestamp).total_seconds() / SECONDS_PER_DAY
    for threshold, bucket in AGE_THRESHOLDS:
        if age_days >= threshold:
            return bucket
    return AgeBucket.NEW


def line_offsets(content: str) -> List[Tuple[int, int]]:
    """Start and end offsets of every line, newlines excluded."""
    offsets = []
    offset = 0
    for line in content.split("\n"):
        offsets.append((offset, offset + len(line)))
        offset += len(line) + 1
    return offsets


@dataclass(frozen=True)
class BlameStats:
    """Attributed line counts."""
    by_author: Dict[str, int]
    by_age: Dict[AgeBucket, int]
    total_lines: int


class AttributionIndex:
    """
    Sorted, non-overlapping set of attribution records.

    Records are considered in the order given; a record overlapping one
    already accepted is dropped with a warning, or rejected with
    OverlappingAttributionError when strict is set.
    """

    def __init__(self, records: Iterable[AttributionRecord] = (), strict: bool = False):
        self._records: List[AttributionRecord] = []
        self._starts: List[int] = []
        self.dropped: List[AttributionRecord] = []

        for record in records:
            self._add(record, strict)

    def _add(self, record: AttributionRecord, strict: bool) -> None:
        if record.line_end <= record.line_start:
            logging.warning(
                f"AttributionIndex - Ignoring empty range "
                f"[{record.line_start}, {record.line_end}) for {record.identifier or record.author}"
            )
            self.dropped.append(record)
            return

        index = bisect.bisect_left(self._starts, record.line_start)
        neighbours = self._records[max(index - 1, 0):index + 1]
        clash = next((other for other in neighbours if other.overlaps(record)), None)

        if clash is not None:
            message = (
                f"lines [{record.line_start}, {record.line_end}) overlap "
                f"[{clash.line_start}, {clash.line_end})"
            )
            if strict:
                raise OverlappingAttributionError(message)
            logging.warning(f"AttributionIndex - Dropping record: {message}")
            self.dropped.append(record)
            return

        self._records.insert(index, record)
        self._starts.insert(index, record.line_start)

    @property
    def records(self) -> Tuple[AttributionRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def lookup(self, line: int) -> Optional[AttributionRecord]:
        """The record whose range contains line, or None."""
        index = bisect.bisect_right(self._starts, line) - 1
        if index >= 0 and self._records[index].contains(line):
            return self._records[index]
        return None

    def stats(self, now: datetime) -> BlameStats:
        """Line counts per author and per age bucket."""
        by_author: Dict[str, int] = {}
        by_age: Dict[AgeBucket, int] = {}
        total = 0

        for record in self._records:
            count = record.line_count
            total += count
            by_author[record.author] = by_author.get(record.author, 0) + count
            bucket = classify(record.timestamp, now)
            by_age[bucket] = by_age.get(bucket, 0) + count

        return BlameStats(by_author=by_author, by_age=by_age, total_lines=total)

    def describe_line(self, line: int, now: datetime) -> str:
        """One-line summary of a line's attribution for a status bar."""
        record = self.lookup(line)
        if record is None:
            return f"Line {line + 1}: No blame data"

        bucket = classify(record.timestamp, now)
        date = record.timestamp.strftime('%Y-%m-%d')
        return (
            f"Line {line + 1}: {record.identifier} | {record.author} | "
            f"{date} ({bucket.label}) | \"{record.message}\""
        )
