"""
Attribution sources.

Provides:
- Parsing of `git blame --line-porcelain` output into coalesced records
- Loading records from a JSON attribution file
- A service running git blame for a file on disk

Records produced here use 0-based, end-exclusive line ranges.
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from srcview.core.models import AttributionRecord


HEADER_PATTERN = re.compile(r'^([0-9a-f]{40}) (\d+) (\d+)(?: (\d+))?$')

SHORT_ID_LENGTH = 8


@dataclass
class BlameResult:
    """Result of an attribution load."""
    success: bool
    records: List[AttributionRecord] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class _PorcelainLine:
    sha: str
    line: int
    author: str = ""
    author_time: int = 0
    summary: str = ""


def parse_line_porcelain(output: str) -> List[AttributionRecord]:
    """
    Parse `git blame --line-porcelain` output.

    Consecutive lines from the same commit are merged into one record.
    """
    lines: List[_PorcelainLine] = []
    current: Optional[_PorcelainLine] = None

    for raw in output.splitlines():
        if current is None:
            match = HEADER_PATTERN.match(raw)
            if match:
                current = _PorcelainLine(sha=match.group(1), line=int(match.group(3)) - 1)
            continue

        if raw.startswith('\t'):
            lines.append(current)
            current = None
        elif raw.startswith('author '):
            current.author = raw[len('author '):]
        elif raw.startswith('author-time '):
            current.author_time = int(raw[len('author-time '):])
        elif raw.startswith('summary '):
            current.summary = raw[len('summary '):]

    records: List[AttributionRecord] = []
    for entry in lines:
        previous = records[-1] if records else None
        if (previous is not None
                and previous.identifier == entry.sha[:SHORT_ID_LENGTH]
                and previous.line_end == entry.line):
            records[-1] = AttributionRecord(
                line_start=previous.line_start,
                line_end=entry.line + 1,
                author=previous.author,
                timestamp=previous.timestamp,
                identifier=previous.identifier,
                message=previous.message,
            )
            continue

        records.append(AttributionRecord(
            line_start=entry.line,
            line_end=entry.line + 1,
            author=entry.author,
            timestamp=datetime.fromtimestamp(entry.author_time),
            identifier=entry.sha[:SHORT_ID_LENGTH],
            message=entry.summary,
        ))

    logging.debug(f"BlameSource - Parsed {len(lines)} line(s) into {len(records)} record(s)")
    return records


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value)
    timestamp = datetime.fromisoformat(str(value))
    if timestamp.tzinfo is not None:
        # Compared against naive local "now"
        timestamp = timestamp.astimezone().replace(tzinfo=None)
    return timestamp


def record_from_dict(data: Dict[str, Any]) -> AttributionRecord:
    """
    Build a record from a JSON object.

    Expected keys: line_start, line_end, author, timestamp (ISO 8601 or
    epoch seconds); optional identifier and message.
    """
    return AttributionRecord(
        line_start=int(data['line_start']),
        line_end=int(data['line_end']),
        author=str(data.get('author', '')),
        timestamp=_parse_timestamp(data['timestamp']),
        identifier=str(data.get('identifier', '')),
        message=str(data.get('message', '')),
    )


def load_json_records(path: Path | str) -> BlameResult:
    """Load attribution records from a JSON file holding a list of objects."""
    path = Path(path)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        logging.error(f"BlameSource - Failed to read {path}: {e}")
        return BlameResult(success=False, error=f"Could not read {path}: {e}")
    except ValueError as e:
        logging.error(f"BlameSource - Invalid JSON in {path}: {e}")
        return BlameResult(success=False, error=f"Invalid JSON in {path}: {e}")

    if not isinstance(data, list):
        return BlameResult(success=False, error=f"Expected a list of records in {path}")

    records = []
    for index, item in enumerate(data):
        try:
            records.append(record_from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logging.warning(f"BlameSource - Skipping record {index} in {path}: {e}")

    return BlameResult(success=True, records=records)


class GitBlameService:
    """Runs git blame for files on disk."""

    def __init__(self, git_executable: str = "git", timeout: float = 30.0):
        self.git_executable = git_executable
        self.timeout = timeout

    def blame_file(self, path: Path | str) -> BlameResult:
        path = Path(path)
        command = [
            self.git_executable, "-C", str(path.parent),
            "blame", "--line-porcelain", "--", path.name,
        ]

        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding='utf-8',
                errors='replace',
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logging.error(f"GitBlameService - Failed to run git blame on {path}: {e}")
            return BlameResult(success=False, error=str(e))

        if completed.returncode != 0:
            error = completed.stderr.strip() or f"git blame exited with {completed.returncode}"
            logging.warning(f"GitBlameService - No blame for {path}: {error}")
            return BlameResult(success=False, error=error)

        return BlameResult(success=True, records=parse_line_porcelain(completed.stdout))
