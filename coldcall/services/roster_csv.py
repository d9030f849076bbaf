# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Roster CSV codec. Pure computation, no side effects.
Parses ``name,uni`` uploads and renders roster / statistics downloads.
"""

import csv
import io
from typing import Any, Iterable

REQUIRED_COLUMNS = ("name", "uni")
STATS_COLUMNS = (
    "name", "uni", "times_called", "cumulative_score", "average_score", "last_called_at",
)


def parse_roster_csv(raw: bytes, max_bytes: int) -> list[dict[str, str]]:
    """
    Return the ``{"name", "uni"}`` rows of an uploaded roster.
    Raises ValueError describing every bad row; nothing is returned partially.
    """
    if len(raw) > max_bytes:
        raise ValueError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValueError("Failed to parse CSV: file is not UTF-8 text") from exc

    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        raise ValueError('CSV must have "name" and "uni" columns')
    headers = {(h or "").strip().lower(): h for h in reader.fieldnames}
    if any(col not in headers for col in REQUIRED_COLUMNS):
        raise ValueError('CSV must have "name" and "uni" columns')

    parsed: list[dict[str, str]] = []
    errors: list[str] = []
    for row in reader:
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue  # blank line
        name = (row.get(headers["name"]) or "").strip()
        uni = (row.get(headers["uni"]) or "").strip()
        if not name or not uni:
            # line_num counts the header, matching what a spreadsheet shows
            errors.append(f"Row {reader.line_num}: Missing name or UNI")
        else:
            parsed.append({"name": name, "uni": uni})

    if errors:
        raise ValueError(", ".join(errors))
    if not parsed:
        raise ValueError("CSV contains no students")
    return parsed


def _render(columns: Iterable[str], rows: Iterable[dict[str, Any]]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(columns), extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return buf.getvalue()


def render_roster_csv(students: Iterable[dict[str, Any]]) -> str:
    return _render(REQUIRED_COLUMNS, students)


def render_stats_csv(stats: Iterable[dict[str, Any]]) -> str:
    rows = []
    for s in stats:
        avg = s.get("average_score")
        rows.append({**s, "average_score": f"{avg:.2f}" if avg is not None else ""})
    return _render(STATS_COLUMNS, rows)
