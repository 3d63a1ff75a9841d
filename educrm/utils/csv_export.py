"""CSV encoding for generated reports.

Layout: two header lines (report name, generation timestamp), then one
section per list-valued key (upper-cased title, header row, data rows) and one
per dict-valued key (``key,value`` rows). Fields are quoted per RFC 4180, so a
comma, quote or newline inside a value never shifts columns.
"""

import csv
import io
from typing import Any

SKIPPED_KEYS = {"report_name", "generated_at"}


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    return value


def report_to_csv(report: dict[str, Any]) -> str:
    """Encode a report dict as CSV text with CRLF line endings."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")

    writer.writerow([f"Report: {report.get('report_name', '')}"])
    writer.writerow([f"Generated: {report.get('generated_at', '')}"])

    for key, value in report.items():
        if key in SKIPPED_KEYS:
            continue

        if isinstance(value, list):
            writer.writerow([])
            writer.writerow([key.upper()])
            rows = [row for row in value if isinstance(row, dict)]
            headers: list[str] = []
            for row in rows:
                for column in row:
                    if column not in headers:
                        headers.append(column)
            writer.writerow(headers)
            for row in rows:
                writer.writerow([_cell(row.get(column)) for column in headers])

        elif isinstance(value, dict):
            writer.writerow([])
            writer.writerow([key.upper()])
            for item_key, item_value in value.items():
                writer.writerow([item_key, _cell(item_value)])

    return buffer.getvalue()
