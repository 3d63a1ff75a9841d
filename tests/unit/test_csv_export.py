"""
Unit tests for report CSV encoding.
"""

import csv
import io

from educrm.utils.csv_export import report_to_csv


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


class TestReportToCsv:
    """Test cases for report_to_csv."""

    def test_header_lines(self):
        text = report_to_csv({"report_name": "Country Distribution", "generated_at": "2025-01-01"})

        rows = _rows(text)
        assert rows[0] == ["Report: Country Distribution"]
        assert rows[1] == ["Generated: 2025-01-01"]

    def test_comma_inside_field_does_not_shift_columns(self):
        report = {
            "report_name": "Conversion Analysis",
            "generated_at": "now",
            "counselor_performance": [
                {"name": "Smith, Jane", "students": 4, "conversion_rate": 25.0},
                {"name": "Lee", "students": 2, "conversion_rate": 50.0},
            ],
        }

        rows = _rows(report_to_csv(report))

        header_index = rows.index(["name", "students", "conversion_rate"])
        assert rows[header_index + 1] == ["Smith, Jane", "4", "25.0"]
        assert rows[header_index + 2] == ["Lee", "2", "50.0"]
        assert all(len(r) == 3 for r in rows[header_index : header_index + 3])

    def test_quotes_are_doubled(self):
        text = report_to_csv({"report_name": "x", "items": [{"note": 'say "hi"'}]})

        assert '"say ""hi"""' in text

    def test_dict_section_as_key_value_rows(self):
        report = {"report_name": "x", "summary": {"total_students": 10, "enrolled": 3}}

        rows = _rows(report_to_csv(report))

        assert ["SUMMARY"] in rows
        assert ["total_students", "10"] in rows
        assert ["enrolled", "3"] in rows

    def test_crlf_line_endings(self):
        assert report_to_csv({"report_name": "x"}).endswith("\r\n")
