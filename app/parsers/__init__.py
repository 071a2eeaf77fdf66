"""
app/parsers package marker.
"""

from app.parsers.csv_parser import format_csv_text, parse_csv_text

__all__ = [
    "format_csv_text",
    "parse_csv_text",
]
