"""Canonical regex sources for the named pattern shortcuts.

Matched with forced ``gi`` flags by the pattern engine.
"""

PREDEFINED_PATTERNS: dict[str, str] = {
    "email": r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b",
    "url": r"https?://(www\.)?[-a-zA-Z0-9@:%._\+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_\+.~#?&/=]*)",
    "phone": r"(\+\d{1,3}[- ]?)?\d{10}",
    "date": r"\b\d{1,2}[-/]\d{1,2}[-/]\d{2,4}\b|\b\d{4}[-/]\d{1,2}[-/]\d{1,2}\b",
    "time": r"\b\d{1,2}:\d{2}(\s?(AM|PM|am|pm))?\b",
    "hashtag": r"#[\w\d_]+",
    "mention": r"@[\w\d_]+",
    "number": r"\b\d+(\.\d+)?\b",
    "word": r"\b\w+\b",
}


def is_predefined(name: str) -> bool:
    return name in PREDEFINED_PATTERNS
