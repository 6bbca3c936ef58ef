# utils/validators.py
from datetime import date


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


def is_iso_date(text: str) -> bool:
    """
    True iff `text` is a calendar date in YYYY-MM-DD form.
    """
    if not non_empty(text):
        return False
    try:
        date.fromisoformat(str(text).strip())
    except ValueError:
        return False
    return len(str(text).strip()) == 10

