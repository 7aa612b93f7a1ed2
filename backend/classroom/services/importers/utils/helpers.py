import re

from email_validator import EmailNotValidError, validate_email

LETTER_GRADE_RE = re.compile(r"^[A-F][+-]?$", re.IGNORECASE)


def _clean(v) -> str:
    if v is None:
        return ""
    return str(v).strip()


def _lower(v) -> str:
    return _clean(v).lower()


def _to_float(val):
    if val is None:
        return None
    s = str(val).strip()
    if s == "":
        return None
    try:
        return float(s)
    except ValueError:
        return None


def _is_email(v) -> bool:
    s = _clean(v)
    if not s:
        return False
    try:
        validate_email(s, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _is_grade(v) -> bool:
    """A-F with optional +/-, or a number in 0..100."""
    s = _clean(v)
    if LETTER_GRADE_RE.match(s):
        return True
    n = _to_float(s)
    return n is not None and 0 <= n <= 100
