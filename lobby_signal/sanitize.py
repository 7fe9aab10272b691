import re
from typing import List, Set

# Matches URLs like http://..., https://..., www....
URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)

# Matches e-mail addresses
EMAIL_RE = re.compile(r"\b[\w.+-]+@[\w-]+\.[\w.-]+\b")

# Matches social handles like @someone or u/someone
HANDLE_RE = re.compile(r"(?:\bu/|@)[A-Za-z0-9_-]+\b")

# Matches phone-like digit runs
PHONE_RE = re.compile(r"\+?\d[\d\s().-]{6,}\d")

WORD_RE = re.compile(r"[a-z][a-z'-]*[a-z]")

STOPWORDS = frozenset("""
about after again also because been before being could does doing down during
from have having here into just like more most much only other over really same
should some such than that their them then there these they this those through
very want were what when where which while will with would your yours
""".split())


def sanitize_text(text: str) -> str:
    """
    Strip contact details from free-text lobby reasons.

    IMPORTANT:
    - This is ONLY a pre-pass for theme extraction.
    - Sanitized reasons are still never returned verbatim to brands.
    """

    t = (text or "").strip()
    t = URL_RE.sub(" ", t)
    t = EMAIL_RE.sub(" ", t)
    t = HANDLE_RE.sub(" ", t)
    t = PHONE_RE.sub(" ", t)

    # Collapse whitespace
    t = re.sub(r"\s+", " ", t)

    return t.strip()


def reason_terms(text: str, min_length: int = 4) -> Set[str]:
    """Distinct lower-case content words of a reason, stopwords removed."""
    words: List[str] = WORD_RE.findall(sanitize_text(text).lower())
    return {w for w in words if len(w) >= min_length and w not in STOPWORDS}
