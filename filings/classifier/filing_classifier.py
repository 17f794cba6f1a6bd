import re
from typing import Iterable, List, Optional, Tuple

# Priority order: the first token found in the text wins.
FILING_TOKENS = ["10-K", "10Q", "10-Q", "8-K", "8K", "SC 13D", "13F", "20-F", "S-1", "424B"]

# Spelling variants that collapse to one canonical label.
ALIASES = [
    (re.compile(r"^10-?q$", re.IGNORECASE), "10-Q"),
    (re.compile(r"^10-?k$", re.IGNORECASE), "10-K"),
    (re.compile(r"^8-?k$", re.IGNORECASE), "8-K"),
]

_TOKEN_PATTERNS = [
    (token, re.compile(rf"\b{re.escape(token)}\b", re.IGNORECASE)) for token in FILING_TOKENS
]
_FORM_PATTERN = re.compile(r"Form\s*(\d+[A-Z]?)", re.IGNORECASE)


def canonical_label(token: str) -> str:
    for pattern, label in ALIASES:
        if pattern.match(token):
            return label
    return token


def classify(title: Optional[str], summary: Optional[str]) -> Optional[str]:
    """
    Detect the filing type mentioned in a feed entry.

    Known form codes are matched on word boundaries so that e.g. "8-K" does not
    fire inside "18-KB". Entries naming an ad hoc form ("Form 144") fall back to
    "Form <code>". Returns None when nothing matches.
    """
    candidate = f"{title or ''} {summary or ''}"
    for token, pattern in _TOKEN_PATTERNS:
        if pattern.search(candidate):
            return canonical_label(token)

    m = _FORM_PATTERN.search(candidate)
    if m:
        return f"Form {m.group(1).upper()}"
    return None


class FilingClassifier:
    """Stateless taxonomy classifier; the class exists to give the pipeline one injectable seam."""

    def classify(self, title: Optional[str], summary: Optional[str]) -> Optional[str]:
        return classify(title, summary)

    def classify_texts(self, texts: Iterable[Tuple[Optional[str], Optional[str]]]) -> List[Optional[str]]:
        return [classify(title, summary) for title, summary in texts]
