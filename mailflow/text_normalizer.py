import re
import unicodedata
from typing import Optional

# letters that carry no decomposable accent but still fold to a base letter
_SPECIAL_FOLDS = str.maketrans(
    {"đ": "d", "Đ": "D", "ø": "o", "Ø": "O", "ł": "l", "Ł": "L", "ı": "i"}
)

_VOWEL_CLASSES = {
    "a": "[aáàảãạăắằẳẵặâấầẩẫậäå]",
    "d": "[dđ]",
    "e": "[eéèẻẽẹêếềểễệë]",
    "i": "[iíìỉĩịîï]",
    "o": "[oóòỏõọôốồổỗộơớờởỡợöø]",
    "u": "[uúùủũụưứừửữựûü]",
    "y": "[yýỳỷỹỵÿ]",
}


def fold_accents(text: str) -> str:
    """Remove diacritics so that strings differing only by accents compare equal."""
    decomposed = unicodedata.normalize("NFD", text.translate(_SPECIAL_FOLDS))
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return unicodedata.normalize("NFC", stripped)


def relaxed_pattern(text: str) -> str:
    """
    Build a regular expression matching ``text`` regardless of accents.

    The text is lower-cased and every vowel-class letter becomes a character class
    of its accented variants, so the stored corpus needs no normalization. Use it
    with a case-insensitive flag.
    """
    parts = []
    for char in text.lower():
        base = fold_accents(char)
        if not base:
            continue  # lone combining mark
        if base in _VOWEL_CLASSES:
            parts.append(_VOWEL_CLASSES[base])
        else:
            parts.append(re.escape(char))
    return "".join(parts)


def edit_distance(a: str, b: str) -> int:
    """Case-insensitive Levenshtein distance over code points."""
    a, b = a.lower(), b.lower()
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    # one row over the shorter string; ``diagonal`` holds row[j - 1] of the previous pass
    row = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        diagonal, row[0] = row[0], i
        for j, char_b in enumerate(b, start=1):
            above = row[j]
            row[j] = min(above + 1, row[j - 1] + 1, diagonal + (char_a != char_b))
            diagonal = above
    return row[-1]


def contextual_snippet(text: str, query: str, context: int = 60) -> Optional[str]:
    """Return the part of ``text`` around the first match of ``query``, or None."""
    query = query.strip()
    if not text or not query:
        return None

    index = text.lower().find(query.lower())
    if index == -1:
        index = fold_accents(text.lower()).find(fold_accents(query.lower()))
    if index == -1:
        return None

    start = max(0, index - context)
    end = min(len(text), index + len(query) + context)
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet
