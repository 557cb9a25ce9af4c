"""
Keyword matching helpers shared by the classifier and emotion detector.

A keyword matches where it begins at a word start in the lowercased
message, so inflected forms count: "panic" matches "panicking" and
"hopeless" matches "hopelessness". Keywords whose last word is shorter
than MIN_STEM_LENGTH must match the whole word, so "ex" matches "my ex"
but not "exam", and "mad" does not match "made".
"""

import re

MIN_STEM_LENGTH = 4

_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'"})
_WHITESPACE = re.compile(r"\s+")


def normalize_message(text: str) -> str:
    """Lowercase, unify apostrophes and collapse whitespace."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text.translate(_APOSTROPHES).lower()).strip()


def compile_keyword(keyword: str) -> re.Pattern[str]:
    """Word-start pattern for a keyword or multi-word phrase."""
    parts = normalize_message(keyword).split(" ")
    phrase = r"\s+".join(re.escape(part) for part in parts)
    if len(parts[-1]) < MIN_STEM_LENGTH:
        return re.compile(rf"(?<!\w){phrase}(?!\w)")
    return re.compile(rf"(?<!\w){phrase}")
