"""Protection of markup, placeholders and brand terms during translation."""

from __future__ import annotations

import re
from typing import Dict, List, Sequence, Tuple

from .structures import TokenizedText

HTML_TAG_PATTERN = re.compile(r"</?([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>")
CURLY_PLACEHOLDER_PATTERN = re.compile(r"\{\s*[\w.\-\[\]]+\s*\}")  # {msg}, { email }, {0}
PERCENT_PLACEHOLDER_PATTERN = re.compile(r"%\w")  # %s, %d
MUSTACHE_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*[\w.\-]+\s*\}\}")  # {{var}}
COLON_PLACEHOLDER_PATTERN = re.compile(r":\w+")  # :name
WHITESPACE_NEWLINE_PATTERN = re.compile(r"\s+\n")

# Precedence order: a later pattern never matches inside an earlier match.
PLACEHOLDER_PATTERNS: Tuple[re.Pattern[str], ...] = (
    HTML_TAG_PATTERN,
    CURLY_PLACEHOLDER_PATTERN,
    PERCENT_PLACEHOLDER_PATTERN,
    MUSTACHE_PLACEHOLDER_PATTERN,
    COLON_PLACEHOLDER_PATTERN,
)

TOKEN_DELIMITER = "§"
# Stands in for protected spans while later patterns run; no pattern matches it.
_MASK_CHAR = "\x00"


class Tokenizer:
    """Swaps protected substrings for opaque tokens and restores them.

    The compiled patterns are fixed at construction, so one instance can be
    shared by every leaf of a run.
    """

    def __init__(self, protected_terms: Sequence[str] = ()) -> None:
        terms = list(dict.fromkeys(term for term in protected_terms if term))
        self.protected_terms: Tuple[str, ...] = tuple(terms)
        self.patterns: Tuple[re.Pattern[str], ...] = PLACEHOLDER_PATTERNS + tuple(
            re.compile(r"\b" + re.escape(term) + r"\b") for term in terms
        )

    def tokenize(self, text: str) -> TokenizedText:
        spans = self._claim_spans(text)
        if not spans:
            return TokenizedText(text=text)

        delimiter = TOKEN_DELIMITER
        while f"{delimiter}T" in text:
            delimiter += TOKEN_DELIMITER

        token_map: Dict[str, str] = {}
        parts: List[str] = []
        cursor = 0
        for start, end in sorted(spans):
            token = f"{delimiter}T{len(token_map)}{delimiter}"
            token_map[token] = text[start:end]
            parts.append(text[cursor:start])
            parts.append(token)
            cursor = end
        parts.append(text[cursor:])
        return TokenizedText(text="".join(parts), token_map=token_map)

    def _claim_spans(self, text: str) -> List[Tuple[int, int]]:
        spans: List[Tuple[int, int]] = []
        working = text
        for pattern in self.patterns:
            found = [match.span() for match in pattern.finditer(working) if match.end() > match.start()]
            if not found:
                continue
            spans.extend(found)
            chars = list(working)
            for start, end in found:
                chars[start:end] = _MASK_CHAR * (end - start)
            working = "".join(chars)
        return spans


def detokenize(text: str, token_map: Dict[str, str]) -> str:
    """Replace every token with its original text, longest token first.

    Substitution happens in one pass, so restored text is never rescanned.
    """

    if not token_map:
        return text
    pattern = re.compile(
        "|".join(re.escape(token) for token in sorted(token_map, key=len, reverse=True))
    )
    return pattern.sub(lambda match: token_map[match.group(0)], text)


def missing_tokens(text: str, token_map: Dict[str, str]) -> List[str]:
    """Return the tokens that do not occur in ``text``."""

    return [token for token in token_map if token not in text]


def tidy_whitespace(text: str) -> str:
    """Collapse whitespace before newlines and trim the result."""

    return WHITESPACE_NEWLINE_PATTERN.sub("\n", text).strip()
