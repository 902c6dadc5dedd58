"""Lexical rules of the SQL scanner and longest-match selection."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto


class Rule(Enum):
    """The lexical rule that recognised a piece of text."""

    COMMENT_BEGIN = auto()
    COMMENT_END = auto()
    COMMENT_TEXT = auto()
    COMMENT_STAR = auto()
    LINE_COMMENT = auto()
    WHITESPACE = auto()
    NEWLINE = auto()
    KEYWORD = auto()
    GEQ = auto()
    LEQ = auto()
    NEQ = auto()
    SINGLE_OP = auto()
    IDENTIFIER = auto()
    VALUE_INT = auto()
    VALUE_FLOAT = auto()
    VALUE_STRING = auto()
    UNEXPECTED = auto()


@dataclass(frozen=True)
class Match:
    """Text recognised by a rule, starting at ``start`` in the input."""

    rule: Rule
    text: str
    start: int

    @property
    def end(self) -> int:
        """Position just after the matched text."""
        return self.start + len(self.text)


_KEYWORDS = (
    "SHOW", "BEGIN", "COMMIT", "ABORT", "ROLLBACK", "TABLES", "CREATE",
    "TABLE", "DROP", "DESC", "INSERT", "INTO", "VALUES", "DELETE", "FROM",
    "WHERE", "UPDATE", "SET", "SELECT", "INT", "CHAR", "FLOAT", "INDEX",
    "AND", "JOIN", "EXIT", "HELP", "ORDER", "BY", "ASC",
)

_FLAGS = re.IGNORECASE | re.ASCII


def _compile(pattern: str, extra: int = 0) -> re.Pattern[str]:
    return re.compile(pattern, _FLAGS | extra)


_keyword_pattern = "|".join(
    re.escape(word) for word in sorted(_KEYWORDS, key=len, reverse=True)
)

# Rules in priority order: on equal match length the earlier rule wins.
_INITIAL_RULES: tuple[tuple[Rule, re.Pattern[str]], ...] = (
    (Rule.COMMENT_BEGIN, _compile(r"/\*")),
    (Rule.LINE_COMMENT, _compile(r"--[^\n]*")),
    (Rule.WHITESPACE, _compile(r"[ \t]+")),
    (Rule.NEWLINE, _compile(r"\r\n|\r|\n")),
    (Rule.KEYWORD, _compile(_keyword_pattern)),
    (Rule.GEQ, _compile(r">=")),
    (Rule.LEQ, _compile(r"<=")),
    (Rule.NEQ, _compile(r"<>")),
    (Rule.SINGLE_OP, _compile(r"[;(),*=<>.]")),
    (Rule.IDENTIFIER, _compile(r"[A-Za-z][A-Za-z0-9_]*")),
    (Rule.VALUE_INT, _compile(r"[+-]?[0-9]+")),
    (Rule.VALUE_FLOAT, _compile(r"[+-]?[0-9]+\.(?:[0-9]+)?")),
    (Rule.VALUE_STRING, _compile(r"'[^']*'")),
    (Rule.UNEXPECTED, _compile(r".", re.DOTALL)),
)

_COMMENT_RULES: tuple[tuple[Rule, re.Pattern[str]], ...] = (
    (Rule.COMMENT_END, _compile(r"\*/")),
    (Rule.COMMENT_TEXT, _compile(r"[^*]")),
    (Rule.COMMENT_STAR, _compile(r"\*")),
)


def _longest(
    rules: tuple[tuple[Rule, re.Pattern[str]], ...], text: str, pos: int
) -> Match | None:
    if pos < 0:
        raise ValueError(f"negative position: {pos}")
    if pos >= len(text):
        return None
    best_rule: Rule | None = None
    best_end = pos
    for rule, pattern in rules:
        found = pattern.match(text, pos)
        if found is not None and found.end() > best_end:
            best_rule, best_end = rule, found.end()
    if best_rule is None:
        raise ValueError(f"no rule matches at position {pos}")
    return Match(best_rule, text[pos:best_end], pos)


def match_initial(text: str, pos: int) -> Match | None:
    """Return the longest match at ``pos`` outside a block comment,
    or None at the end of the text."""
    return _longest(_INITIAL_RULES, text, pos)


def match_comment(text: str, pos: int) -> Match | None:
    """Return the longest match at ``pos`` inside a block comment,
    or None at the end of the text."""
    return _longest(_COMMENT_RULES, text, pos)