"""Splits SQL text into matched pieces, following the scanner's start states."""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Iterator

from rmdb.locations import Location
from rmdb.patterns import Match, Rule, match_comment, match_initial


class StartState(Enum):
    """The scanner's start condition."""

    INITIAL = 0
    COMMENT = 1


class Scanner:
    """Yields every match in the text together with its location.

    Whitespace and comments are yielded too; entering and leaving a block
    comment changes :attr:`state`. Iteration ends at the end of the text,
    whatever the state.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.state = StartState.INITIAL
        self.location = Location()

    def __iter__(self) -> Iterator[tuple[Match, Location]]:
        self.state = StartState.INITIAL
        self.location = Location()
        pos = 0
        while True:
            if self.state is StartState.INITIAL:
                match = match_initial(self.text, pos)
            else:
                match = match_comment(self.text, pos)
            if match is None:
                return
            self.location.advance(match.text)
            if match.rule is Rule.COMMENT_BEGIN:
                self.state = StartState.COMMENT
            elif match.rule is Rule.COMMENT_END:
                self.state = StartState.INITIAL
            yield match, replace(self.location)
            pos = match.end