"""Source locations tracked while scanning SQL text."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Location:
    """A span of source text, with 1-based lines and columns."""

    first_line: int = 1
    first_column: int = 1
    last_line: int = 1
    last_column: int = 1

    def advance(self, text: str) -> None:
        """Move the span to cover ``text``, which follows the current span."""
        self.first_line = self.last_line
        self.first_column = self.last_column
        # Matched text ends at the first NUL character.
        for char in text.split("\0", 1)[0]:
            if char == "\n":
                self.last_line += 1
                self.last_column = 1
            else:
                self.last_column += 1