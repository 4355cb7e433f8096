"""G-code tokens and the snippet parser.

The Turtle emits, and the formatter renders, four token kinds:

``Word``
    One letter plus an optional number (``G1``, ``X10.5``, ``M3``).
``Command``
    Words on one line, with an optional inline comment.
``Comment``
    A comment on its own line.
``BlankLine``
    An empty line.

Machine snippets (tool on/off, begin, end, between layers) are parsed
once from user text by :func:`parse_snippet` into a tuple of commands
and comments; the Turtle splices them in verbatim.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Union

from svg_toolpath.errors import ConfigError


@dataclass(frozen=True, slots=True)
class Word:
    """A letter address and its value.

    Parameters
    ----------
    letter : str
        Single upper-case letter.
    value : float | None
        Numeric value.  ``None`` for a bare axis letter (``G28 X Y``).
    """

    letter: str
    value: float | None = None

    def __post_init__(self) -> None:
        if len(self.letter) != 1 or not self.letter.isalpha() or not self.letter.isupper():
            raise ValueError(f"Word letter must be one upper-case letter, got {self.letter!r}")


@dataclass(frozen=True, slots=True)
class Command:
    """One G-code line made of words.

    Parameters
    ----------
    words : tuple[Word, ...]
        Non-empty, in emission order.
    comment : str | None
        Inline comment rendered after the words.
    """

    words: tuple[Word, ...]
    comment: str | None = None

    def __post_init__(self) -> None:
        if not self.words:
            raise ValueError("Command requires at least one word")

    @property
    def code(self) -> str:
        """Leading word as text, e.g. ``"G1"`` or ``"M3"``."""
        first = self.words[0]
        if first.value is None:
            return first.letter
        return f"{first.letter}{first.value:g}"

    def value_of(self, letter: str) -> float | None:
        for word in self.words:
            if word.letter == letter:
                return word.value
        return None


@dataclass(frozen=True, slots=True)
class Comment:
    """A stand-alone comment line."""

    text: str


@dataclass(frozen=True, slots=True)
class BlankLine:
    """An empty line."""

    pass


Token = Union[Command, Comment, BlankLine]
Snippet = tuple[Union[Command, Comment], ...]


def command(code: str, comment: str | None = None, **params: float) -> Command:
    """Build a command such as ``command("G1", X=1.0, Y=2.0, F=300)``.

    Parameters keep their keyword order.
    """
    letter, number = code[0].upper(), code[1:]
    words = [Word(letter, float(number) if number else None)]
    words.extend(Word(key.upper(), float(value)) for key, value in params.items())
    return Command(tuple(words), comment)


# ---------------------------------------------------------------------------
# Snippet parsing
# ---------------------------------------------------------------------------

_WORD_RE = re.compile(
    r"\s*([A-Za-z])(?:\s*([+-]?(?:\d+\.?\d*|\.\d+))(?=[\sA-Za-z]|$)|(?=\s|$))"
)
_PAREN_COMMENT_RE = re.compile(r"\(([^()]*)\)")


def _parse_line(line: str, lineno: int) -> list[Union[Command, Comment]]:
    text = line.strip()
    comment: str | None = None

    semicolon = text.find(";")
    if semicolon >= 0:
        comment = text[semicolon + 1:].strip()
        text = text[:semicolon]

    parens = _PAREN_COMMENT_RE.findall(text)
    if parens:
        inline = " ".join(p.strip() for p in parens)
        comment = inline if comment is None else f"{inline} {comment}"
        text = _PAREN_COMMENT_RE.sub(" ", text)
    if "(" in text or ")" in text:
        raise ConfigError(f"Snippet line {lineno}: unbalanced parenthesis in {line!r}")

    words: list[Word] = []
    pos = 0
    body = text.rstrip()
    while pos < len(body):
        match = _WORD_RE.match(body, pos)
        if match is None or match.end() == pos:
            raise ConfigError(f"Snippet line {lineno}: cannot parse {body[pos:]!r}")
        letter, number = match.group(1).upper(), match.group(2)
        value = float(number) if number is not None else None
        if value is not None and not math.isfinite(value):
            raise ConfigError(f"Snippet line {lineno}: non-finite value in {line!r}")
        words.append(Word(letter, value))
        pos = match.end()

    if words:
        return [Command(tuple(words), comment)]
    if comment is not None:
        return [Comment(comment)]
    return []


def parse_snippet(text: str | None) -> Snippet | None:
    """Parse user G-code text into a validated snippet.

    Accepts one command per line, ``;`` line comments and ``( )`` inline
    comments.  Empty input parses to ``None`` (no snippet).

    Raises
    ------
    ConfigError
        If any line is not made of letter/number words.
    """
    if text is None or not text.strip():
        return None
    tokens: list[Union[Command, Comment]] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        tokens.extend(_parse_line(line, lineno))
    return tuple(tokens)
