"""Token formatter -- G-code tokens to program text.

Layout of one command line, with every option enabled::

    N12 G1 X10.5 Y-3 F300 (inline comment)*87

- ``N<n> `` is prefixed to command lines only, ``n`` counting 1, 2, 3...
- ``*<xor>`` is the XOR of every byte before the ``*``.
- Stand-alone comments render as ``;text``; blank lines stay empty.
- With ``newline_before_comment`` an inline comment moves to its own
  ``;text`` line right before the command.

Numbers are rendered with ``decimal_places`` digits, trailing zeros
trimmed, and ``-0`` normalised to ``0``.  The output always ends with a
newline.
"""

from __future__ import annotations

import logging
from io import StringIO
from typing import TYPE_CHECKING, Iterable

from svg_toolpath.errors import FormatError
from svg_toolpath.gcode.tokens import BlankLine, Command, Comment, Token, Word

if TYPE_CHECKING:
    from svg_toolpath.configs.loader import PostprocessConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_number(value: float, decimal_places: int) -> str:
    """Fixed-point text with trailing zeros and ``-0`` removed."""
    text = f"{value:.{decimal_places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def checksum(line: str) -> int:
    """XOR of every byte of *line* (ASCII)."""
    result = 0
    for byte in line.encode("ascii"):
        result ^= byte
    return result


def _check_comment(text: str, inline: bool) -> None:
    if "\n" in text or "\r" in text:
        raise FormatError(f"Comment contains a line break: {text!r}")
    if inline and ("(" in text or ")" in text):
        raise FormatError(f"Inline comment cannot contain parentheses: {text!r}")


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class Formatter:
    """Render tokens as G-code text.

    Parameters
    ----------
    config : PostprocessConfig
        Checksums, line numbers, comment placement and precision.
    """

    def __init__(self, config: PostprocessConfig) -> None:
        self._cfg = config
        self._line_number = 0

    def format(self, tokens: Iterable[Token]) -> str:
        """Render a complete program.

        Raises
        ------
        FormatError
            If a token cannot be rendered faithfully (non-ASCII text,
            line breaks in comments, parentheses in inline comments,
            unknown token types).
        """
        buf = StringIO()
        self._line_number = 0
        for token in tokens:
            if isinstance(token, Command):
                self._write_command(token, buf)
            elif isinstance(token, Comment):
                _check_comment(token.text, inline=False)
                buf.write(f";{token.text}\n")
            elif isinstance(token, BlankLine):
                buf.write("\n")
            else:
                raise FormatError(f"Unsupported token: {type(token).__name__}")
        text = buf.getvalue()
        try:
            text.encode("ascii")
        except UnicodeEncodeError as exc:
            raise FormatError(f"G-code output must be ASCII: {exc}") from exc
        logger.debug("Formatted %d command lines", self._line_number)
        return text

    def _word(self, word: Word) -> str:
        if word.value is None:
            return word.letter
        return f"{word.letter}{format_number(word.value, self._cfg.decimal_places)}"

    def _write_command(self, cmd: Command, buf: StringIO) -> None:
        if cmd.comment is not None:
            _check_comment(cmd.comment, inline=not self._cfg.newline_before_comment)
            if self._cfg.newline_before_comment:
                buf.write(f";{cmd.comment}\n")

        line = " ".join(self._word(w) for w in cmd.words)
        if cmd.comment is not None and not self._cfg.newline_before_comment:
            line = f"{line} ({cmd.comment})"
        self._line_number += 1
        if self._cfg.line_numbers:
            line = f"N{self._line_number} {line}"
        if self._cfg.checksums:
            try:
                line = f"{line}*{checksum(line)}"
            except UnicodeEncodeError as exc:
                raise FormatError(f"Cannot checksum non-ASCII line {line!r}") from exc
        buf.write(line)
        buf.write("\n")


def format_tokens(tokens: Iterable[Token], config: PostprocessConfig) -> str:
    """Convenience wrapper around :class:`Formatter`."""
    return Formatter(config).format(tokens)
