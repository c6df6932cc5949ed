"""
ANSI color formatting.

Colorized cells are always wrapped when color is on, even for tokens that
map to no color (they get the NO_FORMAT sentinel), and column layout
measures visible width with escape sequences stripped. Together this keeps
the tree table aligned identically with color on or off.
"""

from __future__ import annotations

import re

from .config import ESCAPE, NO_FORMAT, RenderOptions, lookup_color

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def strip_ansi(s: str) -> str:
    """Remove ANSI escape sequences from s."""
    return _ANSI_RE.sub("", s)


def visible_width(s: str) -> int:
    """Number of characters s occupies on screen."""
    return len(strip_ansi(s))


class AnsiFormatter:
    """Wraps text in SGR escape sequences when color output is enabled."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    @classmethod
    def from_options(cls, options: RenderOptions) -> "AnsiFormatter":
        return cls(enabled=options.color_enabled)

    def format(self, text: str, *codes: int) -> str:
        """
        Wrap text between an opening SGR sequence built from codes and a reset.

        Returns text unchanged when color is disabled or no codes are given.
        """
        if not self.enabled or not codes:
            return text
        sequence = ";".join(str(code) for code in codes)
        return f"{ESCAPE}[{sequence}m{text}{ESCAPE}[{NO_FORMAT}m"

    def colorize(self, token: str) -> str:
        """Color a well known word (icon or info tag) by itself."""
        return self.format(token, lookup_color(token))

    def colorize_status(self, text: str, status: str) -> str:
        """Color text according to the supplied status token."""
        return self.format(text, lookup_color(status))
