"""
Lightweight LaTeX-to-text renderer.

Turns the LaTeX the backend emits into readable plain text without a
typesetting engine. The rules below are a sequence, not a set: each one may
rely on the earlier ones having already collapsed their constructs. In
particular radicals and fractions are rewritten before `_`, `\\text{}` and `$`
are stripped, otherwise nested braces would be corrupted.

Only the literal superscripts `^2` and `^3` are converted; any other exponent
and all subscript content stay as plain characters.
"""

import re
from typing import Optional


def _symbol(command: str) -> str:
    # Whole command names only, so `\le` does not eat the start of `\left`
    return r"\\" + command + r"(?![A-Za-z])"


MARKUP_RULES: list[tuple[re.Pattern, str]] = [
    # Structural rewrites
    (re.compile(r"\\sqrt\{([^}]+)\}"), r"√(\1)"),
    (re.compile(r"\\frac\{([^}]+)\}\{([^}]+)\}"), r"(\1 / \2)"),
    # Named symbols
    (re.compile(_symbol("pi")), "π"),
    (re.compile(_symbol("cdot")), "•"),
    (re.compile(_symbol("times")), "×"),
    (re.compile(_symbol("pm")), "±"),
    (re.compile(_symbol("leq")), "≤"),
    (re.compile(_symbol("geq")), "≥"),
    (re.compile(_symbol("le")), "≤"),
    (re.compile(_symbol("ge")), "≥"),
    (re.compile(_symbol("neq")), "≠"),
    # Superscripts
    (re.compile(r"\^2"), "²"),
    (re.compile(r"\^3"), "³"),
    # Subscript markers
    (re.compile(r"_"), ""),
    # Text wrappers
    (re.compile(r"\\text\{([^}]+)\}"), r"\1"),
    # Inline math delimiters
    (re.compile(r"\$"), ""),
]


def render_markup(markup: Optional[str]) -> str:
    """Apply MARKUP_RULES in order. Unrecognised markup is left verbatim."""
    if not markup:
        return ""
    text = markup
    for pattern, replacement in MARKUP_RULES:
        text = pattern.sub(replacement, text)
    return text
