"""
Tests for the LaTeX-to-text renderer.
"""

import pytest

from markup import render_markup


def test_quadratic_exact_form():
    """The fraction is linearised and the radical parenthesised."""
    assert render_markup("\\frac{5 \\pm \\sqrt{1}}{4}") == "(5 ± √(1) / 4)"


@pytest.mark.parametrize(
    "markup, expected",
    [
        ("2\\pi", "2π"),
        ("a \\cdot b", "a • b"),
        ("u \\times v", "u × v"),
        ("x \\le 3", "x ≤ 3"),
        ("x \\leq 3", "x ≤ 3"),
        ("x \\ge 3", "x ≥ 3"),
        ("x \\geq 3", "x ≥ 3"),
        ("x \\neq 0", "x ≠ 0"),
        ("x^2 + y^3", "x² + y³"),
        ("x_1 + x_2", "x1 + x2"),
        ("\\text{Error}", "Error"),
        ("Move $x$ to the left", "Move x to the left"),
    ],
)
def test_substitutions(markup, expected):
    assert render_markup(markup) == expected


def test_general_exponents_are_not_converted():
    assert render_markup("x^4 + x^{10}") == "x^4 + x^{10}"


def test_plain_text_passes_through():
    text = "The answer is 42, (no markup here)."
    assert render_markup(text) == text


def test_empty_and_none():
    assert render_markup("") == ""
    assert render_markup(None) == ""


@pytest.mark.parametrize(
    "markup",
    ["\\frac{1}{", "\\sqrt{", "{{}}", "\\", "$$$", "\\text{", "\\frac{a}"],
)
def test_malformed_markup_never_raises(markup):
    assert isinstance(render_markup(markup), str)


def test_unmatched_patterns_left_verbatim():
    assert render_markup("\\frac{a}") == "\\frac{a}"
    assert render_markup("\\alpha + \\beta") == "\\alpha + \\beta"


def test_commands_only_match_whole_names():
    """\\le must not eat the start of \\left."""
    assert render_markup("\\left( x \\right)") == "\\left( x \\right)"


def test_structural_rewrites_happen_before_delimiters_are_stripped():
    assert render_markup("$\\frac{x_1}{2}$") == "(x1 / 2)"


@pytest.mark.parametrize(
    "markup",
    [
        "\\frac{5 \\pm \\sqrt{1}}{4}",
        "x = \\frac{-b \\pm \\sqrt{D}}{2a}",
        "First, we move $x^2$ terms: $2x^2 \\cdot 3 \\le 5$.",
        "\\text{Error}",
        "1.5000, 1.0000",
    ],
)
def test_rendering_is_idempotent(markup):
    once = render_markup(markup)
    assert render_markup(once) == once
