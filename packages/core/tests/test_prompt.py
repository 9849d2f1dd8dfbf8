"""Tests for prompt rendering."""

import pytest

from commitlens_core.message import ISSUE_COUNT_RE
from commitlens_core.prompt import DEFAULT_PROMPT_TEMPLATE, DIFF_PLACEHOLDER, build_prompt


def test_diff_substituted_into_template():
    prompt = build_prompt("+print('hi')")
    assert "+print('hi')" in prompt
    assert DIFF_PLACEHOLDER not in prompt


def test_braces_in_diff_survive():
    diff = "+config = {'a': {diff}}"
    assert diff in build_prompt(diff, template="X {diff} Y")


def test_custom_template():
    assert build_prompt("+x", template="Review:\n{diff}") == "Review:\n+x"


@pytest.mark.parametrize("diff", ["", "   ", "\n\n"])
def test_blank_diff_rejected(diff):
    with pytest.raises(ValueError):
        build_prompt(diff)


def test_long_diff_truncated():
    prompt = build_prompt("+" + "x" * 100, template="{diff}", max_diff_chars=10)
    assert prompt == "+" + "x" * 9 + "\n... [diff truncated]"


def test_short_diff_not_truncated():
    assert build_prompt("+x", template="{diff}", max_diff_chars=10) == "+x"


def test_default_template_asks_for_parseable_issue_counts():
    # The severity parser depends on the line format the prompt requests.
    assert ISSUE_COUNT_RE.search(DEFAULT_PROMPT_TEMPLATE.replace("(x)", "(1)"))
