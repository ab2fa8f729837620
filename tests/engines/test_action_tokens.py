"""
Tests for the approval action token grammar.

Covers:
- Canonical tokens (I/R/E/X/N with and without levels)
- The compound EX endorsement
- Conditional (starred) tokens
- Fallback tokens for unrecognized and missing input
- Rendering and the parse/render round trip
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from doa_engines.tokens import (
    is_well_formed_token,
    matches_token_pattern,
    parse_action_token,
    render_action_token,
)
from doa_kernel.domain.tokens import (
    GROUPS,
    UNKNOWN_GROUP_PRIORITY,
    ActionToken,
)


class TestCanonicalTokens:
    """Well-formed tokens parse to their group and level."""

    @pytest.mark.parametrize(
        "action, group, level, original",
        [
            ("I", "I", 100, "I"),
            ("R1", "R", 1, "R1"),
            ("E3", "E", 3, "E3"),
            ("X2", "X", 2, "X2"),
            ("N", "N", 100, "N"),
            ("x4", "X", 4, "X4"),
            (" e 2 ", "E", 2, "E2"),
            ("X01", "X", 1, "X1"),
        ],
    )
    def test_parse(self, action, group, level, original):
        token = parse_action_token(action)

        assert token.group == group
        assert token.level == level
        assert token.original == original
        assert token.has_star is False

    def test_bare_group_sits_after_numbered_levels(self):
        """A group letter without digits gets level 100."""
        assert parse_action_token("X").level > parse_action_token("X99").level

    def test_bare_approval_flag(self):
        assert parse_action_token("X").is_bare_approval
        assert not parse_action_token("X1").is_bare_approval
        assert not parse_action_token("E").is_bare_approval

    def test_numbered_flag(self):
        assert parse_action_token("X3").is_numbered
        assert not parse_action_token("X").is_numbered


class TestCompoundEndorse:
    """EX is an endorsement at level 10."""

    def test_ex(self):
        token = parse_action_token("EX")

        assert token == ActionToken("E", 10, "EX", False)

    def test_ex_lower_case_starred(self):
        token = parse_action_token(" ex* ")

        assert token == ActionToken("E", 10, "EX*", True)

    def test_ex_sorts_between_endorsements_and_approvals(self):
        ex = parse_action_token("EX")
        e9 = parse_action_token("E9")
        x1 = parse_action_token("X1")

        assert (e9.group_priority, e9.level) < (ex.group_priority, ex.level)
        assert (ex.group_priority, ex.level) < (x1.group_priority, x1.level)


class TestStarredTokens:
    """Stars mark conditional approvals and are kept for display only."""

    def test_trailing_star(self):
        token = parse_action_token("X3*")

        assert token == ActionToken("X", 3, "X3*", True)

    def test_every_star_is_stripped_before_matching(self):
        token = parse_action_token("X*2*")

        assert token.group == "X"
        assert token.level == 2
        assert token.original == "X2*"
        assert token.has_star is True

    def test_comparison_form_drops_star(self):
        assert parse_action_token("x3*").comparison_form == "X3"


class TestFallbackTokens:
    """Unrecognized input degrades instead of raising."""

    @pytest.mark.parametrize("action", [None, "", 42, ["X1"]])
    def test_missing_or_non_string(self, action):
        token = parse_action_token(action)

        assert token.group == "Z"
        assert token.level == 999
        assert token.original == ""
        assert token.has_star is False

    def test_unknown_letter_keeps_letter_and_digits(self):
        token = parse_action_token("Q7")

        assert token.group == "Q"
        assert token.level == 7
        assert token.original == "Q7"

    def test_unknown_word_keeps_compact_text(self):
        token = parse_action_token("approve")

        assert token.group == "A"
        assert token.level == 999
        assert token.original == "approve"

    def test_starred_fallback_is_upper_cased(self):
        token = parse_action_token("q7*")

        assert token.original == "Q7*"
        assert token.has_star is True

    def test_digits_only(self):
        token = parse_action_token("12")

        assert token.group == "Z"
        assert token.level == 12

    def test_unknown_groups_sort_after_notify(self):
        assert parse_action_token("Q1").group_priority == UNKNOWN_GROUP_PRIORITY
        assert parse_action_token("N").group_priority < UNKNOWN_GROUP_PRIORITY


class TestRender:

    def test_numbered(self):
        assert render_action_token(ActionToken("X", 3, "", False)) == "X3"

    def test_no_level(self):
        assert render_action_token(ActionToken("R", 100, "", False)) == "R"

    def test_star(self):
        assert render_action_token(ActionToken("N", 100, "", True)) == "N*"

    def test_ex_level_renders_compound(self):
        assert render_action_token(ActionToken("E", 10, "", False)) == "EX"
        assert render_action_token(ActionToken("E", 10, "", True)) == "EX*"


class TestWellFormed:

    @pytest.mark.parametrize("action", ["X1", "r", "EX", "ex*", " r 2 * ", "N12"])
    def test_accepted(self, action):
        assert is_well_formed_token(action)

    @pytest.mark.parametrize("action", [None, "", "XX", "X1**", "Q1", "1X", "approve"])
    def test_rejected(self, action):
        assert not is_well_formed_token(action)

    @pytest.mark.parametrize("action, expected", [
        ("X1", True),
        (" r 2 * ", True),
        ("EX", False),
        ("ex*", False),
        (None, False),
    ])
    def test_plain_pattern_excludes_compound_endorse(self, action, expected):
        assert matches_token_pattern(action) is expected


# =============================================================================
# Properties
# =============================================================================

canonical_tokens = st.builds(
    lambda group, level, star: ActionToken(group, level, "", star),
    st.sampled_from(GROUPS),
    st.integers(min_value=0, max_value=500),
    st.booleans(),
)


class TestTokenProperties:

    @given(st.text())
    def test_parse_is_total(self, action):
        token = parse_action_token(action)

        assert isinstance(token.level, int)
        assert token.has_star == ("*" in action)

    @given(canonical_tokens)
    def test_render_then_parse_round_trips(self, token):
        text = render_action_token(token)
        canonical = ActionToken(token.group, token.level, text, token.has_star)

        assert parse_action_token(text) == canonical

    @given(canonical_tokens)
    def test_rendered_tokens_are_well_formed(self, token):
        assert is_well_formed_token(render_action_token(token))
