"""
Tests for approval chain canonicalization.

Covers:
- Ordering by group, level, star and input position
- Deduplication by (normalized role, token)
- Field preservation for dataclass, mapping and plain-object entries
- Bare-X display filtering
- Raw DOA item conversion
- Idempotence, permutation and no-mutation properties
"""

from dataclasses import dataclass

from hypothesis import given
from hypothesis import strategies as st

from doa_engines.chain import (
    canonicalize_chain,
    chain_dedup_key,
    chain_from_role_actions,
    chain_sort_key,
    split_bare_approvals,
)
from doa_engines.tokens import parse_action_token
from doa_kernel.domain.approvers import ApproverEntry


def make_chain(*pairs: tuple[str, str]) -> list[ApproverEntry]:
    return [ApproverEntry(role, action) for role, action in pairs]


def actions(chain) -> list[str]:
    return [e["action"] if isinstance(e, dict) else e.action for e in chain]


class TestOrdering:
    """Chains are ordered I -> R -> E -> X -> N, then by level."""

    def test_documented_example(self):
        chain = [
            {"role": "CFO", "action": "X2"},
            {"role": "CEO", "action": "EX"},
            {"role": "Ops", "action": "R"},
            {"role": "CEO", "action": "X"},
        ]

        result = canonicalize_chain(chain)

        assert actions(result) == ["R", "EX", "X2", "X"]
        assert [e["role"] for e in result] == ["Ops", "CEO", "CFO", "CEO"]

    def test_group_order(self):
        chain = make_chain(("A", "N"), ("B", "X1"), ("C", "E1"), ("D", "R1"), ("E", "I"))

        assert actions(canonicalize_chain(chain)) == ["I", "R1", "E1", "X1", "N"]

    def test_levels_ascend_within_group(self):
        chain = make_chain(("A", "X3"), ("B", "X1"), ("C", "X2"))

        assert actions(canonicalize_chain(chain)) == ["X1", "X2", "X3"]

    def test_ex_after_numbered_endorsements(self):
        chain = make_chain(("CEO", "EX"), ("COO", "E2"), ("CFO", "E1"), ("BOD", "X"))

        assert actions(canonicalize_chain(chain)) == ["E1", "E2", "EX", "X"]

    def test_unstarred_before_starred_at_same_level(self):
        chain = make_chain(("A", "X2*"), ("B", "X2"))

        result = canonicalize_chain(chain)

        assert [(e.role, e.action) for e in result] == [("B", "X2"), ("A", "X2*")]

    def test_input_order_breaks_ties(self):
        chain = make_chain(("First", "R1"), ("Second", "R1"), ("Third", "R1"))

        assert [e.role for e in canonicalize_chain(chain)] == ["First", "Second", "Third"]

    def test_unrecognized_tokens_sort_last(self):
        chain = make_chain(("A", "??"), ("B", "N"), ("C", "Q1"), ("D", "I"))

        assert [e.role for e in canonicalize_chain(chain)] == ["D", "B", "C", "A"]

    def test_sort_key(self):
        token = parse_action_token("X3*")

        assert chain_sort_key(token, 7) == (3, 3, 1, 7)


class TestDeduplication:

    def test_first_occurrence_wins(self):
        chain = [
            ApproverEntry("CFO", "X2", label="Approve"),
            ApproverEntry("CFO", "X2", label="Second copy"),
        ]

        result = canonicalize_chain(chain)

        assert len(result) == 1
        assert result[0].label == "Approve"

    def test_role_compared_normalized(self):
        chain = make_chain(("Marketing & Commercial", "X1"), ("  marketing  &  COMMERCIAL ", "x1"))

        result = canonicalize_chain(chain)

        assert len(result) == 1
        assert result[0].role == "Marketing & Commercial"

    def test_star_ignored_for_identity(self):
        chain = make_chain(("CEO", "X4*"), ("CEO", "X4"))

        result = canonicalize_chain(chain)

        assert [(e.role, e.action) for e in result] == [("CEO", "X4*")]

    def test_same_role_different_tokens_kept(self):
        chain = make_chain(("CEO", "E1"), ("CEO", "X4"))

        assert len(canonicalize_chain(chain)) == 2

    def test_dedup_key(self):
        assert chain_dedup_key(" CFO ", parse_action_token("x2*")) == "cfo|X2"


class TestFieldPreservation:

    def test_empty_and_missing(self):
        assert canonicalize_chain([]) == []
        assert canonicalize_chain(None) == []

    def test_action_rewritten_to_canonical_text(self):
        chain = make_chain(("CFO", " x 2 "), ("CEO", "ex*"))

        assert actions(canonicalize_chain(chain)) == ["EX*", "X2"]

    def test_mapping_fields_preserved(self):
        chain = [{"role": "CFO", "action": "x2", "label": "Approve", "id": 17}]

        result = canonicalize_chain(chain)

        assert result == [{"role": "CFO", "action": "X2", "label": "Approve", "id": 17}]

    def test_custom_dataclass_preserved(self):
        @dataclass
        class BrowseStep:
            role: str
            action: str
            note: str

        result = canonicalize_chain([BrowseStep("CFO", "x1", "per 4.2.3")])

        assert result == [BrowseStep("CFO", "X1", "per 4.2.3")]

    def test_plain_object_copied(self):
        class Step:
            def __init__(self, role, action):
                self.role = role
                self.action = action

        original = Step("CFO", "x1")

        result = canonicalize_chain([original])

        assert result[0] is not original
        assert result[0].action == "X1"
        assert original.action == "x1"

    def test_inputs_not_mutated(self):
        entry = {"role": "CFO", "action": "x2*"}

        canonicalize_chain([entry])

        assert entry == {"role": "CFO", "action": "x2*"}


class TestBareApprovalFilter:

    def test_disabled_setting_excludes_bare_x(self):
        chain = canonicalize_chain(make_chain(("BOD", "X"), ("CFO", "X2"), ("GFC", "N")))

        kept, excluded = split_bare_approvals(chain, count_bare_x=False)

        assert actions(kept) == ["X2", "N"]
        assert [(e.role, e.action) for e in excluded] == [("BOD", "X")]

    def test_enabled_setting_keeps_everything(self):
        chain = canonicalize_chain(make_chain(("BOD", "X"), ("CFO", "X2")))

        kept, excluded = split_bare_approvals(chain, count_bare_x=True)

        assert actions(kept) == ["X2", "X"]
        assert excluded == []

    def test_starred_bare_x_is_not_filtered(self):
        chain = canonicalize_chain(make_chain(("BOD", "X*")))

        kept, excluded = split_bare_approvals(chain, count_bare_x=False)

        assert actions(kept) == ["X*"]
        assert excluded == []


class TestRawItems:

    def test_role_action_mapping(self):
        raw = {"CEO": "X4", "CFO": "", "COO": None, "Commercial Director": " I "}

        chain = chain_from_role_actions(raw)

        assert chain == [ApproverEntry("CEO", "X4"), ApproverEntry("Commercial Director", "I")]
        assert actions(canonicalize_chain(chain)) == ["I", "X4"]


# =============================================================================
# Properties
# =============================================================================

ROLES = ["CEO", "CFO", "COO", "BOD", "ExCom", "Country Manager", " cfo "]
ACTIONS = ["I", "R1", "R2", "E1", "E2", "EX", "X", "X1", "X2*", "X3", "N", "Q9", ""]

entries = st.builds(
    lambda role, action: {"role": role, "action": action},
    st.sampled_from(ROLES),
    st.sampled_from(ACTIONS),
)
chains = st.lists(entries, max_size=12)


class TestChainProperties:

    @given(chains)
    def test_idempotent(self, chain):
        once = canonicalize_chain(chain)

        assert canonicalize_chain(once) == once

    @given(chains, st.randoms())
    def test_result_set_independent_of_input_order(self, chain, rnd):
        """Without duplicates the output order does not depend on input order."""
        unique = list({(e["role"].strip().lower(), e["action"]): e for e in chain}.values())
        shuffled = unique[:]
        rnd.shuffle(shuffled)

        def sort_only(result):
            return [(parse_action_token(e["action"]).group_priority,
                     parse_action_token(e["action"]).level) for e in result]

        assert sort_only(canonicalize_chain(unique)) == sort_only(canonicalize_chain(shuffled))

    @given(chains)
    def test_no_duplicate_identities(self, chain):
        result = canonicalize_chain(chain)
        keys = [
            chain_dedup_key(e["role"], parse_action_token(e["action"]))
            for e in result
        ]

        assert len(keys) == len(set(keys))

    @given(chains)
    def test_never_longer_than_input(self, chain):
        assert len(canonicalize_chain(chain)) <= len(chain)
