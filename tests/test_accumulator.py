"""
Tests for the grow-only identifier set
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.accumulator import IdentifierAccumulator, merge_identifiers


class TestMergeIdentifiers:
    """Union semantics and change detection"""

    def test_new_identifier_changes(self):
        merged, changed = merge_identifiers(frozenset({"1"}), {"2"})
        assert merged == {"1", "2"}
        assert changed is True

    def test_subset_returns_same_object(self):
        """Test that a no-op merge hands back the current set itself"""
        current = frozenset({"1", "2"})
        merged, changed = merge_identifiers(current, ["2"])
        assert merged is current
        assert changed is False

    def test_empty_and_none_incoming(self):
        current = frozenset({"1"})
        assert merge_identifiers(current, []) == (current, False)
        assert merge_identifiers(current, None) == (current, False)

    def test_merge_is_monotonic(self):
        current = frozenset()
        for batch in (["a"], [], ["b", "a"], ["c"]):
            merged, _ = merge_identifiers(current, batch)
            assert current <= merged
            current = merged
        assert current == {"a", "b", "c"}

    def test_merge_is_idempotent(self):
        once, _ = merge_identifiers(frozenset(), ["x", "y"])
        twice, changed = merge_identifiers(once, ["x", "y"])
        assert twice == once
        assert changed is False


class TestIdentifierAccumulator:
    """Accumulator wrapper"""

    def test_merge_reports_growth(self):
        acc = IdentifierAccumulator()
        assert acc.merge(["5"]) is True
        assert acc.merge(["5"]) is False
        assert acc.merge(None) is False
        assert len(acc) == 1
        assert "5" in acc

    def test_iteration_is_sorted(self):
        acc = IdentifierAccumulator()
        acc.merge(["3", "1", "2"])
        assert list(acc) == ["1", "2", "3"]

    def test_identifiers_is_frozen(self):
        acc = IdentifierAccumulator()
        acc.merge(["1"])
        assert isinstance(acc.identifiers, frozenset)
