"""Tests for the name allocator."""

import pytest

from unwebpack.core.allocator import (
    NameAllocationError,
    NameAllocator,
    NameAllocatorState,
    to_base52,
)
from unwebpack.core.parser import parse_javascript
from unwebpack.core.scope import analyze_scopes


class TestToBase52:
    """Tests for to_base52 function."""

    def test_padding(self):
        """Test that small numbers are padded to three letters."""
        assert to_base52(0) == "aaa"
        assert to_base52(1) == "aab"
        assert to_base52(51) == "aaZ"

    def test_carry(self):
        """Test the second digit."""
        assert to_base52(52) == "aba"
        assert to_base52(53) == "abb"

    def test_longer_than_padding(self):
        """Test numbers needing four letters."""
        assert to_base52(52 ** 3) == "baaa"

    def test_negative(self):
        """Test that negative numbers are rejected."""
        with pytest.raises(ValueError):
            to_base52(-1)


class TestNameAllocator:
    """Tests for NameAllocator."""

    def test_increasing_names_per_letter(self):
        """Test that each letter has its own counter."""
        allocator = NameAllocator()

        assert allocator.next_name_for("a") == "a_aaa"
        assert allocator.next_name_for("a") == "a_aab"
        assert allocator.next_name_for("b") == "b_aaa"
        assert allocator.state.letter_counters == {"a": 2, "b": 1}

    def test_skips_reserved_names(self):
        """Test that reserved names are never handed out."""
        allocator = NameAllocator()
        allocator.reserve("a_aaa")

        assert allocator.next_name_for("a") == "a_aab"

    def test_skips_names_visible_in_scope(self):
        """Test that names bound or used in the scope chain are skipped."""
        program = parse_javascript("var a_aaa = 1; function f() { return a_aab; }")
        analysis = analyze_scopes(program)
        scope = analysis.scope_for(program.body[1])

        assert NameAllocator().next_name_for("a", scope) == "a_aac"

    def test_accept_callback(self):
        """Test that the accept callback can reject candidates."""
        allocator = NameAllocator()

        name = allocator.next_name_for("x", accept=lambda candidate: candidate != "x_aaa")

        assert name == "x_aab"
        assert allocator.state.letter_counters["x"] == 2

    def test_fresh_state_per_allocator(self):
        """Test that separate states do not share names."""
        first = NameAllocator(NameAllocatorState())
        second = NameAllocator(NameAllocatorState())

        assert first.next_name_for("e") == second.next_name_for("e") == "e_aaa"

    def test_exhaustion(self):
        """Test the attempt limit."""
        allocator = NameAllocator(max_attempts=3)

        with pytest.raises(NameAllocationError):
            allocator.next_name_for("a", accept=lambda candidate: False)
