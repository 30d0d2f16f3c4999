"""Deterministic replacement names for single-letter bindings."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from unwebpack.debug import debug_log

if TYPE_CHECKING:
    from unwebpack.core.scope import Scope

BASE52_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


class NameAllocationError(RuntimeError):
    """Raised when no free name is found within the attempt limit."""


def to_base52(n: int, min_length: int = 3) -> str:
    """Encode ``n`` with letters as digits, left-padded with ``a``.

    >>> to_base52(0)
    'aaa'
    >>> to_base52(53)
    'abb'
    """
    if n < 0:
        raise ValueError("n must be non-negative")

    digits = []
    while n > 0:
        n, remainder = divmod(n, 52)
        digits.append(BASE52_ALPHABET[remainder])
    encoded = "".join(reversed(digits))
    return encoded.rjust(min_length, "a")


@dataclass
class NameAllocatorState:
    """Per-file allocation state. Create one per file, never share it."""
    used_names: set[str] = field(default_factory=set)
    letter_counters: dict[str, int] = field(default_factory=dict)


class NameAllocator:
    """Hands out ``<letter>_<tag>`` names, never the same one twice per file."""

    def __init__(self, state: Optional[NameAllocatorState] = None, max_attempts: int = 100_000):
        self.state = state if state is not None else NameAllocatorState()
        self.max_attempts = max_attempts

    def candidate(self, letter: str, index: int) -> str:
        return f"{letter}_{to_base52(index)}"

    def next_name_for(
        self,
        letter: str,
        scope: Optional["Scope"] = None,
        accept: Optional[Callable[[str], bool]] = None,
    ) -> str:
        """Allocate the next free name for ``letter``.

        A candidate is accepted when it was never handed out in this file,
        is not visible from ``scope`` and passes ``accept`` when given. The
        letter's counter moves past the accepted index.

        Raises:
            NameAllocationError: If ``max_attempts`` candidates were rejected
        """
        index = self.state.letter_counters.get(letter, 0)
        for _ in range(self.max_attempts):
            name = self.candidate(letter, index)
            if (
                name not in self.state.used_names
                and (scope is None or not scope.has_binding(name))
                and (accept is None or accept(name))
            ):
                self.state.used_names.add(name)
                self.state.letter_counters[letter] = index + 1
                return name
            index += 1

        debug_log("error", f"Name allocation exhausted for {letter!r}", {"last_index": index})
        raise NameAllocationError(
            f"no free name for {letter!r} after {self.max_attempts} attempts"
        )

    def reserve(self, name: str) -> None:
        """Mark a name as taken without advancing any counter."""
        self.state.used_names.add(name)
