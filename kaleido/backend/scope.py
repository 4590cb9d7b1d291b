"""
Scope management for Kaleido code generation.

Every named value in a function body lives in a stack slot (an alloca in the
entry block). The scope table maps names to those slots for the function
currently being generated. ``var`` and ``for`` introduce shadowing bindings
that are undone when their body has been generated.

Author: xwest
"""

from typing import Any, Dict, Iterator, List, Tuple

from llvmlite import ir


class _Unbound:
    """Marker for 'no previous binding' in a saved scope entry."""

    def __repr__(self) -> str:
        return "<unbound>"


UNBOUND = _Unbound()

SavedBinding = Tuple[str, Any]


class ScopeTable:
    """
    Name -> alloca map for one function.

    ``bind`` returns what it replaced so the caller can hand the list of
    saved entries back to ``restore`` once the scope ends.
    """

    def __init__(self):
        self._slots: Dict[str, ir.AllocaInstr] = {}

    def reset(self):
        """Forget every binding; called at function entry."""
        self._slots.clear()

    def lookup(self, name: str):
        """Slot bound to ``name``, or None."""
        return self._slots.get(name)

    def bind(self, name: str, slot: ir.AllocaInstr) -> SavedBinding:
        """Bind ``name`` to ``slot`` and return the entry it shadows."""
        previous = self._slots.get(name, UNBOUND)
        self._slots[name] = slot
        return (name, previous)

    def restore(self, saved: List[SavedBinding]):
        """Undo ``bind`` calls, most recent first."""
        for name, previous in reversed(saved):
            if previous is UNBOUND:
                self._slots.pop(name, None)
            else:
                self._slots[name] = previous

    def names(self) -> List[str]:
        return list(self._slots)

    def get_similar_names(self, name: str, max_distance: int = 2) -> List[str]:
        """Get bound names close to ``name`` (for error suggestions)."""
        candidates = []
        for bound in self._slots:
            distance = _edit_distance(name.lower(), bound.lower())
            if distance <= max_distance:
                candidates.append((distance, bound))
        candidates.sort()
        return [bound for _, bound in candidates[:3]]

    def __contains__(self, name: str) -> bool:
        return name in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __str__(self) -> str:
        return f"ScopeTable({', '.join(self._slots)})"


def _edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein distance between two strings."""
    if len(s1) < len(s2):
        return _edit_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]
