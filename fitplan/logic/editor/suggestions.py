"""Suggestion picker: several whole generated plans, of which the user bulk-adds a selection.

Unlike the selective-merge editor nothing is picked item by item here; a selected
suggestion is saved with all of its line items. A single suggestion can still be
handed to that kind's SelectiveMergeEditor for item-level review.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional, Set

from fitplan.domain.Candidate import GeneratedPlanCandidate
from fitplan.domain.Plan import Plan
from fitplan.infra.Plan_Repository import PlanStore
from fitplan.utilities.errors import TransportFailure, ValidationError

logger = logging.getLogger(__name__)

__all__ = ["SuggestionPicker"]


class SuggestionPicker:
    def __init__(self):
        self.prompt: Optional[str] = None
        self.suggestions: List[GeneratedPlanCandidate] = []
        self._selected: Set[int] = set()

    @property
    def kind(self) -> Optional[str]:
        return self.suggestions[0].kind if self.suggestions else None

    def receive(self, suggestions: List[GeneratedPlanCandidate], prompt: Optional[str] = None) -> None:
        """Replace the suggestions; nothing starts selected."""
        if len({s.kind for s in suggestions}) > 1:
            raise ValidationError("Suggestions must all be of one plan kind")
        self.prompt = prompt
        self.suggestions = list(suggestions)
        self._selected = set()

    def get(self, index: int) -> GeneratedPlanCandidate:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.suggestions):
            raise ValidationError(f"Suggestion index {index!r} out of range ({len(self.suggestions)} suggestions)")
        return self.suggestions[index]

    def selected(self) -> List[int]:
        return sorted(self._selected)

    def is_selected(self, index: int) -> bool:
        return index in self._selected

    def toggle(self, index: int) -> bool:
        self.get(index)
        if self.is_selected(index):
            self._selected.remove(index)
            return False
        self._selected.add(index)
        return True

    async def commit(self, stores: Dict[str, PlanStore]) -> List[Plan]:
        """Add every selected suggestion as a new plan, in suggestion order.

        Suggestions stay on screen afterwards and only the selection is reset. When a
        write fails midway, the plans already added stay added and are deselected so
        a retry saves only the rest.
        """
        suggestions, indices = self.suggestions, self.selected()
        if not indices:
            raise ValidationError("Select at least one suggested plan to add")
        added: List[Plan] = []
        for index in indices:
            suggestion = suggestions[index]
            store = stores[suggestion.kind]
            draft = suggestion.build_plan(range(len(suggestion.line_items)),
                                          category=store.resolve_category(suggestion.category))
            try:
                added.append(await store.add(draft))
            except TransportFailure:
                logger.error("Added %d of %d selected suggestions before a write failed", len(added), len(indices))
                if self.suggestions is suggestions:
                    self._selected.difference_update(indices[:len(added)])
                raise
        logger.info("Added %d suggested %s plans", len(added), suggestions[0].kind)
        if self.suggestions is suggestions:
            self._selected = set()
        return added

    def clear(self) -> None:
        self.prompt = None
        self.suggestions = []
        self._selected = set()

    def to_dict(self):
        return {
            "kind": self.kind,
            "prompt": self.prompt,
            "suggestions": [dict(s.to_dict(), selected=self.is_selected(i)) for i, s in enumerate(self.suggestions)],
            "selected": self.selected(),
        }
