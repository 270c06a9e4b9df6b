"""Selective-merge editor: review a generated candidate item by item, then commit it.

The editor keeps the candidate, the set of included line-item indices (all of them
when a new candidate arrives) and the conversation so far, which is sent as context
for follow-up generation requests.

Committing flattens every included line item to one instruction string
("name: details"). A committed plan cannot be turned back into structured items
except by re-splitting its strings heuristically (LineItem.split); that asymmetry is
intended.
"""
from __future__ import annotations
import json
import logging
from typing import List, Optional, Set

from fitplan.domain.Candidate import ConversationTurn, GeneratedPlanCandidate, USER_ROLE, MODEL_ROLE
from fitplan.domain.Plan import Plan
from fitplan.infra.Plan_Repository import PlanStore
from fitplan.utilities.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

__all__ = ["SelectiveMergeEditor"]


class SelectiveMergeEditor:
    def __init__(self, store: PlanStore):
        self._store = store
        self.candidate: Optional[GeneratedPlanCandidate] = None
        self.target_plan_id: Optional[str] = None
        self._included: Set[int] = set()
        self._turns: List[ConversationTurn] = []

    @property
    def kind(self) -> str:
        return self._store.kind

    # --- conversation -------------------------------------------------------
    def history(self) -> List[ConversationTurn]:
        """Turns so far, oldest first."""
        return list(self._turns)

    def start_conversation(self) -> None:
        """Forget earlier turns unless an existing plan is being edited."""
        if self.target_plan_id is None:
            self._turns = []

    def begin_update(self, plan_id: str) -> Plan:
        """Edit an existing plan: the plan becomes the first model turn and commit updates it."""
        plan = self._store.get_by_id(plan_id)
        if plan is None:
            raise NotFound(f"No {self.kind} plan with id '{plan_id}'")
        self.clear()
        self.target_plan_id = plan_id
        self._turns.append(ConversationTurn(
            MODEL_ROLE, json.dumps(GeneratedPlanCandidate.from_plan(plan).to_schema_dict(), ensure_ascii=False)))
        return plan

    def receive(self, candidate: GeneratedPlanCandidate, prompt: Optional[str] = None) -> None:
        """Take a freshly generated candidate; every line item starts included."""
        if candidate.kind != self.kind:
            raise ValidationError(f"Cannot review a {candidate.kind} candidate in the {self.kind} editor")
        if prompt:
            self._turns.append(ConversationTurn(USER_ROLE, prompt))
        self._turns.append(ConversationTurn(
            MODEL_ROLE, json.dumps(candidate.to_schema_dict(), ensure_ascii=False)))
        self.candidate = candidate
        self._included = set(range(len(candidate.line_items)))

    # --- selection ----------------------------------------------------------
    def included(self) -> List[int]:
        return sorted(self._included)

    def is_included(self, index: int) -> bool:
        return index in self._included

    def toggle_include(self, index: int) -> bool:
        """Flip inclusion of one line item and return its new state."""
        if self.candidate is None:
            raise ValidationError("No generated plan to edit")
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.candidate.line_items):
            raise ValidationError(
                f"Line item index {index!r} out of range (0..{len(self.candidate.line_items) - 1})")
        if self.is_included(index):
            self._included.remove(index)
            return False
        self._included.add(index)
        return True

    # --- commit -------------------------------------------------------------
    async def commit(self) -> Plan:
        """Write the included items to the store as a new plan or as an update.

        The editor is cleared after a successful write, unless it was cleared or handed
        a newer candidate while the write was pending. On failure it keeps the
        candidate and selection so the user can retry.
        """
        candidate, indices, target = self.candidate, self.included(), self.target_plan_id
        if candidate is None:
            raise ValidationError("No generated plan to commit")
        if not indices:
            raise ValidationError("Select at least one item before saving the plan")
        category = self._store.resolve_category(candidate.category)
        draft = candidate.build_plan(indices, category=category)
        if target is not None:
            fields = {"name": draft.name, "description": draft.description,
                      "category": draft.category, "instructions": draft.instructions}
            fields.update({attr: getattr(draft, attr) for attr in draft.VARIANT_FIELDS
                           if getattr(draft, attr) is not None})
            plan = await self._store.update(target, fields)
        else:
            plan = await self._store.add(draft)
        logger.info("Committed %d of %d generated items into %s plan %s",
                    len(indices), len(candidate.line_items), self.kind, plan.id)
        if self.candidate is candidate:
            self.clear()
        return plan

    def clear(self) -> None:
        self.candidate = None
        self.target_plan_id = None
        self._included = set()
        self._turns = []

    def to_dict(self):
        """Review state for the UI."""
        return {
            "kind": self.kind,
            "targetPlanId": self.target_plan_id,
            "candidate": self.candidate.to_dict() if self.candidate else None,
            "included": self.included(),
            "history": [turn.to_dict() for turn in self._turns],
        }
