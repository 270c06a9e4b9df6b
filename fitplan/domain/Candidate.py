"""Generated plan candidate and conversation turns (ephemeral, never persisted as-is)."""
from typing import Any, Dict, List, Optional

from fitplan.domain.Plan import Plan, WorkoutPlan, DietPlan
from fitplan.utilities.constants import WORKOUT, DIET
from fitplan.utilities.errors import ValidationError
from fitplan.utilities.validators import WorkoutCandidateSchema, DietCandidateSchema, WorkoutSuggestionSchema

USER_ROLE = "user"
MODEL_ROLE = "model"


class LineItem:
    def __init__(self, name: str, details: str = ""):
        self.name = name
        self.details = details

    def __repr__(self) -> str:
        return f"LineItem({self.name!r}, {self.details!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, LineItem):
            return NotImplemented
        return (self.name, self.details) == (other.name, other.details)

    def flatten(self) -> str:
        """Single instruction string; lossy, the name/details boundary is not kept."""
        return f"{self.name}: {self.details}" if self.details else self.name

    @staticmethod
    def split(instruction: str) -> "LineItem":
        """Best-effort inverse of flatten (splits on the first ': ')."""
        name, sep, details = instruction.partition(": ")
        if not sep:
            return LineItem(instruction.strip())
        return LineItem(name.strip(), details.strip())

    def to_dict(self):
        return {"name": self.name, "details": self.details}


class ConversationTurn:
    def __init__(self, role: str, content: str):
        if role not in (USER_ROLE, MODEL_ROLE):
            raise ValidationError(f"Conversation role must be '{USER_ROLE}' or '{MODEL_ROLE}', got '{role}'")
        self.role = role
        self.content = content

    def __repr__(self) -> str:
        return f"ConversationTurn({self.role!r}, {self.content[:40]!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, ConversationTurn):
            return NotImplemented
        return (self.role, self.content) == (other.role, other.content)

    def to_dict(self):
        return {"role": self.role, "content": self.content}


class GeneratedPlanCandidate:
    """A structured plan proposal: metadata plus an ordered list of line items."""

    def __init__(self, kind: str, plan_name: str, description: str, category: str,
                 line_items: List[LineItem], metadata: Optional[Dict[str, Any]] = None):
        self.kind = kind
        self.plan_name = plan_name
        self.description = description
        self.category = category
        self.line_items = list(line_items)
        # variant fields keyed by document key (duration, difficulty, caloriesPerDay, ...)
        self.metadata = dict(metadata or {})

    def __repr__(self) -> str:
        return f"GeneratedPlanCandidate({self.kind!r}, {self.plan_name!r}, {len(self.line_items)} items)"

    @staticmethod
    def from_workout_schema(data: WorkoutCandidateSchema) -> "GeneratedPlanCandidate":
        return GeneratedPlanCandidate(
            kind=WORKOUT,
            plan_name=data.planName,
            description=data.planDescription,
            category=data.category,
            line_items=[LineItem(ex.name, ex.details) for ex in data.exercises],
            metadata={"duration": data.duration, "difficulty": data.difficulty},
        )

    @staticmethod
    def from_diet_schema(data: DietCandidateSchema) -> "GeneratedPlanCandidate":
        lines = [line.strip() for line in data.instructions.split("\n") if line.strip()]
        metadata = {key: getattr(data, key) for key in ("caloriesPerDay", "protein", "carbs", "fat")
                    if getattr(data, key) is not None}
        return GeneratedPlanCandidate(
            kind=DIET,
            plan_name=data.name,
            description=data.description,
            category=data.category,
            line_items=[LineItem(line) for line in lines],
            metadata=metadata,
        )

    @staticmethod
    def from_workout_suggestion(data: WorkoutSuggestionSchema) -> "GeneratedPlanCandidate":
        """Whole-plan workout: each instruction line is split back into name and details."""
        lines = [line.strip() for line in data.instructions.split("\n") if line.strip()]
        metadata = {key: getattr(data, key) for key in ("duration", "difficulty") if getattr(data, key) is not None}
        return GeneratedPlanCandidate(
            kind=WORKOUT,
            plan_name=data.name,
            description=data.description,
            category=data.category,
            line_items=[LineItem.split(line) for line in lines],
            metadata=metadata,
        )

    @staticmethod
    def from_plan(plan: Plan) -> "GeneratedPlanCandidate":
        """Heuristic re-split of a committed plan, used only as conversation context."""
        metadata = {key: getattr(plan, attr) for attr, key in plan.VARIANT_FIELDS.items()
                    if getattr(plan, attr) is not None}
        return GeneratedPlanCandidate(
            kind=plan.kind,
            plan_name=plan.name,
            description=plan.description,
            category=plan.category,
            line_items=[LineItem.split(s) for s in plan.instructions],
            metadata=metadata,
        )

    def to_schema_dict(self) -> Dict[str, Any]:
        """Serialize in the generation service's own output format."""
        if self.kind == WORKOUT:
            return {
                "planName": self.plan_name,
                "planDescription": self.description,
                "category": self.category,
                "difficulty": self.metadata.get("difficulty"),
                "duration": self.metadata.get("duration"),
                "exercises": [item.to_dict() for item in self.line_items],
            }
        d = {
            "name": self.plan_name,
            "description": self.description,
            "category": self.category,
            "instructions": "\n".join(item.flatten() for item in self.line_items),
        }
        d.update(self.metadata)
        return d

    def to_dict(self):
        return {
            "kind": self.kind,
            "planName": self.plan_name,
            "description": self.description,
            "category": self.category,
            "metadata": dict(self.metadata),
            "lineItems": [item.to_dict() for item in self.line_items],
        }

    def build_plan(self, indices: List[int], category: Optional[str] = None) -> Plan:
        """Draft plan from the metadata and the selected line items in original order."""
        cls = WorkoutPlan if self.kind == WORKOUT else DietPlan
        by_key = {key: attr for attr, key in cls.VARIANT_FIELDS.items()}
        variant = {by_key[k]: v for k, v in self.metadata.items() if k in by_key}
        return cls(
            name=self.plan_name,
            description=self.description,
            category=category or self.category,
            instructions=[self.line_items[i].flatten() for i in sorted(indices)],
            **variant,
        )
