"""Plan domain entities: workout and diet plans sharing name, category and ordered instructions."""
from typing import Any, Dict, List, Optional, Type

from fitplan.utilities.constants import WORKOUT, DIET
from fitplan.utilities.errors import ValidationError

# attribute name -> document key
COMMON_FIELDS: Dict[str, str] = {
    "name": "name",
    "description": "description",
    "category": "category",
    "instructions": "instructions",
    "media_url": "mediaUrl",
}
# Assigned by the store, never edited
ASSIGNED_FIELDS: Dict[str, str] = {"id": "id", "image_url": "imageUrl"}


class Plan:
    kind = ""
    VARIANT_FIELDS: Dict[str, str] = {}

    def __init__(self, id: str = "", name: str = "", description: str = "", category: str = "",
                 instructions: Optional[List[str]] = None, image_url: str = "",
                 media_url: Optional[str] = None, **variant: Any):
        unknown = set(variant) - set(self.VARIANT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown {self.kind} plan fields: {', '.join(sorted(unknown))}")
        self.id = id
        self.name = name
        self.description = description
        self.category = category
        self.instructions = list(instructions) if instructions else []
        self.image_url = image_url
        self.media_url = media_url
        for attr in self.VARIANT_FIELDS:
            setattr(self, attr, variant.get(attr))

    def __str__(self) -> str:
        return f"{self.name} ({self.category}) - {len(self.instructions)} steps"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, name={self.name!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Plan):
            return NotImplemented
        return self.kind == other.kind and self.to_dict() == other.to_dict()

    __hash__ = None

    # --- field helpers ----------------------------------------------------
    @classmethod
    def editable_fields(cls) -> Dict[str, str]:
        return {**COMMON_FIELDS, **cls.VARIANT_FIELDS}

    @classmethod
    def normalize_fields(cls, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Map document keys or attribute names to attribute names.

        Raises ValidationError for assigned fields (id, imageUrl) and unknown names.
        """
        by_key = {key: attr for attr, key in cls.editable_fields().items()}
        assigned = set(ASSIGNED_FIELDS) | set(ASSIGNED_FIELDS.values())
        normalized: Dict[str, Any] = {}
        for name, value in fields.items():
            if name in assigned:
                raise ValidationError(f"Field '{name}' is assigned at creation and cannot be changed")
            attr = name if name in cls.editable_fields() else by_key.get(name)
            if attr is None:
                raise ValidationError(f"Unknown {cls.kind} plan field: '{name}'")
            if attr == "instructions":
                if isinstance(value, str) or not all(isinstance(s, str) for s in (value or [])):
                    raise ValidationError("Instructions must be a list of strings")
                value = list(value or [])
            normalized[attr] = value
        return normalized

    def values(self, attrs) -> Dict[str, Any]:
        """Snapshot of the current values of the given attributes."""
        return {attr: (list(getattr(self, attr)) if attr == "instructions" else getattr(self, attr))
                for attr in attrs}

    def apply(self, fields: Dict[str, Any]) -> None:
        for attr, value in fields.items():
            setattr(self, attr, list(value) if attr == "instructions" else value)

    # --- (de)serialization ------------------------------------------------
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        '''Creates a plan from a stored document (camelCase keys). Ignores unknown keys.'''
        d = dict(data) if isinstance(data, dict) else {}
        keys = {**ASSIGNED_FIELDS, **cls.editable_fields()}
        kwargs = {}
        for attr, key in keys.items():
            if key in d:
                kwargs[attr] = d[key]
            elif attr in d:
                kwargs[attr] = d[attr]
        instructions = kwargs.get("instructions")
        if isinstance(instructions, str):
            # Older documents kept instructions as one newline separated string
            kwargs["instructions"] = [s.strip() for s in instructions.split("\n") if s.strip()]
        kwargs["id"] = str(kwargs.get("id") or "")
        return cls(**kwargs)

    def to_dict(self, include_id: bool = True) -> Dict[str, Any]:
        '''Converts the plan to its document form; optional fields left unset are omitted.'''
        d: Dict[str, Any] = {"id": self.id} if include_id else {}
        d.update({
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "instructions": list(self.instructions),
            "imageUrl": self.image_url,
        })
        if self.media_url:
            d["mediaUrl"] = self.media_url
        for attr, key in self.VARIANT_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                d[key] = value
        return d

    def copy(self) -> "Plan":
        return type(self).from_dict(self.to_dict())


class WorkoutPlan(Plan):
    kind = WORKOUT
    VARIANT_FIELDS = {"duration": "duration", "difficulty": "difficulty"}


class DietPlan(Plan):
    kind = DIET
    VARIANT_FIELDS = {
        "calories_per_day": "caloriesPerDay",
        "protein": "protein",
        "carbs": "carbs",
        "fat": "fat",
    }


PLAN_TYPES: Dict[str, Type[Plan]] = {WORKOUT: WorkoutPlan, DIET: DietPlan}


def plan_class(kind: str) -> Type[Plan]:
    try:
        return PLAN_TYPES[kind]
    except KeyError:
        raise ValidationError(f"Unknown plan kind: '{kind}'") from None
