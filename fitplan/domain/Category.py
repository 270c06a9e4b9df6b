"""Category domain entity: groups plans of one kind (read-only for the state layer)."""
from typing import Optional


class Category:
    def __init__(self, id: str = "", name: str = "", image_url: str = "", description: Optional[str] = None):
        self.id = id
        self.name = name
        self.image_url = image_url
        self.description = description

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"

    __repr__ = __str__

    def __eq__(self, other) -> bool:
        if not isinstance(other, Category):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def matches(self, value: str) -> bool:
        """True when value names this category by id or by display name (case-insensitive)."""
        v = (value or "").strip().lower()
        return v in (self.id.lower(), self.name.strip().lower())

    @staticmethod
    def from_dict(data):
        d = dict(data) if isinstance(data, dict) else {}
        return Category(
            id=str(d.get("id", "")),
            name=d.get("name", ""),
            image_url=d.get("imageUrl", d.get("image_url", "")),
            description=d.get("description"),
        )

    def to_dict(self):
        d = {"id": self.id, "name": self.name, "imageUrl": self.image_url}
        if self.description is not None:
            d["description"] = self.description
        return d
