"""User identity supplied by the identity provider."""
from typing import Optional

from fitplan.utilities.constants import DEFAULT_USER_NAME


class User:
    def __init__(self, id: str, email: str, name: Optional[str] = None):
        self.id = id
        self.email = email
        self.name = name or DEFAULT_USER_NAME

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return (self.id, self.email, self.name) == (other.id, other.email, other.name)

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self):
        return {"id": self.id, "email": self.email, "name": self.name}
