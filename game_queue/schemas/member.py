"""Chat member reference."""

from pydantic import BaseModel, ConfigDict


class MemberRef(BaseModel):
    """A chat platform user.

    ``id`` is the identity key: two references denote the same member iff their ids
    are equal, whatever the (mutable) display fields say.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    display_name: str | None = None

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MemberRef):
            return self.id == other.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"

    @property
    def tag(self) -> str:
        return self.display_name or self.username

    def __str__(self) -> str:
        return self.mention


__all__ = ["MemberRef"]
