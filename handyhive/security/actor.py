from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """Who is calling: identity plus role flags, passed explicitly into every lifecycle call."""

    user_id: str
    is_provider: bool = False
    is_admin: bool = False

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(
            user_id=str(user.id),
            is_provider=bool(user.is_provider),
            is_admin=bool(user.is_admin),
        )
