from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """Verified author identity handed to the review service by the auth layer."""

    user_id: int
    username: str

    @classmethod
    def from_user(cls, user):
        return cls(user_id=int(user.id), username=user.username)
