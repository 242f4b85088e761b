"""User domain model."""

from pydantic import BaseModel, Field, field_validator


class User(BaseModel):
    """User data transfer object."""

    id: str = Field(..., description="Unique user ID from database")
    username: str = Field(..., description="Display name of the user")
    token_version: int = Field(default=0, description="Bumped on security-relevant account changes")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        if isinstance(v, int):
            return str(v)
        return v
