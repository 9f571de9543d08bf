"""
Authentication Models

Strongly-typed caller contexts produced by the two authentication
boundaries:

- `UserContext`   : an end user identified by a verified identity JWT
                    (used for API-key management)
- `ApiKeyContext` : a public API client identified by a verified API key
"""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class UserContext(BaseModel):
    """
    Authenticated user context derived from a verified identity JWT.

    The identity provider is external; `owner_id` is its opaque subject
    claim and is the only thing the server keys data on.
    """

    owner_id: str = Field(
        ...,
        min_length=1,
        description="Opaque subject identifier issued by the identity provider.",
    )

    email: Optional[str] = Field(
        default=None,
        description="Email claim, when the identity provider includes one.",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


class ApiKeyContext(BaseModel):
    """
    A verified public API caller. Never carries the raw key.
    """

    key_id: int
    owner_id: str = Field(..., min_length=1)
    daily_limit: int = Field(..., ge=0)
    requests_today: int = Field(default=0, ge=0)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
