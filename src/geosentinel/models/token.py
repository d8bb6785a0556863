"""Authentication token model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthToken(BaseModel):
    """Token returned by the auto-login endpoint.

    Parameters
    ----------
    token : str
        Opaque bearer credential, sent verbatim in the ``Authorization`` header.
    raw : dict
        Full decoded login response for access to additional fields.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    token: str = Field(min_length=1)
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)
