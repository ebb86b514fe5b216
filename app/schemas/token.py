# app/schemas/token.py
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class FirebaseTokenData(BaseModel):
    """Claims we rely on from a verified Firebase ID token."""
    uid: str = Field(..., description="Firebase User ID")
    email: Optional[EmailStr] = Field(None, description="User's email address (if available in token)")

    # Decoded tokens carry many more claims (iss, aud, exp, ...)
    model_config = {"extra": "ignore"}
