# app/schemas/token.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

# Claims we rely on from a verified Firebase ID token
class FirebaseTokenData(BaseModel):
    uid: str = Field(..., description="Firebase User ID")
    email: Optional[EmailStr] = Field(None, description="User's email address (if available in token)")
    name: Optional[str] = Field(None, description="User's display name (if available in token)")

    # Decoded tokens carry many more claims (iss, aud, exp, firebase, ...)
    model_config = {"extra": "ignore"}
