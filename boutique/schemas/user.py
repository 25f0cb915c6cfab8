from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class SUserRegister(BaseModel):
    email: EmailStr = Field(..., description="Adresse email, unique")
    password: str = Field(
        ...,
        min_length=6,
        max_length=72,
        description="Mot de passe, au moins 6 caractères",
    )
    nom: str = Field(..., min_length=1, max_length=100, description="Nom affiché")
    roles: List[str] = Field(default_factory=list, description="Rôles supplémentaires")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("nom", mode="before")
    @classmethod
    def strip_nom(cls, v):
        return v.strip() if isinstance(v, str) else v


class SUserAuth(BaseModel):
    email: Optional[str] = Field(None, description="Adresse email")
    username: Optional[str] = Field(None, description="Alias de l'adresse email")
    password: Optional[str] = Field(None, description="Mot de passe")

    @property
    def identifier(self) -> Optional[str]:
        value = self.email or self.username
        return value.strip().lower() if value else None


class SUserResponse(BaseModel):
    id: int
    email: EmailStr
    nom: str
    roles: List[str] = Field(validation_alias="all_roles")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True
    )


class SUserEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: SUserResponse
