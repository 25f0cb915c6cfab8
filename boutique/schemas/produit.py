from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SProduitBase(BaseModel):
    nom: Optional[str] = None
    description: Optional[str] = None
    prix: Optional[float] = Field(None, allow_inf_nan=False)
    image: Optional[str] = None
    categorie: Optional[str] = None
    taille: Optional[str] = None
    couleur: Optional[str] = None
    sexe: Optional[str] = None


class SProduitCreate(SProduitBase):
    pass


class SProduitUpdate(SProduitBase):
    pass


class SProduitResponse(BaseModel):
    id: int
    nom: str
    description: Optional[str]
    prix: float
    image: Optional[str]
    categorie: str
    taille: Optional[str]
    couleur: Optional[str]
    sexe: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        from_attributes=True
    )


class SProduitEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: SProduitResponse


class SProduitListResponse(BaseModel):
    success: bool = True
    data: List[SProduitResponse]
    count: int


class SCategorieCount(BaseModel):
    categorie: str
    count: int


class SProduitStatistics(BaseModel):
    success: bool = True
    total_produits: int
    prix_moyen: float
    prix_minimum: float
    prix_maximum: float
    categories: List[SCategorieCount]
