from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from boutique.db.base import Base
from boutique.utils.validation import (
    normalize_lower,
    normalize_upper,
    round_price,
    strip_or_none,
)


class Produit(Base):
    __tablename__ = "produit"

    id: Mapped[int] = mapped_column(primary_key=True)
    nom: Mapped[Optional[str]] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prix: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=False
    )
    image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    categorie: Mapped[Optional[str]] = mapped_column(String(100), nullable=False)
    taille: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    couleur: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    sexe: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_produit_nom", "nom"),
        Index("ix_produit_categorie", "categorie"),
        Index("ix_produit_prix", "prix"),
    )

    def __init__(self, **kwargs):
        now = datetime.now(timezone.utc)
        kwargs.setdefault("created_at", now)
        kwargs.setdefault("updated_at", now)
        super().__init__(**kwargs)

    @validates("nom", "description", "image")
    def _strip(self, key, value):
        return strip_or_none(value)

    @validates("categorie", "couleur", "sexe")
    def _lower(self, key, value):
        return normalize_lower(value)

    @validates("taille")
    def _upper(self, key, value):
        return normalize_upper(value)

    @validates("prix")
    def _round_prix(self, key, value):
        return round_price(value)

    def touch(self):
        self.updated_at = datetime.now(timezone.utc)

    def __repr__(self):
        return f"<Produit(id={self.id}, nom={self.nom}, categorie={self.categorie})>"


__all__ = [
    "Produit"
]
