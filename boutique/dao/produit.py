import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import Select, desc, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .base import BaseDAO
from boutique.models import Produit
from boutique.utils.validation import normalize_lower, normalize_upper

ORDERABLE_FIELDS = {
    "nom": Produit.nom,
    "prix": Produit.prix,
    "categorie": Produit.categorie,
    "created_at": Produit.created_at,
    "createdAt": Produit.created_at,
    "updated_at": Produit.updated_at,
    "updatedAt": Produit.updated_at,
}
ORDER_DIRECTIONS = ("ASC", "DESC")

SIMILAR_PRICE_TOLERANCE = 0.3


def _as_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass
class ProduitFilters:
    """Optional catalog criteria. Empty or unparsable values are ignored."""

    categorie: Optional[str] = None
    prix_min: Any = None
    prix_max: Any = None
    nom: Optional[str] = None
    taille: Optional[str] = None
    couleur: Optional[str] = None
    sexe: Optional[str] = None
    order_by: Optional[str] = None
    order_direction: Optional[str] = None


def build_produit_query(filters: Optional[ProduitFilters] = None) -> Select:
    filters = filters or ProduitFilters()
    query = select(Produit)

    categorie = normalize_lower(filters.categorie)
    if categorie:
        query = query.where(Produit.categorie == categorie)

    prix_min = _as_float(filters.prix_min)
    if prix_min is not None:
        query = query.where(Produit.prix >= prix_min)

    prix_max = _as_float(filters.prix_max)
    if prix_max is not None:
        query = query.where(Produit.prix <= prix_max)

    nom = (filters.nom or "").strip()
    if nom:
        query = query.where(Produit.nom.icontains(nom, autoescape=True))

    taille = normalize_upper(filters.taille)
    if taille:
        query = query.where(Produit.taille == taille)

    couleur = (filters.couleur or "").strip()
    if couleur:
        query = query.where(Produit.couleur.icontains(couleur, autoescape=True))

    sexe = normalize_lower(filters.sexe)
    if sexe:
        query = query.where(Produit.sexe == sexe)

    column = ORDERABLE_FIELDS.get(filters.order_by or "nom")
    direction = (filters.order_direction or "ASC").upper()
    if column is None or direction not in ORDER_DIRECTIONS:
        column, direction = Produit.nom, "ASC"

    ordering = column.desc() if direction == "DESC" else column.asc()
    return query.order_by(ordering, Produit.id.asc())


class ProduitDAO(BaseDAO):
    model = Produit

    @classmethod
    async def find_with_filters(cls, filters: Optional[ProduitFilters], db: AsyncSession) -> List[Produit]:
        result = await db.execute(build_produit_query(filters))
        return list(result.scalars().all())

    @classmethod
    async def find_by_categorie(cls, categorie: str, db: AsyncSession) -> List[Produit]:
        result = await db.execute(
            select(Produit)
            .where(Produit.categorie == normalize_lower(categorie))
            .order_by(Produit.nom.asc(), Produit.id.asc())
        )
        return list(result.scalars().all())

    @classmethod
    async def search(cls, term: str, db: AsyncSession) -> List[Produit]:
        term = term.strip()
        result = await db.execute(
            select(Produit)
            .where(
                or_(
                    Produit.nom.icontains(term, autoescape=True),
                    Produit.description.icontains(term, autoescape=True),
                    Produit.categorie.icontains(term, autoescape=True),
                )
            )
            .order_by(Produit.nom.asc(), Produit.id.asc())
        )
        return list(result.scalars().all())

    @classmethod
    async def find_by_price_range(cls, prix_min: float, prix_max: float, db: AsyncSession) -> List[Produit]:
        result = await db.execute(
            select(Produit)
            .where(Produit.prix.between(prix_min, prix_max))
            .order_by(Produit.prix.asc(), Produit.id.asc())
        )
        return list(result.scalars().all())

    @classmethod
    async def find_latest(cls, db: AsyncSession, limit: int = 10) -> List[Produit]:
        result = await db.execute(
            select(Produit)
            .order_by(Produit.created_at.desc(), Produit.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @classmethod
    async def count_by_categorie(cls, db: AsyncSession) -> List[Dict[str, Any]]:
        count = func.count(Produit.id).label("count")
        result = await db.execute(
            select(Produit.categorie, count)
            .group_by(Produit.categorie)
            .order_by(desc(count), Produit.categorie.asc())
        )
        return [{"categorie": row.categorie, "count": row.count} for row in result.all()]

    @classmethod
    async def find_similar(cls, produit: Produit, db: AsyncSession, limit: int = 5) -> List[Produit]:
        reference = float(produit.prix)
        # bounds are inclusive and compared at cent precision
        prix_min = round(reference * (1 - SIMILAR_PRICE_TOLERANCE), 2)
        prix_max = round(reference * (1 + SIMILAR_PRICE_TOLERANCE), 2)
        result = await db.execute(
            select(Produit)
            .where(
                Produit.categorie == produit.categorie,
                Produit.prix.between(prix_min, prix_max),
                Produit.id != produit.id,
            )
            .order_by(func.abs(Produit.prix - reference).asc(), Produit.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @classmethod
    async def get_statistics(cls, db: AsyncSession) -> Dict[str, Any]:
        result = await db.execute(
            select(
                func.count(Produit.id),
                func.avg(Produit.prix),
                func.min(Produit.prix),
                func.max(Produit.prix),
            )
        )
        total, moyen, minimum, maximum = result.one()
        return {
            "total_produits": int(total or 0),
            "prix_moyen": round(float(moyen or 0), 2),
            "prix_minimum": float(minimum or 0),
            "prix_maximum": float(maximum or 0),
            "categories": await cls.count_by_categorie(db),
        }


__all__ = [
    "ProduitDAO",
    "ProduitFilters",
    "build_produit_query",
]
