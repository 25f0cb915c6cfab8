import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boutique.config.settings import get_settings
from boutique.dao import ProduitDAO, ProduitFilters
from boutique.db.base import get_async_db_session
from boutique.models import Produit
from boutique.schemas.produit import (
    SProduitCreate,
    SProduitEnvelope,
    SProduitListResponse,
    SProduitResponse,
    SProduitStatistics,
    SProduitUpdate,
)
from boutique.utils.validation import (
    CATEGORIES,
    ValidationFailed,
    normalize_lower,
    validate_produit,
)

app_settings = get_settings()

logger = logging.getLogger(__name__)

if app_settings.DEBUG:
    logger.setLevel(logging.INFO)
else:
    logger.setLevel(logging.ERROR)

handler = logging.StreamHandler()
formatter = logging.Formatter("%(levelname)s:     %(message)s")
handler.setFormatter(formatter)
logger.addHandler(handler)

router = APIRouter(prefix="/produits", tags=["Produits"])

NOT_FOUND = "Produit non trouvé"


def _list_response(produits) -> dict:
    return {
        "success": True,
        "data": [SProduitResponse.model_validate(p) for p in produits],
        "count": len(produits),
    }


async def _get_or_404(produit_id: int, db: AsyncSession) -> Produit:
    produit = await ProduitDAO.find_one_or_none_by_id(produit_id, db)
    if not produit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return produit


@router.get("", response_model=SProduitListResponse)
async def list_produits(
    db: AsyncSession = Depends(get_async_db_session),
    categorie: Optional[str] = Query(None, description="Catégorie exacte"),
    prix_min: Optional[str] = Query(None, description="Prix minimum (inclus)"),
    prix_max: Optional[str] = Query(None, description="Prix maximum (inclus)"),
    nom: Optional[str] = Query(None, description="Recherche partielle sur le nom"),
    taille: Optional[str] = Query(None, description="Taille exacte"),
    couleur: Optional[str] = Query(None, description="Recherche partielle sur la couleur"),
    sexe: Optional[str] = Query(None, description="Public visé"),
    order_by: Optional[str] = Query(None, description="nom, prix, categorie, created_at, updated_at"),
    order_direction: Optional[str] = Query(None, description="ASC ou DESC"),
):
    try:
        filters = ProduitFilters(
            categorie=categorie,
            prix_min=prix_min,
            prix_max=prix_max,
            nom=nom,
            taille=taille,
            couleur=couleur,
            sexe=sexe,
            order_by=order_by,
            order_direction=order_direction,
        )
        produits = await ProduitDAO.find_with_filters(filters, db)
        logger.info(f"Retrieved {len(produits)} produits.")
        return _list_response(produits)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in list_produits: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/statistiques", response_model=SProduitStatistics)
async def get_statistiques(db: AsyncSession = Depends(get_async_db_session)):
    try:
        stats = await ProduitDAO.get_statistics(db)
        return {"success": True, **stats}
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in get_statistiques: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/recherche", response_model=SProduitListResponse)
async def search_produits(
    q: Optional[str] = Query(None, description="Terme recherché dans le nom, la description ou la catégorie"),
    db: AsyncSession = Depends(get_async_db_session),
):
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Le terme de recherche est obligatoire",
        )
    try:
        produits = await ProduitDAO.search(q, db)
        return _list_response(produits)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in search_produits: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/recents", response_model=SProduitListResponse)
async def latest_produits(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db_session),
):
    try:
        produits = await ProduitDAO.find_latest(db, limit=limit)
        return _list_response(produits)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in latest_produits: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/gamme-prix", response_model=SProduitListResponse)
async def produits_by_price_range(
    prix_min: float = Query(..., ge=0, allow_inf_nan=False),
    prix_max: float = Query(..., ge=0, allow_inf_nan=False),
    db: AsyncSession = Depends(get_async_db_session),
):
    if prix_min > prix_max:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="prix_min doit être inférieur ou égal à prix_max",
        )
    try:
        produits = await ProduitDAO.find_by_price_range(prix_min, prix_max, db)
        return _list_response(produits)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in produits_by_price_range: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/categorie/{categorie}", response_model=SProduitListResponse)
async def produits_by_categorie(
    categorie: str, db: AsyncSession = Depends(get_async_db_session)
):
    if normalize_lower(categorie) not in CATEGORIES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Catégorie non trouvée"
        )
    try:
        produits = await ProduitDAO.find_by_categorie(categorie, db)
        return _list_response(produits)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in produits_by_categorie: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/{produit_id}", response_model=SProduitEnvelope)
async def get_produit(
    produit_id: int, db: AsyncSession = Depends(get_async_db_session)
):
    try:
        produit = await _get_or_404(produit_id, db)
        logger.info(f"Retrieved produit with ID: {produit_id}")
        return {"success": True, "data": SProduitResponse.model_validate(produit)}

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in get_produit: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/{produit_id}/similaires", response_model=SProduitListResponse)
async def similar_produits(
    produit_id: int,
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_async_db_session),
):
    try:
        produit = await _get_or_404(produit_id, db)
        produits = await ProduitDAO.find_similar(produit, db, limit=limit)
        return _list_response(produits)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in similar_produits: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.post(
    "", response_model=SProduitEnvelope, status_code=status.HTTP_201_CREATED
)
async def create_produit(
    produit_in: SProduitCreate,
    db: AsyncSession = Depends(get_async_db_session),
):
    try:
        new_produit = Produit(**produit_in.model_dump())
        errors = validate_produit(new_produit)
        if errors:
            raise ValidationFailed(errors)

        db.add(new_produit)
        await db.commit()
        logger.info(f"Produit created with ID: {new_produit.id}")
        return {"success": True, "message": "Produit créé avec succès", "data": SProduitResponse.model_validate(new_produit)}
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"Database error in create_produit: {type(e).__name__}: {e}"
        )
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )
    except (HTTPException, ValidationFailed) as e:
        await db.rollback()
        raise e
    except Exception as e:
        await db.rollback()
        logger.error(
            f"Unexpected error in create_produit: {type(e).__name__}: {e}"
        )
        raise HTTPException(
            status_code=500, detail="Une erreur interne est survenue."
        )


@router.put("/{produit_id}", response_model=SProduitEnvelope)
async def update_produit(
    produit_id: int,
    produit_in: SProduitUpdate,
    db: AsyncSession = Depends(get_async_db_session),
):
    try:
        produit = await _get_or_404(produit_id, db)

        for field, value in produit_in.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(produit, field, value)

        errors = validate_produit(produit)
        if errors:
            raise ValidationFailed(errors)

        produit.touch()
        await db.commit()
        logger.info(f"Produit {produit_id} updated successfully.")
        return {"success": True, "message": "Produit mis à jour", "data": SProduitResponse.model_validate(produit)}
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"Database error in update_produit: {type(e).__name__}: {e}"
        )
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )

    except (HTTPException, ValidationFailed) as e:
        await db.rollback()
        raise e

    except Exception as e:
        await db.rollback()
        logger.error(
            f"Unexpected error in update_produit: {type(e).__name__}: {e}"
        )
        raise HTTPException(
            status_code=500, detail="Une erreur interne est survenue."
        )


@router.delete("/{produit_id}")
async def delete_produit(
    produit_id: int,
    db: AsyncSession = Depends(get_async_db_session),
):
    try:
        produit = await _get_or_404(produit_id, db)
        await ProduitDAO.delete(produit, db)
        await db.commit()
        logger.info(f"Produit {produit_id} deleted successfully.")
        return {"success": True, "message": "Produit supprimé avec succès"}
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"Database error in delete_produit: {type(e).__name__}: {e}"
        )
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )
    except HTTPException as e:
        await db.rollback()
        raise e
    except Exception as e:
        await db.rollback()
        logger.error(
            f"Unexpected error in delete_produit: {type(e).__name__}: {e}"
        )
        raise HTTPException(
            status_code=500, detail="Une erreur interne est survenue."
        )
