from .base import BaseDAO
from .user import UserDAO
from .produit import ProduitDAO, ProduitFilters, build_produit_query
from .refresh_token import RefreshTokenDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "ProduitDAO",
    "ProduitFilters",
    "build_produit_query",
    "RefreshTokenDAO",
]
