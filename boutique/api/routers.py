from fastapi import APIRouter

from .admin import router as admin_router
from .auth import router as auth_router
from .produits import router as produit_router

router = APIRouter(prefix="/api")

router.include_router(auth_router)
router.include_router(produit_router)
router.include_router(admin_router)
