import asyncio
import os

from boutique.db.base import Base, async_session_maker, engine
from boutique.models import Produit, User
from boutique.utils.auth import get_password_hash
from boutique.utils.validation import validate_produit

SAMPLE_PRODUITS = [
    dict(nom="T-shirt Nike", description="T-shirt de sport respirant", prix=29.99,
         categorie="vetements", taille="M", couleur="rouge", sexe="unisexe"),
    dict(nom="Jean slim", description="Jean coupe slim en denim brut", prix=59.90,
         categorie="vetements", taille="L", couleur="bleu", sexe="homme"),
    dict(nom="Robe d'été", description="Robe légère en coton", prix=45.00,
         categorie="vetements", taille="S", couleur="jaune", sexe="femme"),
    dict(nom="Baskets running", description="Chaussures de course amorties", prix=89.99,
         categorie="chaussures", couleur="noir", sexe="unisexe"),
    dict(nom="Bottines cuir", prix=120.00, categorie="chaussures", couleur="marron", sexe="femme"),
    dict(nom="Casquette", prix=19.99, categorie="accessoires", couleur="bleu-marine", sexe="unisexe"),
    dict(nom="Sac à dos", description="Sac à dos 25 litres", prix=39.90, categorie="sacs", couleur="gris"),
    dict(nom="Collier argent", prix=75.00, categorie="bijoux", couleur="argent", sexe="femme"),
    dict(nom="Ballon de football", prix=24.50, categorie="sport", couleur="blanc", sexe="enfant"),
]


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        admin_user = User(
            email=os.environ.get("ADMIN_EMAIL", "admin@example.com"),
            nom="Administrateur",
            roles=["ROLE_USER", "ROLE_ADMIN"],
            password=get_password_hash(os.environ.get("ADMIN_PASSWORD", "admin_password")),
        )
        session.add(admin_user)

        for data in SAMPLE_PRODUITS:
            produit = Produit(**data)
            errors = validate_produit(produit)
            if errors:
                raise ValueError(f"Invalid sample produit {data['nom']!r}: {errors}")
            session.add(produit)

        await session.commit()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_db())
    print("Données de test créées avec succès !")
