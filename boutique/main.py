from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from boutique.api.routers import router as api_router
from boutique.config.settings import get_settings
from boutique.db.base import Base, engine
from boutique.exc_handlers import setup_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(title=get_settings().APP_NAME, lifespan=lifespan)
setup_exception_handlers(app)

app.include_router(api_router)


if __name__ == "__main__":
    uvicorn.run("boutique.main:app", host="0.0.0.0", reload=True)
