from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.db.neo4j_connector import close_driver

from app.api.routers.imports import router as imports_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure resources (like the Neo4j driver) are closed on shutdown."""
    try:
        yield
    finally:
        close_driver()


app = FastAPI(title="Content Import Pipeline", version="0.1", lifespan=lifespan)

app.include_router(imports_router)
