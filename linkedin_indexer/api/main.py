"""FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linkedin_indexer import __version__
from linkedin_indexer.api.deps import close_deps, init_deps
from linkedin_indexer.api.routers import authors, content, status
from linkedin_indexer.config import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_deps()
    yield
    await close_deps()


app = FastAPI(
    title="LinkedIn Content Indexer API",
    description="Read-only access to indexed LinkedIn articles and posts",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().api.get_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(status.router, prefix="/api")
app.include_router(content.router, prefix="/api")
app.include_router(authors.router, prefix="/api")


@app.get("/")
async def root() -> dict:
    return {
        "name": "LinkedIn Content Indexer",
        "version": __version__,
        "endpoints": {
            "health": "/api/health",
            "content": "/api/content",
            "content_by_id": "/api/content/{id}",
            "topics": "/api/topics",
            "authors": "/api/authors",
            "author_by_id": "/api/authors/{id}",
            "author_content": "/api/authors/{id}/content",
            "status": "/api/status",
            "fetch": "POST /api/fetch",
        },
    }
