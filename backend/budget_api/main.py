from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .budget import router as budget_router
from .config import settings
from .database import close_db_pool, init_db_pool
from .logging_config import configure_logging
from .services.summary_cache import InMemorySummaryCache


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    # One cache per app instance so tests and workers never share entries.
    app.state.summary_cache = InMemorySummaryCache() if settings.summary_cache_ttl_seconds > 0 else None
    await init_db_pool()
    yield
    await close_db_pool()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(budget_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
