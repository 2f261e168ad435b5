import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.config import settings
from core.log_config import configure_logging
from db.database import STORE_UNAVAILABLE_ERRORS, StoreUnavailable, create_db_and_tables, engine
from routers.barcodes import router as barcodes_router
from routers.scans import router as scans_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if engine is None:
        logger.warning("DATABASE_URL is not set; scan endpoints will answer 503")
    else:
        try:
            await create_db_and_tables()
        except STORE_UNAVAILABLE_ERRORS as e:
            logger.warning("Database unreachable at startup: %s", e)
    yield
    if engine is not None:
        await engine.dispose()


app = FastAPI(
    title="Barcode Scan API",
    description="API for recording barcode scans, running quantities and their movement log",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Store unavailable on %s %s: %r", request.method, request.url.path, exc.__cause__ or exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database not available"},
    )


@app.get("/", tags=["health"])
async def health():
    return {"status": "ok"}


# Scan counter + movement log (database)
app.include_router(scans_router, prefix="/scans", tags=["scans"])

# File-backed fallback store
app.include_router(barcodes_router, prefix="/barcodes", tags=["barcodes"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
