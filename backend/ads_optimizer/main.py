"""
ABRAhub Ads Optimizer — FastAPI Backend
Rule-based pause / boost decisions for Meta and Google Ads campaigns,
with a human approval queue and an append-only audit trail.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from ads_optimizer.auth import require_auth
from ads_optimizer.config import get_settings
from ads_optimizer.database import check_db_connection, init_db
from ads_optimizer.errors import OptimizerError
from ads_optimizer.routers import ads_actions, cron, optimizer

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting ABRAhub Ads Optimizer...")
    try:
        await init_db()
        logger.info("Database initialized — all tables ready.")
    except Exception as e:
        logger.error(f"Startup failed (DB/init): {e}", exc_info=True)
        # Still yield so /api/health can report degraded
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="ABRAhub Ads Optimizer",
    description="Campaign optimization and approval queue for Meta and Google Ads",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error Bodies: always {"error": str} ───────────────────────────────

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(messages) or "Invalid request"})


@app.exception_handler(OptimizerError)
async def optimizer_exception_handler(request: Request, exc: OptimizerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


# ── Register Routers (all require auth except cron) ───────────────────
_auth = [Depends(require_auth)]
app.include_router(optimizer.router, prefix="/api/ads-optimizer", tags=["Optimizer"], dependencies=_auth)
app.include_router(ads_actions.router, prefix="/api/ads-actions", tags=["Ads Actions"], dependencies=_auth)
app.include_router(cron.router, prefix="/api")  # No auth: uses CRON_SECRET


@app.get("/api/health")
async def health_check():
    db_ok = await check_db_connection()
    return {
        "status": "healthy" if db_ok else "degraded",
        "service": "ABRAhub Ads Optimizer",
        "database": "connected" if db_ok else "disconnected",
    }
