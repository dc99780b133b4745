from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from .config import settings
from .database import close_db
from .notifications.api import router as notifications_router
from .notifications.exceptions import TokenStoreNotConfigured
from .notifications.schemas import HealthResponse
from .notifications.service import build_dispatcher

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Environment check: database configured={settings.database_configured}, "
        f"firebase configured={settings.firebase_configured}"
    )
    if not settings.database_configured:
        logger.error("DATABASE_URL is not set. Server will start but push notifications will not work.")

    app.state.dispatcher = build_dispatcher(settings)
    yield
    await app.state.dispatcher.expo_client.aclose()
    await close_db()


app = FastAPI(
    title="Push Notification Relay",
    description="Fans push notifications out to Expo and Firebase Cloud Messaging",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=200
)

app.include_router(notifications_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error for request {request.url}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(TokenStoreNotConfigured)
async def token_store_exception_handler(request: Request, exc: TokenStoreNotConfigured):
    logger.error(f"DATABASE_URL not configured, rejecting {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    dispatcher = getattr(request.app.state, "dispatcher", None)
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc).isoformat(),
        database_configured=settings.database_configured,
        firebase_configured=dispatcher.fcm_configured if dispatcher else False
    )
