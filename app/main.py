import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from .core.database import SessionLocal, init_db
from .core.config import settings
from .core.logger import setup_logging
from .core.rate_limit import limiter
from .errors.handlers import register_exception_handlers
from .models.user import User  # noqa: F401
from .models.otp import OTPRecord  # noqa: F401
from .routers.auth import router as auth_router
from .services.otp_store import OTPStore

setup_logging()
logger = logging.getLogger(__name__)


def purge_expired_otps() -> int:
    with SessionLocal() as db:
        return OTPStore(db).purge_expired()


async def _purge_loop(interval: int):
    # SQL has no TTL index; old OTP rows are removed here instead
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(purge_expired_otps)
        except Exception:
            logger.exception("OTP purge failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    purge_task = asyncio.create_task(_purge_loop(settings.OTP_PURGE_INTERVAL_SECONDS))
    logger.info(f"{settings.APP_NAME} started")
    try:
        yield
    finally:
        purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await purge_task


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Configure CORS
raw_origins = settings.CORS_ORIGINS or "*"
origins = [o.strip() for o in raw_origins.split(",") if o.strip()] if isinstance(raw_origins, str) else raw_origins
allow_credentials = False if "*" in origins else True
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

# Routers
app.include_router(auth_router)

@app.get("/")
def root():
    return {"status": "ok"}

@app.get("/health")
def health():
    return {"status": "healthy"}
