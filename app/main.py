import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import AsyncSessionLocal, async_engine
from app.core.exception_handlers import EXCEPTION_HANDLERS
from app.core.logging import configure_logging
from app.models.base import Base
from app.services.booking_code_service import BookingCodeAllocator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.code_allocator = BookingCodeAllocator(
        AsyncSessionLocal,
        prefix=settings.BOOKING_CODE_PREFIX,
        pool_size=settings.BOOKING_CODE_POOL_SIZE,
        low_watermark=settings.BOOKING_CODE_LOW_WATERMARK,
        max_attempts=settings.BOOKING_CODE_MAX_ATTEMPTS,
    )
    await app.state.code_allocator.start()
    logger.info("Booking engine started")

    yield

    await app.state.code_allocator.shutdown()
    await async_engine.dispose()


app = FastAPI(
    title="Booking Engine API",
    description="Multi-establishment booking engine",
    version="1.0.0",
    lifespan=lifespan,
)

# Register exception handlers
for exception_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exception_class, handler)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"message": "Booking Engine API", "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
