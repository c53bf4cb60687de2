"""
Booking code allocation.

Codes look like ``RZ-MMDD-XXX``: a configurable prefix, the month and day of
allocation, and three characters from ``[A-Z0-9]``. Only 46,656 suffixes exist
per day, so codes are pre-generated into an in-memory pool that a background
task keeps topped up. ``allocate`` never waits on the refill; when the pool is
empty it falls back to a bounded generate-and-check loop.

Pooled codes were free when they were generated, but another allocator instance
may have handed out the same code since, so every code is checked against the
database again when it is handed out. The unique index on
``bookings.booking_code`` still backs that check up.
"""

import asyncio
import logging
import re
import secrets
import string
from collections import deque
from datetime import date, datetime
from typing import Callable, Deque, Iterable, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.exceptions import CodeAllocationExhaustedError
from app.core.service_utils import local_now
from app.models.booking import Booking

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 3
# Keeps IN (...) lists well under driver parameter limits
LOOKUP_CHUNK_SIZE = 500


def generate_booking_code(
    prefix: str = settings.BOOKING_CODE_PREFIX, on: Optional[date] = None
) -> str:
    on = on or local_now().date()
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{prefix}-{on.month:02d}{on.day:02d}-{suffix}"


def _code_pattern(prefix: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(prefix)}-(\d{{2}})(\d{{2}})-[A-Z0-9]{{3}}$")


def is_valid_booking_code(
    code: str, prefix: str = settings.BOOKING_CODE_PREFIX
) -> bool:
    """Format check only; says nothing about whether the code exists."""
    if not code:
        return False
    return _code_pattern(prefix).match(code) is not None


def extract_date_from_booking_code(
    code: str,
    year: Optional[int] = None,
    prefix: str = settings.BOOKING_CODE_PREFIX,
) -> Optional[date]:
    """
    Return the allocation date encoded in a code.

    The code carries no year, so the current local year is assumed unless one
    is given. Malformed codes and impossible dates (``RZ-1332-AAA``) give None.
    """
    if not code:
        return None
    match = _code_pattern(prefix).match(code)
    if not match:
        return None

    month, day = int(match.group(1)), int(match.group(2))
    try:
        return date(year or local_now().year, month, day)
    except ValueError:
        return None


def _same_day(code: str, today: date) -> bool:
    return code.split("-")[1] == f"{today.month:02d}{today.day:02d}"


class BookingCodeAllocator:
    """
    Pool of pre-checked booking codes with its own lifecycle.

    Call ``start()`` once on application startup and ``shutdown()`` on exit.
    ``allocate`` is safe to call from concurrent requests: ``deque.popleft`` is
    atomic, so two callers never receive the same pooled code.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        prefix: str = settings.BOOKING_CODE_PREFIX,
        pool_size: int = settings.BOOKING_CODE_POOL_SIZE,
        low_watermark: int = settings.BOOKING_CODE_LOW_WATERMARK,
        max_attempts: int = settings.BOOKING_CODE_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = local_now,
    ):
        self.session_factory = session_factory
        self.prefix = prefix
        self.pool_size = pool_size
        self.low_watermark = low_watermark
        self.max_attempts = max_attempts
        self.clock = clock

        self._pool: Deque[str] = deque()
        self._refill_lock = asyncio.Lock()
        self._refill_needed = asyncio.Event()
        self._refill_task: Optional[asyncio.Task] = None

    @property
    def pool_level(self) -> int:
        return len(self._pool)

    async def start(self) -> None:
        await self._safe_refill()
        self._refill_task = asyncio.create_task(
            self._refill_loop(), name="booking-code-refill"
        )
        logger.info(f"Booking code allocator started with {self.pool_level} codes")

    async def shutdown(self) -> None:
        if self._refill_task is not None:
            self._refill_task.cancel()
            try:
                await self._refill_task
            except asyncio.CancelledError:
                pass
            self._refill_task = None
        self._pool.clear()
        logger.info("Booking code allocator stopped")

    async def refill(self) -> int:
        """Top the pool up to ``pool_size``; returns the number of codes added."""
        async with self._refill_lock:
            today = self.clock().date()
            # Codes from a previous day would carry a stale MMDD
            stale = [code for code in self._pool if not _same_day(code, today)]
            for code in stale:
                try:
                    self._pool.remove(code)
                except ValueError:
                    pass

            missing = self.pool_size - len(self._pool)
            if missing <= 0:
                return 0

            pooled = set(self._pool)
            candidates: Set[str] = set()
            while len(candidates) < missing:
                code = generate_booking_code(self.prefix, today)
                if code not in pooled:
                    candidates.add(code)

            async with self.session_factory() as session:
                taken = await self._existing_codes(session, candidates)

            fresh = [code for code in candidates if code not in taken]
            self._pool.extend(fresh)
            logger.debug(
                f"Booking code pool refilled with {len(fresh)} codes "
                f"({len(taken)} already taken)"
            )
            return len(fresh)

    async def allocate(self, session: AsyncSession) -> str:
        """
        Hand out one unused code for today.

        ``session`` is the caller's transaction, used for the final
        existence check.
        """
        today = self.clock().date()

        while True:
            try:
                code = self._pool.popleft()
            except IndexError:
                break
            if len(self._pool) < self.low_watermark:
                self._refill_needed.set()
            if not _same_day(code, today):
                continue
            if await self._code_taken(session, code):
                logger.info(f"Pooled booking code {code} already taken, skipping")
                continue
            return code

        self._refill_needed.set()
        logger.warning("Booking code pool empty, generating synchronously")
        return await self._allocate_fallback(session, today)

    async def _allocate_fallback(self, session: AsyncSession, today: date) -> str:
        for _ in range(self.max_attempts):
            code = generate_booking_code(self.prefix, today)
            if not await self._code_taken(session, code):
                return code

        raise CodeAllocationExhaustedError(self.max_attempts)

    async def _code_taken(self, session: AsyncSession, code: str) -> bool:
        stmt = (
            select(func.count())
            .select_from(Booking)
            .where(Booking.booking_code == code)
        )
        result = await session.execute(stmt)
        return result.scalar() > 0

    async def _existing_codes(
        self, session: AsyncSession, candidates: Iterable[str]
    ) -> Set[str]:
        candidates = list(candidates)
        taken: Set[str] = set()
        for start in range(0, len(candidates), LOOKUP_CHUNK_SIZE):
            chunk = candidates[start : start + LOOKUP_CHUNK_SIZE]
            stmt = select(Booking.booking_code).where(Booking.booking_code.in_(chunk))
            result = await session.execute(stmt)
            taken.update(result.scalars().all())
        return taken

    async def _safe_refill(self) -> None:
        try:
            await self.refill()
        except Exception:
            logger.exception("Booking code pool refill failed")

    async def _refill_loop(self) -> None:
        while True:
            await self._refill_needed.wait()
            self._refill_needed.clear()
            await self._safe_refill()
