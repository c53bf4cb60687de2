import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.booking import BookingKind
from app.models.client import Client, ClientClassification
from app.schemas.booking import ClientInfo

logger = logging.getLogger(__name__)


class ClientService:
    """
    Client directory keyed by lower-cased email.

    Methods here never commit; they run inside the caller's booking transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[Client]:
        stmt = select(Client).where(Client.email == email.strip().lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_with_history(self, email: str) -> Optional[Client]:
        """Client with its booking history loaded."""
        stmt = (
            select(Client)
            .options(selectinload(Client.bookings))
            .where(Client.email == email.strip().lower())
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_or_create(self, client_info: ClientInfo, kind: BookingKind) -> Client:
        """
        Return the client owning ``client_info.email``, creating it if needed.

        An existing client keeps its stored name and classification; only a
        missing phone or id number is filled in from the new booking.
        """
        client = await self.get_by_email(client_info.email)
        if client is not None:
            if not client.phone and client_info.phone:
                client.phone = client_info.phone
            if not client.id_number and client_info.id_number:
                client.id_number = client_info.id_number
            return client

        classification = (
            ClientClassification.WALKIN
            if kind == BookingKind.WALKIN
            else ClientClassification.REGULAR
        )
        client = Client(
            first_name=client_info.first_name,
            last_name=client_info.last_name,
            email=client_info.email.strip().lower(),
            phone=client_info.phone,
            id_number=client_info.id_number,
            classification=classification,
            total_stays=0,
            total_spent=Decimal("0"),
        )
        self.db.add(client)
        await self.db.flush()
        logger.info(f"Created {classification.value} client {client.id}")
        return client

    async def record_completed_stay(
        self, client_id: int, amount: Decimal
    ) -> Optional[Client]:
        """Count a completed stay against the client the booking is linked to."""
        stmt = select(Client).where(Client.id == client_id)
        result = await self.db.execute(stmt)
        client = result.scalar_one_or_none()
        if client is None:
            logger.warning(f"No client {client_id} found for completed stay")
            return None

        client.total_stays = (client.total_stays or 0) + 1
        client.total_spent = Decimal(client.total_spent or 0) + Decimal(amount)
        return client
