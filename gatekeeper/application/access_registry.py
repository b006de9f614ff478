"""Registry lookups for the decision engine."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.domain.models import AccessCheck, utc_now
from gatekeeper.infrastructure.db.repository import BlacklistRepository, VehicleRepository


class AccessRegistry:
    """
    Blacklist and allowlist lookup for one normalized plate.

    The blacklist is consulted first; the allowlist is only read when the
    plate is not blacklisted.
    """

    def __init__(self, session: AsyncSession):
        self._blacklist = BlacklistRepository(session)
        self._vehicles = VehicleRepository(session)

    async def check(self, plate: str, now: datetime | None = None) -> AccessCheck:
        entry = await self._blacklist.find_effective(plate, now or utc_now())
        if entry is not None:
            return AccessCheck(plate=plate, blacklist_entry=entry)
        return AccessCheck(plate=plate, vehicle=await self._vehicles.find_active(plate))
