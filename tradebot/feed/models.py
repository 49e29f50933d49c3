"""Feed data models — typed ticks delivered by a price feed."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence, runtime_checkable

from tradebot.models import Instrument


@dataclass(frozen=True)
class PriceTick:
    """One price (and optional 24h volume) observation for an instrument."""

    instrument_id: str
    price: float
    timestamp: datetime
    volume: Optional[float] = None


@runtime_checkable
class PriceFeed(Protocol):
    """Interface that price feeds must satisfy."""

    async def fetch_ticks(self, instruments: Sequence[Instrument]) -> list[PriceTick]:
        """Return the latest tick for each instrument the feed could price."""
        ...
