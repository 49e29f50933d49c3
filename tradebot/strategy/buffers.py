"""Rolling buffer store — bounded per-instrument price/volume history.

Written only by the ingestion path; the signal path reads snapshots.
"""

from collections import deque
from datetime import datetime
from typing import Iterable, Optional

from tradebot.models import Sample


class RollingBufferStore:
    """Keeps the most recent *capacity* samples for each instrument.

    Args:
        instrument_ids: Instruments that may receive samples.
        capacity: Maximum samples kept per instrument (oldest evicted first).
    """

    def __init__(self, instrument_ids: Iterable[str], capacity: int = 200) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._samples: dict[str, deque[Sample]] = {
            instrument_id: deque(maxlen=capacity) for instrument_id in instrument_ids
        }

    def append(
        self,
        instrument_id: str,
        price: float,
        timestamp: datetime,
        volume: Optional[float] = None,
    ) -> None:
        """Append a sample. Raises ``KeyError`` for an unknown instrument."""
        self._samples[instrument_id].append(Sample(timestamp, price, volume))

    def snapshot(self, instrument_id: str) -> tuple[list[float], list[float]]:
        """Return ``(prices, volumes)`` oldest-first.

        *volumes* only contains samples that carried a volume, so it can be
        shorter than *prices*.
        """
        samples = self._samples.get(instrument_id, ())
        prices = [s.price for s in samples]
        volumes = [s.volume for s in samples if s.volume is not None]
        return prices, volumes

    def samples(self, instrument_id: str) -> list[Sample]:
        return list(self._samples.get(instrument_id, ()))

    def latest_price(self, instrument_id: str) -> Optional[float]:
        samples = self._samples.get(instrument_id)
        if not samples:
            return None
        return samples[-1].price

    def size(self, instrument_id: str) -> int:
        return len(self._samples.get(instrument_id, ()))
