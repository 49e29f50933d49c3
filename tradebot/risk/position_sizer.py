"""Position sizing — pure math, no I/O.

Scales the base trade amount by signal confidence and clamps it to the
position limits.
"""

MIN_POSITION_SIZE = 0.001


def calculate_position_size(
    trade_amount: float,
    max_position_size: float,
    confidence: float = 1.0,
) -> float:
    """Calculate position size in instrument units.

    Formula::

        size = trade_amount × confidence
        size = min(size, max_position_size)
        size = max(size, 0.001)

    Only called for a new position (one per instrument), so nothing is held
    yet and the whole ``max_position_size`` is available.

    Args:
        trade_amount: Base amount per trade (e.g. 0.01).
        max_position_size: Upper bound for a single position.
        confidence: Consensus confidence of the signal.

    Returns:
        Position size, never below ``MIN_POSITION_SIZE``.

    Raises:
        ValueError: If *trade_amount* or *max_position_size* is non-positive.
    """
    if trade_amount <= 0:
        raise ValueError(f"trade_amount must be positive, got {trade_amount}")
    if max_position_size <= 0:
        raise ValueError(
            f"max_position_size must be positive, got {max_position_size}"
        )

    size = min(trade_amount * confidence, max_position_size)
    return max(size, MIN_POSITION_SIZE)


def calculate_fee(amount: float, price: float, paper_trading: bool) -> float:
    """Estimated 0.1 % taker fee; zero in paper mode."""
    if paper_trading:
        return 0.0
    return amount * price * 0.001
