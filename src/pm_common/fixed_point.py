"""Fixed-point integer arithmetic for collateral, shares and prices.

Collateral and shares carry 6 implied decimals (1_000_000 = 1 unit).
Prices carry 6 implied decimals of a whole unit (1_000_000 = $1 = 100%).
All settlement math is int-only. No float, no Decimal.
"""

UNIT_SCALE = 10**6
PRICE_SCALE = 10**6
HALF_PRICE = PRICE_SCALE // 2
BPS_DENOMINATOR = 10_000
MAX_FEE_BPS = 1_000


def to_units(whole: int) -> int:
    """Whole collateral units -> fixed-point: 100 -> 100_000_000."""
    return whole * UNIT_SCALE


def calculate_fee(amount: int, fee_bps: int) -> int:
    """Fee charged on a buy, floor division (matches on-chain truncation)."""
    if amount == 0 or fee_bps == 0:
        return 0
    return amount * fee_bps // BPS_DENOMINATOR


def price_per_share(amount: int, shares: int) -> int:
    """Average execution price of a trade at PRICE_SCALE. 50% when no shares moved."""
    if shares <= 0:
        return HALF_PRICE
    return amount * PRICE_SCALE // shares


def notional_value(shares: int, price: int) -> int:
    """Collateral value of `shares` at `price`."""
    return shares * price // PRICE_SCALE


def weighted_average_price(
    old_shares: int, old_avg_price: int, new_shares: int, new_price: int
) -> int:
    """Volume-weighted merge of two fills."""
    total = old_shares + new_shares
    if total <= 0:
        return 0
    return (old_shares * old_avg_price + new_shares * new_price) // total


def clamp_price(price: int | None) -> int:
    """Read-boundary guard: anything outside [0, PRICE_SCALE] becomes 50%."""
    if price is None or price < 0 or price > PRICE_SCALE:
        return HALF_PRICE
    return price


def clamp_units(units: int | None) -> int:
    """Read-boundary guard for amounts, volume and per-share prices: negatives become 0.

    Per-share execution prices are not probabilities: a CPMM buy pays the fee
    and slippage, so amount / shares is routinely above PRICE_SCALE.
    """
    if units is None or units < 0:
        return 0
    return units


def price_to_percent(price: int) -> str:
    """Exact percentage string: 500000 -> '50.0000', 588542 -> '58.8542'."""
    return f"{price // 10_000}.{price % 10_000:04d}"


def units_to_display(units: int) -> str:
    """Fixed-point units to display: 98_000_000 -> '$98.000000'."""
    if units < 0:
        abs_units = -units
        return f"-${abs_units // UNIT_SCALE:,}.{abs_units % UNIT_SCALE:06d}"
    return f"${units // UNIT_SCALE:,}.{units % UNIT_SCALE:06d}"
