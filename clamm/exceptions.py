"""
Engine error taxonomy.

Every failure raised by the engine derives from ClammError. The intermediate
classes group errors by how the caller should treat them:

- ValidationError: bad input, raised before any state is touched
- MathError: the requested operation is not representable
- StateError: pool lifecycle / reentrancy violations
- SettlementError: value owed to the pool was not delivered; the operation
  has been rolled back
"""


class ClammError(Exception):
    """Base class for all engine errors."""


# ==================== Input validation ====================

class ValidationError(ClammError, ValueError):
    """Invalid caller input."""


class ZeroAmount(ValidationError):
    """A swap or mint was requested with a zero amount."""


class InvalidRange(ValidationError):
    """tick_lower >= tick_upper, or a bound lies outside [MIN_TICK, MAX_TICK]."""


class InvalidPriceLimit(ValidationError):
    """The swap price limit is not beyond the current price in the trade direction."""


class TickOutOfRange(ValidationError):
    """Tick outside [MIN_TICK, MAX_TICK]."""


class PriceOutOfRange(ValidationError):
    """sqrt price outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO)."""


class TickNotSpaced(ValidationError):
    """Tick is not a multiple of the pool's tick spacing."""


class NoPosition(ValidationError):
    """The (owner, tick_lower, tick_upper) position holds no liquidity."""


# ==================== Numerical ====================

class MathError(ClammError, ArithmeticError):
    """Result not representable in its fixed-width type."""


class Overflow(MathError, OverflowError):
    """Fixed-width overflow or division by zero in full-precision math."""


class LiquidityOverflow(MathError):
    """Liquidity above uint128, or above the per-tick liquidity cap."""


class LiquidityUnderflow(MathError):
    """Liquidity would become negative."""


# ==================== State / reentrancy ====================

class StateError(ClammError):
    """Operation not allowed in the pool's current state."""


class ReentrancyLocked(StateError):
    """The pool is in the middle of another operation on this thread."""


class NotInitialized(StateError):
    """The pool has no price yet."""


class AlreadyInitialized(StateError):
    """initialize() was called twice."""


# ==================== Settlement ====================

class SettlementError(ClammError):
    """Value transfer failed; the whole operation was rolled back."""


class InsufficientPayment(SettlementError):
    """The payment callback did not deliver the amount owed to the pool."""

    def __init__(self, token: str, owed: int, received: int):
        self.token = token
        self.owed = owed
        self.received = received
        super().__init__(f"{token}: owed {owed}, received {received}")


class InsufficientBalance(SettlementError):
    """The token ledger cannot debit an account."""
