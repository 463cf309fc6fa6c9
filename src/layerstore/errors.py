"""Exception types raised by layerstore."""


class InvalidMetaChainError(ValueError):
    """A meta chain ran out before reaching an action or effect."""


class ReentrancyError(RuntimeError):
    """A store API was called from inside that store's reducer layer."""
