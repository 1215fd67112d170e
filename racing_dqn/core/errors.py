# Exception types shared across the package
# FORBIDDEN: torch, logging, any I/O


class ConfigurationError(ValueError):
    """Fatal setup error (dimension mismatch, bad config values).

    Raised before training starts; never recovered from.
    """


class InvalidActionError(ConfigurationError):
    """Action id outside the discrete action table."""


class NonFiniteLossError(FloatingPointError):
    """Training produced a NaN or Inf loss."""
