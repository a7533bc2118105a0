"""Error kinds surfaced by the simulator core."""


class ConfigurationError(ValueError):
    """Raised for any invalid simulator configuration."""


class SimulationError(RuntimeError):
    """Raised when a run fails while processing an access."""


class InvalidAccessError(ValueError):
    """Raised for an access the hierarchy cannot decode (e.g. a negative address)."""
