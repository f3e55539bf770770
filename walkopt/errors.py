class ConfigurationError(ValueError):
    """Raised when a problem cannot be assembled from the given parameters."""
