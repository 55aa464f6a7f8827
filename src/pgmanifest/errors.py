"""Domain errors for pgmanifest."""


class ManifestError(Exception):
    """Base class for errors raised while synthesizing manifests."""


class QuantityError(ManifestError):
    """Raised when a CPU, memory or storage quantity cannot be parsed."""

    def __init__(self, field: str, value: str, reason: str = ""):
        self.field = field
        self.value = value
        message = f"Invalid quantity for {field}: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ConfigurationError(ManifestError):
    """Raised when operator configuration or a cluster document is unusable."""
