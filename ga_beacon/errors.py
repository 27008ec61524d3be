class BeaconError(Exception):
    """Base class for errors raised by the beacon service."""


class ConfigError(BeaconError):
    """Measurement Protocol credentials are missing or unreadable."""


class RandomSourceError(BeaconError):
    """The OS entropy source could not produce a client id."""


class TemplateRenderError(BeaconError):
    """The account landing page could not be rendered."""


class DeliveryError(BeaconError):
    """A page view could not be serialized or posted to the collector."""
