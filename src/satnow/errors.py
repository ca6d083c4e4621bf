"""Exception types raised by satnow."""


class SatnowError(Exception):
    """Base class for satnow errors."""


class CatalogError(SatnowError):
    """The catalog store could not be opened, read or written."""


class PropagationError(SatnowError):
    """A bearing could not be computed for an element record."""


class InvalidObserverError(SatnowError, ValueError):
    """Observer coordinates are outside the valid latitude/longitude range."""


class ConfigError(SatnowError, ValueError):
    """A setting taken from the environment could not be parsed."""
