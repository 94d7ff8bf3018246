"""Exception types for the navigation engine."""


class VimNavError(Exception):
    """Base class for all navigation errors."""


class DisplayQueryError(VimNavError):
    """Screen bounds could not be obtained at startup."""


class HookRegistrationError(VimNavError):
    """The global keyboard hook could not be installed."""


class InjectionError(VimNavError):
    """A synthetic event could not be delivered."""


class ConfigurationError(VimNavError):
    """Configuration could not be read or failed validation."""
