"""Exception taxonomy for presenter configuration, search and rendering failures."""


class ApistemError(Exception):
    """Base class for every error raised by apistem."""


class ConfigurationError(ApistemError):
    """A presenter, field, association or configuration node was declared incorrectly.

    These are programmer errors: they surface at definition time or on first
    use and are not meant to be recovered from.
    """


class PresenterNotFoundError(ConfigurationError, LookupError):
    """No presenter is registered for the requested class."""

    def __init__(self, klass):
        self.klass = klass
        super().__init__(f"Unable to find a presenter for class {klass}")


class SearchUnavailableError(ApistemError):
    """The search callable signaled that search is currently unavailable.

    Distinct from an empty result: a search that ran and matched nothing
    returns an empty id list instead.
    """

    def __init__(self, message: str = "Search is currently unavailable"):
        super().__init__(message)


class LookupFetchError(ApistemError, TypeError):
    """A lookup result cannot be indexed and no ``lookup_fetch`` was given."""
