# listing_optimizer/errors.py
"""Error taxonomy shared by the pipeline and the HTTP layer.

Every failure the service reports to a caller is a `ListingError`; the
request boundary maps each subclass to a status code.
"""


class ListingError(Exception):
    status_code = 500


class ValidationError(ListingError):
    """A required input field is missing or empty."""
    status_code = 400


class UpstreamTransportError(ListingError):
    """Scraping intermediary or completion service unreachable, non-2xx or timed out."""


class OptimizationParseError(ListingError):
    """The completion service replied but no usable JSON object was found."""


class PersistenceError(ListingError):
    pass


class ConfigurationError(ListingError):
    """A required setting is absent or malformed; raised before serving."""
