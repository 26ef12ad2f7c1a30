"""Exception types shared by the data and pricing services."""


class AnalyzerError(Exception):
    pass


class FetchError(AnalyzerError):
    """Explorer call failed or returned a non-success status."""


class PriceUnavailable(AnalyzerError):
    """A price source had nothing for the requested token."""


class QuoteRouteNotFound(PriceUnavailable):
    """No direct or multi-hop pool could quote the token."""
