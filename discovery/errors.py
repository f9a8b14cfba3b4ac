# discovery/errors.py

class DiscoveryError(Exception):
    """Base class for errors raised by the discovery service."""

class InvalidFilterError(DiscoveryError, ValueError):
    def __init__(self, message: str, filter_name: str | None = None):
        super().__init__(message)
        self.filter_name = filter_name

class ListingNotFoundError(DiscoveryError, LookupError):
    def __init__(self, listing_id: str):
        super().__init__(f"Listing {listing_id} not found")
        self.listing_id = listing_id

class IndexUnavailableError(DiscoveryError):
    """The search index could not be reached or rejected the request."""
