"""Error taxonomy surfaced by the listing service."""


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing or unusable."""


class NotFound(LookupError):
    """Raised when a listing id does not exist."""

    def __init__(self, listing_id: str) -> None:
        super().__init__(f"listing {listing_id} not found")
        self.listing_id = listing_id


class InvalidRequest(ValueError):
    """Raised for malformed listing payloads or search parameters."""


class BackendUnavailable(RuntimeError):
    """Raised when the search/document store fails or times out."""
