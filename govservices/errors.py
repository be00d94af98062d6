"""Exception types raised by the GovServices search core."""


class GovServicesError(Exception):
    """Base class for all GovServices errors."""


class PolicyDeniedError(GovServicesError):
    """Raised when acquisition of a URL is not permitted (robots.txt)."""

    def __init__(self, url: str):
        super().__init__(f"Fetching is not permitted for {url}")
        self.url = url


class FetchError(GovServicesError):
    """Raised when a page could not be retrieved."""

    def __init__(self, url: str, message: str, status: int = 0):
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url
        self.status = status


class RateLimitedError(FetchError):
    """Raised when the remote answered with HTTP 429."""

    def __init__(self, url: str, delay_seconds: float):
        super().__init__(url, "too many requests", status=429)
        self.delay_seconds = delay_seconds


class DuplicateRecordError(GovServicesError):
    """Raised when adding a record whose id is already indexed."""

    def __init__(self, record_id: str):
        super().__init__(f"Service {record_id!r} is already indexed; use update")
        self.record_id = record_id


class RecordNotFoundError(GovServicesError, KeyError):
    """Raised when updating or removing an id that is not indexed."""

    def __init__(self, record_id: str):
        super().__init__(f"Service {record_id!r} is not indexed")
        self.record_id = record_id

    def __str__(self) -> str:
        return str(self.args[0])


class ProviderError(GovServicesError):
    """Raised when a response provider cannot answer."""
