class ConflictError(Exception):
    """A concurrent writer changed the row between our read and our write."""


class HttpClientError(Exception):
    """Transport-level failure talking to an external HTTP service."""
