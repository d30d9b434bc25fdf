"""Error taxonomy for the relay."""


class RelayError(Exception):
    """Base class for errors surfaced to callers."""


class ValidationError(RelayError):
    """Malformed tracking, append or send request. No state was mutated."""


class UpstreamUnavailable(RelayError):
    """Vendor API or workflow webhook failed, timed out or is not configured."""
