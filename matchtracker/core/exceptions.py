"""Error taxonomy for the reminder engine and field cipher."""


class MatchTrackerError(Exception):
    """Base class for all Match Tracker errors."""


class ConfigurationError(MatchTrackerError):
    """Required configuration (such as the encryption secret) is missing or invalid."""


class IntegrityError(MatchTrackerError):
    """An encrypted value failed its shape or authentication check."""


class ChannelDeliveryError(MatchTrackerError):
    """A notification provider rejected or failed to accept a message."""

    def __init__(self, channel: str, reason: str) -> None:
        super().__init__(f"{channel} delivery failed: {reason}")
        self.channel = channel
        self.reason = reason


class StoreError(MatchTrackerError):
    """A query or update against the match store failed."""
