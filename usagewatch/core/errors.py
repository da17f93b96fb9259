"""Error types raised by usagewatch."""


class UsageWatchError(Exception):
    """Base class for usagewatch errors."""


class MissingConfigurationError(UsageWatchError):
    """Required configuration (e.g. the Schematic API key) is not set."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"Missing required configuration: {setting}")


class UsageFetchError(UsageWatchError):
    """The usage feed could not be read."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
