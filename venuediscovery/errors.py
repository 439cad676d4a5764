"""
Error taxonomy for discovery runs.

ConfigurationError       caller bug (unknown venue, missing adapter or token)
SourceUnavailableError   listing page could not be fetched/rendered in time
PartialExtractionFailure one item in a batch failed; never propagates
BackendError             the import backend rejected a request
"""


class DiscoveryError(Exception):
    pass


class ConfigurationError(DiscoveryError):
    pass


class SourceUnavailableError(DiscoveryError):
    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class PartialExtractionFailure(DiscoveryError):
    def __init__(self, item: str, cause: Exception):
        super().__init__(f"{item}: {cause}")
        self.item = item
        self.cause = cause


class BackendError(DiscoveryError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
