__all__ = ("SwcacheError", "NetworkError", "StorageError", "ProvisioningError")


class SwcacheError(Exception): ...


class NetworkError(SwcacheError):
    """The request could not be completed at the transport level."""


class StorageError(SwcacheError):
    """A cache generation could not be read or written."""


class ProvisioningError(SwcacheError):
    """One of the pinned assets could not be fetched during install."""
