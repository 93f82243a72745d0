class StorageBackendError(Exception):
    """Raised when the external object store rejects or times out a call."""
