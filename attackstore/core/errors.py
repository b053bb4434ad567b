class AttackStoreError(Exception):
    """Base class for every failure raised by the attack store."""


class NotInitializedError(AttackStoreError):
    """The store is disabled because required configuration is missing."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidArgumentError(AttackStoreError, ValueError):
    pass


class WriteFailureError(AttackStoreError):
    pass


class QueryFailureError(AttackStoreError):
    pass


class DecodeFailureError(AttackStoreError):
    """A stored payload could not be rebuilt into an Attack."""

    def __init__(self, message: str, payload: object = None):
        super().__init__(message)
        self.payload = payload
