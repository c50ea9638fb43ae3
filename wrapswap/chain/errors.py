"""
Errors raised by the ledger substrate.
"""


class LedgerError(Exception):
    """Base class for ledger failures. Raising one inside a transaction rolls it back."""


class UnknownAccount(LedgerError):
    """The sender of a transaction is not a registered account."""


class InvalidOwnership(LedgerError):
    """The sender tried to consume an object it does not exclusively own."""

    def __init__(self, object_id: str, sender: str, owner=None):
        self.object_id = object_id
        self.sender = sender
        self.owner = owner
        if owner is None:
            reason = "does not exist or was already consumed"
        else:
            reason = f"is owned by {owner}"
        super().__init__(f"Object {object_id} {reason}; {sender} cannot use it")


class ObjectNotFound(LedgerError, KeyError):
    """No top-level object with this ID exists."""

    def __str__(self):
        return Exception.__str__(self)


class WrongObjectType(LedgerError):
    """An object ID resolved to an object of an unexpected type."""


class InsufficientBalance(LedgerError):
    """An account's fee objects hold less value than requested."""

    def __init__(self, address: str, requested: int, available: int):
        self.address = address
        self.requested = requested
        self.available = available
        super().__init__(f"{address} has {available}, needs {requested}")
