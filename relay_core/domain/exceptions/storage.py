"""Storage-level signals raised by repository implementations."""


class DuplicateKeyError(Exception):
    """
    Raised when the store's uniqueness constraint rejects an insert.

    This is the only signal the idempotency claim and the delivery fan-out
    rely on to decide who got there first.
    """

    def __init__(self, key: str):
        super().__init__(f"Duplicate key: {key}")
        self.key = key
