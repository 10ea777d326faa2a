"""
Folks Finance calculation errors

All errors are raised synchronously where they are detected and are never swallowed.
"""


class FolksFinanceError(Exception):
    """
    Base exception
    """


class InvalidInput(FolksFinanceError, ValueError):
    """
    An operand or argument is outside its valid domain, e.g.,

    - square root of a negative number
    - staking period outside the range 1-4
    - malformed application state value
    """


class MissingPoolOrPrice(FolksFinanceError, LookupError):
    """
    A pool or an oracle price referenced by a loan could not be found.

    Skipping the position would understate risk, thus the lookup failure is always propagated.
    """

    def __init__(self, kind: str, key: int):
        super().__init__(f"Could not find {kind} {key}")
        self.kind = kind
        self.key = key


class InsufficientCapacity(FolksFinanceError):
    """
    The allocation strategy could not place the full amount across the proposers within the max number of app calls.

    Can be recovered from by using a custom allocation strategy, raising the max app calls, or reducing the amount.
    """

    def __init__(self, message: str, requested: int, remaining: int):
        super().__init__(f"{message}: requested={requested} remaining={remaining}")
        self.requested = requested
        self.remaining = remaining
