"""Exception hierarchy for CamSpin.

Request errors are raised synchronously to the caller and never leave
partial state behind. Store errors come from the shared room store layer.
"""


class CamSpinError(Exception):
    """Base class for all CamSpin errors."""


class ShuffleRequestError(CamSpinError):
    """A shuffle request was rejected before any state was touched."""


class NotEnoughPlayersError(ShuffleRequestError):
    """Fewer participants than a shuffle needs."""

    def __init__(self, count: int, required: int = 2) -> None:
        super().__init__(f"Need at least {required} players to shuffle (have {count})")
        self.count = count
        self.required = required


class SpinInProgressError(ShuffleRequestError):
    """A shuffle was requested while another one is still running."""


class StoreError(CamSpinError):
    """Base class for shared room store failures."""


class StoreWriteError(StoreError):
    """A document write failed after all retries."""


class RoomNotFoundError(StoreError):
    """The room document does not exist."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Room {code} not found")
        self.code = code


class RoomClosedError(StoreError):
    """The room was deleted or the store connection was lost."""
