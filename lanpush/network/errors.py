class TransferError(Exception):
    """Base class for transfer engine errors."""


class ServerStartError(TransferError):
    """The receiver could not be started (bind failure, bad address...)."""


class FrameError(TransferError):
    """A stream-variant frame header is malformed."""
