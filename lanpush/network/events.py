import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FileReceivedCallback = Callable[[Optional[str]], None]


class FileReceivedNotifier:
    """
    Observer registration for completed inbound transfers.

    Callbacks run on the handler thread that finished the transfer, not on the
    subscriber's thread; a GUI must marshal the call onto its own loop.
    A failing callback is logged and does not affect the transfer or the other
    subscribers.
    """
    def __init__(self):
        self._callbacks: list[FileReceivedCallback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: FileReceivedCallback) -> Callable[[], None]:
        """Registers a callback and returns a function that removes it again."""
        with self._lock:
            self._callbacks.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: FileReceivedCallback) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def notify(self, file_name: str | None = None) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(file_name)
            except Exception:
                logger.exception("File-received subscriber %r failed", callback)
