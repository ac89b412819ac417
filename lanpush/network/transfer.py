"""
Shared machinery of the two transfer variants.

``TransferServer`` owns the listener lifecycle (Stopped -> Starting -> Running
-> Stopped), the cancellation event, the supervised per-connection handler
threads and the write-then-rename step that turns a received payload into a
file in the save directory. ``TransferClient`` owns the argument checks and the
never-raise contract of ``send()``. The HTTP and stream modules only supply the
wire format.
"""

import enum
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .errors import ServerStartError
from .events import FileReceivedNotifier
from ..utils.constants import APP_PORT, BIND_HOST, HANDLER_JOIN_TIMEOUT
from ..utils.file_utils import (cleanup_partial_file, commit_partial_file, confined_destination,
                                create_partial_file, sanitize_file_name)

logger = logging.getLogger(__name__)


class ServerState(enum.Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


@dataclass(frozen=True)
class SendResult:
    success: bool
    message: str

    def __bool__(self):
        return self.success

    @classmethod
    def ok(cls):
        return cls(True, "Success")

    @classmethod
    def failed(cls, message: str):
        return cls(False, message)


# --- Receiver Base ---
class TransferServer:
    """Base class for the receivers: lifecycle, handler supervision, file storage."""
    protocol_name = "base"

    def __init__(self, save_path, notifier: FileReceivedNotifier | None = None,
                 platform_setup=None, host: str = BIND_HOST, port: int = APP_PORT):
        self.save_path = save_path # SavePathResolver
        self.notifier = notifier if notifier is not None else FileReceivedNotifier()
        self.platform_setup = platform_setup
        self.host = host
        self.requested_port = port
        self.port = port # Actual port once bound (differs when port 0 was requested)

        self._state = ServerState.STOPPED
        self._lifecycle_lock = threading.RLock()
        self._cancel_event = threading.Event()
        self._accept_thread: threading.Thread | None = None
        self._handlers: set[threading.Thread] = set()
        self._handlers_lock = threading.Lock()

    # --- Hooks for the variants ---
    def _open_listener(self):
        raise NotImplementedError

    def _accept_loop(self):
        raise NotImplementedError

    def _close_listener(self):
        raise NotImplementedError

    # --- State ---
    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ServerState.RUNNING

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    @property
    def active_handlers(self) -> int:
        with self._handlers_lock:
            return len(self._handlers)

    # --- Lifecycle ---
    def start(self):
        """
        Binds the listener and starts the accept loop in the background.

        Returns as soon as the listener is bound. Does nothing when already
        running. Raises ServerStartError if the listener cannot be opened.
        """
        with self._lifecycle_lock:
            if self._state is not ServerState.STOPPED:
                return
            self._state = ServerState.STARTING
            self._cancel_event = threading.Event()
            self.port = self.requested_port
            self._prepare_platform()

            try:
                self._open_listener()
            except Exception as e:
                logger.error("Could not start %s receiver on %s:%s: %s",
                             self.protocol_name, self.host, self.requested_port, e)
                self.stop()
                raise ServerStartError(
                    f"Could not bind {self.protocol_name} receiver to port {self.requested_port}: {e}") from e

            self._accept_thread = threading.Thread(
                target=self._run_accept_loop, args=(self._cancel_event,),
                name=f"{self.protocol_name.capitalize()}AcceptLoop-{self.port}",
                daemon=True)
            self._accept_thread.start()
            self._state = ServerState.RUNNING
            logger.info("%s receiver listening on %s:%s, saving to %s",
                        self.protocol_name.upper(), self.host, self.port, self.save_path.resolved_directory())

    def stop(self):
        """Signals cancellation, closes the listener and joins the accept loop. Idempotent."""
        with self._lifecycle_lock:
            if self._state is ServerState.STOPPED:
                return
            self._cancel_event.set()
            try:
                self._close_listener()
            except OSError as e:
                logger.debug("Error closing %s listener: %s", self.protocol_name, e)

            thread = self._accept_thread
            if thread is not None and thread is not threading.current_thread():
                thread.join()
            self._accept_thread = None
            self._state = ServerState.STOPPED
            logger.info("%s receiver stopped.", self.protocol_name.upper())

    def _run_accept_loop(self, cancel_event: threading.Event):
        """Runs the variant's accept loop; stops the server if the loop ends without being cancelled."""
        try:
            self._accept_loop()
        finally:
            if not cancel_event.is_set():
                logger.error("%s accept loop ended unexpectedly, receiver stopped.", self.protocol_name.upper())
                self._stop_after_failure(cancel_event)

    def _stop_after_failure(self, cancel_event: threading.Event):
        # stop() may be joining this thread while holding the lock; it sets the event first.
        while not cancel_event.is_set():
            if self._lifecycle_lock.acquire(timeout=0.1):
                try:
                    if self._cancel_event is cancel_event:
                        self.stop()
                finally:
                    self._lifecycle_lock.release()
                return

    def wait_for_handlers(self, timeout: float | None = HANDLER_JOIN_TIMEOUT) -> bool:
        """Joins in-flight handler threads. Returns False if some are still running."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._handlers_lock:
                pending = list(self._handlers)
            if not pending:
                return True
            for thread in pending:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)
            if deadline is not None and time.monotonic() >= deadline:
                with self._handlers_lock:
                    return not self._handlers

    def close(self, timeout: float | None = HANDLER_JOIN_TIMEOUT):
        """Stops the server and waits for in-flight transfers to end."""
        self.stop()
        if not self.wait_for_handlers(timeout):
            logger.warning("%d %s handler(s) still running after close.", self.active_handlers, self.protocol_name)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # --- Helpers for the variants ---
    def _prepare_platform(self):
        """Best-effort platform setup; never prevents the listener from starting."""
        if self.platform_setup is None:
            return
        try:
            if not self.platform_setup.request_write_permission(self.save_path.resolved_directory()):
                logger.warning("Write permission for %s was not granted.", self.save_path.resolved_directory())
        except Exception as e:
            logger.warning("Write permission request failed: %s", e)
        try:
            self.platform_setup.reserve_port(self.requested_port)
        except Exception as e:
            logger.debug("Port reservation failed (ignored): %s", e)

    def _spawn_handler(self, target, *args, name: str | None = None) -> threading.Thread:
        """Runs one connection handler on its own tracked thread."""
        def run():
            try:
                target(*args)
            finally:
                with self._handlers_lock:
                    self._handlers.discard(threading.current_thread())

        thread = threading.Thread(target=run, name=name, daemon=True)
        with self._handlers_lock:
            self._handlers.add(thread)
        thread.start()
        return thread

    def _store_file(self, declared_name: str | None, chunks: Iterable[bytes]) -> Path:
        """
        Writes the payload to a temporary file in the save directory and moves
        it to its final name once complete. On any error the temporary file is
        removed and the exception propagates; the final path is never left
        holding a partial payload.
        """
        file_name = sanitize_file_name(declared_name)
        directory = self.save_path.ensure_directory_exists()
        destination = confined_destination(directory, file_name)

        fd, partial_path = create_partial_file(directory)
        try:
            with os.fdopen(fd, 'wb') as f:
                for chunk in chunks:
                    f.write(chunk)
            commit_partial_file(partial_path, destination)
        except BaseException:
            cleanup_partial_file(partial_path)
            raise
        return destination


# --- Sender Base ---
class TransferClient:
    """Base class for senders. ``send()`` never raises."""
    protocol_name = "base"

    def __init__(self, port: int = APP_PORT):
        self.port = port

    def _send(self, target_address: str, file_path: Path) -> SendResult:
        raise NotImplementedError

    def send(self, target_address: str, file_path) -> SendResult:
        if not target_address or not target_address.strip():
            return SendResult.failed("Target address is empty.")
        if not file_path or not Path(file_path).is_file():
            return SendResult.failed("File not found.")

        target_address = target_address.strip()
        try:
            result = self._send(target_address, Path(file_path))
        except Exception as e:
            logger.error("Sending %s to %s failed: %s", file_path, target_address, e)
            return SendResult.failed(f"Connection error: {e}")
        if result.success:
            logger.info("Sent '%s' to %s:%s (%s).", Path(file_path).name, target_address, self.port, self.protocol_name)
        else:
            logger.warning("Sending '%s' to %s failed: %s", Path(file_path).name, target_address, result.message)
        return result
