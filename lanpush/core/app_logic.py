import logging
import queue
import threading
import time
import tkinter as tk
from pathlib import Path

from ..adapters.folder_picker import default_folder_picker
from ..adapters.platform_setup import default_platform_setup
from ..network.errors import ServerStartError
from ..network.events import FileReceivedNotifier
from ..network.factory import create_client, create_server
from ..network.interfaces import InterfaceScorer
from ..utils.config_manager import ConfigManager
from ..utils.constants import FALLBACK_ADDRESS
from ..utils.save_path import SavePathResolver

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 150


class AppLogic:
    """
    Coordinates the UI (MainWindow), the interface scorer, the receiver and
    the sender. Background threads never touch Tk: they put messages on a
    queue that is drained on the Tk thread every POLL_INTERVAL_MS.
    """
    def __init__(self, root: tk.Tk, config: ConfigManager, folder_picker=None, platform_setup=None):
        """
        Args:
            root: The Tkinter root window instance.
            config: The initialized ConfigManager instance.
            folder_picker: Save-location picker; a Tk directory dialog by default.
            platform_setup: Receiver startup collaborator; chosen per OS by default.
        """
        self.root = root
        self.config = config
        self.main_window = None # Set via set_main_window

        self.protocol = config.protocol
        self.port = config.port

        # --- Communication & Control ---
        self.event_queue = queue.Queue() # Messages from receiver/sender threads
        self.stop_event = threading.Event() # Global shutdown signal

        # --- Modules Initialization ---
        self.scorer = InterfaceScorer()
        self.save_path = SavePathResolver(
            folder_picker=folder_picker if folder_picker is not None else default_folder_picker(root),
            custom_directory=config.save_directory)
        self.notifier = FileReceivedNotifier()
        self.notifier.subscribe(self._on_file_received)
        self.server = create_server(self.protocol, self.save_path, notifier=self.notifier,
                                    platform_setup=platform_setup if platform_setup is not None else default_platform_setup(),
                                    port=self.port)
        self.client = create_client(self.protocol, port=self.port)

        self.is_sending = False
        self.history_log = [] # (timestamp, type, status, details)

    def set_main_window(self, window):
        self.main_window = window

    def start(self):
        """Starts the receiver and the queue polling loop."""
        logger.info("AppLogic: starting (%s protocol, port %s).", self.protocol, self.port)
        self.refresh_addresses()
        self.start_receiver()
        self._poll_queue()

    # --- Called from background threads ---
    def _on_file_received(self, file_name):
        # Runs on the receiver's handler thread
        self.event_queue.put(("received", file_name))

    def _send_worker(self, target_address, file_path):
        result = self.client.send(target_address, file_path)
        self.event_queue.put(("send_result", Path(file_path).name, target_address, result))

    # --- Queue polling (Tk thread) ---
    def _poll_queue(self):
        try:
            while True:
                message = self.event_queue.get_nowait()
                self._dispatch(message)
        except queue.Empty:
            pass
        finally:
            if not self.stop_event.is_set():
                self.root.after(POLL_INTERVAL_MS, self._poll_queue)

    def _dispatch(self, message):
        action = message[0]
        if not self.main_window:
            return
        if action == "received":
            file_name = message[1] or "file"
            self.main_window.update_status(f"Received '{file_name}'.")
            self._add_history("receive", "Success", f"{file_name} -> {self.save_path.resolved_directory()}")
        elif action == "send_result":
            file_name, target, result = message[1:]
            self.is_sending = False
            self.main_window.update_button_states(send_enabled=True)
            if result.success:
                self.main_window.update_status(f"Sent '{file_name}' to {target}.")
                self._add_history("send", "Success", f"{file_name} -> {target}")
            else:
                self.main_window.update_status(f"Send failed: {result.message}")
                self.main_window.show_error("Send Error", result.message)
                self._add_history("send", "Failed", f"{file_name} -> {target}: {result.message}")
        else:
            logger.warning("Unknown queue message: %r", message)

    def _add_history(self, type, status, details):
        self.history_log.append((time.time(), type, status, details))
        if self.main_window:
            self.main_window.add_history_log(f"[{type.upper()[:4]}] {status}: {details}")

    # --- Event Handlers (called by MainWindow) ---
    def refresh_addresses(self):
        candidates = self.scorer.rank()
        best = candidates[0].address if candidates else FALLBACK_ADDRESS
        if self.main_window:
            self.main_window.update_addresses(best, [f"{c.address}  ({c.interface_name}, {c.score})" for c in candidates])
        return best

    def start_receiver(self):
        try:
            self.server.start()
        except ServerStartError as e:
            if self.main_window:
                self.main_window.show_error("Receiver Error", str(e))
                self.main_window.update_receiver_state(False)
            self._add_history("server", "Failed", str(e))
            return False
        if self.main_window:
            self.main_window.update_receiver_state(True)
            self.main_window.update_status(f"Receiving on port {self.server.port} ({self.protocol}).")
        return True

    def stop_receiver(self):
        self.server.stop()
        if self.main_window:
            self.main_window.update_receiver_state(False)
            self.main_window.update_status("Receiver stopped.")

    def toggle_receiver(self):
        if self.server.is_running:
            self.stop_receiver()
        else:
            self.start_receiver()

    def pick_save_location(self):
        directory = self.save_path.pick_save_location()
        if self.main_window:
            self.main_window.update_save_directory(str(directory))
        return directory

    def send_file(self, target_address, file_path):
        """Sends on a worker thread; the outcome comes back through the queue."""
        if self.is_sending:
            return
        self.is_sending = True
        if self.main_window:
            self.main_window.update_button_states(send_enabled=False)
            self.main_window.update_status(f"Sending '{Path(file_path).name}' to {target_address}...")
        threading.Thread(target=self._send_worker, args=(target_address, file_path),
                         name="SendWorker", daemon=True).start()

    def handle_shutdown(self):
        """Stops the receiver and the polling loop, then closes the window."""
        if self.stop_event.is_set():
            return
        logger.info("AppLogic: shutting down.")
        self.stop_event.set()
        self.server.close()
        if self.main_window:
            self.main_window.destroy_window()
