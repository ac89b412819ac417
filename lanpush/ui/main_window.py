import logging
import sys
import time
import tkinter as tk
from tkinter import filedialog, messagebox, scrolledtext, ttk

logger = logging.getLogger(__name__)


class MainWindow:
    """Handles the Tkinter GUI elements and forwards actions to the controller."""

    def __init__(self, root, controller):
        self.root = root
        self.controller = controller # Instance of AppLogic
        self.root.title("LanPush")
        self.root.geometry("520x480") # WxH
        self.root.minsize(420, 400)
        self.root.protocol("WM_DELETE_WINDOW", self._handle_close_request)

        # --- Styling ---
        style = ttk.Style(self.root)
        try: # Apply a preferred theme if available
            themes = style.theme_names()
            if 'clam' in themes:
                style.theme_use('clam')
            elif 'vista' in themes and sys.platform == 'win32':
                style.theme_use('vista')
            elif 'aqua' in themes and sys.platform == 'darwin':
                style.theme_use('aqua')
        except tk.TclError:
            logger.warning("Could not set a preferred theme, using default.")

        main_frame = ttk.Frame(self.root, padding=8)
        main_frame.pack(expand=True, fill=tk.BOTH)
        main_frame.columnconfigure(1, weight=1)
        main_frame.rowconfigure(5, weight=1)

        # --- This Device ---
        ttk.Label(main_frame, text="Your address:").grid(row=0, column=0, sticky=tk.W)
        self.address_var = tk.StringVar(value="...")
        self.address_combo = ttk.Combobox(main_frame, textvariable=self.address_var, state="readonly")
        self.address_combo.grid(row=0, column=1, sticky="ew", padx=5)
        address_buttons = ttk.Frame(main_frame)
        address_buttons.grid(row=0, column=2, sticky=tk.E)
        ttk.Button(address_buttons, text="Copy", command=self._copy_address_ui).pack(side=tk.LEFT)
        ttk.Button(address_buttons, text="Refresh", command=self.controller.refresh_addresses).pack(side=tk.LEFT, padx=(5, 0))

        # --- Receiver ---
        ttk.Label(main_frame, text="Save to:").grid(row=1, column=0, sticky=tk.W, pady=(8, 0))
        self.save_dir_label = ttk.Label(main_frame, text=str(self.controller.save_path.resolved_directory()),
                                        wraplength=300)
        self.save_dir_label.grid(row=1, column=1, sticky="ew", padx=5, pady=(8, 0))
        ttk.Button(main_frame, text="Change...", command=self.controller.pick_save_location).grid(
            row=1, column=2, sticky=tk.E, pady=(8, 0))

        self.receiver_button = ttk.Button(main_frame, text="Start Receiving", command=self.controller.toggle_receiver)
        self.receiver_button.grid(row=2, column=0, columnspan=3, sticky="ew", pady=(8, 0))

        # --- Sender ---
        send_frame = ttk.LabelFrame(main_frame, text="Send a File", padding=5)
        send_frame.grid(row=3, column=0, columnspan=3, sticky="ew", pady=(10, 0))
        send_frame.columnconfigure(1, weight=1)
        ttk.Label(send_frame, text="Peer address:").grid(row=0, column=0, sticky=tk.W)
        self.peer_entry = ttk.Entry(send_frame)
        self.peer_entry.grid(row=0, column=1, sticky="ew", padx=5)
        self.send_button = ttk.Button(send_frame, text="Choose File && Send ->", command=self._send_file_ui)
        self.send_button.grid(row=0, column=2, sticky=tk.E)

        # --- History ---
        ttk.Label(main_frame, text="History:").grid(row=4, column=0, sticky=tk.W, pady=(10, 2))
        self.history_text = scrolledtext.ScrolledText(main_frame, height=8, width=60, wrap=tk.WORD, state=tk.DISABLED)
        self.history_text.grid(row=5, column=0, columnspan=3, sticky="nsew")

        # --- Status Bar ---
        self.status_label = ttk.Label(self.root, text="Status: Initializing...", relief=tk.SUNKEN, anchor=tk.W, padding="2 5")
        self.status_label.pack(side=tk.BOTTOM, fill=tk.X)

    # --- UI Callbacks ---
    def _copy_address_ui(self):
        address = self.address_var.get().split()[0] if self.address_var.get() else ""
        if not address:
            return
        self.root.clipboard_clear()
        self.root.clipboard_append(address)
        self.update_status(f"Copied {address} to clipboard.")

    def _send_file_ui(self):
        target = self.peer_entry.get().strip()
        if not target:
            self.show_error("No Peer", "Enter the address of the device to send to.")
            return
        file_path = filedialog.askopenfilename(parent=self.root, title="Choose a file to send")
        if not file_path:
            return
        self.controller.send_file(target, file_path)

    def _handle_close_request(self):
        self.controller.handle_shutdown()

    # --- Updates from the controller (Tk thread) ---
    def update_status(self, message):
        try:
            self.status_label.config(text=f"Status: {message}")
        except tk.TclError:
            pass

    def update_addresses(self, best_address, entries):
        """Shows the ranked candidates, preselecting the best one."""
        values = entries or [best_address]
        self.address_combo.config(values=values)
        self.address_var.set(values[0])

    def update_receiver_state(self, running):
        self.receiver_button.config(text="Stop Receiving" if running else "Start Receiving")

    def update_save_directory(self, directory):
        self.save_dir_label.config(text=directory)

    def update_button_states(self, send_enabled):
        self.send_button.config(state=tk.NORMAL if send_enabled else tk.DISABLED)

    def show_error(self, title, message):
        logger.error("UI Error: %s - %s", title, message)
        self.root.after(0, lambda t=title, m=message: messagebox.showerror(t, m, parent=self.root))

    def add_history_log(self, log_message):
        """Adds a timestamped line to the history widget."""
        try:
            self.history_text.config(state=tk.NORMAL)
            timestamp = time.strftime("%H:%M:%S", time.localtime())
            self.history_text.insert(tk.END, f"{timestamp} - {log_message}\n")
            self.history_text.see(tk.END) # Auto-scroll
            self.history_text.config(state=tk.DISABLED)
        except tk.TclError:
            pass

    def destroy_window(self):
        try:
            if self.root and self.root.winfo_exists():
                self.root.destroy()
        except tk.TclError as e:
            logger.debug("Error during window destruction: %s", e)
