"""
Folder picker adapters.

The save path resolver only needs ``pick_folder() -> str | None``; which
adapter is used is decided when the application is composed.
"""

import logging
import tkinter as tk
from tkinter import filedialog

from ..utils.config_manager import get_default_downloads_path

logger = logging.getLogger(__name__)


class FolderPicker:
    """Interface: returns a directory path, or None when the user cancels."""
    def pick_folder(self) -> str | None:
        raise NotImplementedError


class TkFolderPicker(FolderPicker):
    """Native directory dialog through Tkinter. Must be called on the Tk thread."""
    def __init__(self, root: tk.Misc | None = None, title: str = "Choose where received files are saved",
                 initial_dir: str | None = None):
        self.root = root
        self.title = title
        self.initial_dir = initial_dir

    def pick_folder(self) -> str | None:
        try:
            path = filedialog.askdirectory(parent=self.root, title=self.title,
                                           initialdir=self.initial_dir, mustexist=False)
        except tk.TclError as e:
            logger.error("Folder dialog failed: %s", e)
            return None
        # askdirectory returns '' (or an empty tuple on some platforms) on cancel
        return path if isinstance(path, str) and path else None


class DownloadsFolderPicker(FolderPicker):
    """Non-interactive picker that always answers with the user's Downloads folder."""
    def pick_folder(self) -> str | None:
        return get_default_downloads_path()


def default_folder_picker(root: tk.Misc | None = None) -> FolderPicker:
    if root is not None:
        return TkFolderPicker(root)
    return DownloadsFolderPicker()
