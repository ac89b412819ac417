import logging
import threading
from pathlib import Path

from .config_manager import get_default_data_dir
from .constants import RECEIVED_DIR_NAME

logger = logging.getLogger(__name__)


class SavePathResolver:
    """
    Resolves the directory received files are written to.

    Defaults to <app data>/ReceivedFiles. A folder picker (any object with a
    ``pick_folder() -> str | None`` method) can override it at runtime; the
    override is held in memory for the life of the process.
    """
    def __init__(self, folder_picker=None, default_directory: Path | str | None = None,
                 custom_directory: Path | str | None = None):
        self.folder_picker = folder_picker
        self.default_directory = Path(default_directory) if default_directory else get_default_data_dir() / RECEIVED_DIR_NAME
        self._custom_directory = Path(custom_directory) if custom_directory else None
        self._lock = threading.Lock()

    @property
    def custom_directory(self) -> Path | None:
        return self._custom_directory

    @custom_directory.setter
    def custom_directory(self, value: Path | str | None):
        with self._lock:
            self._custom_directory = Path(value) if value else None

    def resolved_directory(self) -> Path:
        custom = self._custom_directory
        return custom if custom is not None else self.default_directory

    def ensure_directory_exists(self) -> Path:
        """Creates the resolved directory if needed and returns it. Raises OSError."""
        directory = self.resolved_directory()
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def pick_save_location(self) -> Path:
        """Asks the folder picker for a directory and keeps it if one was chosen."""
        if self.folder_picker is None:
            logger.warning("No folder picker configured, keeping %s", self.resolved_directory())
            return self.resolved_directory()

        picked = self.folder_picker.pick_folder()
        if picked:
            self.custom_directory = picked
            logger.info("Save location set to %s", picked)
            try:
                Path(picked).mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning("Could not create save location %s: %s", picked, e)
        return self.resolved_directory()
