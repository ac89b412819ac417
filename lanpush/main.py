import logging
import sys
import tkinter as tk

from PIL import Image, ImageDraw, ImageTk

from lanpush.core.app_logic import AppLogic
from lanpush.ui.main_window import MainWindow
from lanpush.utils.config_manager import ConfigManager, get_default_data_dir
from lanpush.utils.constants import APP_NAME
from lanpush.utils.logger import setup_logging

logger = logging.getLogger("lanpush.main")

ICON_SIZE = 64
ICON_BACKGROUND = (33, 111, 219, 255)
ICON_FOREGROUND = (255, 255, 255, 255)


def build_icon_image(size: int = ICON_SIZE) -> Image.Image:
    """Draws the window icon: a white upward arrow on a rounded blue tile."""
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.rounded_rectangle((0, 0, size - 1, size - 1), radius=size // 6, fill=ICON_BACKGROUND)
    mid = size // 2
    draw.polygon([(mid, size // 6), (size * 5 // 6, mid), (size // 6, mid)], fill=ICON_FOREGROUND)
    draw.rectangle((mid - size // 10, mid, mid + size // 10, size * 5 // 6), fill=ICON_FOREGROUND)
    return image


def set_app_icon(root_window: tk.Tk):
    """Attempts to set the application icon for the main window."""
    try:
        photo = ImageTk.PhotoImage(build_icon_image())
        # Store reference on root window to prevent garbage collection!
        root_window.app_icon_ref = photo
        root_window.iconphoto(True, photo)
    except (tk.TclError, OSError) as e:
        logger.warning("Application icon could not be set: %s", e)


def main():
    """Sets up and runs the LanPush window."""
    # --- Initialize Configuration ---
    config_manager = ConfigManager()
    setup_logging(config_manager.log_level, logs_dir=get_default_data_dir())
    logger.info("--- Starting %s ---", APP_NAME)

    # --- Check Tkinter availability ---
    try:
        temp_root = tk.Tk(); temp_root.withdraw(); temp_root.destroy()
    except tk.TclError as e:
        logger.critical("Tkinter not available/configured: %s", e)
        logger.critical("Use 'lanpush-cli' on machines without a display.")
        sys.exit(1)

    # --- Main Application Setup ---
    app_logic = None
    try:
        root = tk.Tk()
        root.withdraw() # Keep root window hidden initially
        set_app_icon(root)

        app_logic = AppLogic(root, config_manager) # Core controller
        main_window = MainWindow(root, app_logic)
        app_logic.set_main_window(main_window) # Link logic back to UI
        app_logic.start() # Addresses, receiver, queue polling

        root.deiconify()
        root.lift()
        root.attributes('-topmost', True) # Force topmost initially
        root.after_idle(root.attributes, '-topmost', False)

        logger.debug("Entering Tkinter main event loop")
        root.mainloop() # Blocks until window is closed
    except Exception:
        logger.exception("Fatal runtime error")
        sys.exit(1)
    finally:
        # Ensure shutdown runs if mainloop exits without the close button
        if app_logic is not None and not app_logic.stop_event.is_set():
            app_logic.handle_shutdown()

    logger.info("--- %s finished ---", APP_NAME)


if __name__ == "__main__":
    main()
