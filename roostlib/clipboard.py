"""
Roost Clipboard Management

Copies secrets to the system clipboard and clears them again after a delay.
Each copy supersedes the previous one: the older pending clear is cancelled,
and a clear that fires late does nothing unless its copy is still the newest
and the clipboard still holds the copied text.

Dependencies: pyperclip for cross-platform clipboard support
"""

import logging
import threading
from typing import Optional

import pyperclip

from . import config

logger = logging.getLogger(__name__)


class ClipboardError(Exception):
    """Raised when the system clipboard cannot be read or written."""


class ClipboardManager:
    """
    Clipboard writer with supersedable, cancellable auto-clear.

    Args:
        clear_after (float, optional): Default seconds before clearing. Zero
            or less disables auto-clear. Defaults to
            config.CLIPBOARD_CLEAR_SECONDS.
    """

    def __init__(self, clear_after: Optional[float] = None):
        if clear_after is None:
            clear_after = config.CLIPBOARD_CLEAR_SECONDS
        self.clear_after = clear_after
        self._lock = threading.Lock()
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._copied: Optional[str] = None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def has_pending_clear(self) -> bool:
        with self._lock:
            return self._timer is not None

    def copy(self, text: str, clear_after: Optional[float] = None) -> int:
        """
        Put ``text`` on the clipboard and schedule its removal.

        Returns:
            int: Generation number of this copy

        Raises:
            ClipboardError: If the clipboard is unavailable
        """
        delay = self.clear_after if clear_after is None else clear_after

        with self._lock:
            self._cancel_timer()
            try:
                pyperclip.copy(text)
            except pyperclip.PyperclipException as exc:
                raise ClipboardError(f"clipboard unavailable: {exc}") from exc

            self._generation += 1
            generation = self._generation
            self._copied = text

            if delay and delay > 0:
                timer = threading.Timer(delay, self._clear_if_current, args=(generation,))
                timer.daemon = True
                self._timer = timer
                timer.start()

        logger.debug("Copied to clipboard (generation %d, clear after %ss)", generation, delay)
        return generation

    def _cancel_timer(self) -> None:
        # Caller holds self._lock
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _clear_if_current(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            copied, self._copied = self._copied, None

            try:
                if pyperclip.paste() == copied:
                    pyperclip.copy("")
                    logger.debug("Clipboard cleared (generation %d)", generation)
            except pyperclip.PyperclipException as exc:
                logger.warning("Could not clear clipboard: %s", exc)

    def wait_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the scheduled clear has run or been cancelled.

        A short-lived process must call this before exiting, since the
        clear timer is a daemon thread and dies with the interpreter.

        Returns:
            bool: True if nothing is pending any more, False on timeout
        """
        with self._lock:
            timer = self._timer
        if timer is None:
            return True
        timer.join(timeout)
        return not timer.is_alive()

    def cancel_pending(self) -> None:
        """Drop the scheduled clear, leaving the clipboard as it is."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            self._copied = None

    def clear(self) -> None:
        """
        Clear the clipboard now and cancel any scheduled clear.

        Raises:
            ClipboardError: If the clipboard is unavailable
        """
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            self._copied = None
            try:
                pyperclip.copy("")
            except pyperclip.PyperclipException as exc:
                raise ClipboardError(f"clipboard unavailable: {exc}") from exc


_default_manager: Optional[ClipboardManager] = None
_default_lock = threading.Lock()


def get_clipboard_manager() -> ClipboardManager:
    """Process-wide manager shared by copy_to_clipboard()."""
    global _default_manager
    with _default_lock:
        if _default_manager is None:
            _default_manager = ClipboardManager()
        return _default_manager


def copy_to_clipboard(text: str, timeout: Optional[float] = None) -> bool:
    """
    Copy text with auto-clear through the shared manager.

    Returns:
        bool: True if the text reached the clipboard, False otherwise
    """
    try:
        get_clipboard_manager().copy(text, clear_after=timeout)
        return True
    except ClipboardError as exc:
        logger.warning("%s", exc)
        return False


__all__ = [
    'ClipboardError',
    'ClipboardManager',
    'get_clipboard_manager',
    'copy_to_clipboard',
]
