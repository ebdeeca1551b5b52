from __future__ import annotations

import logging
import threading
from typing import Callable

from PySide6.QtCore import QObject, QTimer, Qt, Signal, Slot


class TimerBridge(QObject):
    """Carries timer side effects from the worker thread to the GUI thread.

    Signals emitted off the GUI thread are queued to receivers living on it.
    ``play_sound`` is the only blocking call: it waits until the GUI side
    reports the chime finished through :meth:`soundFinished`, echoing the
    token it was handed so a late reply for an earlier chime is ignored.
    """

    notificationRequested = Signal(str, str)
    windowVisibilityRequested = Signal(bool)
    focusRequested = Signal()
    timerTextChanged = Signal(str)
    trayTitleChanged = Signal(str)
    trayTooltipChanged = Signal(str)
    soundRequested = Signal(int)

    def __init__(self, sound_timeout: float = 10.0) -> None:
        super().__init__()
        self._sound_timeout = sound_timeout
        self._sound_done = threading.Event()
        self._sound_lock = threading.Lock()
        self._sound_token = 0
        self._released = False

    def set_sound_timeout(self, seconds: float) -> None:
        self._sound_timeout = max(0.1, float(seconds))

    def notify(self, title: str, body: str) -> None:
        logging.info("notification: %s", title)
        self.notificationRequested.emit(title, body)

    def show_window(self) -> None:
        self.windowVisibilityRequested.emit(True)

    def hide_window(self) -> None:
        self.windowVisibilityRequested.emit(False)

    def request_focus(self) -> None:
        self.focusRequested.emit()

    def set_timer_text(self, text: str) -> None:
        self.timerTextChanged.emit(text)

    def set_tray_title(self, text: str) -> None:
        self.trayTitleChanged.emit(text)

    def set_tray_tooltip(self, text: str) -> None:
        self.trayTooltipChanged.emit(text)

    def play_sound(self) -> None:
        if self._released:
            return
        with self._sound_lock:
            self._sound_token += 1
            token = self._sound_token
            self._sound_done.clear()
        self.soundRequested.emit(token)
        if not self._sound_done.wait(self._sound_timeout):
            logging.warning("sound playback did not finish within %ss", self._sound_timeout)

    @Slot(int)
    def soundFinished(self, token: int) -> None:
        with self._sound_lock:
            if token != self._sound_token:
                logging.info("late sound completion ignored: %s", token)
                return
            self._sound_done.set()

    def release(self) -> None:
        self._released = True
        self._sound_done.set()


class ForceFocusGuard:
    """Pulls the break window back after the app loses the foreground.

    Every loss of the foreground schedules one re-focus after
    ``force_focus_sec``; whether a break is running is only checked when it
    fires, so leaving the app just before a break still brings the window back.
    """

    def __init__(
        self,
        core,
        bridge: TimerBridge,
        schedule: Callable[[int, Callable[[], None]], None] | None = None,
    ) -> None:
        self._core = core
        self._bridge = bridge
        self._schedule = schedule or QTimer.singleShot
        self._pending = False

    def on_application_state(self, state) -> None:
        if state == Qt.ApplicationState.ApplicationActive or self._pending:
            return
        self._pending = True
        self._schedule(self._core.force_focus_sec * 1000, self._fire)

    def _fire(self) -> None:
        self._pending = False
        if self._core.is_breaking():
            logging.info("forcing break window focus")
            self._bridge.request_focus()
