from __future__ import annotations

import logging
import os
import sys

from PySide6.QtCore import QCoreApplication, QObject, QStandardPaths, Qt, QUrl, Slot
from PySide6.QtGui import QFont, QIcon
from PySide6.QtMultimedia import QSoundEffect
from PySide6.QtWidgets import (
    QApplication,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QMenu,
    QMessageBox,
    QStyle,
    QSystemTrayIcon,
    QVBoxLayout,
    QWidget,
)

try:
    from .bridge import ForceFocusGuard, TimerBridge
    from .preferences import PreferenceStore
    from .rounds import RoundCounter
    from .settings import Pref, SettingsModel, SettingsValidationError
    from .sound import Clip, SoundDecodeError, ensure_sound_file, load_clip
    from .timer import TimerCore, TimerWorker
except ImportError:
    from bridge import ForceFocusGuard, TimerBridge
    from preferences import PreferenceStore
    from rounds import RoundCounter
    from settings import Pref, SettingsModel, SettingsValidationError
    from sound import Clip, SoundDecodeError, ensure_sound_file, load_clip
    from timer import TimerCore, TimerWorker


APP_ID = "com.github.able8.work-break-timer"
ORG_NAME = "able8"
APP_NAME = "work-break-timer"
HOME_ENV = "WORK_BREAK_TIMER_HOME"


def resolve_data_dir() -> str:
    override = os.getenv(HOME_ENV, "").strip()
    if override:
        return os.path.abspath(os.path.expanduser(override))
    location = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.AppDataLocation)
    if location:
        return location
    return os.path.join(os.path.expanduser("~"), ".work-break-timer")


class BreakWindow(QWidget):
    def __init__(self) -> None:
        super().__init__(None, Qt.SplashScreen | Qt.FramelessWindowHint | Qt.WindowStaysOnTopHint)
        self.setWindowTitle("Time for a break!")
        self.setStyleSheet(
            "QWidget { background: rgb(86, 131, 131); }"
            "QLabel { color: rgb(206, 206, 206); }"
        )

        reminder_font = QFont()
        reminder_font.setPointSize(60)
        reminder_font.setBold(True)
        self._reminder = QLabel("Time for a break!")
        self._reminder.setFont(reminder_font)
        self._reminder.setAlignment(Qt.AlignHCenter | Qt.AlignBottom)

        timer_font = QFont()
        timer_font.setPointSize(38)
        timer_font.setBold(True)
        self._timer = QLabel("")
        self._timer.setFont(timer_font)
        self._timer.setAlignment(Qt.AlignHCenter | Qt.AlignTop)

        layout = QVBoxLayout(self)
        layout.addWidget(self._reminder, 1)
        layout.addWidget(self._timer, 1)
        self.resize(1000, 600)

    @Slot(str)
    def set_timer_text(self, text: str) -> None:
        self._timer.setText(text)

    @Slot(bool)
    def set_visible(self, visible: bool) -> None:
        if visible:
            self._center()
            self.show()
            self.raise_()
        else:
            self.hide()

    @Slot()
    def request_focus(self) -> None:
        self.raise_()
        self.activateWindow()

    def _center(self) -> None:
        screen = self.screen() or QApplication.primaryScreen()
        if not screen:
            return
        geo = screen.availableGeometry()
        self.move(
            geo.left() + (geo.width() - self.width()) // 2,
            geo.top() + (geo.height() - self.height()) // 2,
        )


class ChimePlayer(QObject):
    def __init__(self, clip: Clip, bridge: TimerBridge) -> None:
        super().__init__()
        self._bridge = bridge
        self._effect = QSoundEffect(self)
        self._effect.setSource(QUrl.fromLocalFile(clip.path))
        self._effect.setVolume(0.8)
        self._effect.playingChanged.connect(self._on_playing_changed)
        self._token: int | None = None
        bridge.set_sound_timeout(clip.duration + 2.0)

    @Slot(int)
    def play(self, token: int) -> None:
        if self._effect.status() == QSoundEffect.Status.Error:
            logging.warning("sound effect unavailable, skipping chime")
            self._bridge.soundFinished(token)
            return
        self._token = token
        self._effect.play()

    @Slot()
    def _on_playing_changed(self) -> None:
        if self._token is not None and not self._effect.isPlaying():
            token, self._token = self._token, None
            self._bridge.soundFinished(token)


class TrayController(QObject):
    # QSystemTrayIcon has no title; the status entry at the top of the menu
    # and the tooltip show the remaining time instead.
    def __init__(self, tray: QSystemTrayIcon, status_action) -> None:
        super().__init__()
        self._tray = tray
        self._status_action = status_action

    @Slot(str, str)
    def show_notification(self, title: str, body: str) -> None:
        self._tray.showMessage(title, body, QSystemTrayIcon.Information, 3000)

    @Slot(str)
    def set_title(self, text: str) -> None:
        self._status_action.setText(text or APP_NAME)
        self._tray.setToolTip(text or APP_NAME)

    @Slot(str)
    def set_tooltip(self, text: str) -> None:
        self._tray.setToolTip(text or APP_NAME)


FIELD_LABELS = (
    ("work_minutes", "Work duration in minutes", "Default is: %d minutes."),
    ("break_minutes", "Break duration in minutes", "Default is: %d minutes."),
    ("force_window_focus_duration", "Force Window Focus in seconds", "Default is: %d seconds."),
)


class SettingsDialog(QDialog):
    def __init__(self, model: SettingsModel, parent=None) -> None:
        super().__init__(parent)
        self._model = model
        self.setWindowTitle("Settings")
        self.setStyleSheet(
            "QDialog { background: #f7f7f5; }"
            "QLabel { color: #1f1f1f; font-size: 12px; }"
            "QLabel[role=\"error\"] { color: #c9302c; }"
            "QLabel[role=\"hint\"] { color: #6b6b6b; font-size: 11px; }"
            "QLineEdit {"
            "  background: #ffffff;"
            "  border: 1px solid #c9c9c9;"
            "  border-radius: 6px;"
            "  padding: 4px 6px;"
            "}"
        )

        form = QFormLayout(self)
        pref = model.load()
        defaults = Pref()
        self._edits: dict[str, QLineEdit] = {}
        self._errors: dict[str, QLabel] = {}
        for field, label, hint in FIELD_LABELS:
            edit = QLineEdit(str(getattr(pref, field)))
            edit.setMaxLength(3)
            hint_label = QLabel(hint % getattr(defaults, field))
            hint_label.setProperty("role", "hint")
            error_label = QLabel("")
            error_label.setProperty("role", "error")
            error_label.hide()
            form.addRow(label, edit)
            form.addRow("", hint_label)
            form.addRow("", error_label)
            self._edits[field] = edit
            self._errors[field] = error_label

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.submit)
        buttons.rejected.connect(self.reject)
        form.addRow(buttons)

    def get_values(self) -> dict:
        return {field: edit.text().strip() for field, edit in self._edits.items()}

    def submit(self) -> None:
        for label in self._errors.values():
            label.hide()
        try:
            self._model.submit(self.get_values())
        except SettingsValidationError as exc:
            for field, message in exc.errors.items():
                label = self._errors.get(field)
                if label is not None:
                    label.setText(message)
                    label.show()
            return
        self.accept()


def main() -> None:
    QCoreApplication.setOrganizationName(ORG_NAME)
    QCoreApplication.setApplicationName(APP_NAME)
    data_dir = resolve_data_dir()
    os.makedirs(data_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(os.path.join(data_dir, "app.log"), encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )
    logging.info("app start: %s", data_dir)

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)
    app.setDesktopFileName(APP_ID)

    try:
        clip = load_clip(ensure_sound_file(os.path.join(data_dir, "notification.wav")))
    except (SoundDecodeError, OSError) as exc:
        logging.critical("unable to stream the notification sound: %s", exc)
        sys.exit(1)

    prefs = PreferenceStore(os.path.join(data_dir, "preferences.json"))
    rounds = RoundCounter(prefs)
    settings_model = SettingsModel(prefs)
    pref = settings_model.load()

    bridge = TimerBridge()
    core = TimerCore(
        bridge,
        rounds,
        work_sec=pref.work_seconds,
        break_sec=pref.break_seconds,
        force_focus_sec=pref.force_window_focus_duration,
    )
    worker = TimerWorker(core)

    window = BreakWindow()
    player = ChimePlayer(clip, bridge)

    tray_icon_path = os.path.join(data_dir, "tray_icon.png")
    if os.path.exists(tray_icon_path):
        tray_icon = QIcon(tray_icon_path)
    else:
        tray_icon = app.style().standardIcon(QStyle.StandardPixmap.SP_ComputerIcon)

    tray = QSystemTrayIcon(tray_icon)
    tray.setToolTip(APP_NAME)
    menu = QMenu()

    status_action = menu.addAction(APP_NAME)
    status_action.setEnabled(False)
    menu.addSeparator()

    enable_action = menu.addAction("Enable")
    enable_action.triggered.connect(lambda: worker.enable())

    disable_action = menu.addAction("Disable")
    disable_action.triggered.connect(lambda: worker.disable())

    menu.addSeparator()

    def apply_pref(new_pref: Pref) -> None:
        core.set_durations(
            new_pref.work_seconds,
            new_pref.break_seconds,
            new_pref.force_window_focus_duration,
        )

    settings_model.set_on_submit(apply_pref)

    settings_action = menu.addAction("Settings...")

    def open_settings() -> None:
        dialog = SettingsDialog(settings_model)
        dialog.exec()

    settings_action.triggered.connect(open_settings)

    rounds_action = menu.addAction("Today's rounds")

    def show_rounds() -> None:
        try:
            msg = QMessageBox()
            msg.setIcon(QMessageBox.Information)
            msg.setWindowTitle("Work rounds")
            msg.setText(rounds.format_summary())
            msg.setStandardButtons(QMessageBox.Ok)
            msg.exec()
        except Exception as exc:
            logging.exception("show rounds failed: %s", exc)

    rounds_action.triggered.connect(show_rounds)

    menu.addSeparator()
    quit_action = menu.addAction("Quit")
    quit_action.triggered.connect(lambda: (logging.info("exit requested"), tray.hide(), app.quit()))

    tray.setContextMenu(menu)
    tray.show()

    tray_controller = TrayController(tray, status_action)
    bridge.notificationRequested.connect(tray_controller.show_notification)
    bridge.trayTitleChanged.connect(tray_controller.set_title)
    bridge.trayTooltipChanged.connect(tray_controller.set_tooltip)
    bridge.windowVisibilityRequested.connect(window.set_visible)
    bridge.focusRequested.connect(window.request_focus)
    bridge.timerTextChanged.connect(window.set_timer_text)
    bridge.soundRequested.connect(player.play)

    focus_guard = ForceFocusGuard(core, bridge)
    app.applicationStateChanged.connect(focus_guard.on_application_state)

    def shutdown() -> None:
        bridge.release()
        worker.shutdown()

    app.aboutToQuit.connect(shutdown)

    worker.enable()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
