from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Protocol

try:
    from .rounds import RoundCounter
except ImportError:
    from rounds import RoundCounter


PHASE_IDLE = "idle"
PHASE_WORKING = "working"
PHASE_BREAKING = "breaking"


class TimerSink(Protocol):
    def notify(self, title: str, body: str) -> None: ...
    def show_window(self) -> None: ...
    def hide_window(self) -> None: ...
    def set_timer_text(self, text: str) -> None: ...
    def set_tray_title(self, text: str) -> None: ...
    def set_tray_tooltip(self, text: str) -> None: ...
    def play_sound(self) -> None: ...


def format_time(seconds: int) -> str:
    minutes, sec = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{sec:02d}"


@dataclass
class TimerState:
    phase: str  # idle | working | breaking
    remaining_sec: int
    work_sec: int
    break_sec: int
    force_focus_sec: int


class TimerCore:
    """Work/break phase machine driven by one-second ticks.

    Every phase start and every disable bumps ``_generation``; a completed
    phase only chains into the next one when nothing else happened while its
    chime was playing. A pending disable is handled before the zero check, so
    a disable observed first always wins over a natural completion.
    """

    def __init__(
        self,
        sink: TimerSink,
        rounds: RoundCounter,
        work_sec: int = 25 * 60,
        break_sec: int = 5 * 60,
        force_focus_sec: int = 60,
        app_name: str = "",
    ) -> None:
        self._sink = sink
        self._rounds = rounds
        self._app_name = app_name
        self._lock = threading.Lock()
        self._phase = PHASE_IDLE
        self._remaining_sec = 0
        self._generation = 0
        self._completing = False
        self._pending_stop: str | None = None
        self._work_sec = 0
        self._break_sec = 0
        self._force_focus_sec = 0
        self.set_durations(work_sec, break_sec, force_focus_sec)

    @property
    def phase(self) -> str:
        return self._phase

    @property
    def remaining_sec(self) -> int:
        return self._remaining_sec

    @property
    def force_focus_sec(self) -> int:
        return self._force_focus_sec

    def is_breaking(self) -> bool:
        return self._phase == PHASE_BREAKING

    def state(self) -> TimerState:
        with self._lock:
            return TimerState(
                phase=self._phase,
                remaining_sec=self._remaining_sec,
                work_sec=self._work_sec,
                break_sec=self._break_sec,
                force_focus_sec=self._force_focus_sec,
            )

    def set_durations(self, work_sec: int, break_sec: int, force_focus_sec: int | None = None) -> None:
        with self._lock:
            self._work_sec = max(0, int(work_sec))
            self._break_sec = max(0, int(break_sec))
            if force_focus_sec is not None:
                self._force_focus_sec = max(0, int(force_focus_sec))
        logging.info("durations updated: work=%ss break=%ss", work_sec, break_sec)

    def start_work(self) -> bool:
        return self._begin(PHASE_WORKING)

    def start_break(self) -> bool:
        return self._begin(PHASE_BREAKING)

    def disable(self) -> bool:
        with self._lock:
            if self._phase == PHASE_IDLE and not self._completing:
                return False
            self._generation += 1
            self._completing = False
            if self._phase != PHASE_IDLE:
                self._pending_stop = self._phase
            stopped = self._phase
            self._phase = PHASE_IDLE
            self._remaining_sec = 0
        logging.info("timer disabled during %s", stopped)
        return True

    def tick(self) -> str:
        with self._lock:
            stopped, self._pending_stop = self._pending_stop, None
            phase = self._phase
            remaining = self._remaining_sec
            generation = self._generation
            if stopped is None and phase != PHASE_IDLE:
                if remaining > 0:
                    remaining -= 1
                    self._remaining_sec = remaining
                if remaining == 0:
                    self._phase = PHASE_IDLE
                    self._completing = True

        if stopped is not None:
            self._finish_stop(stopped)
            return self._phase
        if phase == PHASE_IDLE:
            return phase
        if remaining > 0:
            if phase == PHASE_WORKING:
                self._sink.set_tray_title(self._tray_text(remaining))
            else:
                self._sink.set_timer_text(format_time(remaining))
            return phase

        try:
            if phase == PHASE_WORKING:
                self._complete_work(generation)
            else:
                self._complete_break(generation)
        finally:
            with self._lock:
                if self._generation == generation:
                    self._completing = False
        return self._phase

    def _begin(self, phase: str, expected_generation: int | None = None) -> bool:
        with self._lock:
            if expected_generation is not None and expected_generation != self._generation:
                return False
            if self._phase == phase:
                return False
            self._generation += 1
            self._completing = False
            self._phase = phase
            self._remaining_sec = self._work_sec if phase == PHASE_WORKING else self._break_sec
            remaining = self._remaining_sec

        if phase == PHASE_WORKING:
            round_no = self._rounds.count_today() + 1
            logging.info("work phase started: round=%s seconds=%s", round_no, remaining)
            self._sink.notify(f"No.{round_no} Start Work Timer", "Start Work Timer")
            self._sink.hide_window()
            self._sink.set_tray_title(self._tray_text(remaining))
        else:
            logging.info("break phase started: seconds=%s", remaining)
            self._clear_tray()
            self._sink.notify("Start Break Timer", "Start Break Timer")
            self._sink.set_timer_text(format_time(remaining))
            self._sink.show_window()
        return True

    def _complete_work(self, generation: int) -> None:
        count = self._rounds.increment()
        logging.info("work phase complete: rounds today=%s", count)
        self._sink.play_sound()
        self._chain(PHASE_BREAKING, generation)

    def _complete_break(self, generation: int) -> None:
        logging.info("break phase complete")
        self._sink.hide_window()
        self._sink.play_sound()
        self._chain(PHASE_WORKING, generation)

    def _chain(self, phase: str, generation: int) -> None:
        if self._begin(phase, expected_generation=generation):
            return
        logging.info("%s skipped: timer changed during completion", phase)
        if self._phase == PHASE_IDLE:
            self._clear_tray()

    def _finish_stop(self, stopped: str) -> None:
        if self._phase == PHASE_IDLE:
            self._clear_tray()
        if stopped == PHASE_BREAKING and self._phase != PHASE_BREAKING:
            self._sink.hide_window()
        self._sink.play_sound()

    def _clear_tray(self) -> None:
        self._sink.set_tray_title(self._app_name)
        self._sink.set_tray_tooltip(self._app_name)

    def _tray_text(self, remaining: int) -> str:
        return self._app_name + format_time(remaining)


class TimerWorker:
    """Background thread that ticks a :class:`TimerCore` once per interval."""

    def __init__(self, core: TimerCore, interval: float = 1.0) -> None:
        self._core = core
        self._interval = interval
        self._wake = threading.Event()
        self._halt = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def core(self) -> TimerCore:
        return self._core

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running():
            return
        self._halt.clear()
        self._wake.clear()
        self._thread = threading.Thread(target=self._run, name="work-break-timer", daemon=True)
        self._thread.start()
        logging.info("timer worker started")

    def enable(self) -> bool:
        self.start()
        started = self._core.start_work()
        self._wake.set()
        return started

    def disable(self) -> bool:
        stopped = self._core.disable()
        self._wake.set()
        return stopped

    def shutdown(self, timeout: float | None = 5.0) -> None:
        self._halt.set()
        self._wake.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logging.warning("timer worker did not stop within %ss", timeout)
        self._thread = None
        logging.info("timer worker stopped")

    def _run(self) -> None:
        while not self._halt.is_set():
            if self._wake.wait(self._interval):
                # Restart the interval so the next tick is a full period away.
                self._wake.clear()
                continue
            if self._halt.is_set():
                break
            try:
                self._core.tick()
            except Exception as exc:
                logging.exception("timer tick failed: %s", exc)
