import os
import tempfile
import time
import unittest
from datetime import date

from breaktimer.preferences import PreferenceStore
from breaktimer.rounds import RoundCounter
from breaktimer.timer import (
    PHASE_BREAKING,
    PHASE_IDLE,
    PHASE_WORKING,
    TimerCore,
    TimerWorker,
    format_time,
)


class RecordingSink:
    def __init__(self) -> None:
        self.calls = []
        self.on_sound = None

    def _record(self, name, *args):
        self.calls.append((name,) + args)

    def notify(self, title, body):
        self._record("notify", title, body)

    def show_window(self):
        self._record("show_window")

    def hide_window(self):
        self._record("hide_window")

    def set_timer_text(self, text):
        self._record("timer_text", text)

    def set_tray_title(self, text):
        self._record("tray_title", text)

    def set_tray_tooltip(self, text):
        self._record("tray_tooltip", text)

    def play_sound(self):
        self._record("sound")
        if self.on_sound:
            self.on_sound()

    def names(self):
        return [call[0] for call in self.calls]

    def count(self, name):
        return self.names().count(name)

    def clear(self):
        self.calls = []


class FormatTimeTests(unittest.TestCase):
    def test_format_time(self):
        self.assertEqual(format_time(0), "00:00")
        self.assertEqual(format_time(65), "01:05")
        self.assertEqual(format_time(3599), "59:59")

    def test_format_time_never_negative(self):
        self.assertEqual(format_time(-5), "00:00")


class TimerCoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.prefs = PreferenceStore(os.path.join(self._tmp.name, "preferences.json"))
        self.rounds = RoundCounter(self.prefs, today=lambda: date(2024, 1, 2))
        self.sink = RecordingSink()

    def tearDown(self):
        self._tmp.cleanup()

    def make_core(self, work_sec=2, break_sec=1):
        return TimerCore(self.sink, self.rounds, work_sec=work_sec, break_sec=break_sec)

    def test_work_then_break_then_work(self):
        core = self.make_core(work_sec=2, break_sec=1)
        self.assertTrue(core.start_work())
        self.assertEqual(core.phase, PHASE_WORKING)
        self.assertEqual(core.remaining_sec, 2)
        self.assertIn(("notify", "No.1 Start Work Timer", "Start Work Timer"), self.sink.calls)
        self.assertIn("hide_window", self.sink.names())

        core.tick()
        self.assertEqual(core.phase, PHASE_WORKING)
        self.assertEqual(core.remaining_sec, 1)
        self.assertEqual(self.sink.calls[-1], ("tray_title", "00:01"))

        core.tick()
        self.assertEqual(core.phase, PHASE_BREAKING)
        self.assertEqual(core.remaining_sec, 1)
        self.assertEqual(self.rounds.count_today(), 1)
        self.assertEqual(self.sink.count("sound"), 1)
        self.assertIn("show_window", self.sink.names())
        self.assertIn(("notify", "Start Break Timer", "Start Break Timer"), self.sink.calls)

        core.tick()
        self.assertEqual(core.phase, PHASE_WORKING)
        self.assertEqual(core.remaining_sec, 2)
        self.assertEqual(self.rounds.count_today(), 1)
        self.assertEqual(self.sink.count("sound"), 2)
        self.assertIn(("notify", "No.2 Start Work Timer", "Start Work Timer"), self.sink.calls)

    def test_break_updates_window_text(self):
        core = self.make_core(work_sec=1, break_sec=3)
        core.start_work()
        core.tick()
        self.assertEqual(core.phase, PHASE_BREAKING)
        self.assertIn(("timer_text", "00:03"), self.sink.calls)
        self.sink.clear()
        core.tick()
        self.assertEqual(self.sink.calls, [("timer_text", "00:02")])

    def test_countdown_decreases_by_one_and_never_negative(self):
        core = self.make_core(work_sec=5, break_sec=5)
        core.start_work()
        seen = [core.remaining_sec]
        while core.phase == PHASE_WORKING:
            core.tick()
            if core.phase == PHASE_WORKING:
                seen.append(core.remaining_sec)
        self.assertEqual(seen, [5, 4, 3, 2, 1])
        self.assertEqual(core.phase, PHASE_BREAKING)
        self.assertEqual(self.rounds.count_today(), 1)

    def test_zero_length_phase_completes_on_first_tick(self):
        core = self.make_core(work_sec=0, break_sec=3)
        core.start_work()
        self.assertEqual(core.remaining_sec, 0)
        core.tick()
        self.assertEqual(core.phase, PHASE_BREAKING)
        self.assertEqual(self.rounds.count_today(), 1)

    def test_disable_during_work_skips_completion(self):
        core = self.make_core(work_sec=1, break_sec=1)
        core.start_work()
        self.assertTrue(core.disable())
        self.assertEqual(core.phase, PHASE_IDLE)
        self.sink.clear()

        core.tick()
        self.assertEqual(core.phase, PHASE_IDLE)
        self.assertEqual(self.rounds.count_today(), 0)
        self.assertEqual(self.sink.count("sound"), 1)
        self.assertNotIn("show_window", self.sink.names())

        self.sink.clear()
        core.tick()
        self.assertEqual(self.sink.calls, [])

    def test_disable_during_break_hides_window(self):
        core = self.make_core(work_sec=1, break_sec=5)
        core.start_work()
        core.tick()
        self.assertEqual(core.phase, PHASE_BREAKING)
        core.disable()
        self.sink.clear()

        core.tick()
        self.assertEqual(core.phase, PHASE_IDLE)
        self.assertIn("hide_window", self.sink.names())
        self.assertEqual(self.sink.count("sound"), 1)
        self.assertNotIn("notify", self.sink.names())
        self.assertEqual(self.rounds.count_today(), 1)

    def test_disable_is_idempotent(self):
        core = self.make_core()
        self.assertFalse(core.disable())
        core.tick()
        self.assertEqual(self.sink.calls, [])

        core.start_work()
        self.assertTrue(core.disable())
        self.assertFalse(core.disable())
        self.sink.clear()
        core.tick()
        self.assertEqual(self.sink.count("sound"), 1)

    def test_disable_during_completion_chime_cancels_break(self):
        core = self.make_core(work_sec=1, break_sec=1)
        core.start_work()
        self.sink.on_sound = core.disable
        core.tick()
        self.assertEqual(core.phase, PHASE_IDLE)
        self.assertEqual(self.rounds.count_today(), 1)
        self.assertNotIn("show_window", self.sink.names())

    def test_enable_during_break_starts_work(self):
        core = self.make_core(work_sec=1, break_sec=10)
        core.start_work()
        core.tick()
        self.assertEqual(core.phase, PHASE_BREAKING)
        self.sink.clear()
        self.assertTrue(core.start_work())
        self.assertEqual(core.phase, PHASE_WORKING)
        self.assertIn("hide_window", self.sink.names())

    def test_start_work_while_working_is_noop(self):
        core = self.make_core(work_sec=10)
        core.start_work()
        core.tick()
        self.assertFalse(core.start_work())
        self.assertEqual(core.remaining_sec, 9)

    def test_new_durations_apply_to_next_phase_only(self):
        core = self.make_core(work_sec=3, break_sec=1)
        core.start_work()
        core.tick()
        core.set_durations(60, 30, 15)
        self.assertEqual(core.remaining_sec, 2)
        core.tick()
        core.tick()
        self.assertEqual(core.phase, PHASE_BREAKING)
        self.assertEqual(core.remaining_sec, 30)
        self.assertEqual(core.force_focus_sec, 15)
        state = core.state()
        self.assertEqual(state.work_sec, 60)
        self.assertEqual(state.break_sec, 30)

    def test_break_start_clears_tray(self):
        core = TimerCore(self.sink, self.rounds, work_sec=1, break_sec=1, app_name="Timer ")
        core.start_work()
        self.assertEqual(self.sink.calls[-1], ("tray_title", "Timer 00:01"))
        core.tick()
        self.assertIn(("tray_title", "Timer "), self.sink.calls)
        self.assertIn(("tray_tooltip", "Timer "), self.sink.calls)


class TimerWorkerTests(unittest.TestCase):
    def test_worker_runs_rounds_and_shuts_down(self):
        with tempfile.TemporaryDirectory() as tmp:
            prefs = PreferenceStore(os.path.join(tmp, "preferences.json"))
            rounds = RoundCounter(prefs)
            sink = RecordingSink()
            core = TimerCore(sink, rounds, work_sec=1, break_sec=1)
            worker = TimerWorker(core, interval=0.01)
            self.assertTrue(worker.enable())
            self.assertTrue(worker.is_running())

            deadline = time.time() + 5
            while rounds.count_today() < 1 and time.time() < deadline:
                time.sleep(0.01)
            self.assertGreaterEqual(rounds.count_today(), 1)

            worker.disable()
            worker.shutdown(timeout=2)
            self.assertFalse(worker.is_running())
            self.assertEqual(core.phase, PHASE_IDLE)


if __name__ == "__main__":
    unittest.main()
