import subprocess
import unittest

from emitter import (
    Button,
    ButtonPress,
    ButtonRelease,
    KeyPress,
    KeyRelease,
    PointerMove,
    SyntheticEventEmitter,
    Wheel,
    XdotoolBackend,
    wheel_buttons,
)
from errors import DisplayQueryError, InjectionError
from fakes import RecordingBackend
from keynames import Key


class FakeRunner:
    def __init__(self, stdout="", returncode=0, stderr=""):
        self.calls = []
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr

    def __call__(self, args, **kwargs):
        self.calls.append(args)
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


class SyntheticEventEmitterTests(unittest.TestCase):
    def setUp(self):
        self.backend = RecordingBackend()
        self.sleeps = []
        self.emitter = SyntheticEventEmitter(self.backend, 0.015, sleep=self.sleeps.append)

    def test_sleeps_after_every_event(self):
        self.emitter.move_to(10, 20)
        self.emitter.press(Button.LEFT)
        self.emitter.release(Button.LEFT)
        self.assertEqual(self.backend.events, [PointerMove(10, 20), ButtonPress(Button.LEFT),
                                               ButtonRelease(Button.LEFT)])
        self.assertEqual(self.sleeps, [0.015] * 3)

    def test_zero_delay_does_not_sleep(self):
        emitter = SyntheticEventEmitter(self.backend, 0.0, sleep=self.sleeps.append)
        emitter.key_down(Key.C)
        emitter.key_up(Key.C)
        self.assertEqual(self.backend.events, [KeyPress(Key.C), KeyRelease(Key.C)])
        self.assertEqual(self.sleeps, [])

    def test_failure_is_logged_and_raised_without_retry(self):
        backend = RecordingBackend(fail_on=(Wheel,))
        emitter = SyntheticEventEmitter(backend, 0.015, sleep=self.sleeps.append)
        with self.assertLogs("emitter", level="DEBUG"):
            with self.assertRaises(InjectionError):
                emitter.wheel(0, 120)
        self.assertEqual(self.sleeps, [])

    def test_unexpected_backend_errors_become_injection_errors(self):
        class Broken(RecordingBackend):
            def inject(self, event):
                raise OSError("connection reset")

        emitter = SyntheticEventEmitter(Broken(), 0.0)
        with self.assertLogs("emitter", level="DEBUG"):
            with self.assertRaises(InjectionError):
                emitter.move_to(1, 1)

    def test_move_coordinates_are_integers(self):
        self.emitter.move_to(10.6, 3.2)
        self.assertEqual(self.backend.events, [PointerMove(10, 3)])


class WheelButtonTests(unittest.TestCase):
    def test_one_notch_per_delta_unit(self):
        self.assertEqual(wheel_buttons(0, 120), [(4, 1)])
        self.assertEqual(wheel_buttons(0, -240), [(5, 2)])
        self.assertEqual(wheel_buttons(120, 0), [(7, 1)])
        self.assertEqual(wheel_buttons(-120, 0), [(6, 1)])
        self.assertEqual(wheel_buttons(0, 0), [])

    def test_small_deltas_still_scroll(self):
        self.assertEqual(wheel_buttons(0, 30), [(4, 1)])


class XdotoolBackendTests(unittest.TestCase):
    def test_event_commands(self):
        runner = FakeRunner()
        backend = XdotoolBackend(runner=runner)
        backend.inject(PointerMove(5, 6))
        backend.inject(ButtonPress(Button.LEFT))
        backend.inject(ButtonRelease(Button.RIGHT))
        backend.inject(Wheel(0, -120))
        backend.inject(KeyPress(Key.CTRL_LEFT))
        backend.inject(KeyRelease(Key.V))
        self.assertEqual(runner.calls, [
            ["xdotool", "mousemove", "5", "6"],
            ["xdotool", "mousedown", "1"],
            ["xdotool", "mouseup", "3"],
            ["xdotool", "click", "--repeat", "1", "--delay", "0", "5"],
            ["xdotool", "keydown", "Control_L"],
            ["xdotool", "keyup", "v"],
        ])

    def test_display_size(self):
        backend = XdotoolBackend(runner=FakeRunner(stdout="2560 1440\n"))
        self.assertEqual(backend.display_size(), (2560, 1440))

    def test_display_size_failure(self):
        backend = XdotoolBackend(runner=FakeRunner(returncode=1, stderr="Can't open display"))
        with self.assertRaises(DisplayQueryError):
            backend.display_size()
        backend = XdotoolBackend(runner=FakeRunner(stdout="garbage"))
        with self.assertRaises(DisplayQueryError):
            backend.display_size()

    def test_command_failure_raises(self):
        backend = XdotoolBackend(runner=FakeRunner(returncode=1, stderr="boom"))
        with self.assertRaises(InjectionError):
            backend.inject(PointerMove(1, 1))


if __name__ == "__main__":
    unittest.main()
