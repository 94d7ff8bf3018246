import unittest
from unittest import mock

from emitter import PointerMove
from fakes import Engine
from gate import EventKind, KeyEvent
from keynames import Key
from settings import NavigationConfig


class MoverLoopTests(unittest.TestCase):
    def setUp(self):
        self.engine = Engine()
        self.mover = self.engine.mover

    def press(self, key):
        self.engine.gate.handle(KeyEvent(EventKind.PRESS, key))

    def release(self, key):
        self.engine.gate.handle(KeyEvent(EventKind.RELEASE, key))

    def test_idle_tick_does_nothing(self):
        self.mover.tick()
        self.assertEqual(self.engine.events, [])

    def test_held_key_moves_by_accelerated_speed(self):
        self.press(Key.H)
        self.mover.tick()
        # 1 + 50 * 2**0
        self.assertEqual(self.engine.events, [PointerMove(909, 540)])
        self.assertAlmostEqual(self.engine.cursor.current_speeds[Key.H], 51.0)

        self.engine.clock.now = 1.0
        self.mover.tick()
        self.assertEqual(self.engine.events[-1], PointerMove(808, 540))
        self.assertAlmostEqual(self.engine.cursor.current_speeds[Key.H], 101.0)

    def test_two_axes_collapse_into_one_move(self):
        self.press(Key.L)
        self.press(Key.K)
        self.mover.tick()
        self.assertEqual(self.engine.events, [PointerMove(1011, 489)])

    def test_opposite_keys_still_emit_one_move(self):
        self.press(Key.H)
        self.press(Key.L)
        self.mover.tick()
        self.assertEqual(self.engine.events, [PointerMove(960, 540)])

    def test_precision_mode_slows_movement(self):
        self.press(Key.SPACE)
        self.press(Key.J)
        self.mover.tick()
        # 51 / 10
        self.assertAlmostEqual(self.engine.cursor.y, 545.1)
        self.assertEqual(self.engine.events, [PointerMove(960, 545)])

    def test_clamps_at_screen_edge_and_stops_emitting(self):
        engine = Engine(NavigationConfig(initial_move_step=400.0, acceleration_multiplier=0.0))
        engine.gate.handle(KeyEvent(EventKind.PRESS, Key.H))
        for _ in range(5):
            engine.mover.tick()
        self.assertEqual(engine.cursor.x, 0.0)
        self.assertEqual(engine.events, [PointerMove(560, 540), PointerMove(160, 540), PointerMove(0, 540)])

    def test_release_stops_movement(self):
        self.press(Key.H)
        self.mover.tick()
        self.release(Key.H)
        self.mover.tick()
        self.assertEqual(len(self.engine.events), 1)

    def test_x_auto_repeat_keeps_accelerating(self):
        # X delivers auto-repeat as release/press pairs every ~40 ms
        self.press(Key.H)
        for i in range(63):
            self.engine.clock.now = 0.5 + i * 0.04
            self.release(Key.H)
            self.engine.clock.now += 0.001
            self.press(Key.H)
        self.engine.clock.now = 3.0
        self.mover.advance()
        self.assertEqual(self.engine.cursor.pressed_keys[Key.H], 0.0)
        # 1 + 50 * 2**3
        self.assertAlmostEqual(self.engine.cursor.current_speeds[Key.H], 401.0)

    def test_release_is_final_once_no_press_follows(self):
        self.press(Key.H)
        self.release(Key.H)
        self.engine.clock.now = 0.05
        self.mover.tick()
        self.assertEqual(self.engine.events, [])
        self.assertEqual(self.engine.cursor.pressed_keys, {})
        self.assertEqual(self.engine.cursor.current_speeds, {})

        self.engine.clock.now = 1.0
        self.press(Key.H)
        self.assertEqual(self.engine.cursor.pressed_keys[Key.H], 1.0)

    def test_precision_survives_space_auto_repeat(self):
        self.press(Key.J)
        self.press(Key.SPACE)
        self.release(Key.SPACE)
        self.mover.tick()
        self.assertAlmostEqual(self.engine.cursor.y, 545.1)
        self.engine.clock.now = 0.005
        self.press(Key.SPACE)
        self.engine.clock.now = 0.5
        self.mover.tick()
        self.assertTrue(self.engine.cursor.precision_held)

        self.release(Key.SPACE)
        self.engine.clock.now = 0.6
        self.mover.tick()
        self.assertFalse(self.engine.cursor.precision_held)

    def test_typing_mode_tick_has_no_effect(self):
        self.press(Key.H)
        self.engine.gate.handle(KeyEvent(EventKind.PRESS, Key.ESCAPE))
        self.mover.tick()
        self.assertEqual(self.engine.events, [])
        self.assertEqual(self.engine.cursor.x, 960.0)

    def test_no_drift_after_missed_release(self):
        self.press(Key.J)
        # Toggle twice; the release for J never arrives
        for _ in range(2):
            self.press(Key.ESCAPE)
            self.release(Key.ESCAPE)
            self.engine.clock.now += 0.2
        self.mover.tick()
        self.assertEqual(self.engine.events, [])

    def test_injection_failure_is_logged_and_position_kept(self):
        engine = Engine(fail_on=(PointerMove,))
        engine.gate.handle(KeyEvent(EventKind.PRESS, Key.H))
        with self.assertLogs(level="ERROR") as logs:
            engine.mover.tick()
        self.assertEqual(engine.cursor.x, 909.0)
        # Reported once, by the mover
        self.assertEqual([r.name for r in logs.records], ["mover"])

    def test_injection_happens_outside_the_lock(self):
        self.press(Key.H)

        locked = []

        def inject(event):
            locked.append(self.engine.state.lock.locked())

        with mock.patch.object(self.engine.backend, "inject", side_effect=inject):
            self.mover.tick()
        self.assertEqual(locked, [False])

    def test_settle_delay_after_each_event(self):
        self.press(Key.H)
        self.mover.tick()
        self.assertEqual(self.engine.sleeps, [0.015])

    def test_loop_runs_until_stopped(self):
        ticks = []

        def sleep(delay):
            ticks.append(delay)
            if len(ticks) == 3:
                self.mover.running = False

        self.mover.sleep = sleep
        self.mover.running = True
        self.mover._loop()
        self.assertEqual(ticks, [0.03, 0.03, 0.03])


if __name__ == "__main__":
    unittest.main()
