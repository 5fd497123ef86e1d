import unittest

from ear_trainer.core.scheduler import Scheduler


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestScheduler(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.scheduler = Scheduler(clock=self.clock)
        self.calls = []

    def test_first_call_after_one_interval(self):
        self.scheduler.call_every(0.1, lambda: self.calls.append(self.clock.now))
        self.assertEqual(self.scheduler.run_pending(), 0)
        self.clock.advance(0.1)
        self.assertEqual(self.scheduler.run_pending(), 1)
        self.assertEqual(len(self.calls), 1)

    def test_recurs(self):
        self.scheduler.call_every(0.1, lambda: self.calls.append(self.clock.now))
        for _ in range(5):
            self.clock.advance(0.1)
            self.scheduler.run_pending()
        self.assertEqual(len(self.calls), 5)

    def test_late_loop_fires_once(self):
        self.scheduler.call_every(0.1, lambda: self.calls.append(self.clock.now))
        self.clock.advance(1.0)
        self.assertEqual(self.scheduler.run_pending(), 1)
        self.assertEqual(self.scheduler.run_pending(), 0)

    def test_cancel_before_due(self):
        handle = self.scheduler.call_every(0.1, lambda: self.calls.append(1))
        self.clock.advance(0.2)
        handle.cancel()
        self.assertEqual(self.scheduler.run_pending(), 0)
        self.assertEqual(self.calls, [])
        self.assertEqual(self.scheduler.pending(), 0)

    def test_cancel_from_another_callback(self):
        handles = {}
        handles["first"] = self.scheduler.call_every(0.1, lambda: handles["second"].cancel())
        handles["second"] = self.scheduler.call_every(0.1, lambda: self.calls.append("second"))
        self.clock.advance(0.1)
        self.scheduler.run_pending()
        self.assertEqual(self.calls, [])

    def test_error_in_callback_keeps_cadence(self):
        def explode():
            raise RuntimeError("tick failed")

        self.scheduler.call_every(0.1, explode)
        self.scheduler.call_every(0.1, lambda: self.calls.append(1))
        self.clock.advance(0.1)
        self.assertEqual(self.scheduler.run_pending(), 2)
        self.clock.advance(0.1)
        self.assertEqual(self.scheduler.run_pending(), 2)
        self.assertEqual(self.calls, [1, 1])

    def test_invalid_interval(self):
        with self.assertRaises(ValueError):
            self.scheduler.call_every(0, lambda: None)


if __name__ == "__main__":
    unittest.main()
