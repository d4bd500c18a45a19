import unittest
from datetime import datetime, timedelta, timezone

from conn_watchdog.state import ConnectionState, MonotonicClock, Status

T0 = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def _at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


class ConnectionStateTests(unittest.TestCase):
    def test_initial_state_is_unknown(self) -> None:
        state = ConnectionState()
        self.assertEqual(state.status, Status.UNKNOWN)
        self.assertEqual(state.connection_changes, 0)

    def test_first_success_counts_as_restore(self) -> None:
        state = ConnectionState()
        ev = state.evaluate(True, _at(0))

        self.assertEqual(ev.status, Status.UP)
        self.assertEqual(ev.message, "Connection restored after 0s downtime")
        self.assertEqual(ev.uptime, "0s")
        self.assertEqual(ev.downtime, "0s")
        self.assertEqual(state.connection_changes, 1)
        self.assertEqual(state.last_up_time, _at(0))

    def test_first_failure_counts_as_loss(self) -> None:
        state = ConnectionState()
        ev = state.evaluate(False, _at(0))

        self.assertEqual(ev.status, Status.DOWN)
        self.assertEqual(ev.message, "Connection lost after 0s uptime")
        self.assertEqual(state.connection_changes, 1)
        self.assertEqual(state.last_down_time, _at(0))

    def test_mixed_sequence_statuses_and_changes(self) -> None:
        state = ConnectionState()
        statuses = []
        changes = []
        for i, ok in enumerate([False, False, True, True, False]):
            ev = state.evaluate(ok, _at(i * 30))
            statuses.append(ev.status)
            changes.append(state.connection_changes)

        self.assertEqual(
            statuses,
            [Status.DOWN, Status.DOWN, Status.UP, Status.UP, Status.DOWN],
        )
        self.assertEqual(changes, [1, 1, 2, 2, 3])

    def test_changes_equal_number_of_edges(self) -> None:
        outcomes = [True, True, False, True, False, False, False, True, True, False]
        state = ConnectionState()
        for i, ok in enumerate(outcomes):
            state.evaluate(ok, _at(i))

        edges = 1 + sum(1 for a, b in zip(outcomes, outcomes[1:]) if a != b)
        self.assertEqual(state.connection_changes, edges)

    def test_repeated_outcome_never_increments(self) -> None:
        state = ConnectionState()
        state.evaluate(True, _at(0))
        for i in range(1, 6):
            state.evaluate(True, _at(i))
        self.assertEqual(state.connection_changes, 1)

        state.evaluate(False, _at(10))
        for i in range(11, 16):
            state.evaluate(False, _at(i))
        self.assertEqual(state.connection_changes, 2)

    def test_stable_and_still_down_messages(self) -> None:
        state = ConnectionState()
        state.evaluate(True, _at(0))
        ev = state.evaluate(True, _at(45))
        self.assertEqual(ev.message, "Connection stable")
        self.assertEqual(ev.uptime, "45s")
        self.assertEqual(state.current_uptime, timedelta(seconds=45))

        state.evaluate(False, _at(90))
        ev = state.evaluate(False, _at(150))
        self.assertEqual(ev.message, "Connection still down")
        self.assertEqual(ev.downtime, "1m0s")
        self.assertEqual(state.current_uptime, timedelta(0))

    def test_durations_frozen_at_transition(self) -> None:
        state = ConnectionState()
        state.evaluate(True, _at(0))
        state.evaluate(True, _at(60))

        lost = state.evaluate(False, _at(125))
        self.assertEqual(lost.message, "Connection lost after 2m5s uptime")
        self.assertEqual(lost.uptime, "2m5s")
        self.assertEqual(lost.downtime, "0s")
        self.assertEqual(state.previous_uptime, timedelta(seconds=125))

        still = state.evaluate(False, _at(155))
        self.assertEqual(still.uptime, "2m5s")
        self.assertEqual(still.downtime, "30s")

        restored = state.evaluate(True, _at(125 + 3661))
        self.assertEqual(restored.message, "Connection restored after 1h1m1s downtime")
        self.assertEqual(restored.uptime, "0s")
        self.assertEqual(restored.downtime, "1h1m1s")
        self.assertEqual(state.previous_downtime, timedelta(seconds=3661))

    def test_last_status_time_tracks_every_check(self) -> None:
        state = ConnectionState()
        state.evaluate(True, _at(0))
        state.evaluate(True, _at(30))
        self.assertEqual(state.last_status_time, _at(30))
        self.assertEqual(state.last_up_time, _at(0))

    def test_time_going_backwards_is_rejected(self) -> None:
        state = ConnectionState()
        state.evaluate(True, _at(30))
        with self.assertRaises(ValueError):
            state.evaluate(True, _at(0))


class MonotonicClockTests(unittest.TestCase):
    def test_clock_never_goes_backwards(self) -> None:
        clock = MonotonicClock()
        readings = [clock() for _ in range(50)]
        self.assertEqual(readings, sorted(readings))
        self.assertIsNotNone(readings[0].tzinfo)


if __name__ == "__main__":
    unittest.main()
