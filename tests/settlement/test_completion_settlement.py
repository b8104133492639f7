import datetime as dt
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path
from unittest.mock import Mock

from settlement import (
    CompletionSettlement,
    SettlementPersistenceError,
    TicketAlreadyCompletedError,
    XPRules,
    apply_level_ups,
    compute_xp,
    round_time_spent,
)
from store import JsonDataStore, StorePersistenceError, TicketNotFoundError, UserProgression

_NOW = dt.datetime(2026, 3, 1, 9, 30, tzinfo=dt.timezone.utc)


class ComputeXPTests(unittest.TestCase):
    def test_early_completion_earns_bonus(self) -> None:
        outcome = compute_xp(
            story_points=3,
            allocated_time_minutes=30,
            time_spent=25.0,
            rules=XPRules(),
        )

        self.assertEqual(30, outcome.base_xp)
        self.assertEqual(6, outcome.bonus)
        self.assertEqual(0, outcome.penalty)
        self.assertFalse(outcome.is_overtime)
        self.assertEqual(36, outcome.xp_earned)

    def test_overtime_applies_percentage_penalty(self) -> None:
        outcome = compute_xp(
            story_points=3,
            allocated_time_minutes=30,
            time_spent=45.0,
            rules=XPRules(),
        )

        self.assertEqual(15.0, outcome.overtime_minutes)
        self.assertEqual(50, outcome.penalty_percent)
        self.assertEqual(15, outcome.penalty)
        self.assertEqual(0, outcome.bonus)
        self.assertEqual(15, outcome.xp_earned)

    def test_exactly_on_allocation_counts_as_early(self) -> None:
        outcome = compute_xp(
            story_points=1,
            allocated_time_minutes=30,
            time_spent=30.0,
            rules=XPRules(),
        )

        self.assertFalse(outcome.is_overtime)
        self.assertEqual(12, outcome.xp_earned)

    def test_penalty_is_capped_and_xp_never_negative(self) -> None:
        outcome = compute_xp(
            story_points=2,
            allocated_time_minutes=10,
            time_spent=100.0,
            rules=XPRules(),
        )

        self.assertEqual(100, outcome.penalty_percent)
        self.assertEqual(20, outcome.penalty)
        self.assertEqual(0, outcome.xp_earned)

    def test_fractional_overtime_percent_is_floored(self) -> None:
        # 1.1 minutes over 30 is 3.66%, floored to 3%.
        outcome = compute_xp(
            story_points=10,
            allocated_time_minutes=30,
            time_spent=31.1,
            rules=XPRules(),
        )

        self.assertEqual(1.1, outcome.overtime_minutes)
        self.assertEqual(3, outcome.penalty_percent)
        self.assertEqual(3, outcome.penalty)
        self.assertEqual(97, outcome.xp_earned)

    def test_bonus_is_floored(self) -> None:
        outcome = compute_xp(
            story_points=1,
            allocated_time_minutes=30,
            time_spent=1.0,
            rules=XPRules(base_xp_per_story_point=7, early_completion_bonus_percent=20),
        )

        self.assertEqual(1, outcome.bonus)
        self.assertEqual(8, outcome.xp_earned)


class LevelUpTests(unittest.TestCase):
    def test_crosses_several_thresholds_in_one_settlement(self) -> None:
        self.assertEqual(4, apply_level_ups(xp=340, level=1, threshold_multiplier=100))

    def test_stays_below_threshold(self) -> None:
        self.assertEqual(1, apply_level_ups(xp=99, level=1, threshold_multiplier=100))
        self.assertEqual(2, apply_level_ups(xp=100, level=1, threshold_multiplier=100))

    def test_level_never_decreases(self) -> None:
        self.assertEqual(5, apply_level_ups(xp=0, level=5, threshold_multiplier=100))


class RoundTimeSpentTests(unittest.TestCase):
    def test_rounds_half_up_to_one_decimal(self) -> None:
        self.assertEqual(0.1, round_time_spent(0.05))
        self.assertEqual(2.5, round_time_spent(2.45))
        self.assertEqual(25.0, round_time_spent(24.96))


class CompletionSettlementTests(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self._temp_dir.cleanup)
        self.store = JsonDataStore(Path(self._temp_dir.name) / "data.json")
        self.store.load()
        self.settlement = CompletionSettlement(
            tickets=self.store,
            progression=self.store,
            rules=XPRules(),
            now_fn=lambda: _NOW,
        )

    def _add_ticket(self, *, story_points: int = 3, allocated: int = 30):
        return self.store.add_ticket(
            "Fix login",
            story_points=story_points,
            allocated_time_minutes=allocated,
        )

    def test_settles_early_completion(self) -> None:
        ticket = self._add_ticket()

        result = self.settlement.settle(ticket.id, 25 * 60)

        self.assertEqual(36, result.xp.xp_earned)
        self.assertEqual(25.0, result.ticket.time_spent)
        self.assertTrue(result.ticket.completed)
        self.assertEqual(_NOW.isoformat(), result.ticket.completed_at)

        stored = self.store.get_ticket(ticket.id)
        self.assertTrue(stored.completed)
        self.assertEqual(25.0, stored.time_spent)
        self.assertEqual(36, self.store.get_user().xp)
        self.assertEqual(1, self.store.get_user().level)

        stats = self.store.get_stats()
        self.assertEqual(1, stats.total_tickets_solved)
        self.assertEqual(25.0, stats.total_time_taken)
        self.assertEqual(0.0, stats.total_overtime)
        self.assertEqual(3, stats.total_story_points)
        self.assertEqual(0, stats.total_tickets_pending)
        self.assertEqual(0, stats.total_story_points_pending)

    def test_settles_overtime_completion(self) -> None:
        ticket = self._add_ticket()

        result = self.settlement.settle(ticket.id, 45 * 60)

        self.assertEqual(15, result.xp.xp_earned)
        self.assertEqual(15.0, self.store.get_stats().total_overtime)
        self.assertEqual(15, self.store.get_user().xp)

    def test_previous_time_spent_is_added(self) -> None:
        ticket = self._add_ticket()
        self.store.save_ticket(replace(ticket, time_spent=20.0))

        result = self.settlement.settle(ticket.id, 10 * 60)

        self.assertEqual(30.0, result.ticket.time_spent)
        self.assertFalse(result.xp.is_overtime)

    def test_large_reward_crosses_several_levels(self) -> None:
        ticket = self._add_ticket(story_points=25, allocated=60)
        self.store.save_user(UserProgression(name="Ada", xp=90, level=1))

        result = self.settlement.settle(ticket.id, 30 * 60)

        self.assertEqual(300, result.xp.xp_earned)
        self.assertEqual(390, result.user.xp)
        self.assertEqual(4, result.user.level)
        self.assertEqual(3, result.levels_gained)
        self.assertEqual("Ada", self.store.get_user().name)
        self.assertEqual(4, self.store.get_user().level)

    def test_completed_ticket_cannot_be_settled_again(self) -> None:
        ticket = self._add_ticket()
        self.settlement.settle(ticket.id, 60)
        user_before = self.store.get_user()

        with self.assertRaises(TicketAlreadyCompletedError):
            self.settlement.settle(ticket.id, 60)

        self.assertEqual(user_before, self.store.get_user())
        self.assertEqual(1, self.store.get_stats().total_tickets_solved)

    def test_unknown_ticket_is_rejected(self) -> None:
        with self.assertRaises(TicketNotFoundError):
            self.settlement.settle("missing", 60)

    def test_negative_time_is_treated_as_zero(self) -> None:
        ticket = self._add_ticket()

        with self.assertLogs("settlement", level="WARNING"):
            result = self.settlement.settle(ticket.id, -30)

        self.assertEqual(0.0, result.ticket.time_spent)

    def test_persistence_failure_still_attempts_every_write(self) -> None:
        ticket = self._add_ticket()
        tickets = Mock(wraps=self.store)
        tickets.record_completion.side_effect = StorePersistenceError("disk full")
        progression = Mock(wraps=self.store)
        settlement = CompletionSettlement(
            tickets=tickets,
            progression=progression,
            rules=XPRules(),
            now_fn=lambda: _NOW,
        )

        with self.assertLogs("settlement", level="ERROR"):
            with self.assertRaises(SettlementPersistenceError) as raised:
                settlement.settle(ticket.id, 25 * 60)

        result = raised.exception.result
        self.assertIsNotNone(result)
        self.assertEqual(36, result.xp.xp_earned)
        progression.save_user.assert_called_once()
        tickets.save_stats.assert_called_once()
        self.assertIn("ticket", str(raised.exception))

    def test_rules_reject_non_positive_values(self) -> None:
        with self.assertRaises(ValueError):
            XPRules(base_xp_per_story_point=0)


if __name__ == "__main__":
    unittest.main()
