"""Tests for sync priority classification."""

from __future__ import annotations

from datetime import datetime

from factories import NOW, make_game, minutes
from gamesync.services.priority import (
    CriticalPeriod,
    CriticalPeriodType,
    CriticalWindows,
    SyncPriority,
    classify,
    find_critical_period,
    round_minutes,
)
from gamesync.services.season import is_season_ended


class TestRoundMinutes:
    def test_rounds_half_up(self):
        assert round_minutes(89.5) == 90
        assert round_minutes(89.49) == 89
        assert round_minutes(-0.4) == 0


class TestInactiveGames:
    def test_inactive_game_is_idle(self):
        game = make_game(is_active=False)
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.IDLE
        assert entry.priority_reason == "Game is inactive"
        assert not entry.is_due

    def test_inactive_game_ignores_critical_window(self):
        game = make_game(is_active=False, current_round_start=NOW + minutes(30))
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.IDLE
        assert entry.critical_period is None


class TestSchedule:
    def test_never_synced_game_is_due_now(self):
        entry = classify(make_game(), NOW)
        assert entry.priority == SyncPriority.OVERDUE
        assert entry.minutes_since_sync is None
        assert entry.next_sync_at == NOW
        assert entry.minutes_until_sync == 0
        assert entry.is_due

    def test_overdue_reason_reports_minutes(self):
        game = make_game(last_synced_at=NOW - minutes(75), sync_interval_minutes=60)
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.OVERDUE
        assert entry.priority_reason == "Overdue by 15 min"
        assert entry.minutes_until_sync == -15

    def test_routine_game_is_not_due(self):
        game = make_game(last_synced_at=NOW - minutes(10), sync_interval_minutes=60)
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.ROUTINE
        assert entry.priority_reason == "Next sync in 50 min"
        assert entry.next_sync_at == NOW + minutes(50)
        assert not entry.is_due

    def test_exactly_at_interval_is_overdue(self):
        game = make_game(last_synced_at=NOW - minutes(60), sync_interval_minutes=60)
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.OVERDUE
        assert entry.is_due

    def test_naive_timestamps_are_read_as_utc(self):
        naive = datetime(2026, 3, 14, 11, 50)
        entry = classify(make_game(last_synced_at=naive), NOW)
        assert round_minutes(entry.minutes_since_sync) == 10


class TestCriticalWindows:
    def test_round_start_window(self):
        game = make_game(
            last_synced_at=NOW - minutes(5),
            current_round_start=NOW + minutes(90),
        )
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.CRITICAL
        assert entry.priority_reason == "Round 3 starting in 90 min"
        assert entry.critical_period.type == CriticalPeriodType.ROUND_STARTING
        assert entry.critical_period.minutes_until_event == 90
        # Critical games are due even when synced moments ago
        assert entry.is_due

    def test_round_start_label_rounds_minutes(self):
        game = make_game(current_round_start=NOW + minutes(89.5))
        period = find_critical_period(game, NOW)
        assert period.label == "Round 3 starting in 90 min"

    def test_window_edge_is_inclusive(self):
        game = make_game(current_round_start=NOW + minutes(120))
        assert find_critical_period(game, NOW).type == CriticalPeriodType.ROUND_STARTING

    def test_outside_window_is_not_critical(self):
        game = make_game(current_round_start=NOW + minutes(121))
        assert find_critical_period(game, NOW) is None

    def test_started_round_is_not_round_start(self):
        game = make_game(current_round_start=NOW - minutes(1))
        assert find_critical_period(game, NOW) is None

    def test_round_start_takes_precedence_over_trade_deadline(self):
        game = make_game(
            current_round_start=NOW + minutes(100),
            next_trade_deadline=NOW + minutes(40),
        )
        period = find_critical_period(game, NOW)
        assert period.type == CriticalPeriodType.ROUND_STARTING

    def test_trade_deadline_takes_precedence_over_round_ended(self):
        game = make_game(
            round_state="Ended",
            current_round_end=NOW - minutes(10),
            next_trade_deadline=NOW + minutes(30),
        )
        period = find_critical_period(game, NOW)
        assert isinstance(period, CriticalPeriod)
        assert period.type == CriticalPeriodType.TRADE_DEADLINE
        assert period.label == "Trade deadline in 30 min"

        entry = classify(game, NOW)
        assert entry.critical_period == period
        assert entry.priority_reason == "Trade deadline in 30 min"

    def test_trade_deadline_window(self):
        game = make_game(next_trade_deadline=NOW + minutes(30))
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.CRITICAL
        assert entry.priority_reason == "Trade deadline in 30 min"

    def test_round_ended_window(self):
        game = make_game(round_state="Ended", current_round_end=NOW - minutes(20))
        period = find_critical_period(game, NOW)
        assert period.type == CriticalPeriodType.ROUND_ENDED
        assert period.label == "Round ended 20 min ago"
        assert period.minutes_until_event == -20

    def test_round_ended_accepts_upstream_spelling(self):
        game = make_game(round_state="EndedLastest", current_round_end=NOW - minutes(5))
        assert find_critical_period(game, NOW).type == CriticalPeriodType.ROUND_ENDED

    def test_round_end_needs_ended_state(self):
        game = make_game(round_state="CurrentOpen", current_round_end=NOW - minutes(20))
        assert find_critical_period(game, NOW) is None

    def test_round_ended_window_expires(self):
        game = make_game(round_state="Ended", current_round_end=NOW - minutes(61))
        assert find_critical_period(game, NOW) is None

    def test_custom_window_widths(self):
        game = make_game(current_round_start=NOW + minutes(90))
        narrow = CriticalWindows(round_start_minutes=30)
        assert find_critical_period(game, NOW, narrow) is None


class TestSeasonEnd:
    def test_season_ended(self):
        game = make_game(current_round=30, total_rounds=30, round_state="Ended")
        assert is_season_ended(game)

    def test_season_running(self):
        assert not is_season_ended(make_game(current_round=29, total_rounds=30, round_state="Ended"))
        assert not is_season_ended(make_game(current_round=30, total_rounds=30, round_state="CurrentOpen"))
        assert not is_season_ended(make_game(total_rounds=None))

    def test_ended_season_is_never_critical(self):
        game = make_game(
            current_round=30,
            total_rounds=30,
            round_state="EndedLastest",
            current_round_end=NOW - minutes(10),
            last_synced_at=NOW - minutes(5),
        )
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.ROUTINE
        assert entry.critical_period is None

    def test_ended_season_still_follows_interval(self):
        game = make_game(
            current_round=30,
            total_rounds=30,
            round_state="Ended",
            current_round_end=NOW - minutes(10),
            last_synced_at=NOW - minutes(120),
        )
        entry = classify(game, NOW)
        assert entry.priority == SyncPriority.OVERDUE
        assert entry.is_due
