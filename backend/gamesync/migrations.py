"""Lightweight migrations for databases created by older releases."""

from __future__ import annotations

import logging
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def ensure_schema_updates(engine: Engine) -> None:
    _ensure_game_columns(engine)
    _ensure_user_columns(engine)
    _ensure_sync_log_columns(engine)
    _ensure_indexes(engine)


def _add_missing_columns(engine: Engine, table: str, columns: list[tuple[str, str]]) -> None:
    inspector = inspect(engine)
    if table not in inspector.get_table_names():
        return

    existing = {col["name"] for col in inspector.get_columns(table)}
    with engine.begin() as connection:
        for name, sql_type in columns:
            if name in existing:
                continue
            logger.info("Adding missing column %s.%s", table, name)
            connection.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {sql_type}"))


def _ensure_game_columns(engine: Engine) -> None:
    _add_missing_columns(engine, "games", [
        ("total_rounds", "INTEGER"),
        ("round_state", "VARCHAR(20)"),
        ("current_round_start", "TIMESTAMP"),
        ("current_round_end", "TIMESTAMP"),
        ("next_trade_deadline", "TIMESTAMP"),
        ("swush_game_id", "INTEGER"),
        ("game_url", "VARCHAR(500)"),
        ("users_total", "INTEGER DEFAULT 0"),
    ])


def _ensure_user_columns(engine: Engine) -> None:
    _add_missing_columns(engine, "users", [
        ("role", "VARCHAR(20) DEFAULT 'user'"),
        ("last_login_at", "TIMESTAMP"),
    ])


def _ensure_sync_log_columns(engine: Engine) -> None:
    _add_missing_columns(engine, "sync_logs", [
        ("elements_synced", "INTEGER DEFAULT 0"),
    ])


def _ensure_indexes(engine: Engine) -> None:
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    with engine.begin() as connection:
        if "games" in tables:
            connection.execute(text(
                "CREATE INDEX IF NOT EXISTS idx_games_active_last_synced "
                "ON games (is_active, last_synced_at)"
            ))
        if "sync_logs" in tables:
            connection.execute(text(
                "CREATE INDEX IF NOT EXISTS idx_sync_logs_game_started "
                "ON sync_logs (game_id, started_at)"
            ))
        if "user_game_stats" in tables:
            connection.execute(text(
                "CREATE INDEX IF NOT EXISTS idx_user_game_stats_game_rank "
                "ON user_game_stats (game_id, rank)"
            ))
