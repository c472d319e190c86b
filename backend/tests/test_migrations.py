from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from gamesync.migrations import ensure_schema_updates


def test_adds_missing_game_columns():
    engine = create_engine("sqlite://", poolclass=StaticPool)
    with engine.begin() as connection:
        connection.execute(text(
            "CREATE TABLE games ("
            "id VARCHAR(36) PRIMARY KEY,"
            "game_key VARCHAR(100) NOT NULL,"
            "name VARCHAR(200) NOT NULL,"
            "is_active BOOLEAN DEFAULT 1,"
            "last_synced_at TIMESTAMP"
            ")"
        ))

    ensure_schema_updates(engine)
    ensure_schema_updates(engine)

    columns = {col["name"] for col in inspect(engine).get_columns("games")}
    assert {"users_total", "swush_game_id", "round_state", "next_trade_deadline"} <= columns
    indexes = {index["name"] for index in inspect(engine).get_indexes("games")}
    assert "idx_games_active_last_synced" in indexes


def test_no_tables_is_a_no_op():
    engine = create_engine("sqlite://", poolclass=StaticPool)
    ensure_schema_updates(engine)
    assert inspect(engine).get_table_names() == []
