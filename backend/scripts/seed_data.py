"""
Seed script to populate the database with sample games and an admin account.
Run with: python -m scripts.seed_data
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta, timezone

from gamesync.database import SessionLocal, engine, Base
from gamesync.models import Game, RoundState, SportType, User, UserRole
from gamesync.schemas.user import UserCreate
from gamesync.services.auth import AuthService


GAMES_DATA = [
    {
        "game_key": "allsvenskan-2026",
        "name": "Allsvenskan Manager 2026",
        "sport_type": SportType.FOOTBALL.value,
        "total_rounds": 30,
        "sync_interval_minutes": 60,
        "users_total": 12000,
    },
    {
        "game_key": "shl-2026",
        "name": "SHL Manager 2026",
        "sport_type": SportType.HOCKEY.value,
        "total_rounds": 52,
        "sync_interval_minutes": 120,
        "users_total": 4300,
    },
    {
        "game_key": "f1-2026",
        "name": "F1 Manager 2026",
        "sport_type": SportType.F1.value,
        "total_rounds": 24,
        "sync_interval_minutes": 240,
        "users_total": 0,
    },
]


def create_tables():
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)
    print("Database tables created.")


def seed_games(db):
    """Seed game configuration; round data is filled in by the first sync."""
    now = datetime.now(timezone.utc)
    games = []
    for index, data in enumerate(GAMES_DATA):
        round_start = now + timedelta(days=index + 1)
        game = Game(
            game_key=data["game_key"],
            name=data["name"],
            sport_type=data["sport_type"],
            subsite_key="aftonbladet",
            is_active=True,
            current_round=1,
            total_rounds=data["total_rounds"],
            round_state=RoundState.PENDING.value,
            current_round_start=round_start,
            current_round_end=round_start + timedelta(days=3),
            next_trade_deadline=round_start - timedelta(hours=1),
            sync_interval_minutes=data["sync_interval_minutes"],
            users_total=data["users_total"],
        )
        db.add(game)
        games.append(game)
    db.commit()
    print(f"Created {len(games)} games.")
    return games


def seed_admin_user(db):
    """Create an admin account for the operator endpoints."""
    password = os.environ.get("SEED_ADMIN_PASSWORD", "admin12345")
    AuthService.create_user(db, UserCreate(
        username="admin",
        email="admin@example.com",
        password=password,
        display_name="Admin",
        role=UserRole.ADMIN.value,
    ))
    print("Admin user created (username: admin)")


def main():
    """Run all seed functions."""
    print("Starting database seed...")
    print("=" * 50)

    create_tables()
    db = SessionLocal()

    try:
        existing_games = db.query(Game).count()
        if existing_games > 0:
            print(f"Database already has {existing_games} games. Skipping seed.")
            print("To reseed, delete the database file and run again.")
            return

        seed_games(db)
        if not db.query(User).filter(User.username == "admin").first():
            seed_admin_user(db)

        print("=" * 50)
        print("Seed complete!")
        print("\nYou can now start the server with:")
        print("  uvicorn gamesync.main:app --reload")
        print("\nAPI docs available at:")
        print("  http://localhost:8000/docs")

    finally:
        db.close()


if __name__ == "__main__":
    main()
