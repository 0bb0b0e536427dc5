from sqlalchemy import create_engine, inspect

from pool_manager.migrations import run_migrations


def test_upgrade_head_creates_schema(tmp_path):
    """Alembic migrations build the same tables the models describe"""
    database_url = f"sqlite:///{tmp_path / 'migrated.db'}"

    run_migrations(database_url)

    engine = create_engine(database_url)
    try:
        inspector = inspect(engine)
        assert {"player", "tournament", "match", "alembic_version"} <= set(inspector.get_table_names())

        match_columns = {c["name"] for c in inspector.get_columns("match")}
        assert {
            "scheduled_time",
            "end_time",
            "winner_id",
            "tournament_id",
            "player1_id",
            "player2_id",
            "player1_score",
            "player2_score",
        } <= match_columns

        match_indexes = {i["name"] for i in inspector.get_indexes("match")}
        assert {"ix_match_player1_id", "ix_match_player2_id", "ix_match_scheduled_time"} <= match_indexes

        assert "ranking" in {c["name"] for c in inspector.get_columns("player")}
    finally:
        engine.dispose()
