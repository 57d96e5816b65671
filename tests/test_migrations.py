"""
Alembic migrations
"""
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parent.parent


def test_upgrade_creates_schema(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = Config(str(ROOT / 'alembic.ini'))
    cfg.set_main_option('script_location', str(ROOT / 'alembic'))
    cfg.set_main_option('sqlalchemy.url', url)

    command.upgrade(cfg, 'head')

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert {'users', 'user_profiles', 'incident_reports', 'audit_logs'} <= tables
        columns = {c['name'] for c in inspector.get_columns('incident_reports')}
        assert {'status', 'user_name', 'student_number', 'media_urls', 'report_date_time'} <= columns
    finally:
        engine.dispose()

    command.downgrade(cfg, 'base')
    engine = create_engine(url)
    try:
        assert 'incident_reports' not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
