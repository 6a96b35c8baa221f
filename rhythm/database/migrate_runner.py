"""Database migration runner for deploys.

Runs ``alembic upgrade head``. If the tables already exist but Alembic has no
history for them (e.g. the schema was created by ``create_all()``), the
runner checks the expected tables and columns are present and stamps head
instead of failing.
"""

from __future__ import annotations

import os
import sys
from typing import List, Tuple

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from rhythm.database.database import DATABASE_URL, build_engine


def _alembic_cfg() -> Config:
    cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", DATABASE_URL)
    return cfg


def _required_schema_checks() -> List[Tuple[str, str]]:
    """Return (kind, name) checks required to safely stamp head."""
    return [
        ("table", "children"),
        ("table", "care_blocks"),
        ("table", "nap_schedules"),
        ("table", "sleep_logs"),
        ("table", "away_logs"),
        ("table", "pending_transitions"),
        ("column:care_blocks", "weekly_day"),
        ("column:sleep_logs", "end_reason"),
        ("column:away_logs", "end_reason"),
        ("column:pending_transitions", "resolved_at"),
        ("column:pending_transitions", "origin_id"),
        ("column:pending_transitions", "applied_log_id"),
    ]


def _missing_requirements(inspector) -> List[str]:
    missing: List[str] = []
    tables = set(inspector.get_table_names())
    for kind, name in _required_schema_checks():
        if kind == "table":
            if name not in tables:
                missing.append(f"missing table: {name}")
        elif kind.startswith("column:"):
            table = kind.split(":", 1)[1]
            columns = {c["name"] for c in inspector.get_columns(table)} if table in tables else set()
            if name not in columns:
                missing.append(f"missing column: {table}.{name}")
        else:
            missing.append(f"unknown check: {kind} {name}")
    return missing


def main() -> int:
    try:
        command.upgrade(_alembic_cfg(), "head")
        return 0
    except Exception as e:
        msg = str(e).lower()
        if "already exists" not in msg and "duplicate" not in msg:
            raise

        engine = build_engine(DATABASE_URL)
        missing = _missing_requirements(inspect(engine))
        if missing:
            raise RuntimeError(
                "Alembic upgrade failed and schema is not at expected baseline; refusing to stamp head. "
                + "; ".join(missing)
            ) from e

        command.stamp(_alembic_cfg(), "head")
        return 0


if __name__ == "__main__":
    sys.exit(main())
