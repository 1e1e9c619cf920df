#!/usr/bin/env python3
"""
Seed the workflow dictionaries, guard logic and templates of a
configuration set into the database.

Usage:
    python3 scripts/seed_workflows.py [--database-url URL] [--config-id ID]
                                      [--create-tables]

The database URL defaults to LIFECYCLE_DATABASE_URL.  Seeding is
idempotent: rows that already exist are left alone, so a set can be
re-seeded after entries were added to it.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from lifecycle_config import (
    DEFAULT_CONFIG_ID,
    get_active_config,
    get_settings,
    seed_configuration,
)
from lifecycle_kernel.db.engine import create_tables, init_engine_from_url, session_scope
from lifecycle_kernel.logging_config import configure_logging


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--database-url", default=settings.database_url)
    parser.add_argument("--config-id", default=DEFAULT_CONFIG_ID)
    parser.add_argument(
        "--create-tables", action="store_true",
        help="create missing tables before seeding",
    )
    args = parser.parse_args(argv)

    configure_logging(level=settings.log_level_number)
    init_engine_from_url(args.database_url)
    if args.create_tables:
        create_tables()

    try:
        config = get_active_config(args.config_id)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Cannot load configuration '{args.config_id}': {exc}", file=sys.stderr)
        return 1

    print(f"Seeding {config.config_id} v{config.version} ({config.checksum[:16]}...)")
    with session_scope() as session:
        report = seed_configuration(session, config)

    print(f"  states:               {report.states}")
    print(f"  decisions:            {report.decisions}")
    print(f"  parameters:           {report.parameters}")
    print(f"  transition functions: {report.transition_functions}")
    print(f"  predicates:           {report.predicates}")
    print(f"  formula rows:         {report.formula_rows}")
    print(f"  templates:            {report.templates}")
    print(f"  transitions:          {report.transitions}")
    print(f"Done: {report.total()} rows created.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
