#!/usr/bin/env python3
"""
Database initialization script.

Creates the assessment tables on the configured database and optionally
seeds the item bank from a YAML or JSON file holding a list of items:

    - id: math-001
      subject_id: math
      text: "2 + 2 = ?"
      options: ["3", "4", "5", "22"]
      correct_option_index: 1
      difficulty: 150
"""

import sys
import json
import asyncio
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from rit_backend.common.config import get_config
from rit_backend.common.db.session import create_engine_from_settings, init_models, session_factory
from rit_backend.common.logger import app_logger
from rit_backend.domain.items.model import Item
from rit_backend.domain.items.sql_repository import SqlItemBank

logger = app_logger.getChild("scripts.init_db")


def load_items(path: Path) -> List[Dict[str, Any]]:
    with open(path, 'r') as f:
        if path.suffix.lower() in ['.yaml', '.yml']:
            return yaml.safe_load(f) or []
        return json.load(f)


async def async_main(items_path: Optional[Path] = None) -> int:
    """Initialize the database, returning the number of seeded items."""
    engine = create_engine_from_settings(get_config().database)
    try:
        await init_models(engine)
        seeded = 0
        if items_path is not None:
            bank = SqlItemBank(session_factory(engine))
            for data in load_items(items_path):
                await bank.add(Item.from_dict(data))
                seeded += 1
            logger.info(f"Seeded {seeded} items from {items_path}")
        return seeded
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Create the assessment tables")
    parser.add_argument("--items", type=Path, help="YAML or JSON file of items to seed")
    args = parser.parse_args()

    try:
        asyncio.run(async_main(args.items))
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
