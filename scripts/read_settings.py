#!/usr/bin/env python3
"""
Print the global bot settings record.

Usage:
    python -m scripts.read_settings
"""

import asyncio
import json
import logging

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.domain.bot_settings import get_credit_packages
from app.infrastructure.db.database import close_db, init_db
from app.infrastructure.db.repositories.bot_settings_repository import get_bot_settings_repository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    await init_db()
    try:
        bot_settings = await get_bot_settings_repository().get()
    finally:
        await close_db()

    print("\n=== Bot Settings ===")
    print(json.dumps(bot_settings.model_dump(mode="json"), indent=2, ensure_ascii=False))

    print("\n=== Effective Credit Catalog ===")
    for package in get_credit_packages(bot_settings):
        print(f"{package.id}: {package.credits} credits for {package.price / 100:.2f}€")


if __name__ == "__main__":
    asyncio.run(main())
