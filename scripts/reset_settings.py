#!/usr/bin/env python3
"""
Reset Bot Settings Script

Overwrites the global settings record with the defaults (free tier of 5,
cost 1, the four default credit packages, premium at 9.99€/79.99€).

Usage:
    python -m scripts.reset_settings
"""

import asyncio
import logging

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

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
        bot_settings = await get_bot_settings_repository().reset()
    finally:
        await close_db()

    print("\n=== Settings Reset ===")
    print(f"Free messages: {bot_settings.free_messages_limit}")
    print(f"Cost per message: {bot_settings.cost_per_message}")
    print(f"Credit packages: {len(bot_settings.credit_packages)}")


if __name__ == "__main__":
    asyncio.run(main())
