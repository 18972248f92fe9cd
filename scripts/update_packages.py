#!/usr/bin/env python3
"""
Update Credit Packages Script

Replaces the credit package catalog in the global settings record.

Usage:
    python -m scripts.update_packages                    # Restore the default catalog
    python -m scripts.update_packages --file packs.json  # Load a JSON list of packages
"""

import argparse
import asyncio
import json
import logging
from typing import Optional

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import TypeAdapter

from app.domain.bot_settings import DEFAULT_CREDIT_PACKAGES, BotSettingsUpdate, CreditPackage
from app.infrastructure.db.database import close_db, init_db
from app.infrastructure.db.repositories.bot_settings_repository import get_bot_settings_repository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_packages(path: Optional[str]) -> list[CreditPackage]:
    if path is None:
        return list(DEFAULT_CREDIT_PACKAGES)
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return TypeAdapter(list[CreditPackage]).validate_python(raw)


async def main():
    parser = argparse.ArgumentParser(description="Replace the credit package catalog")
    parser.add_argument(
        "--file",
        default=None,
        help="JSON file with a list of {id, name, credits, price, popular} (default: built-in catalog)"
    )
    args = parser.parse_args()

    packages = load_packages(args.file)

    await init_db()
    try:
        bot_settings = await get_bot_settings_repository().update(
            BotSettingsUpdate(credit_packages=packages)
        )
    finally:
        await close_db()

    print("\n=== Credit Packages Updated ===")
    for package in bot_settings.credit_packages:
        print(f"{package['id']}: {package['credits']} credits for {package['price'] / 100:.2f}€")


if __name__ == "__main__":
    asyncio.run(main())
