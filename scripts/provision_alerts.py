#!/usr/bin/env python3
"""
Alert Provisioning Script

This script validates alerts and writes them directly to the database. The
API loads them into the registry on its next startup.

Usage:
    python scripts/provision_alerts.py alerts.json
    
    Or with inline data:
    python scripts/provision_alerts.py --inline '[{"symbol": "BTCUSDT", "target_price": 45000, "direction": "above", "reference_price": 44000}]'

Input Format (JSON):
[
    {
        "symbol": "BTCUSDT",
        "target_price": 45000,
        "direction": "above",        // "above" or "below"
        "reference_price": 44000,    // Required: price at creation
        "is_recurring": false        // Optional
    }
]
"""
import asyncio
import json
import sys
import argparse
from pathlib import Path
from typing import List, Dict

# Add parent directory to path to import pricewatch modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from pricewatch.core.database import AsyncSessionLocal, init_db
from pricewatch.engine.errors import InvalidSpec
from pricewatch.engine.models import AlertSpec
from pricewatch.engine.registry import AlertRegistry
from pricewatch.services import AlertStore


async def provision_alerts(entries: List[Dict]) -> int:
    """
    Validate and store alerts.
    
    Args:
        entries: List of alert dictionaries
        
    Returns:
        Number of alerts created
    """
    registry = AlertRegistry()
    created = 0
    
    await init_db()
    
    async with AsyncSessionLocal() as db:
        for i, entry in enumerate(entries, 1):
            try:
                alert = registry.create(AlertSpec(
                    symbol=entry.get("symbol", ""),
                    target_price=entry.get("target_price"),
                    direction=entry.get("direction", ""),
                    is_recurring=bool(entry.get("is_recurring", False)),
                    reference_price=entry.get("reference_price")
                ))
            except InvalidSpec as e:
                print(f"❌ Entry {i}: {e}")
                continue
            
            await AlertStore.save_alert(db, alert)
            created += 1
            print(f"✅ {alert.symbol} {alert.direction.value} {alert.target_price} (ID: {alert.id})")
    
    return created


def main():
    parser = argparse.ArgumentParser(description="Provision price alerts")
    parser.add_argument("file", nargs="?", help="JSON file with alert definitions")
    parser.add_argument("--inline", help="Inline JSON alert definitions")
    args = parser.parse_args()
    
    if args.inline:
        entries = json.loads(args.inline)
    elif args.file:
        entries = json.loads(Path(args.file).read_text())
    else:
        parser.error("provide a JSON file or --inline data")
    
    if not isinstance(entries, list):
        parser.error("input must be a JSON list of alerts")
    
    created = asyncio.run(provision_alerts(entries))
    print(f"\nCreated {created}/{len(entries)} alerts")
    sys.exit(0 if created == len(entries) else 1)


if __name__ == "__main__":
    main()
