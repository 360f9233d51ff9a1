#!/usr/bin/env python3
"""CLI for clearing the gateway's detection snapshots."""

import asyncio

from ..gateway.app.cache import snapshots


def main(assume_yes: bool = False) -> int:
    """Remove every detection snapshot written by the gateway."""
    entries = snapshots.entries()
    if not entries:
        print(f"No snapshots found in {snapshots.root}.")
        return 0

    size_kb = sum(entry.stat().st_size for entry in entries) / 1024
    print(f"This will remove {len(entries)} snapshot(s) ({size_kb:.1f} KiB) from {snapshots.root}")
    if not assume_yes:
        response = input("\nAre you sure? Type 'yes' to confirm: ")
        if response.lower() != 'yes':
            print("Cancelled.")
            return 1

    removed = asyncio.run(snapshots.clear())
    print(f"Removed {removed} snapshot(s).")
    return 0
