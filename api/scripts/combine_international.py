#!/usr/bin/env python3
"""
Build the combined international fallback file from the per-country files.

Reads every JSON file in the multi-location and single-location directories
and writes one object keyed by country file stem (suffix removed) to the
combined file the loader falls back to.

Usage:
    python scripts/combine_international.py [--dry-run]
"""

import json
import sys
from pathlib import Path
from typing import Dict

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Force reload of environment variables
from dotenv import load_dotenv
load_dotenv(override=True)

from config import settings
from services.location_loader import country_key_from_filename
from services.source_registry import SourceRegistry


def combine_international_files(registry: SourceRegistry) -> Dict:
    """
    Merge the international source files into one mapping.

    Files that cannot be read are reported and skipped. When two files map to
    the same key, objects are merged and arrays concatenated.

    Args:
        registry: Source corpus layout

    Returns:
        dict: country key -> source document
    """
    combined: Dict = {}

    for directory in (registry.multi_location_path, registry.single_location_path):
        if not directory.is_dir():
            print(f"   ⚠️  Directory {directory} not found, skipping")
            continue

        for path in sorted(directory.glob("*.json")):
            if path.name == registry.skipped_index_file:
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                print(f"   ✗ Error reading {path.name}: {e}")
                continue

            key = country_key_from_filename(path.name)
            existing = combined.get(key)
            if isinstance(existing, list) and isinstance(data, list):
                combined[key] = existing + data
            elif isinstance(existing, dict) and isinstance(data, dict):
                combined[key] = {**existing, **data}
            else:
                combined[key] = data
            print(f"   ✓ Added {key}")

    return combined


def main():
    """Main function"""
    dry_run = '--dry-run' in sys.argv

    if dry_run:
        print("=" * 60)
        print("DRY RUN MODE - No files will be written")
        print("=" * 60)

    print("\n" + "=" * 60)
    print("COMBINE INTERNATIONAL LOCATION FILES")
    print("=" * 60)

    registry = SourceRegistry.from_settings(settings)

    print(f"\n1. Reading files from {registry.data_dir}...")
    combined = combine_international_files(registry)
    print(f"   ✓ Combined {len(combined)} countries")

    if not combined:
        print("\n⚠️  No international files found. Exiting.")
        return

    if dry_run:
        print(f"\n2. Would write {registry.combined_path}")
        return

    print(f"\n2. Writing {registry.combined_path}...")
    with open(registry.combined_path, 'w', encoding='utf-8') as f:
        json.dump(combined, f, indent=2, ensure_ascii=False)
    print("   ✓ Done")


if __name__ == "__main__":
    main()
