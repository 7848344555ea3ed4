#!/usr/bin/env python3
"""Helper script to check and create a .env file for the booking core."""

import os
import sys
from pathlib import Path

TEMPLATE = """# Supabase Configuration (optional; file snapshots under data/ are used otherwise)
COURIER_SUPABASE_URL=https://your-project-id.supabase.co
COURIER_SUPABASE_KEY=your-service-role-key-here

# API Configuration
COURIER_API_PREFIX=/api
COURIER_LOG_LEVEL=INFO
# COURIER_FRONTEND_ALLOWED_ORIGINS accepts a JSON array or comma-separated list

# Data Paths
COURIER_DATA_ROOT=./data
COURIER_GEO_REFERENCE_FILE=./data/geo_reference.json
COURIER_FLEET_FILE=./data/fleet.json

# Business limits
COURIER_COVERAGE_RADIUS_KM=150
COURIER_CAPACITY_CAS_MAX_RETRIES=5
"""


def _mask(value: str) -> str:
    return value[:20] + "..." + value[-10:] if len(value) > 30 else value


def main() -> None:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"Created template .env file at: {env_file}")
        print("Edit it and add your Supabase credentials if you use the database.")
        return

    print(f"Found .env file at: {env_file}")
    for line in env_file.read_text(encoding="utf-8").splitlines():
        if line.startswith("COURIER_SUPABASE_KEY=") and "=" in line:
            name, value = line.split("=", 1)
            print(f"{name}={_mask(value.strip())}")
        else:
            print(line)

    for name in ("COURIER_SUPABASE_URL", "COURIER_SUPABASE_KEY"):
        print(f"{name} in environment: {'yes' if os.getenv(name) else 'no'}")

    sys.path.insert(0, str(project_root / "src"))
    try:
        from courier.config import settings
    except Exception as e:
        print(f"Error loading config: {e}")
        return

    if settings.supabase_url and settings.supabase_key:
        print("Supabase is configured.")
    else:
        print("Supabase is NOT configured; reference data will load from files.")
    print(f"Geo reference file: {settings.geo_reference_file} (exists: {settings.geo_reference_file.exists()})")
    print(f"Fleet file: {settings.fleet_file} (exists: {settings.fleet_file.exists()})")


if __name__ == "__main__":
    main()
