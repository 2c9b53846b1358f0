#!/usr/bin/env python3
"""Helper script to check collaborator configuration and create a template .env file."""

from pathlib import Path
import os
import sys

PROVIDER_VARS = (
    ("DAYROUTE_SCHEDULE_BASE_URL", "schedule_base_url"),
    ("DAYROUTE_TRAVEL_BASE_URL", "travel_base_url"),
    ("DAYROUTE_GEOCODER_BASE_URL", "geocoder_base_url"),
)

TEMPLATE = """# Collaborator services
DAYROUTE_SCHEDULE_BASE_URL=https://pims.example.com
DAYROUTE_TRAVEL_BASE_URL=https://routing.example.com
DAYROUTE_GEOCODER_BASE_URL=https://routing.example.com

# API Configuration
DAYROUTE_API_PREFIX=/api
# DAYROUTE_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated list

# Timeline defaults
DAYROUTE_TIMEZONE=UTC
DAYROUTE_DEFAULT_DAY_START=08:30
DAYROUTE_ARRIVAL_WINDOW_MINUTES=60
DAYROUTE_DEFAULT_VISIT_MINUTES=60
"""


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Day Route Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f".env file NOT found at: {env_file}")
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"Created template .env file at: {env_file}")
        print("Edit it with your collaborator URLs and run this script again.")
        return

    print(f"Found .env file at: {env_file}")
    print()
    for env_name, _ in PROVIDER_VARS:
        value = os.getenv(env_name)
        print(f"{env_name} (from environment): {value if value else 'not set'}")
    print()

    sys.path.insert(0, str(project_root / "src"))
    try:
        from dayroute.config import settings
    except Exception as e:
        print(f"Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    missing = [env_name for env_name, attribute in PROVIDER_VARS if not getattr(settings, attribute)]
    for env_name, attribute in PROVIDER_VARS:
        print(f"Config {attribute}: {getattr(settings, attribute) or 'None'}")
    print()
    if missing:
        print("Not configured: " + ", ".join(missing))
        print("Routes will fall back to straight-line estimates without the travel-time provider.")
    else:
        print("All collaborator services are configured.")


if __name__ == "__main__":
    main()
