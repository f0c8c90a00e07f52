#!/usr/bin/env python3
"""
Database health check and initialization script.

Usage:
    python scripts/check_db.py          # Check connectivity
    python scripts/check_db.py --init   # Initialize the colony schema
"""

from __future__ import annotations

import argparse
import os
import sys

from colony_ai.db import DoltConnection, init_dolt_schema


def dolt_connection() -> DoltConnection:
    """Build a connection from the DOLT_* environment variables."""
    return DoltConnection(
        host=os.getenv("DOLT_HOST", "localhost"),
        port=int(os.getenv("DOLT_PORT", "3306")),
        user=os.getenv("DOLT_USER", "root"),
        password=os.getenv("DOLT_PASSWORD", "doltpass"),
        database=os.getenv("DOLT_DATABASE", "colony_ai"),
    )


def check_dolt() -> bool:
    """Check Dolt database connectivity."""
    conn = dolt_connection()
    print(f"Checking Dolt at {conn.config['host']}:{conn.config['port']}...")

    try:
        # Raises if the server is unreachable
        db_conn = conn.get_connection()
        if db_conn.is_connected():
            print("  Dolt: Connected")
            conn.close()
            return True
        print("  Dolt: Connection failed")
        return False
    except Exception as e:
        print(f"  Dolt: Error - {e}")
        return False


def init_dolt() -> bool:
    """Initialize the colony schema."""
    print("Initializing Dolt schema...")

    try:
        conn = dolt_connection()
        init_dolt_schema(conn)
        conn.close()
        print("  Dolt schema initialized")
        return True
    except Exception as e:
        print(f"  Dolt init error: {e}")
        return False


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Check and initialize the colony-ai database")
    parser.add_argument("--init", action="store_true", help="Initialize database schema")
    args = parser.parse_args()

    print("colony-ai Database Check")
    print("=" * 40)

    dolt_ok = check_dolt()

    if args.init and dolt_ok:
        print()
        print("Schema Initialization")
        print("=" * 40)
        dolt_ok = init_dolt()

    print()
    print("Summary")
    print("=" * 40)
    print(f"  Dolt: {'OK' if dolt_ok else 'FAILED'}")

    return 0 if dolt_ok else 1


if __name__ == "__main__":
    sys.exit(main())
