#!/usr/bin/env python3
"""Validate fleet YAML files against the schema."""
import sys
from pathlib import Path

from fleetpro.schema import load_schema, validate_fleet_file


def main(argv=None):
    """Validate the given fleet files (default: fleet.yaml)."""
    paths = [Path(p) for p in (sys.argv[1:] if argv is None else argv)] or [
        Path("fleet.yaml")
    ]
    schema = load_schema()

    all_valid = True
    for filepath in paths:
        errors = validate_fleet_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
