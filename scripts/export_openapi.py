#!/usr/bin/env python3
"""
Write the dashboard API's OpenAPI schema to a JSON file,
for frontend client generation and static API docs.

Usage: python scripts/export_openapi.py [output_file]
"""
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

DEFAULT_OUTPUT = Path(__file__).parent.parent / "docs" / "openapi.json"


def export_openapi(output_file: Path = DEFAULT_OUTPUT) -> dict:
    from main import app

    schema = app.openapi()
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w") as f:
        json.dump(schema, f, indent=2)
    return schema


if __name__ == "__main__":
    output_file = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_OUTPUT
    openapi_schema = export_openapi(output_file)

    print(f"OpenAPI schema exported to {output_file}")
    print(f"  Title: {openapi_schema.get('info', {}).get('title')}")
    print(f"  Paths: {len(openapi_schema.get('paths', {}))}")
