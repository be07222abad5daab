"""
Generate the OpenAPI document for the sync portal.

Builds the app against an in-memory queue, so no database or token is needed,
and outputs the OpenAPI JSON to stdout or a file.

Usage:
    python scripts/generate_openapi.py                  # Print to stdout
    python scripts/generate_openapi.py --output api.json  # Save to file
"""

import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.server import create_app
from core.config import Settings


def generate_openapi_document(output_path: str = None) -> dict:
    """Generate the OpenAPI document of the portal.

    Args:
        output_path: Optional file path to save it

    Returns:
        OpenAPI document dict
    """
    app = create_app(Settings(database_url="memory://", log_level="WARNING"))
    document = app.openapi()

    if output_path:
        with open(output_path, "w") as f:
            json.dump(document, f, indent=2)
        print(f"OpenAPI document written to: {output_path}")
    else:
        print(json.dumps(document, indent=2))

    return document


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Generate the portal's OpenAPI document")
    parser.add_argument(
        "--output", "-o",
        help="Output file path (default: stdout)"
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Check that the portal routes are present"
    )

    args = parser.parse_args()

    document = generate_openapi_document(args.output)

    if args.validate:
        paths = document.get("paths", {})
        for path in ["/Sync", "/status/{event_id}", "/health"]:
            if path not in paths:
                print(f"ERROR: Missing route: {path}", file=sys.stderr)
                sys.exit(1)

        total_endpoints = sum(len(methods) for methods in paths.values())
        schemas = document.get("components", {}).get("schemas", {})

        print(f"\nOpenAPI document valid")
        print(f"  Version: {document['openapi']}")
        print(f"  Title: {document['info']['title']}")
        print(f"  Paths: {len(paths)}")
        print(f"  Endpoints: {total_endpoints}")
        print(f"  Schemas: {len(schemas)}")


if __name__ == "__main__":
    main()
