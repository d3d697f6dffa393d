#!/usr/bin/env python3
"""
Index Rebuild Utility
Rebuilds the in-memory entity indexes from the document store and verifies
them with a sample search. Useful for checking embedding provider health and
how much of the catalog embeds cleanly.
"""

import argparse
import asyncio
import sys

from icp_platform.core.config import validate_config
from icp_platform.core.container import AppContainer
from icp_platform.core.db import init_db
from icp_platform.core.schema import PARTNERS, SOLUTIONS


async def rebuild(collections, query: str) -> int:
    container = AppContainer(use_config_providers=False)
    failures = 0

    for collection in collections:
        index = container.indexes[collection]
        print(f"Rebuilding {collection} index...")
        try:
            await index.rebuild()
        except Exception as e:
            print(f"ERROR: Failed to build {collection} index: {e}")
            failures += 1
            continue

        stats = index.stats()
        last = stats["last_build"]
        print(f"✓ Indexed {last.get('indexed', 0)} {collection} in {last.get('duration_ms', 0)} ms")
        if last.get("failed"):
            print(f"WARNING: {last['failed']} {collection} failed to embed")
            failures += 1

        # Verify index
        try:
            if len(index):
                query_vector = await container.embedder.embed_text(query)
                results = index.search(query_vector, limit=min(3, len(index)))
                print(f"✓ Verification search for '{query}' returned {len(results)} results")
                for result in results:
                    print(f"    {result.score:.3f}  {result.id}")
            else:
                print("✓ No entries to verify (empty index)")
        except Exception as e:
            print(f"WARNING: Verification search failed: {e}")
            failures += 1

    container.dispose()
    return failures


def main():
    """Rebuild entity indexes from the document store."""
    parser = argparse.ArgumentParser(description="Rebuild and verify ICP entity indexes")
    parser.add_argument(
        "--collection",
        choices=[SOLUTIONS, PARTNERS, "all"],
        default="all",
        help="Index to rebuild (default: all)"
    )
    parser.add_argument(
        "--query",
        default="clean water",
        help="Sample query used to verify the rebuilt index"
    )
    args = parser.parse_args()

    for issue in validate_config():
        print(f"WARNING: {issue}")

    init_db()

    collections = [SOLUTIONS, PARTNERS] if args.collection == "all" else [args.collection]
    failures = asyncio.run(rebuild(collections, args.query))

    if failures:
        print(f"Index rebuild finished with {failures} problem(s)")
        sys.exit(1)
    print("Index rebuild complete!")


if __name__ == "__main__":
    main()
