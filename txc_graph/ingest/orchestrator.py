"""
Import Orchestrator

Single entry point for a TransXChange import. Runs the stages in order:

    1. Load and parse the document
    2. Clear the rebuilt collections
    3. Static network (stops, lines, stop areas, administrative areas)
    4. Journey patterns
    5. Routes (expanded stop sequences)
    6. Vehicle journeys and service calendars
    7. Pattern -> route -> line resolution against the persisted routes
    8. Stop annotation merge
    9. Derived indexes

Usage:
    python -m txc_graph.ingest --input ./TransXChange.xml
    python -m txc_graph.ingest --input https://example.org/feed.xml --reset-db
    python -m txc_graph.ingest --dry-run
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from txc_graph.config.config_main import import_config
from txc_graph.data.document_store import DocumentStore
from txc_graph.data.memory_store import InMemoryDocumentStore
from txc_graph.data.txc.txc_source import TxcSource

from .annotation import merge_stop_annotations
from .ownership import resolve_document_ownership
from .patterns import build_journey_patterns, extract_routes
from .static_network import ingest_static_network
from .timetable import extract_service_calendars, extract_vehicle_journeys, upsert_service_calendars

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _banner(title: str, char: str = '='):
    print(f"\n{char*70}")
    print(title)
    print(f"{char*70}\n")


def run_import(
    document: Dict[str, Any],
    store: DocumentStore,
    batch_size: int = None,
    create_indexes: bool = None,
) -> Dict[str, int]:
    """
    Run every stage against an already parsed document.

    Args:
        document: Nested record of the document root
        store: Destination document store
        batch_size: Maximum documents per insert batch
        create_indexes: Create derived indexes after the merge

    Returns:
        Statistics dictionary with counts per stage
    """
    batch_size = batch_size or import_config.insert_batch_size
    if create_indexes is None:
        create_indexes = import_config.create_indexes

    stats: Dict[str, int] = {}

    for name in import_config.rebuilt_collections:
        store.clear_collection(name)
    logger.info(f"Cleared collections: {', '.join(import_config.rebuilt_collections)}")

    # Static network
    _banner("STATIC NETWORK")
    extracted = ingest_static_network(store, document, batch_size)
    for name, documents in extracted.items():
        stats[name] = len(documents)

    # Journey patterns and routes
    _banner("JOURNEY PATTERNS AND ROUTES")
    patterns = build_journey_patterns(document)
    stats["journey_patterns"] = store.insert_batch(
        "journey_patterns", [pattern.to_document() for pattern in patterns.values()], batch_size
    )
    routes = extract_routes(document, patterns)
    stats["routes"] = store.insert_batch("routes", routes, batch_size)
    print(f"  ✓ {stats['journey_patterns']} journey patterns")
    print(f"  ✓ {stats['routes']} routes")

    # Timetable
    _banner("TIMETABLE")
    journeys = extract_vehicle_journeys(document)
    stats["vehicle_journeys"] = store.insert_batch("vehicle_journeys", journeys, batch_size)
    calendar_stats = upsert_service_calendars(store, extract_service_calendars(document))
    stats["service_calendars_inserted"] = calendar_stats["inserted"]
    stats["service_calendars_updated"] = calendar_stats["updated"]
    print(f"  ✓ {stats['vehicle_journeys']} vehicle journeys")
    print(f"  ✓ {calendar_stats['inserted']} calendars inserted, {calendar_stats['updated']} updated")

    # Resolution and merge read routes back from the store so they see what was written
    _banner("STOP ANNOTATION")
    persisted_routes = store.find("routes")
    known_lines = {line["id"] for line in extracted["lines"]}
    pattern_lines, report = resolve_document_ownership(document, persisted_routes, patterns.keys(), known_lines)
    merge_result = merge_stop_annotations(store, patterns, pattern_lines)
    stats["patterns_with_line"] = report.resolved
    stats["stops_annotated"] = merge_result.modified
    print(f"  ✓ {report.resolved} patterns resolved to a line")
    print(f"  ✓ {merge_result.modified} stops annotated")

    if create_indexes:
        index_names = store.create_indexes()
        stats["indexes"] = len(index_names)
        print(f"  ✓ {len(index_names)} indexes verified")

    return stats


def run_full_import(
    source: TxcSource,
    store: DocumentStore,
    batch_size: int = None,
    create_indexes: bool = None,
) -> Dict[str, int]:
    """
    Load the document and run the import. The store is closed on every exit path.
    """
    print(f"\n{'#'*70}")
    print(f"# TXC GRAPH - TRANSXCHANGE IMPORT")
    print(f"# Source: {source.location}")
    print(f"# Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"{'#'*70}\n")

    overall_start = datetime.now()

    try:
        document = source.load()
        stats = run_import(document, store, batch_size=batch_size, create_indexes=create_indexes)

        overall_duration = (datetime.now() - overall_start).total_seconds()

        print(f"\n{'#'*70}")
        print(f"# IMPORT COMPLETE")
        print(f"# Total duration: {overall_duration:.2f} seconds")
        print(f"{'#'*70}\n")

        print("FINAL SUMMARY:")
        for name, count in stats.items():
            print(f"  ✓ {name}: {count}")

        return stats

    except Exception as e:
        print(f"\n{'!'*70}")
        print(f"! IMPORT FAILED")
        print(f"! Error: {e}")
        print(f"{'!'*70}\n")
        logger.error("Import failed", exc_info=True)
        raise
    finally:
        store.close()
        logger.info("Store connection closed")


def build_store(dry_run: bool, reset_db: bool = False) -> DocumentStore:
    if dry_run:
        return InMemoryDocumentStore()

    from txc_graph.data.db_broker import ConnectionBroker
    from txc_graph.data.postgres_store import PostgresDocumentStore
    from .schema import initialize_database

    try:
        initialize_database(ConnectionBroker.get_engine(), drop_existing=reset_db)
    except Exception:
        ConnectionBroker.dispose()
        raise
    return PostgresDocumentStore()


def main(argv: Optional[list] = None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description='TXC Graph TransXChange Import',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import the configured document (TXC_INPUT_PATH)
  python -m txc_graph.ingest

  # Reset the database and import a remote feed
  python -m txc_graph.ingest --reset-db --input https://example.org/TransXChange.xml

  # Parse and resolve without touching the database
  python -m txc_graph.ingest --dry-run
        """
    )

    parser.add_argument(
        '--input',
        type=str,
        default=import_config.input_path,
        help='Path or http(s) URL of the TransXChange document (default: TXC_INPUT_PATH)'
    )

    parser.add_argument(
        '--batch-size',
        type=int,
        default=import_config.insert_batch_size,
        help='Maximum documents per insert batch (default: INSERT_BATCH_SIZE)'
    )

    parser.add_argument(
        '--reset-db',
        action='store_true',
        help='Drop and recreate all tables before import (DESTRUCTIVE)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Run against an in-memory store instead of PostgreSQL'
    )

    parser.add_argument(
        '--skip-indexes',
        action='store_true',
        help='Do not create the derived query indexes'
    )

    args = parser.parse_args(argv)

    if args.batch_size < 1:
        parser.error("--batch-size must be positive")

    # Confirm destructive operation
    if args.reset_db and not args.dry_run:
        print("\n⚠️  WARNING: --reset-db will DELETE ALL EXISTING DATA!")
        response = input("Are you sure you want to continue? (yes/no): ")
        if response.lower() != 'yes':
            print("Aborted.")
            sys.exit(0)

    store = build_store(args.dry_run, reset_db=args.reset_db)
    run_full_import(
        TxcSource(args.input),
        store,
        batch_size=args.batch_size,
        create_indexes=not args.skip_indexes,
    )


if __name__ == "__main__":
    main()
