"""
TXC Graph Ingestion Module

Turns a TransXChange schedule document into a normalized, queryable graph.

Entry Point:
    python -m txc_graph.ingest --input ./TransXChange.xml

Components:
    - records: boundary normalization of the nested input records
    - static_network: stops, lines, stop areas, administrative areas
    - patterns: journey pattern builder and route expander
    - ownership: pattern -> route -> line resolution
    - annotation: stop line/direction merge
    - timetable: vehicle journeys and service calendars
    - schema: PostgreSQL tables and derived indexes
    - orchestrator: main entry point coordinating all stages
"""

from .schema import initialize_database, Base
from .orchestrator import run_import, run_full_import

__all__ = ['initialize_database', 'Base', 'run_import', 'run_full_import']
