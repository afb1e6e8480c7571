"""
TXC Graph Ingestion Module Entry Point

Allows running the import pipeline via:
    python -m txc_graph.ingest [args]
"""

from .orchestrator import main

if __name__ == "__main__":
    main()
