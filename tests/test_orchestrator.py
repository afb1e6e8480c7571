"""
End-to-end test of the import pipeline against the in-memory store.
"""

from unittest.mock import patch

import pytest

from txc_graph.data.memory_store import InMemoryDocumentStore
from txc_graph.data.txc.txc_source import TxcSource
from txc_graph.ingest.orchestrator import main, run_full_import, run_import


def _by_id(store, name):
    return {document["id"]: document for document in store.find(name)}


class TestRunImport:
    """Test the staged pipeline on the sample document."""

    @pytest.fixture
    def imported(self, sample_document, store):
        stats = run_import(sample_document, store, batch_size=2, create_indexes=True)
        return stats, store

    def test_collection_counts(self, imported):
        stats, store = imported

        assert stats["stops"] == 4
        assert stats["lines"] == 2
        assert stats["journey_patterns"] == 2
        assert stats["routes"] == 2
        assert stats["vehicle_journeys"] == 1
        assert stats["service_calendars_inserted"] == 1
        assert stats["indexes"] == 5

    def test_stops_annotated_through_both_ownership_sources(self, imported):
        _, store = imported
        stops = _by_id(store, "stops")

        assert stops["A"]["lines"] == ["12"]
        assert stops["A"]["directions"] == [{"line": "12", "direction": "outbound", "nextStop": "B", "sequence": 0}]
        assert stops["B"]["directions"] == [{"line": "12", "direction": "outbound", "nextStop": "C", "sequence": 1}]
        # C is terminal on line 12 but departs towards D on line 7 (owned via the service declaration)
        assert stops["C"]["lines"] == ["7"]
        assert stops["C"]["directions"] == [{"line": "7", "direction": "inbound", "nextStop": "D", "sequence": 0}]
        # D is terminal everywhere and stays unannotated
        assert stops["D"]["lines"] == []

    def test_routes_expanded(self, imported):
        _, store = imported
        routes = _by_id(store, "routes")

        assert routes["R1"]["stopsSequence"] == ["A", "B", "C"]
        assert routes["R1"]["lineRef"] == "12"
        assert routes["R2"]["stopsSequence"] == []

    def test_vehicle_journey_expanded(self, imported):
        _, store = imported
        journey = _by_id(store, "vehicle_journeys")["VJ1"]

        assert [visit["sequence"] for visit in journey["stops"]] == [1, 2, 3]
        assert journey["directionName"] == "Gamma"

    def test_rerun_is_idempotent(self, sample_document, imported):
        _, store = imported

        stats = run_import(sample_document, store, batch_size=2, create_indexes=True)
        stops = _by_id(store, "stops")

        assert stats["service_calendars_inserted"] == 0
        assert stats["service_calendars_updated"] == 1
        assert len(store.find("service_calendars")) == 1
        assert stops["A"]["lines"] == ["12"]
        assert len(stops["A"]["directions"]) == 1

    def test_indexes_skipped(self, sample_document, store):
        stats = run_import(sample_document, store, create_indexes=False)
        assert "indexes" not in stats
        assert store.indexes == []


class TestRunFullImport:
    """Test loading, failure reporting and store release."""

    def test_full_import_closes_store(self, sample_file):
        store = InMemoryDocumentStore()
        stats = run_full_import(TxcSource(str(sample_file)), store, batch_size=10)

        assert stats["stops"] == 4
        assert store.closed is True

    def test_failure_propagates_and_closes_store(self, tmp_path):
        store = InMemoryDocumentStore()

        with pytest.raises(FileNotFoundError):
            run_full_import(TxcSource(str(tmp_path / "missing.xml")), store)

        assert store.closed is True

    def test_write_failure_propagates(self, sample_file):
        store = InMemoryDocumentStore()

        with patch.object(store, "bulk_update", side_effect=RuntimeError("store unavailable")):
            with pytest.raises(RuntimeError):
                run_full_import(TxcSource(str(sample_file)), store)

        assert store.closed is True


class TestCli:
    """Test the command-line entry point."""

    def test_dry_run(self, sample_file, capsys):
        main(["--dry-run", "--input", str(sample_file), "--batch-size", "3"])
        output = capsys.readouterr().out

        assert "IMPORT COMPLETE" in output
        assert "stops: 4" in output

    def test_invalid_batch_size(self, sample_file):
        with pytest.raises(SystemExit):
            main(["--dry-run", "--input", str(sample_file), "--batch-size", "0"])
