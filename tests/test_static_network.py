"""
Test entity extraction for stops, lines, stop areas and administrative areas.
"""

from txc_graph.ingest.static_network import (
    extract_administrative_area, extract_line, extract_lines, extract_stop,
    extract_stop_area, extract_stops, ingest_static_network
)


class TestStopExtraction:
    """Test StopPoint flattening."""

    def test_full_stop_record(self):
        record = {
            "id": "MZK001",
            "Descriptor": {"CommonName": "Rynek", "Street": "Główna", "Indicator": "01"},
            "Place": {
                "NptgLocalityRef": "LOC1",
                "Location": {"Longitude": "19.05", "Latitude": "50.26"},
            },
            "StopClassification": {
                "OnStreet": {"Bus": {"MarkedPoint": {"Bearing": {"CompassPoint": "N"}}}}
            },
            "StopAreas": {"StopAreaRef": ["SA1", "SA2"]},
            "AdministrativeAreaRef": "AA1",
            "Extensions": {"PublicCode": "R01", "ControlStop": "true", "PrincipalStop": "false"},
        }

        stop = extract_stop(record)

        assert stop["id"] == "MZK001"
        assert stop["name"] == "Rynek"
        assert stop["street"] == "Główna"
        assert stop["localityRef"] == "LOC1"
        assert stop["location"] == {"type": "Point", "coordinates": [19.05, 50.26]}
        assert stop["bearing"] == "N"
        assert stop["publicCode"] == "R01"
        assert stop["controlStop"] is True
        assert stop["principalStop"] is False
        assert stop["stopAreaRef"] == "SA1"
        assert stop["administrativeAreaRef"] == "AA1"
        assert stop["lines"] == []
        assert stop["directions"] == []

    def test_minimal_stop_defaults(self):
        stop = extract_stop({"AtcoCode": "X1"})

        assert stop["id"] == "X1"
        assert stop["name"] is None
        assert stop["location"]["coordinates"] == [0.0, 0.0]
        assert stop["stopAreaRef"] is None
        assert stop["controlStop"] is False

    def test_stop_without_identifier(self):
        assert extract_stop({"Descriptor": {"CommonName": "Nowhere"}}) is None

    def test_extract_stops_skips_duplicates_and_unidentified(self):
        document = {"StopPoints": {"StopPoint": [{"id": "A"}, {"id": "A"}, {"Descriptor": {}}, {"id": "B"}]}}
        stops = extract_stops(document)
        assert [stop["id"] for stop in stops] == ["A", "B"]


class TestLineExtraction:
    """Test Line flattening and collection."""

    def test_full_line_record(self):
        record = {
            "id": "L12",
            "LineName": "12",
            "Description": "Centrum - Osiedle",
            "Extensions": {"MarketingName": "Dwunastka", "LineType": "day", "Mode": "bus", "LineColour": "#FF0000"},
        }

        line = extract_line(record)

        assert line == {
            "id": "L12",
            "number": "12",
            "name": "Dwunastka",
            "category": {"type": "day", "mode": "bus"},
            "color": "#FF0000",
        }

    def test_line_name_falls_back_to_description(self):
        line = extract_line({"id": "L1", "Description": "Centrum"})
        assert line["name"] == "Centrum"

    def test_lines_from_services_first_wins(self):
        document = {
            "Lines": {"Line": {"id": "1", "LineName": "top-level"}},
            "Services": {"Service": [
                {"Lines": {"Line": [{"id": "1", "LineName": "service"}, {"id": "2", "LineName": "2"}]}},
            ]},
        }
        lines = extract_lines(document)
        assert [line["id"] for line in lines] == ["1", "2"]
        assert lines[0]["number"] == "top-level"


class TestAreaExtraction:
    """Test stop area and administrative area flattening."""

    def test_stop_area(self):
        area = extract_stop_area({
            "StopAreaCode": "SA1",
            "Name": "Dworzec",
            "StopAreaType": "GBPS",
            "AdministrativeAreaRef": "AA1",
            "Location": {"Longitude": "19.0", "Latitude": "50.0"},
        })
        assert area["id"] == "SA1"
        assert area["name"] == "Dworzec"
        assert area["location"]["coordinates"] == [19.0, 50.0]

    def test_stop_area_without_location(self):
        area = extract_stop_area({"id": "SA2"})
        assert area["location"] is None

    def test_administrative_area(self):
        area = extract_administrative_area({"AdministrativeAreaCode": "AA1", "Name": "Katowice", "ShortName": "KAT"})
        assert area == {"id": "AA1", "name": "Katowice", "shortName": "KAT", "atcoAreaCode": None}


class TestStaticNetworkIngestion:
    """Test extraction and insertion of the static network."""

    def test_ingest_static_network(self, sample_document, store):
        extracted = ingest_static_network(store, sample_document, batch_size=2)

        assert len(extracted["stops"]) == 4
        assert {line["id"] for line in extracted["lines"]} == {"12", "7"}
        assert len(store.find("stops")) == 4
        assert store.batches["stops"] == [2, 2]
        assert store.find("stop_areas") == []
