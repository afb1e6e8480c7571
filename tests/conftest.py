"""
Shared fixtures: a small TransXChange document and an in-memory store.
"""

import pytest

from txc_graph.data.memory_store import InMemoryDocumentStore
from txc_graph.data.txc.txc_source import parse_document


SAMPLE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<TransXChange xmlns="http://www.transxchange.org.uk/" xml:lang="pl">
  <StopPoints>
    <StopPoint id="A">
      <Descriptor><CommonName>Alpha</CommonName></Descriptor>
      <Place><Location><Longitude>19.10</Longitude><Latitude>50.10</Latitude></Location></Place>
    </StopPoint>
    <StopPoint id="B">
      <Descriptor><CommonName>Beta</CommonName></Descriptor>
      <Place><Location><Longitude>19.20</Longitude><Latitude>50.20</Latitude></Location></Place>
    </StopPoint>
    <StopPoint id="C">
      <Descriptor><CommonName>Gamma</CommonName></Descriptor>
      <Place><Location><Longitude>19.30</Longitude><Latitude>50.30</Latitude></Location></Place>
    </StopPoint>
    <StopPoint id="D">
      <Descriptor><CommonName>Delta</CommonName></Descriptor>
      <Place><Location><Longitude>19.40</Longitude><Latitude>50.40</Latitude></Location></Place>
    </StopPoint>
  </StopPoints>
  <Lines>
    <Line id="12"><LineName>12</LineName></Line>
    <Line id="7"><LineName>7</LineName></Line>
  </Lines>
  <JourneyPatternSections>
    <JourneyPatternSection id="JPS1">
      <JourneyPatternTimingLink id="L1">
        <From><StopPointRef>A</StopPointRef></From>
        <To><StopPointRef>B</StopPointRef></To>
        <RunTime>PT2M</RunTime>
      </JourneyPatternTimingLink>
      <JourneyPatternTimingLink id="L2">
        <From><StopPointRef>B</StopPointRef></From>
        <To><StopPointRef>C</StopPointRef></To>
        <RunTime>PT3M</RunTime>
      </JourneyPatternTimingLink>
    </JourneyPatternSection>
    <JourneyPatternSection id="JPS2">
      <JourneyPatternTimingLink id="L3">
        <From><StopPointRef>C</StopPointRef></From>
        <To><StopPointRef>D</StopPointRef></To>
        <Direction>inbound</Direction>
      </JourneyPatternTimingLink>
    </JourneyPatternSection>
  </JourneyPatternSections>
  <Routes>
    <Route id="R1">
      <Description>Alpha - Gamma</Description>
      <Extensions>
        <LineRef>12</LineRef>
        <JourneyPatternSectionRefs>JPS1</JourneyPatternSectionRefs>
      </Extensions>
    </Route>
    <Route id="R2">
      <Extensions><LineRef>7</LineRef></Extensions>
    </Route>
  </Routes>
  <Services>
    <Service>
      <ServiceCode>S1</ServiceCode>
      <StandardService>
        <JourneyPattern id="JP2">
          <RouteRef>R2</RouteRef>
          <JourneyPatternSectionRefs>JPS2</JourneyPatternSectionRefs>
        </JourneyPattern>
      </StandardService>
    </Service>
  </Services>
  <VehicleJourneys>
    <VehicleJourney>
      <VehicleJourneyCode>VJ1</VehicleJourneyCode>
      <LineRef>12</LineRef>
      <JourneyPatternRef>JP1</JourneyPatternRef>
      <DepartureTime>08:00:00</DepartureTime>
      <VehicleJourneyTimingLink>
        <From><StopPointRef>A</StopPointRef></From>
        <To><StopPointRef>B</StopPointRef></To>
      </VehicleJourneyTimingLink>
      <VehicleJourneyTimingLink>
        <From><StopPointRef>B</StopPointRef></From>
        <To><StopPointRef>C</StopPointRef><DynamicDestinationDisplay>Gamma</DynamicDestinationDisplay></To>
      </VehicleJourneyTimingLink>
    </VehicleJourney>
  </VehicleJourneys>
  <ServiceCalendars>
    <ServiceCalendar>
      <OperatingPeriod><StartDate>2024-01-01</StartDate><EndDate>2024-06-30</EndDate></OperatingPeriod>
      <DayTypes><DayType>weekday</DayType></DayTypes>
    </ServiceCalendar>
  </ServiceCalendars>
</TransXChange>
"""


@pytest.fixture
def sample_xml():
    return SAMPLE_XML


@pytest.fixture
def sample_document():
    return parse_document(SAMPLE_XML.encode("utf-8"))


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "TransXChange.xml"
    path.write_text(SAMPLE_XML, encoding="utf-8")
    return path


@pytest.fixture
def store():
    return InMemoryDocumentStore()
