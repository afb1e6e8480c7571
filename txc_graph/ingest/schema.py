"""
Database Schema Module

One table per output collection. Each row stores the denormalized document
as JSONB under its string identifier, with an identity column recording
insertion order. Stops additionally carry a PostGIS point so the geospatial
index can serve proximity queries.

Derived indexes (all created with checkfirst, safe to repeat):
    - stops.location (GiST)
    - stops.document -> 'lines' (GIN, line membership)
    - routes.document ->> 'lineRef'
    - vehicle_journeys (lineRef, departureTime)
    - vehicle_journeys.document -> 'stops' (GIN, stop-visit membership)
"""

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, Identity, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from geoalchemy2 import Geometry, WKTElement

# Base class for all models
Base = declarative_base()


class DocumentMixin:
    """Columns shared by every collection table."""

    id = Column(String(200), primary_key=True)
    # Source order; reads come back in the order documents were inserted
    seq = Column(BigInteger, Identity(), nullable=False)
    document = Column(JSONB, nullable=False)
    imported_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @classmethod
    def row_values(cls, document):
        return {"id": document["id"], "document": document}

    def __repr__(self):
        return f"<{type(self).__name__}(id='{self.id}')>"


# ============================================================================
# STATIC NETWORK
# ============================================================================

class Stop(DocumentMixin, Base):
    """Stop points annotated with the lines and directions serving them."""

    __tablename__ = 'stops'

    location = Column(Geometry('POINT', srid=4326, spatial_index=False), nullable=True)

    @classmethod
    def row_values(cls, document):
        values = super().row_values(document)
        coordinates = (document.get("location") or {}).get("coordinates") or []
        if len(coordinates) == 2:
            lon, lat = coordinates
            values["location"] = WKTElement(f'POINT({lon} {lat})', srid=4326)
        else:
            values["location"] = None
        return values


class Line(DocumentMixin, Base):
    __tablename__ = 'lines'


class StopArea(DocumentMixin, Base):
    __tablename__ = 'stop_areas'


class AdministrativeArea(DocumentMixin, Base):
    __tablename__ = 'administrative_areas'


class JourneyPattern(DocumentMixin, Base):
    """Ordered stop sequences and timing edges per journey pattern section."""

    __tablename__ = 'journey_patterns'


class Route(DocumentMixin, Base):
    """Routes expanded to their full stop sequence."""

    __tablename__ = 'routes'


# ============================================================================
# TIMETABLE
# ============================================================================

class VehicleJourney(DocumentMixin, Base):
    """Scheduled trips with their ordered stop visits."""

    __tablename__ = 'vehicle_journeys'


class ServiceCalendar(DocumentMixin, Base):
    __tablename__ = 'service_calendars'


COLLECTION_MODELS = {
    "stops": Stop,
    "lines": Line,
    "stop_areas": StopArea,
    "administrative_areas": AdministrativeArea,
    "journey_patterns": JourneyPattern,
    "routes": Route,
    "vehicle_journeys": VehicleJourney,
    "service_calendars": ServiceCalendar,
}


# ============================================================================
# DERIVED INDEXES
# ============================================================================

DERIVED_INDEXES = [
    Index('ix_stops_location', Stop.location, postgresql_using='gist'),
    Index('ix_stops_lines', Stop.document['lines'], postgresql_using='gin'),
    Index('ix_routes_line_ref', Route.document['lineRef'].astext),
    Index(
        'ix_vehicle_journeys_line_departure',
        VehicleJourney.document['lineRef'].astext,
        VehicleJourney.document['departureTime'].astext,
    ),
    Index('ix_vehicle_journeys_stops', VehicleJourney.document['stops'], postgresql_using='gin'),
]


# ============================================================================
# DATABASE INITIALIZATION
# ============================================================================

def initialize_database(engine, drop_existing=False):
    """
    Initialize database schema atomically.

    Args:
        engine: SQLAlchemy engine instance
        drop_existing: If True, drops all existing tables before creation
    """
    if drop_existing:
        print("⚠️  Dropping all existing tables...")
        Base.metadata.drop_all(bind=engine)
        print("✓ Tables dropped")

    # Stop.location needs PostGIS before the table can be created
    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis;"))

    print("Creating database schema...")
    Base.metadata.create_all(bind=engine)
    print("✓ Database schema initialized")

    with engine.connect() as conn:
        result = conn.execute(text("SELECT PostGIS_version();"))
        version = result.scalar()
        print(f"✓ PostGIS extension verified: {version}")


def create_derived_indexes(engine):
    """Create the query indexes if they are missing."""
    for index in DERIVED_INDEXES:
        index.create(bind=engine, checkfirst=True)
    return [index.name for index in DERIVED_INDEXES]
