from txc_graph.config.config_main import db_config

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager


class ConnectionBroker:

    _engine = None
    _SessionLocal = None

    @staticmethod
    def connection_string() -> str:
        return (
            f"postgresql+psycopg2://{db_config.user}:{db_config.password}"
            f"@{db_config.host}:{db_config.port}/{db_config.database}"
        )

    @staticmethod
    def get_engine():
        """Get or create SQLAlchemy engine."""
        if ConnectionBroker._engine is None:
            ConnectionBroker._engine = create_engine(
                ConnectionBroker.connection_string(),
                pool_pre_ping=True,  # Verify connections before using
                echo=False  # Set to True for SQL debug logging
            )
        return ConnectionBroker._engine

    @staticmethod
    def get_session_factory():
        """Get or create SQLAlchemy session factory."""
        if ConnectionBroker._SessionLocal is None:
            engine = ConnectionBroker.get_engine()
            ConnectionBroker._SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=engine
            )
        return ConnectionBroker._SessionLocal

    @staticmethod
    @contextmanager
    def get_session():
        """
        Get a SQLAlchemy session with automatic cleanup.

        Usage:
            with ConnectionBroker.get_session() as session:
                session.query(Model).all()
        """
        SessionLocal = ConnectionBroker.get_session_factory()
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def dispose():
        """Release all pooled connections and forget the engine."""
        if ConnectionBroker._engine is not None:
            ConnectionBroker._engine.dispose()
        ConnectionBroker._engine = None
        ConnectionBroker._SessionLocal = None
