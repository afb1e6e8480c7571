from dotenv import load_dotenv
import os

load_dotenv()

class DBConfig():
    host: str = os.getenv("POSTGRES_HOST", "localhost")
    port: int = int(os.getenv("POSTGRES_PORT", 5432))
    user: str = os.getenv("POSTGRES_USER", "sa")
    password: str = os.getenv("POSTGRES_PASSWORD", "password")
    database: str = os.getenv("POSTGRES_DB", "mzk")

db_config = DBConfig()

class ImportConfig():
    """Configuration for the TransXChange import process."""
    input_path: str = os.getenv("TXC_INPUT_PATH", "./TransXChange.xml")
    insert_batch_size: int = int(os.getenv("INSERT_BATCH_SIZE", "1000"))
    request_timeout: int = int(os.getenv("TXC_REQUEST_TIMEOUT", "60"))
    create_indexes: bool = os.getenv("TXC_CREATE_INDEXES", "true").lower() == "true"

    # Collections rebuilt from scratch on every run. Calendars are upserted instead.
    rebuilt_collections = [
        "stops",
        "lines",
        "stop_areas",
        "administrative_areas",
        "journey_patterns",
        "routes",
        "vehicle_journeys",
    ]

    default_direction: str = "outbound"

import_config = ImportConfig()
