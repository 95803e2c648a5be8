from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging
from boatyard.config import config

# Configure logging
logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

DATABASE_URL = config.SQLALCHEMY_DATABASE_URI


# Create database if it doesn't exist
def create_database_if_not_exists(database_url: str = DATABASE_URL):
    url = make_url(database_url)
    if not url.drivername.startswith("postgresql"):
        return
    server_url = url.set(database="postgres")

    try:
        engine = create_engine(server_url)
        with engine.connect() as conn:
            # Check if database exists
            result = conn.execute(text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": url.database})
            if not result.fetchone():
                conn.execute(text("COMMIT"))
                conn.execute(text(f'CREATE DATABASE "{url.database}"'))
                logger.info(f"Database '{url.database}' created successfully!")
            else:
                logger.info(f"Database '{url.database}' already exists.")
        engine.dispose()
    except Exception as e:
        logger.error(f"Error creating database: {e}")


def _engine_for(database_url: str):
    if database_url.startswith("sqlite"):
        # one shared connection so an in-memory database survives across sessions and threads
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url)


engine = _engine_for(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db():
    """Create missing tables; production schemas are managed by Alembic"""
    create_database_if_not_exists()
    # models must be imported so their tables are registered on Base.metadata
    from boatyard.models import site, location, boat, boat_movement  # noqa: F401
    Base.metadata.create_all(bind=engine)


# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
