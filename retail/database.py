"""Database configuration, session management and unit of work."""
import logging
from contextlib import contextmanager

from sqlalchemy import BigInteger, Integer, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

from retail.exceptions import RetailError, StorageError

logger = logging.getLogger(__name__)

# Create SQLAlchemy base
Base = declarative_base()

# BIGINT on PostgreSQL, INTEGER on SQLite so primary keys autoincrement there too
Id = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def _configure_sqlite(sqlite_engine):
    """Serialize SQLite writers the way row locks do on PostgreSQL.

    pysqlite defers BEGIN until the first DML statement, so two sessions can
    both read a product before either writes. Taking the write lock at BEGIN
    makes the read-check-write sequence of a workflow exclusive.
    """

    @event.listens_for(sqlite_engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(sqlite_engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN IMMEDIATE')


def build_engine(database_uri, echo=False, pool_size=10, max_overflow=20):
    """Create an engine with the pool settings used by the application."""
    if database_uri.startswith('sqlite'):
        sqlite_engine = create_engine(
            database_uri,
            echo=echo,
            connect_args={'check_same_thread': False, 'timeout': 30},
        )
        _configure_sqlite(sqlite_engine)
        return sqlite_engine

    return create_engine(
        database_uri,
        echo=echo,
        pool_pre_ping=True,  # Enable connection health checks
        pool_size=pool_size,
        max_overflow=max_overflow
    )


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = build_engine(
        app.config['SQLALCHEMY_DATABASE_URI'],
        echo=app.config.get('SQLALCHEMY_ECHO', False),
        pool_size=app.config.get('DB_POOL_SIZE', 10),
        max_overflow=app.config.get('DB_MAX_OVERFLOW', 20),
    )

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table registered on the declarative base."""
    import retail.models  # noqa: F401  (registers mappers)
    Base.metadata.create_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


def get_engine():
    """Get the engine bound by init_db."""
    return engine


@contextmanager
def transaction(session):
    """Run a block as one atomic unit of work on ``session``.

    Commits when the block finishes, rolls back on any exception. Business
    errors propagate unchanged; driver and constraint errors are logged in
    full and re-raised as an opaque StorageError.
    """
    try:
        yield session
        session.commit()
    except RetailError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception('Database error, unit of work rolled back')
        raise StorageError() from e
    except Exception:
        session.rollback()
        raise
