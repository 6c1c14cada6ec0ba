from contextlib import contextmanager
import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, scoped_session

from shipment_allocation.config import config
from shipment_allocation.exceptions import DatabaseError

logger = logging.getLogger(__name__)

class Database:
    """Engine and session factory of the allocation database.

    SQLite URLs get no pool settings; shipments lock stock rows with
    ``SELECT ... FOR UPDATE``, which only a server database honours.
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._engine = None
            cls._instance._session = None
        return cls._instance

    def initialize(self, connection_string=None):
        """Bind the engine to a database URL.

        Args:
            connection_string: Database URL; DATABASE.url from the configuration when omitted
        """
        url = connection_string or config.get_db_url()

        options = {'echo': config.get_boolean('DATABASE', 'echo', False)}
        if not url.startswith('sqlite'):
            options.update(
                pool_size=config.get_int('DATABASE', 'pool_size', 10),
                max_overflow=config.get_int('DATABASE', 'max_overflow', 20),
                pool_pre_ping=True
            )

        if self._engine is not None:
            self._session.remove()
            self._engine.dispose()

        try:
            self._engine = create_engine(url, **options)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Cannot create engine for {url}", details={'reason': str(e)}) from e
        self._session = scoped_session(sessionmaker(bind=self._engine))
        logger.debug(f"Database bound to {self._engine.url}")

    @property
    def engine(self):
        if self._engine is None:
            self.initialize()
        return self._engine

    @property
    def session(self):
        if self._session is None:
            self.initialize()
        return self._session

    def create_all_tables(self, drop_first=False):
        """Create the allocation schema, optionally dropping it first."""
        from shipment_allocation.models import Base

        if drop_first:
            Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session_scope(self):
        """Transactional scope; database failures surface as DatabaseError."""
        session = self.session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError("Database operation failed", details={'reason': str(e)}) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

# Global database instance
db = Database()

def session_scope():
    """Transactional scope on the global database."""
    return db.session_scope()
