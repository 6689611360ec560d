"""
store.py
---------
The local store: durable, schema-versioned storage for the three collections
(reports, records, contacts) on top of SQLAlchemy.

Usage:
    store = LocalStore("sqlite:///crimesense.db")
    new_id = store.add("reports", {...})
    store.get_by_id("reports", str(new_id))

Every method opens the store on first use, so callers never have to call
open() themselves. Opening is done once per store, even when several threads
ask for it at the same moment.

WARNING: when SCHEMA_VERSION goes up, every collection is dropped and
recreated empty. There is no data-preserving migration.
"""

import logging
import threading

from sqlalchemy import select, delete, insert
from sqlalchemy.exc import SQLAlchemyError

from crimesense import config
from crimesense.errors import StorageUnavailable, WriteError, ReadError
from .models import COLLECTIONS, StoreMeta, row_to_dict
from .session import Base, make_engine, make_session_factory

logger = logging.getLogger(__name__)

SCHEMA_VERSION_KEY = "schema_version"

# SQLite INTEGER range; anything outside it cannot be a stored id
MIN_ID = -(2 ** 63)
MAX_ID = 2 ** 63 - 1


def coerce_id(value):
    """
    Turn an identifier that may arrive as text ("7", " 7 ", "7.0") into an int.
    Returns None when the value cannot name a row.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            # "7.0" and friends
            try:
                as_float = float(text)
            except ValueError:
                return None
            if not as_float.is_integer():
                return None
            number = int(as_float)

    if not MIN_ID <= number <= MAX_ID:
        return None
    return number


class LocalStore:
    """SQLAlchemy-backed object store with one table per collection."""

    def __init__(self, database_url=None, schema_version=None):
        self.database_url = database_url or config.DATABASE_URL
        self.schema_version = config.SCHEMA_VERSION if schema_version is None else schema_version
        self._engine = None
        self._session_factory = None
        self._open_lock = threading.Lock()

    @property
    def is_open(self):
        return self._session_factory is not None

    def open(self):
        """
        Open the store and make sure the schema matches SCHEMA_VERSION.
        Safe to call any number of times; only the first call does the work.
        """
        if self._session_factory is not None:
            return self

        with self._open_lock:
            # Another thread may have finished opening while we waited
            if self._session_factory is not None:
                return self

            logger.info("Opening local store at %s", self._safe_url())
            engine = None
            try:
                engine = make_engine(self.database_url)
                with engine.begin() as conn:
                    StoreMeta.__table__.create(bind=conn, checkfirst=True)
                    stored = conn.execute(
                        select(StoreMeta.value).where(StoreMeta.key == SCHEMA_VERSION_KEY)
                    ).scalar_one_or_none()
                    stored_version = int(stored) if stored is not None else 0

                    if stored_version > self.schema_version:
                        raise StorageUnavailable(
                            f"Stored schema version {stored_version} is newer than "
                            f"{self.schema_version}; refusing to open."
                        )
                    if stored_version < self.schema_version:
                        self._migrate(conn, stored_version)

            except StorageUnavailable:
                engine.dispose()
                raise
            except (SQLAlchemyError, OSError, ValueError) as e:
                logger.error("Could not open the local store: %s", e)
                if engine is not None:
                    engine.dispose()
                raise StorageUnavailable(f"Could not open the local store: {e}") from e

            self._engine = engine
            self._session_factory = make_session_factory(engine)
            logger.info("Local store opened (schema version %s)", self.schema_version)

        return self

    def _migrate(self, conn, stored_version):
        """Drop and recreate every collection, then record the new version."""
        tables = [model.__table__ for model in COLLECTIONS.values()]

        if stored_version:
            logger.warning(
                "Schema upgrade %s -> %s: dropping all collections, stored data is lost",
                stored_version, self.schema_version,
            )
        else:
            logger.info("No schema found, creating collections")

        Base.metadata.drop_all(bind=conn, tables=tables, checkfirst=True)
        Base.metadata.create_all(bind=conn, tables=tables)

        conn.execute(delete(StoreMeta).where(StoreMeta.key == SCHEMA_VERSION_KEY))
        conn.execute(insert(StoreMeta).values(key=SCHEMA_VERSION_KEY, value=str(self.schema_version)))

    def close(self):
        """Release the engine. The store reopens on the next call."""
        with self._open_lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _safe_url(self):
        # Hide credentials when logging
        return self.database_url.split("@")[1] if "@" in self.database_url else self.database_url

    @staticmethod
    def _model(collection):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection!r}") from None

    # ---------------- CRUD ----------------

    def add(self, collection, entity):
        """Persist a new entity and return the id the store assigned to it."""
        model = self._model(collection)
        self.open()

        columns = {c.name for c in model.__table__.columns} - {"id"}
        values = {key: value for key, value in entity.items() if key in columns}

        try:
            with self._session_factory() as session, session.begin():
                row = model(**values)
                session.add(row)
                session.flush()
                new_id = row.id
        except SQLAlchemyError as e:
            logger.error("Failed to add to %s: %s", collection, e)
            raise WriteError(f"Failed to save to {collection}: {e}") from e

        logger.info("Added %s #%s", collection, new_id)
        return new_id

    def get_all(self, collection):
        """Every entity in the collection, as dicts in id order."""
        model = self._model(collection)
        self.open()

        try:
            with self._session_factory() as session:
                rows = session.scalars(select(model).order_by(model.id)).all()
                result = [row_to_dict(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error("Failed to read %s: %s", collection, e)
            raise ReadError(f"Failed to get {collection}: {e}") from e

        logger.info("Retrieved %d %s", len(result), collection)
        return result

    def get_by_id(self, collection, entity_id):
        """
        Return the entity as a dict, or None if there is no such id.
        entity_id may be text ("12"); it is compared as a number.
        """
        model = self._model(collection)
        self.open()

        key = coerce_id(entity_id)
        if key is None:
            return None

        try:
            with self._session_factory() as session:
                row = session.get(model, key)
                return row_to_dict(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error("Failed to read %s #%s: %s", collection, key, e)
            raise ReadError(f"Failed to get {collection} #{key}: {e}") from e

    def delete(self, collection, entity_id):
        """
        Remove the entity if it exists. Deleting an absent id is not an error.
        Returns True when a row was actually removed.
        """
        model = self._model(collection)
        self.open()

        key = coerce_id(entity_id)
        if key is None:
            return False

        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(delete(model).where(model.id == key))
                removed = result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error("Failed to delete %s #%s: %s", collection, key, e)
            raise WriteError(f"Failed to delete {collection} #{key}: {e}") from e

        logger.info("Deleted %s #%s (present: %s)", collection, key, removed)
        return removed

    def clear(self, collection):
        """Remove every entity in the collection. Ids are still not reused afterwards."""
        model = self._model(collection)
        self.open()

        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(delete(model))
                count = result.rowcount
        except SQLAlchemyError as e:
            logger.error("Failed to clear %s: %s", collection, e)
            raise WriteError(f"Failed to clear {collection}: {e}") from e

        logger.info("Cleared %s (%d removed)", collection, count)
        return count

    # ---------------- markers ----------------

    def set_marker(self, key, value):
        """Store a small string value under a well-known key (last write wins)."""
        self.open()
        try:
            with self._session_factory() as session, session.begin():
                session.merge(StoreMeta(key=key, value=str(value)))
        except SQLAlchemyError as e:
            raise WriteError(f"Failed to set marker {key}: {e}") from e

    def get_marker(self, key):
        """Value stored under key, or None if it was never set."""
        self.open()
        try:
            with self._session_factory() as session:
                row = session.get(StoreMeta, key)
                return row.value if row is not None else None
        except SQLAlchemyError as e:
            raise ReadError(f"Failed to read marker {key}: {e}") from e
