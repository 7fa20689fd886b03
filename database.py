"""
Database Helper Functions

Storage helpers used by the API endpoints, the delivery lifecycle and the
reports. Records live either in process memory (the default, and what the
tests use) or in MongoDB when DATABASE_URL and DATABASE_NAME are configured.
Both backends expose the same collection interface, so nothing above this
module knows which one is active.
"""

import copy
import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Union, Optional, Dict, Any, List

from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument

from errors import NotFoundError

logger = logging.getLogger(__name__)

db = None

# Fields a partial update may never overwrite
_PROTECTED_FIELDS = ("id", "created_at")

DEFAULT_DATABASE_NAME = "hamper_delivery"


class InMemoryCollection:
    """Ordered list of documents guarded by a per-collection lock."""

    def __init__(self, name: str):
        self.name = name
        self._docs: List[dict] = []
        self._lock = threading.RLock()

    def insert(self, doc: dict) -> dict:
        with self._lock:
            self._docs.append(copy.deepcopy(doc))
        return doc

    def find(self, filter_dict: Optional[dict] = None) -> List[dict]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._docs if _matches(d, filter_dict)]

    def find_by_id(self, _id: str) -> Optional[dict]:
        with self._lock:
            for doc in self._docs:
                if doc["id"] == _id:
                    return copy.deepcopy(doc)
        return None

    def update(self, _id: str, fields: Dict[str, Any]) -> Optional[dict]:
        with self._lock:
            for doc in self._docs:
                if doc["id"] == _id:
                    fields = dict(fields)
                    fields["updated_at"] = _advance(doc.get("updated_at"), fields["updated_at"])
                    doc.update(copy.deepcopy(fields))
                    return copy.deepcopy(doc)
        return None

    def delete(self, _id: str) -> bool:
        with self._lock:
            for index, doc in enumerate(self._docs):
                if doc["id"] == _id:
                    del self._docs[index]
                    return True
        return False

    def count(self) -> int:
        with self._lock:
            return len(self._docs)


class InMemoryBackend:
    name = "memory"

    def __init__(self):
        self._collections: Dict[str, InMemoryCollection] = {}
        self._lock = threading.Lock()

    def collection(self, name: str) -> InMemoryCollection:
        with self._lock:
            if name not in self._collections:
                self._collections[name] = InMemoryCollection(name)
            return self._collections[name]

    def list_collection_names(self) -> List[str]:
        return sorted(self._collections)


class MongoCollection:
    """Same interface as InMemoryCollection over a pymongo collection.

    Records are addressed by their string ``id``; Mongo's own ``_id`` never
    leaves this class.
    """

    _projection = {"_id": 0}

    def __init__(self, collection):
        self._collection = collection
        self.name = collection.name

    def insert(self, doc: dict) -> dict:
        # insert_one adds _id to the dict it is given
        self._collection.insert_one(dict(doc))
        return doc

    def find(self, filter_dict: Optional[dict] = None) -> List[dict]:
        cursor = self._collection.find(filter_dict or {}, self._projection).sort("_id", 1)
        return [_as_utc(doc) for doc in cursor]

    def find_by_id(self, _id: str) -> Optional[dict]:
        return _as_utc(self._collection.find_one({"id": _id}, self._projection))

    def update(self, _id: str, fields: Dict[str, Any]) -> Optional[dict]:
        current = self.find_by_id(_id)
        if current is None:
            return None
        fields = dict(fields)
        fields["updated_at"] = _advance(current.get("updated_at"), fields["updated_at"])
        return _as_utc(self._collection.find_one_and_update(
            {"id": _id},
            {"$set": fields},
            projection=self._projection,
            return_document=ReturnDocument.AFTER,
        ))

    def delete(self, _id: str) -> bool:
        return self._collection.delete_one({"id": _id}).deleted_count > 0

    def count(self) -> int:
        return self._collection.count_documents({})


class MongoBackend:
    name = "mongodb"

    def __init__(self, database_url: Optional[str], database_name: str, client=None):
        self._client = client if client is not None else MongoClient(database_url, tz_aware=True)
        self._db = self._client[database_name]

    def collection(self, name: str) -> MongoCollection:
        return MongoCollection(self._db[name])

    def list_collection_names(self) -> List[str]:
        return self._db.list_collection_names()


def init_db(settings, client=None) -> Union[InMemoryBackend, MongoBackend]:
    """Install the storage backend selected by ``settings``.

    Passing a ready-made Mongo ``client`` selects the Mongo backend regardless
    of DATABASE_URL.
    """
    global db
    if client is not None or settings.use_mongo:
        db = MongoBackend(settings.DATABASE_URL, settings.DATABASE_NAME or DEFAULT_DATABASE_NAME, client=client)
    else:
        db = InMemoryBackend()
    logger.info("Storage backend: %s", db.name)
    return db


def _ensure_db():
    if db is None:
        raise RuntimeError("Database not initialised. Call init_db() first.")


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


def utc_now() -> datetime:
    """Current UTC time truncated to the millisecond, the precision MongoDB stores."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _as_utc(doc: Optional[dict]) -> Optional[dict]:
    # Some Mongo clients hand datetimes back naive
    if doc is None:
        return None
    for key, value in doc.items():
        if isinstance(value, datetime) and value.tzinfo is None:
            doc[key] = value.replace(tzinfo=timezone.utc)
    return doc


def _advance(previous: Optional[datetime], now: datetime, step: timedelta = timedelta(milliseconds=1)) -> datetime:
    """Return ``now``, nudged forward if the clock has not moved past ``previous``."""
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    return now if now > previous else previous + step


def _matches(doc: dict, filter_dict: Optional[dict]) -> bool:
    if not filter_dict:
        return True
    return all(doc.get(key) == value for key, value in filter_dict.items())


def _entity_name(collection_name: str) -> str:
    return collection_name.capitalize()


# CRUD helpers

def create_document(collection_name: str, data: Union[BaseModel, dict]) -> dict:
    _ensure_db()
    payload = _to_dict(data)
    now = utc_now()
    payload["id"] = str(uuid.uuid4())
    payload["created_at"] = now
    payload["updated_at"] = now
    return db.collection(collection_name).insert(payload)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    _ensure_db()
    docs = db.collection(collection_name).find(filter_dict)
    if limit:
        docs = docs[: int(limit)]
    return docs


def get_document_by_id(collection_name: str, _id: str) -> dict:
    _ensure_db()
    doc = db.collection(collection_name).find_by_id(_id)
    if doc is None:
        raise NotFoundError(_entity_name(collection_name), _id)
    return doc


def update_document(collection_name: str, _id: str, update_data: Union[BaseModel, Dict[str, Any]]) -> dict:
    """Merge ``update_data`` into the stored record and stamp updated_at.

    Only the keys present in ``update_data`` are written; everything else on
    the record is preserved. An empty update still advances updated_at.
    """
    _ensure_db()
    fields = {k: v for k, v in _to_dict(update_data).items() if k not in _PROTECTED_FIELDS}
    fields["updated_at"] = utc_now()
    doc = db.collection(collection_name).update(_id, fields)
    if doc is None:
        raise NotFoundError(_entity_name(collection_name), _id)
    return doc


def delete_document(collection_name: str, _id: str) -> None:
    _ensure_db()
    if not db.collection(collection_name).delete(_id):
        raise NotFoundError(_entity_name(collection_name), _id)


def count_documents(collection_name: str) -> int:
    _ensure_db()
    return db.collection(collection_name).count()
