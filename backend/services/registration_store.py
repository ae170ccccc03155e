"""
Registration Store

Persists each student's registered course ids as a JSON array under the key
"allRegisteredCourses_<student id>". Every save is a full replace; there is
no locking or versioning, so the last write wins.

Backends:
- InMemoryRegistrationStore: single process, used in tests and local runs
- FirestoreRegistrationStore: one document per key in "registrations"
- RedisRegistrationStore: one string per key in Redis
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

from core.config import REGISTRATION_STORE, get_firestore_client, initialize_firebase
from services.cache import CACHE_PREFIX, RedisCache, get_cache

KEY_PREFIX = "allRegisteredCourses_"


class RegistrationStoreError(Exception):
    """Raised when the store cannot be read or written."""
    pass


class LoadStatus(str, Enum):
    """Outcome of reading a student's entry"""
    LOADED = "loaded"
    MISSING = "missing"
    CORRUPTED = "corrupted"


@dataclass
class StoreLoadResult:
    """Registered ids plus how they were obtained"""
    status: LoadStatus
    course_ids: List[str] = field(default_factory=list)
    raw: Optional[str] = None  # kept for corrupted entries
    error: Optional[str] = None

    @property
    def is_corrupted(self) -> bool:
        return self.status == LoadStatus.CORRUPTED


def storage_key(student_id: str) -> str:
    """Key holding a student's registrations"""
    return f"{KEY_PREFIX}{student_id}"


def _unique(course_ids: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for course_id in course_ids:
        if course_id not in seen:
            seen.add(course_id)
            result.append(course_id)
    return result


def parse_course_ids(raw: Optional[str]) -> StoreLoadResult:
    """
    Parse a stored value.

    A value that is not a JSON array of strings is reported as corrupted
    rather than silently treated as empty.
    """
    if raw is None:
        return StoreLoadResult(status=LoadStatus.MISSING)

    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        return StoreLoadResult(status=LoadStatus.CORRUPTED, raw=raw, error=f"Invalid JSON: {e}")

    if not isinstance(parsed, list):
        return StoreLoadResult(
            status=LoadStatus.CORRUPTED,
            raw=raw,
            error=f"Expected a JSON array, got {type(parsed).__name__}"
        )

    if not all(isinstance(item, str) for item in parsed):
        return StoreLoadResult(
            status=LoadStatus.CORRUPTED,
            raw=raw,
            error="Expected an array of course id strings"
        )

    return StoreLoadResult(status=LoadStatus.LOADED, course_ids=_unique(parsed), raw=raw)


def serialize_course_ids(course_ids: Iterable[str]) -> str:
    return json.dumps(_unique(course_ids))


class RegistrationStore(ABC):
    """Key-value persistence for registered course sets"""

    def load(self, student_id: str) -> StoreLoadResult:
        """Read a student's registered course ids."""
        return parse_course_ids(self._read(storage_key(student_id)))

    def save(self, student_id: str, course_ids: Iterable[str]) -> None:
        """
        Replace a student's registered course ids.

        Raises:
            RegistrationStoreError: If the write fails
        """
        key = storage_key(student_id)
        try:
            self._write(key, serialize_course_ids(course_ids), student_id)
        except RegistrationStoreError:
            raise
        except Exception as e:
            raise RegistrationStoreError(f"Failed to save registrations for {student_id}: {e}") from e

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, key: str, value: str, student_id: str) -> None:
        ...


class InMemoryRegistrationStore(RegistrationStore):
    """Dictionary-backed store"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def _read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, key: str, value: str, student_id: str) -> None:
        self._data[key] = value

    def raw(self, student_id: str) -> Optional[str]:
        return self._data.get(storage_key(student_id))


class FirestoreRegistrationStore(RegistrationStore):
    """Firestore-backed store, one document per student"""

    REGISTRATIONS_COLLECTION = "registrations"
    VALUE_FIELD = "courseIds"

    def __init__(self):
        self.db = get_firestore_client()

    def _read(self, key: str) -> Optional[str]:
        try:
            doc = self.db.collection(self.REGISTRATIONS_COLLECTION).document(key).get()
        except Exception as e:
            raise RegistrationStoreError(f"Failed to read {key}: {e}") from e

        if not doc.exists:
            return None

        value = doc.to_dict().get(self.VALUE_FIELD)
        if value is None:
            return None
        # Entries written by other clients may hold a native array
        if not isinstance(value, str):
            return json.dumps(value)
        return value

    def _write(self, key: str, value: str, student_id: str) -> None:
        self.db.collection(self.REGISTRATIONS_COLLECTION).document(key).set({
            "studentId": student_id,
            self.VALUE_FIELD: value,
            "updatedAt": datetime.utcnow().isoformat()
        })


class RedisRegistrationStore(RegistrationStore):
    """Redis-backed store; entries never expire"""

    def __init__(self, cache: Optional[RedisCache] = None):
        self._cache = cache or get_cache()

    def _key(self, key: str) -> str:
        return f"{CACHE_PREFIX}{key}"

    def _client(self):
        client = self._cache.client
        if client is None:
            raise RegistrationStoreError("Redis is not available")
        return client

    def _read(self, key: str) -> Optional[str]:
        try:
            return self._client().get(self._key(key))
        except RegistrationStoreError:
            raise
        except Exception as e:
            raise RegistrationStoreError(f"Failed to read {key}: {e}") from e

    def _write(self, key: str, value: str, student_id: str) -> None:
        self._client().set(self._key(key), value)


_store: Optional[RegistrationStore] = None


def get_registration_store() -> RegistrationStore:
    """Get the configured store (REGISTRATION_STORE=firestore|redis|memory)."""
    global _store
    if _store is None:
        if REGISTRATION_STORE == "memory":
            _store = InMemoryRegistrationStore()
        elif REGISTRATION_STORE == "redis":
            _store = RedisRegistrationStore()
        else:
            initialize_firebase()
            _store = FirestoreRegistrationStore()
        print(f"[STORE] Using {type(_store).__name__}")
    return _store
