"""
Course Catalog Service

Loads the course catalog from Firestore (with Redis caching) or from the
bundled seed file, and answers the lookups and filters the registration
pages need. The catalog is fully materialised in memory before any
registration decision is made.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union
from datetime import datetime

from core.config import (
    COURSE_CATALOG_SOURCE,
    SEED_CATALOG_PATH,
    get_firestore_client,
    initialize_firebase,
)
from core.models import Course
from services.cache import get_cache, is_cache_available

ALL = "all"


class CourseNotFoundError(Exception):
    """Raised when a course doesn't exist in the catalog."""
    pass


def _is_unset(value: Any) -> bool:
    return value is None or value == "" or value == ALL


class CourseCatalog:
    """In-memory, ordered list of catalog courses."""

    def __init__(self, courses: Iterable[Course]):
        self._courses: List[Course] = list(courses)
        self._by_id: Dict[str, Course] = {c.id: c for c in self._courses}

    def __len__(self) -> int:
        return len(self._courses)

    def __iter__(self) -> Iterator[Course]:
        return iter(self._courses)

    def get(self, course_id: str) -> Optional[Course]:
        return self._by_id.get(course_id)

    def require(self, course_id: str) -> Course:
        """
        Get a course by id.

        Raises:
            CourseNotFoundError: If the id is not in the catalog
        """
        course = self._by_id.get(course_id)
        if course is None:
            raise CourseNotFoundError(f"Course '{course_id}' not found in catalog")
        return course

    def find_by_code(self, code: str) -> List[Course]:
        """All offerings of a course code, across departments and periods."""
        return [c for c in self._courses if c.code == code]

    def resolve_ids(self, course_ids: Iterable[str]) -> List[Course]:
        """Map ids to courses in catalog order; unknown ids are skipped."""
        wanted = set(course_ids)
        return [c for c in self._courses if c.id in wanted]

    def courses_for_period(self, academic_year: str, semester: str) -> List[Course]:
        return [c for c in self._courses if c.in_period(academic_year, semester)]

    def filter_courses(
        self,
        department: Optional[str] = None,
        level: Optional[Union[int, str]] = None,
        academic_year: Optional[str] = None,
        semester: Optional[str] = None,
        course_type: Optional[str] = None,
        search: Optional[str] = None
    ) -> List[Course]:
        """
        Filter the catalog the way the registration page does.

        Each filter is skipped when None, empty or "all". Search matches
        title or code, case-insensitively.
        """
        results = self._courses

        if not _is_unset(department):
            results = [c for c in results if c.department == department]
        if not _is_unset(level):
            results = [c for c in results if str(c.level) == str(level)]
        if not _is_unset(academic_year):
            results = [c for c in results if c.academic_year == academic_year]
        if not _is_unset(semester):
            results = [c for c in results if c.semester == semester]
        if not _is_unset(course_type):
            results = [c for c in results if c.type.value == course_type]
        if search:
            term = search.lower()
            results = [
                c for c in results
                if term in c.title.lower() or term in c.code.lower()
            ]

        return list(results)


def load_seed_courses(path: Union[str, Path] = SEED_CATALOG_PATH) -> List[Course]:
    """Load the bundled seed catalog."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [Course.from_dict(entry) for entry in data]


class FirebaseCatalogService:
    """Service for managing the course catalog in Firestore with Redis caching."""

    COURSES_COLLECTION = "courses"
    METADATA_COLLECTION = "metadata"

    def __init__(self, use_cache: bool = True):
        self.db = get_firestore_client()
        self._use_cache = use_cache and is_cache_available()
        self._cache = get_cache() if self._use_cache else None

    def load_courses(self) -> List[Course]:
        """
        Load every course in the catalog.

        Documents that fail to parse are skipped and logged.
        """
        if self._use_cache and self._cache:
            cached = self._cache.get_catalog()
            if cached:
                return [Course.from_dict(c) for c in cached]

        courses = []
        raw = []
        for doc in self.db.collection(self.COURSES_COLLECTION).stream():
            data = doc.to_dict()
            data.setdefault("id", doc.id)
            try:
                courses.append(Course.from_dict(data))
                raw.append(data)
            except (KeyError, ValueError) as e:
                print(f"[CATALOG] Skipping malformed course {doc.id}: {e}")

        if self._use_cache and self._cache and raw:
            self._cache.set_catalog(raw)

        return courses

    def store_courses(self, courses: List[Course]) -> Dict[str, Any]:
        """
        Store courses in Firestore, one document per course id.

        Returns:
            Dictionary with statistics about the operation
        """
        stats = {
            "total_courses": len(courses),
            "stored": 0,
            "errors": 0
        }

        batch = self.db.batch()
        batch_count = 0
        max_batch_size = 500  # Firestore limit

        for course in courses:
            try:
                doc_ref = self.db.collection(self.COURSES_COLLECTION).document(
                    self._sanitize_doc_id(course.id)
                )
                data = course.to_dict()
                data["updatedAt"] = datetime.utcnow().isoformat()
                batch.set(doc_ref, data)
                stats["stored"] += 1
                batch_count += 1

                if batch_count >= max_batch_size:
                    batch.commit()
                    batch = self.db.batch()
                    batch_count = 0
                    print(f"[CATALOG] Committed batch of {max_batch_size} courses...")

            except Exception as e:
                print(f"[CATALOG] Error storing course {course.id}: {e}")
                stats["errors"] += 1

        if batch_count > 0:
            batch.commit()
            print(f"[CATALOG] Committed final batch of {batch_count} courses")

        self._update_metadata(stats)

        if self._use_cache and self._cache:
            self._cache.invalidate_catalog()

        return stats

    def delete_all_courses(self) -> int:
        """
        Delete all courses from the database.

        Returns:
            Number of deleted documents
        """
        deleted = 0
        batch = self.db.batch()
        batch_count = 0

        for doc in self.db.collection(self.COURSES_COLLECTION).stream():
            batch.delete(doc.reference)
            batch_count += 1
            deleted += 1

            if batch_count >= 500:
                batch.commit()
                batch = self.db.batch()
                batch_count = 0

        if batch_count > 0:
            batch.commit()

        if self._use_cache and self._cache:
            self._cache.invalidate_catalog()

        return deleted

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get Redis cache statistics."""
        if self._use_cache and self._cache:
            return self._cache.get_stats()
        return {"connected": False}

    def _sanitize_doc_id(self, doc_id: str) -> str:
        """
        Sanitize a string to be used as a Firestore document ID.

        Firestore document IDs cannot contain forward slashes.
        """
        return doc_id.replace(" ", "_").replace("/", "-")

    def _update_metadata(self, stats: Dict[str, Any]):
        """Record the last catalog update."""
        self.db.collection(self.METADATA_COLLECTION).document("catalog_update").set({
            "timestamp": datetime.utcnow().isoformat(),
            "stats": stats
        })


_catalog: Optional[CourseCatalog] = None


def get_course_catalog(refresh: bool = False) -> CourseCatalog:
    """
    Get the shared course catalog.

    COURSE_CATALOG_SOURCE selects Firestore or the bundled seed file.
    """
    global _catalog
    if _catalog is None or refresh:
        if COURSE_CATALOG_SOURCE == "seed":
            courses = load_seed_courses()
        else:
            initialize_firebase()
            courses = FirebaseCatalogService().load_courses()
        print(f"[CATALOG] Loaded {len(courses)} courses from {COURSE_CATALOG_SOURCE}")
        _catalog = CourseCatalog(courses)
    return _catalog


def get_catalog_service() -> FirebaseCatalogService:
    """Get an instance of the Firestore catalog service."""
    initialize_firebase()
    return FirebaseCatalogService()
