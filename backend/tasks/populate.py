"""
Course Catalog Population Script

Loads the course catalog from a JSON file and stores it in Firebase.

Usage:
    python -m tasks.populate                          # Upload the bundled seed catalog
    python -m tasks.populate --file courses.json      # Upload a custom catalog file
    python -m tasks.populate --delete-first           # Clear existing data first
"""

import argparse
from datetime import datetime
from typing import Optional

from core.config import SEED_CATALOG_PATH
from services.catalog import get_catalog_service, load_seed_courses


def populate_database(file_path: Optional[str] = None, delete_first: bool = False) -> Optional[dict]:
    """
    Populate the Firebase database with course catalog data.

    Args:
        file_path: Catalog JSON file. Defaults to the bundled seed catalog.
        delete_first: If True, deletes all existing courses before populating.

    Returns:
        Storage statistics, or None if population was aborted
    """
    file_path = file_path or str(SEED_CATALOG_PATH)

    print("=" * 60)
    print("Course Catalog Population Script")
    print("=" * 60)
    print(f"Catalog File: {file_path}")
    print(f"Delete First: {delete_first}")
    print(f"Started: {datetime.now()}")
    print("=" * 60)

    # Initialize Firebase service
    print("\n[1/4] Initializing Firebase...")
    try:
        service = get_catalog_service()
        print("Firebase initialized successfully!")
    except Exception as e:
        print(f"ERROR: Failed to initialize Firebase: {e}")
        print("\nMake sure you have:")
        print("1. Downloaded your service account key from Firebase Console")
        print("2. Saved it as 'serviceAccountKey.json' in the backend folder")
        return None

    # Delete existing data if requested
    if delete_first:
        print("\n[2/4] Deleting existing courses...")
        deleted = service.delete_all_courses()
        print(f"Deleted {deleted} existing courses")
    else:
        print("\n[2/4] Skipping deletion (will upsert)")

    print(f"\n[3/4] Loading courses from {file_path}...")
    try:
        courses = load_seed_courses(file_path)
        print(f"Loaded {len(courses)} courses")
    except (OSError, ValueError, KeyError) as e:
        print(f"ERROR: Failed to load courses: {e}")
        return None

    if not courses:
        print("No courses found in catalog file. Exiting.")
        return None

    print("\n[4/4] Storing courses in Firebase...")
    stats = service.store_courses(courses)

    print("\n" + "=" * 60)
    print("POPULATION COMPLETE")
    print("=" * 60)
    print(f"Total Courses: {stats['total_courses']}")
    print(f"Stored: {stats['stored']}")
    print(f"Errors: {stats['errors']}")
    print(f"Completed: {datetime.now()}")
    print("=" * 60)

    return stats


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Populate Firebase with course catalog data"
    )
    parser.add_argument(
        "--file",
        type=str,
        default=None,
        help="Catalog JSON file. Defaults to the bundled seed catalog."
    )
    parser.add_argument(
        "--delete-first",
        action="store_true",
        help="Delete all existing courses before populating"
    )

    args = parser.parse_args()

    populate_database(file_path=args.file, delete_first=args.delete_first)


if __name__ == "__main__":
    main()
