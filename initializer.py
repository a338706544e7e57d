"""
Schema initializer for the social graph database.

Makes sure every collection declared in schemas.COLLECTIONS exists with its
indexes, and seeds one placeholder document into each empty collection.
Every step is safe to re-run: existing collections and matching indexes are
left alone, and collections that already hold documents are not seeded.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import CollectionInvalid, DuplicateKeyError, OperationFailure

from errors import DuplicateKeyOnSeed, IndexConflict
from schemas import (
    COLLECTIONS,
    CollectionSpec,
    IndexSpec,
    placeholder_document,
    placeholder_id,
    utcnow,
)

logger = logging.getLogger(__name__)

# server codes for IndexOptionsConflict / IndexKeySpecsConflict
INDEX_CONFLICT_CODES = (85, 86)

# index_information() fields that are not options
IGNORED_INDEX_FIELDS = frozenset(("key", "name", "ns", "v", "background"))
# options whose false value is the default
BOOLEAN_INDEX_OPTIONS = frozenset(("unique", "sparse", "hidden"))

DEFAULT_MAX_AGE_DAYS = 30


@dataclass
class InitReport:
    created_collections: List[str] = field(default_factory=list)
    created_indexes: Dict[str, List[str]] = field(default_factory=dict)
    seeded: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created_collections or self.created_indexes or self.seeded)


def _key_tuple(key) -> Tuple[Tuple[str, Any], ...]:
    # index_information() gives [(field, direction), ...]; text/hashed/geo
    # directions are strings and stay as they are
    return tuple(
        (name, int(direction) if isinstance(direction, (int, float)) else direction)
        for name, direction in key
    )


def _index_options(info: dict) -> dict:
    options = {}
    for option, value in info.items():
        if option in IGNORED_INDEX_FIELDS:
            continue
        if option in BOOLEAN_INDEX_OPTIONS:
            if not value:
                continue
            value = True
        options[option] = value
    return options


def _find_index(existing: dict, spec: IndexSpec) -> Optional[Tuple[str, dict]]:
    """Existing index matching the declared one by name, else by keys."""
    if spec.name in existing:
        return spec.name, existing[spec.name]
    for name, info in existing.items():
        if _key_tuple(info["key"]) == spec.keys:
            return name, info
    return None


def _index_drift(info: dict, spec: IndexSpec) -> Optional[str]:
    keys = _key_tuple(info["key"])
    if keys != spec.keys:
        return f"keys are {list(keys)}, expected {list(spec.keys)}"
    options = _index_options(info)
    expected = {"unique": True} if spec.unique else {}
    if options != expected:
        return f"options are {options}, expected {expected}"
    return None


def ensure_collection(db: Database, name: str) -> bool:
    """Create the collection if it is missing. Returns True when created."""
    if name in db.list_collection_names():
        logger.debug("Collection %s already exists", name)
        return False
    try:
        db.create_collection(name)
    except CollectionInvalid as e:
        # created by someone else between the listing and the create
        logger.info("Collection %s already exists (%s)", name, e)
        return False
    logger.info("Created collection %s", name)
    return True


def ensure_indexes(collection: Collection, indexes: Iterable[IndexSpec]) -> List[str]:
    """Create the declared indexes that are missing.

    An index already present under the same name, or with the same keys under
    another name, is accepted only when its keys and every option match the
    declaration. Any mismatch (uniqueness, sparse, partial filter, collation,
    TTL...) raises IndexConflict.
    """
    existing = collection.index_information()
    created = []
    for spec in indexes:
        found = _find_index(existing, spec)
        if found is not None:
            name, info = found
            drift = _index_drift(info, spec)
            if drift is not None:
                raise IndexConflict(collection.name, spec.name, f"index {name}: {drift}")
            if name != spec.name:
                logger.info("Index %s.%s already present as %s", collection.name, spec.name, name)
            continue

        options = {"name": spec.name}
        if spec.unique:
            options["unique"] = True
        try:
            collection.create_index(list(spec.keys), **options)
        except OperationFailure as e:
            if e.code in INDEX_CONFLICT_CODES:
                raise IndexConflict(collection.name, spec.name, str(e)) from e
            raise
        logger.info("Created index %s.%s%s", collection.name, spec.name, " (unique)" if spec.unique else "")
        created.append(spec.name)
    return created


def seed_placeholder(collection: Collection, spec: CollectionSpec) -> bool:
    """Insert the placeholder document into an empty collection.

    Returns True when a document was inserted. Raises DuplicateKeyOnSeed when
    the placeholder collides with a unique index.
    """
    if collection.find_one({}, projection={"_id": 1}) is not None:
        logger.debug("Collection %s is not empty, not seeding", collection.name)
        return False
    try:
        collection.insert_one(placeholder_document(spec))
    except DuplicateKeyError as e:
        raise DuplicateKeyOnSeed(collection.name, str(e)) from e
    logger.info("Seeded placeholder into %s", collection.name)
    return True


def init_schema(db: Database, seed: bool = True) -> InitReport:
    """Ensure all collections and indexes exist, seeding empty collections."""
    report = InitReport()
    for spec in COLLECTIONS:
        if ensure_collection(db, spec.name):
            report.created_collections.append(spec.name)
        collection = db[spec.name]
        created = ensure_indexes(collection, spec.indexes)
        if created:
            report.created_indexes[spec.name] = created
        if not seed:
            continue
        try:
            if seed_placeholder(collection, spec):
                report.seeded.append(spec.name)
        except DuplicateKeyOnSeed as e:
            logger.warning("Skipping placeholder: %s", e)
    logger.info(
        "Schema initialized on %s: %d collections created, %d indexes created, %d seeded",
        db.name,
        len(report.created_collections),
        sum(len(v) for v in report.created_indexes.values()),
        len(report.seeded),
    )
    return report


def check_schema(db: Database) -> List[str]:
    """Compare the database against the declared schema without changing it.

    Returns a list of problems; an empty list means no drift.
    """
    problems = []
    present = set(db.list_collection_names())
    for spec in COLLECTIONS:
        if spec.name not in present:
            problems.append(f"missing collection {spec.name}")
            continue
        existing = db[spec.name].index_information()
        for index in spec.indexes:
            found = _find_index(existing, index)
            if found is None:
                problems.append(f"missing index {spec.name}.{index.name}")
                continue
            name, info = found
            drift = _index_drift(info, index)
            if drift is not None:
                problems.append(f"index {spec.name}.{name} {drift}")
    return problems


def remove_placeholders(db: Database) -> int:
    """Delete the seeded placeholder from every collection."""
    removed = 0
    for spec in COLLECTIONS:
        result = db[spec.name].delete_one({"_id": placeholder_id(spec.name)})
        if result.deleted_count:
            logger.info("Removed placeholder from %s", spec.name)
        removed += result.deleted_count
    return removed


def purge_stale(db: Database, max_age_days: int = DEFAULT_MAX_AGE_DAYS,
                now: Optional[datetime] = None) -> Dict[str, int]:
    """Delete documents whose last_used is older than max_age_days."""
    if max_age_days < 1:
        raise ValueError(f"max_age_days must be at least 1, got {max_age_days}")
    threshold = (now or utcnow()) - timedelta(days=max_age_days)
    present = set(db.list_collection_names())
    deleted = {}
    for spec in COLLECTIONS:
        if spec.name not in present:
            continue
        result = db[spec.name].delete_many({"last_used": {"$lt": threshold}})
        deleted[spec.name] = result.deleted_count
        logger.info("Purged %s: %d documents removed", spec.name, result.deleted_count)
    return deleted
