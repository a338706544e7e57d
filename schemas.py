"""
Database Schemas

MongoDB collection schemas for the social graph, defined as Pydantic models.

Each model describes the placeholder document seeded into its collection:
every field carries a zero/empty/null default so the document materializes
the collection shape without being a real record.

COLLECTIONS maps each collection name to its model and its indexes, in the
order they are created.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Type

from bson.binary import Binary
from pydantic import BaseModel, Field

ASCENDING = 1
DESCENDING = -1

# uuid5 namespace for placeholder _ids
PLACEHOLDER_NAMESPACE = uuid.UUID("6f1c6a52-3b8e-4f57-9a39-1f0c8f2d7e41")


def utcnow() -> datetime:
    # naive UTC, the way pymongo hands dates back
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(BaseModel):
    """
    Users collection schema
    Collection name: "users"
    """
    username: str = Field("", description="Unique handle")
    email: str = Field("", description="Unique email address")
    email_verified: bool = Field(False)
    phone: Optional[str] = Field(None)
    phone_verified: bool = Field(False)
    password_hash: str = Field("", description="Hashed password")
    first_name: str = Field("")
    last_name: str = Field("")
    birthdate: Optional[datetime] = Field(None)
    sex: Optional[int] = Field(None)
    bio: str = Field("")
    profile_picture_id: Optional[uuid.UUID] = Field(None, description="media id")
    grade: int = Field(1)
    location: str = Field("")
    school: str = Field("")
    work: str = Field("")
    badges: List[str] = Field(default_factory=list, description="Set of badge keys")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    connected: bool = Field(False)
    last_used: datetime = Field(default_factory=utcnow)


class UserSettings(BaseModel):
    """
    User settings, 1:1 with users
    Collection name: "user_settings"
    """
    user_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    privacy: Dict[str, Any] = Field(default_factory=dict)
    notifications: Dict[str, Any] = Field(default_factory=dict)
    language: str = Field("")
    theme: int = Field(0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    user_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    refresh_token: str = Field("")
    device_info: Dict[str, Any] = Field(default_factory=dict)
    ip: List[str] = Field(default_factory=list, description="IP history")
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = Field(None)
    revoked: bool = Field(False)
    last_used: datetime = Field(default_factory=utcnow)


class Relation(BaseModel):
    """
    Directional edge between two users: (primary, secondary) and
    (secondary, primary) are distinct documents.
    """
    primary_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    secondary_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    state: int = Field(1, description="Relation state code")
    created_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


class Post(BaseModel):
    user_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    content: str = Field("")
    media_ids: List[uuid.UUID] = Field(default_factory=list, description="Set of media ids")
    visibility: int = Field(0)
    location: str = Field("")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


class Comment(BaseModel):
    post_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    content: str = Field("")
    created_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


class Like(BaseModel):
    """Polymorphic like: target_type says what target_id points at."""
    target_type: int = Field(0)
    target_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    created_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


class Media(BaseModel):
    owner_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    storage_path: str = Field("")
    created_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


class Conversation(BaseModel):
    type: int = Field(0)
    title: str = Field("")
    last_message_id: Optional[uuid.UUID] = Field(None)
    state: int = Field(0)
    created_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


class ConversationMember(BaseModel):
    conversation_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    role: int = Field(0)
    joined_at: datetime = Field(default_factory=utcnow)
    unread_count: int = Field(0, ge=0)
    last_used: datetime = Field(default_factory=utcnow)


class Message(BaseModel):
    conversation_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    sender_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    message_type: int = Field(0)
    state: int = Field(0)
    content: str = Field("")
    attachments: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


class FeedCache(BaseModel):
    user_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    items: List[Any] = Field(default_factory=list, description="Ordered feed items")
    created_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)


# -----------------
# Indexes
# -----------------

class IndexSpec(NamedTuple):
    keys: Tuple[Tuple[str, int], ...]
    unique: bool = False

    @property
    def name(self) -> str:
        # same naming rule as the server: field_direction joined by "_"
        return "_".join(f"{field}_{direction}" for field, direction in self.keys)


class CollectionSpec(NamedTuple):
    name: str
    model: Type[BaseModel]
    indexes: Tuple[IndexSpec, ...]


def index(*keys: Tuple[str, int], unique: bool = False) -> IndexSpec:
    return IndexSpec(keys=tuple(keys), unique=unique)


COLLECTIONS: Tuple[CollectionSpec, ...] = (
    CollectionSpec("users", User, (
        index(("username", ASCENDING), unique=True),
        index(("email", ASCENDING), unique=True),
    )),
    CollectionSpec("user_settings", UserSettings, (
        index(("user_id", ASCENDING), unique=True),
    )),
    CollectionSpec("sessions", Session, (
        index(("user_id", ASCENDING), ("revoked", ASCENDING)),
    )),
    CollectionSpec("relations", Relation, (
        index(("primary_id", ASCENDING)),
        index(("secondary_id", ASCENDING)),
        index(("secondary_id", ASCENDING), ("primary_id", ASCENDING), unique=True),
    )),
    CollectionSpec("posts", Post, (
        index(("user_id", ASCENDING), ("created_at", DESCENDING)),
    )),
    CollectionSpec("comments", Comment, (
        index(("post_id", ASCENDING), ("created_at", DESCENDING)),
    )),
    CollectionSpec("likes", Like, (
        index(("target_type", ASCENDING), ("target_id", ASCENDING)),
        index(("target_type", ASCENDING), ("target_id", ASCENDING), ("user_id", ASCENDING), unique=True),
    )),
    CollectionSpec("media", Media, (
        index(("owner_id", ASCENDING)),
        index(("created_at", ASCENDING)),
    )),
    CollectionSpec("conversations", Conversation, (
        index(("last_message_id", ASCENDING)),
    )),
    CollectionSpec("conversation_members", ConversationMember, (
        index(("conversation_id", ASCENDING), ("user_id", ASCENDING), unique=True),
    )),
    CollectionSpec("messages", Message, (
        index(("conversation_id", ASCENDING), ("created_at", DESCENDING)),
    )),
    CollectionSpec("feed_cache", FeedCache, (
        index(("user_id", ASCENDING), ("created_at", DESCENDING)),
    )),
)

COLLECTION_NAMES = [spec.name for spec in COLLECTIONS]


def get_collection_spec(name: str) -> CollectionSpec:
    for spec in COLLECTIONS:
        if spec.name == name:
            return spec
    raise KeyError(name)


def placeholder_id(collection_name: str) -> Binary:
    return Binary.from_uuid(uuid.uuid5(PLACEHOLDER_NAMESPACE, collection_name))


def _to_bson(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return Binary.from_uuid(value)
    if isinstance(value, list):
        return [_to_bson(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_bson(v) for k, v in value.items()}
    return value


def placeholder_document(spec: CollectionSpec) -> dict:
    """Build the placeholder document for a collection.

    UUIDs are stored as BSON binary subtype 4 so the document encodes the
    same way whatever uuidRepresentation the client was created with.
    """
    doc = {"_id": placeholder_id(spec.name)}
    doc.update(_to_bson(spec.model().model_dump()))
    return doc
