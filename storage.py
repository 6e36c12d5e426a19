"""
Per-entity repositories over the single hosted-database store.

Each repository exposes the same contract: `list`, `get`, `get_by`,
`create`, `update` (partial merge) and `delete`. Not-found is `None`
(or `False` for delete); faults propagate as `database.StorageError`.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel

from database import Database
from schemas import AdminUser, ContactMessage, Content, Product, Profile, Testimonial

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


class Repository(Generic[T]):
    table: str = ""
    model: Type[T]
    order: Optional[str] = None
    touches_updated_at = True

    def __init__(self, db: Database):
        self.db = db

    def _load(self, row: Optional[dict]) -> Optional[T]:
        if row is None:
            return None
        return self.model.model_validate(row)

    async def list(self, **filters: Any) -> List[T]:
        match = {k: v for k, v in filters.items() if v is not None}
        rows = await self.db[self.table].select(match, order=self.order)
        return [self._load(r) for r in rows]

    async def get(self, id: str) -> Optional[T]:
        if not is_uuid(id):
            return None
        return self._load(await self.db[self.table].select_one({"id": id}))

    async def get_by(self, field: str, value: Any) -> Optional[T]:
        return self._load(await self.db[self.table].select_one({field: value}))

    async def create(self, fields: Dict[str, Any]) -> T:
        row = await self.db[self.table].insert(fields)
        logger.info("Created %s %s", self.table, row.get("id"))
        return self._load(row)

    async def update(self, id: str, fields: Dict[str, Any]) -> Optional[T]:
        if not is_uuid(id):
            return None
        values = {k: v for k, v in fields.items() if k not in ("id", "created_at")}
        if self.touches_updated_at:
            values["updated_at"] = datetime.now(timezone.utc).isoformat()
        elif not values:
            return await self.get(id)
        return self._load(await self.db[self.table].update({"id": id}, values))

    async def delete(self, id: str) -> bool:
        if not is_uuid(id):
            return False
        removed = await self.db[self.table].delete({"id": id})
        if removed:
            logger.info("Deleted %s %s", self.table, id)
        return bool(removed)


class ProfileRepository(Repository[Profile]):
    table = "profiles"
    model = Profile

    async def get_by_email(self, email: str) -> Optional[Profile]:
        return await self.get_by("email", email)


class ProductRepository(Repository[Product]):
    table = "products"
    model = Product
    order = "created_at.desc"


class ContentRepository(Repository[Content]):
    table = "content"
    model = Content
    order = "created_at.desc"

    async def list_by_type(self, type: str) -> List[Content]:
        return await self.list(type=type)


class ContactMessageRepository(Repository[ContactMessage]):
    table = "contact_messages"
    model = ContactMessage
    order = "created_at.desc"
    touches_updated_at = False


class TestimonialRepository(Repository[Testimonial]):
    table = "testimonials"
    model = Testimonial


class AdminUserRepository(Repository[AdminUser]):
    table = "admin_users"
    model = AdminUser

    async def get_by_email(self, email: str) -> Optional[AdminUser]:
        return await self.get_by("email", email.strip().lower())


class Storage:
    """All repositories, sharing one database client."""

    def __init__(self, db: Database):
        self.db = db
        self.profiles = ProfileRepository(db)
        self.products = ProductRepository(db)
        self.content = ContentRepository(db)
        self.contact_messages = ContactMessageRepository(db)
        self.testimonials = TestimonialRepository(db)
        self.admin_users = AdminUserRepository(db)

    def repositories(self) -> List[Repository]:
        return [self.profiles, self.products, self.content, self.contact_messages,
                self.testimonials, self.admin_users]


def get_storage(request: Request) -> Storage:
    return request.app.state.storage
