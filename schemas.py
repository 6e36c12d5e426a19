"""
Database Schemas for Little Forest Nursery

Each entity model maps to a table in the hosted database. The `*Create`
models validate insert bodies and the `*Update` models validate partial
updates; only fields a client actually sends are written.

Read models are lenient about what is already stored: a null column reads
as the field default, and enum-like columns keep whatever string the row
holds so one old row cannot break a whole listing.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ProductStatus = Literal["active", "limited", "out_of_stock"]
ContentType = Literal["page", "blog", "announcement"]
ContentStatus = Literal["draft", "published"]
MessageStatus = Literal["new", "read", "replied"]
ProfileRole = Literal["admin", "user"]

# Spellings found in existing rows and older admin forms
LEGACY_PRODUCT_STATUS = {
    "available": "active",
    "in_stock": "active",
    "in stock": "active",
    "limited stock": "limited",
    "limited_stock": "limited",
    "out of stock": "out_of_stock",
    "out-of-stock": "out_of_stock",
    "sold_out": "out_of_stock",
}


def normalize_product_status(value):
    if not isinstance(value, str):
        return value
    key = value.strip().lower()
    return LEGACY_PRODUCT_STATUS.get(key, key)


def reject_null(v):
    if v is None:
        raise ValueError("may be omitted but not null")
    return v


class StoredRow(BaseModel):
    """A row as read back from the database."""

    @model_validator(mode="before")
    @classmethod
    def null_to_default(cls, data):
        if not isinstance(data, dict):
            return data
        row = dict(data)
        for name, field in cls.model_fields.items():
            if row.get(name, ...) is None and not field.is_required() and field.default is not None:
                del row[name]
        return row


# Profiles

class Profile(StoredRow):
    id: str
    email: str = Field(..., description="Email address")
    full_name: Optional[str] = Field(None, description="Full name")
    role: str = Field("user", description="'admin' or 'user', display only")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileCreate(BaseModel):
    email: str = Field(..., min_length=3)
    full_name: Optional[str] = None
    role: ProfileRole = "user"


class ProfileUpdate(BaseModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[ProfileRole] = None

    @field_validator("email", "role", mode="before")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


# Products

class Product(StoredRow):
    id: str
    name: str = Field(..., description="Plant or product name")
    category: str = Field(..., description="Free-text category, e.g. 'Indigenous Trees'")
    price: str = Field(..., description="Display price, e.g. 'KSh 250'")
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: str = Field("active", description="Availability, canonical unless the row predates it")
    featured: bool = False
    stock_quantity: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def canonical_status(cls, v):
        return normalize_product_status(v)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: ProductStatus = "active"
    featured: bool = False
    stock_quantity: int = Field(0, ge=0)

    @field_validator("status", mode="before")
    @classmethod
    def canonical_status(cls, v):
        return normalize_product_status(v)


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[ProductStatus] = None
    featured: Optional[bool] = None
    stock_quantity: Optional[int] = Field(None, ge=0)

    @field_validator("name", "category", "price", "featured", "stock_quantity",
                     mode="before")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

    @field_validator("status", mode="before")
    @classmethod
    def canonical_status(cls, v):
        return normalize_product_status(reject_null(v))


# Content

class Content(StoredRow):
    id: str
    title: str = Field(..., description="Title, also used by the site to look up pages")
    content: str = Field(..., description="Body text")
    type: Optional[str] = Field(None, description="'page', 'blog' or 'announcement'; older rows may hold others")
    status: str = "draft"
    created_by: Optional[str] = Field(None, description="Creator reference")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: str
    type: ContentType
    status: ContentStatus = "draft"
    created_by: Optional[str] = None


class ContentUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[ContentType] = None
    status: Optional[ContentStatus] = None

    @field_validator("title", "content", "type", "status", mode="before")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


# Contact messages

class ContactMessage(StoredRow):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    message: str
    status: str = "new"
    created_at: Optional[datetime] = None


class ContactMessageCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None
    message: str = Field(..., min_length=1)
    status: MessageStatus = "new"


class ContactMessageUpdate(BaseModel):
    status: Optional[MessageStatus] = None
    phone: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


# Testimonials

class Testimonial(StoredRow):
    id: str
    name: str
    location: str
    text: str
    project: Optional[str] = None
    rating: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TestimonialCreate(BaseModel):
    name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    project: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)


class TestimonialUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    text: Optional[str] = None
    project: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)

    @field_validator("name", "location", "text", mode="before")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


# Admin users

class AdminUser(StoredRow):
    id: str
    email: str
    password_hash: str = Field(..., description="BCrypt hashed password")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminUserCreate(BaseModel):
    email: str
    password_hash: str
