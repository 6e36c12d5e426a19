import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import ConstraintError, Database, StorageError
from schemas import (
    ContactMessageCreate,
    ContactMessageUpdate,
    ContentCreate,
    ContentUpdate,
    ProductCreate,
    ProductUpdate,
    ProfileCreate,
    ProfileUpdate,
    TestimonialCreate,
    TestimonialUpdate,
    normalize_product_status,
)
from security import (
    authenticate_admin,
    create_access_token,
    get_bearer_token,
    get_current_admin,
    public_user,
    verify_admin_token,
)
from storage import Storage, get_storage

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("little_forest")

TABLES = ["profiles", "products", "content", "contact_messages", "testimonials", "admin_users"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = Database(settings)
    app.state.storage = Storage(db)
    logger.info("Connected to table API at %s", settings.rest_url)
    try:
        yield
    finally:
        await db.close()


app = FastAPI(title="Little Forest Nursery API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error translation: every failure leaves as {"error": "..."}

@app.exception_handler(StarletteHTTPException)
async def http_error(request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request, exc: RequestValidationError):
    logger.info("Rejected %s %s: %d validation error(s)", request.method, request.url.path, len(exc.errors()))
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


@app.exception_handler(ConstraintError)
async def constraint_error(request, exc: ConstraintError):
    logger.info("Constraint violation on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": "Request conflicts with existing data"}, status_code=400)


@app.exception_handler(StorageError)
async def storage_error(request, exc: StorageError):
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Storage unavailable"}, status_code=500)


@app.exception_handler(Exception)
async def unexpected_error(request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def found(entity, name: str):
    if entity is None:
        raise HTTPException(status_code=404, detail=f"{name} not found")
    return entity


def deleted(ok: bool, name: str) -> Response:
    if not ok:
        raise HTTPException(status_code=404, detail=f"{name} not found")
    return Response(status_code=204)


@app.get("/")
def root():
    return {"message": "Little Forest Nursery API running"}


@app.get("/test")
async def test_database(storage: Storage = Depends(get_storage)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.DATABASE_URL else "❌ Not Set",
        "tables": {},
    }
    for table in TABLES:
        response["tables"][table] = await storage.db.probe(table)
    if all(response["tables"].values()):
        response["database"] = "✅ Connected"
    elif any(response["tables"].values()):
        response["database"] = "⚠️ Some tables missing"
    return response


# Profiles
@app.get("/api/profiles")
async def list_profiles(storage: Storage = Depends(get_storage)):
    return await storage.profiles.list()


@app.get("/api/profiles/email/{email}")
async def get_profile_by_email(email: str, storage: Storage = Depends(get_storage)):
    return found(await storage.profiles.get_by_email(email), "Profile")


@app.get("/api/profiles/{profile_id}")
async def get_profile(profile_id: str, storage: Storage = Depends(get_storage)):
    return found(await storage.profiles.get(profile_id), "Profile")


@app.post("/api/profiles", status_code=201)
async def create_profile(payload: ProfileCreate, storage: Storage = Depends(get_storage)):
    return await storage.profiles.create(payload.model_dump())


@app.patch("/api/profiles/{profile_id}")
async def update_profile(profile_id: str, payload: ProfileUpdate, storage: Storage = Depends(get_storage)):
    return found(await storage.profiles.update(profile_id, payload.model_dump(exclude_unset=True)), "Profile")


# Products
@app.get("/api/products")
async def list_products(category: Optional[str] = None, status: Optional[str] = None,
                        storage: Storage = Depends(get_storage)):
    return await storage.products.list(category=category, status=normalize_product_status(status))


@app.get("/api/products/{product_id}")
async def get_product(product_id: str, storage: Storage = Depends(get_storage)):
    return found(await storage.products.get(product_id), "Product")


@app.post("/api/products", status_code=201)
async def create_product(payload: ProductCreate, storage: Storage = Depends(get_storage)):
    return await storage.products.create(payload.model_dump())


@app.put("/api/products/{product_id}")
async def update_product(product_id: str, payload: ProductUpdate, storage: Storage = Depends(get_storage)):
    return found(await storage.products.update(product_id, payload.model_dump(exclude_unset=True)), "Product")


@app.delete("/api/products/{product_id}", status_code=204)
async def delete_product(product_id: str, storage: Storage = Depends(get_storage)):
    return deleted(await storage.products.delete(product_id), "Product")


# Content
@app.get("/api/content")
async def list_content(type: Optional[str] = None, status: Optional[str] = None, title: Optional[str] = None,
                       storage: Storage = Depends(get_storage)):
    return await storage.content.list(type=type, status=status, title=title)


@app.get("/api/content/{content_id}")
async def get_content(content_id: str, storage: Storage = Depends(get_storage)):
    return found(await storage.content.get(content_id), "Content")


@app.post("/api/content", status_code=201)
async def create_content(payload: ContentCreate, storage: Storage = Depends(get_storage)):
    return await storage.content.create(payload.model_dump())


@app.put("/api/content/{content_id}")
async def update_content(content_id: str, payload: ContentUpdate, storage: Storage = Depends(get_storage)):
    return found(await storage.content.update(content_id, payload.model_dump(exclude_unset=True)), "Content")


@app.delete("/api/content/{content_id}", status_code=204)
async def delete_content(content_id: str, storage: Storage = Depends(get_storage)):
    return deleted(await storage.content.delete(content_id), "Content")


# Contact messages
@app.get("/api/contact-messages")
async def list_contact_messages(status: Optional[str] = None, storage: Storage = Depends(get_storage)):
    return await storage.contact_messages.list(status=status)


@app.get("/api/contact-messages/{message_id}")
async def get_contact_message(message_id: str, storage: Storage = Depends(get_storage)):
    return found(await storage.contact_messages.get(message_id), "Message")


@app.post("/api/contact-messages", status_code=201)
async def create_contact_message(payload: ContactMessageCreate, storage: Storage = Depends(get_storage)):
    return await storage.contact_messages.create(payload.model_dump())


@app.put("/api/contact-messages/{message_id}")
async def update_contact_message(message_id: str, payload: ContactMessageUpdate,
                                 storage: Storage = Depends(get_storage)):
    update = payload.model_dump(exclude_unset=True)
    return found(await storage.contact_messages.update(message_id, update), "Message")


# Testimonials
@app.get("/api/testimonials")
async def list_testimonials(storage: Storage = Depends(get_storage)):
    return await storage.testimonials.list()


@app.get("/api/testimonials/{testimonial_id}")
async def get_testimonial(testimonial_id: str, storage: Storage = Depends(get_storage)):
    return found(await storage.testimonials.get(testimonial_id), "Testimonial")


@app.post("/api/testimonials", status_code=201)
async def create_testimonial(payload: TestimonialCreate, storage: Storage = Depends(get_storage)):
    return await storage.testimonials.create(payload.model_dump())


@app.put("/api/testimonials/{testimonial_id}")
async def update_testimonial(testimonial_id: str, payload: TestimonialUpdate,
                             storage: Storage = Depends(get_storage)):
    update = payload.model_dump(exclude_unset=True)
    return found(await storage.testimonials.update(testimonial_id, update), "Testimonial")


@app.delete("/api/testimonials/{testimonial_id}", status_code=204)
async def delete_testimonial(testimonial_id: str, storage: Storage = Depends(get_storage)):
    return deleted(await storage.testimonials.delete(testimonial_id), "Testimonial")


# Admin authentication
class LoginModel(BaseModel):
    email: str
    password: str


class VerifyModel(BaseModel):
    token: Any = None


@app.post("/api/admin/login")
async def admin_login(payload: LoginModel, storage: Storage = Depends(get_storage)):
    admin = await authenticate_admin(storage, payload.email, payload.password)
    token = create_access_token({"sub": admin.id, "email": admin.email})
    logger.info("Admin %s logged in", admin.email)
    return {"success": True, "user": public_user(admin), "token": token}


@app.post("/api/admin/verify")
async def admin_verify(payload: Optional[VerifyModel] = Body(None),
                       bearer: Optional[str] = Depends(get_bearer_token),
                       storage: Storage = Depends(get_storage)):
    token = (payload.token if payload else None) or bearer
    admin = await verify_admin_token(storage, token)
    return {"success": True, "user": public_user(admin)}


@app.post("/api/admin/logout")
def admin_logout():
    return {"success": True}


@app.get("/api/admin/stats")
async def admin_stats(admin=Depends(get_current_admin), storage: Storage = Depends(get_storage)):
    products = await storage.products.list()
    content = await storage.content.list()
    messages = await storage.contact_messages.list()
    testimonials = await storage.testimonials.list()
    return {
        "total_products": len(products),
        "available_products": sum(1 for p in products if p.status == "active"),
        "total_content": len(content),
        "published_content": sum(1 for c in content if c.status == "published"),
        "total_messages": len(messages),
        "new_messages": sum(1 for m in messages if m.status == "new"),
        "total_testimonials": len(testimonials),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
