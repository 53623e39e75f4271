import os
import random
import time
import logging
from typing import Any, List, Optional
from datetime import datetime
from contextlib import asynccontextmanager
import asyncio

from fastapi import APIRouter, Body, FastAPI, Depends, File, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import (
    CredentialVerifier,
    FixedCredentialVerifier,
    ensure_admin_user,
    get_library,
    get_optional_user,
    get_session_store,
    get_settings,
    login,
    logout,
    require_authenticated,
)
from config import Settings, settings as default_settings
from errors import InternalError, LibraryError, NotFound, Unauthorized, UploadRejected
from library import Library
from session_store import SessionStore, prune_periodically
from utils.validators import BookIdValidator, ImageUploadValidator

logger = logging.getLogger(__name__)


# --- Modeller ---
class BookModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    author: str
    genre: str
    description: Optional[str] = None
    amazon_link: Optional[str] = Field(default=None, alias="amazonLink")
    cover_color: str = Field(alias="coverColor")
    cover_image: Optional[str] = Field(default=None, alias="coverImage")
    featured: bool = False
    date_added: str = Field(alias="dateAdded")


class BookCreateModel(BaseModel):
    """Yeni kitap için istek gövdesi. Bilinmeyen alanlar (`id` dahil) yok sayılır."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    genre: str = Field(min_length=1)
    description: Optional[str] = None
    amazon_link: Optional[str] = Field(default=None, alias="amazonLink")
    cover_color: Optional[str] = Field(default=None, alias="coverColor")
    cover_image: Optional[str] = Field(default=None, alias="coverImage")
    featured: Optional[bool] = None
    date_added: Optional[str] = Field(default=None, alias="dateAdded", pattern=r"^\d{4}-\d{2}-\d{2}$")

    @field_validator("title", "author", "genre")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class BookUpdateModel(BaseModel):
    """Kısmi güncelleme: her alan isteğe bağlı, ancak zorunlu alanlar null yapılamaz."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = Field(default=None, min_length=1)
    genre: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    amazon_link: Optional[str] = Field(default=None, alias="amazonLink")
    cover_color: Optional[str] = Field(default=None, alias="coverColor")
    cover_image: Optional[str] = Field(default=None, alias="coverImage")
    featured: Optional[bool] = None
    date_added: Optional[str] = Field(default=None, alias="dateAdded", pattern=r"^\d{4}-\d{2}-\d{2}$")

    @field_validator("title", "author", "genre", "cover_color", "featured", "date_added", mode="before")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        if isinstance(v, str) and not v.strip():
            raise ValueError("must not be blank")
        return v


class LoginModel(BaseModel):
    # Dize olmayan her değer hatalı istek değil, hatalı kimlik bilgisi sayılır
    username: Any = None
    password: Any = None

    @field_validator("username", "password")
    @classmethod
    def _text_or_none(cls, v):
        return v if isinstance(v, str) else None


class MessageModel(BaseModel):
    message: str


class CoverUploadModel(BaseModel):
    coverUrl: str


class StatsModel(BaseModel):
    totalBooks: int
    totalCategories: int
    featuredBooks: int
    recentBooks: int


class HealthModel(BaseModel):
    status: str
    timestamp: str
    totalBooks: int
    activeSessions: int


def _to_models(books) -> List[BookModel]:
    return [BookModel(**b.to_dict()) for b in books]


# --- Kimlik doğrulama rotaları (korumasız) ---
OPEN_API_PATHS = {"/api/admin/login", "/api/admin/logout"}

auth_router = APIRouter(prefix="/api/admin", tags=["auth"])


@auth_router.post("/login", response_model=MessageModel)
def admin_login(request: Request, response: Response, payload: Optional[LoginModel] = Body(None)):
    """Yönetici oturumu aç. Yapılandırılmış çift dışındaki her kimlik bilgisinde 401."""
    payload = payload or LoginModel()
    login(request, response, payload.username, payload.password)
    return MessageModel(message="Login successful")


@auth_router.post("/logout", response_model=MessageModel)
def admin_logout(request: Request, response: Response):
    """Çağıranın oturumunu kapat. Oturum yoksa da başarılı döner."""
    try:
        logout(request, response)
    except Exception as e:
        logger.error(f"Session destroy error: {e}")
        raise InternalError("Error during logout") from e
    return MessageModel(message="Logout successful")


# --- Korumalı rotalar: /api için tek yetkilendirme noktası ---
api_router = APIRouter(prefix="/api", dependencies=[Depends(require_authenticated)])


@api_router.get("/books", response_model=List[BookModel], tags=["books"])
def list_books(library: Library = Depends(get_library)):
    return _to_models(library.get_all_books())


@api_router.get("/books/featured", response_model=List[BookModel], tags=["books"])
def list_featured_books(library: Library = Depends(get_library)):
    return _to_models(library.get_featured_books())


@api_router.get("/books/search/{query}", response_model=List[BookModel], tags=["books"])
def search_books(query: str, library: Library = Depends(get_library)):
    """Başlık, yazar veya türde büyük/küçük harfe duyarsız eşleşme."""
    return _to_models(library.search_books(query))


@api_router.get("/books/genre/{genre}", response_model=List[BookModel], tags=["books"])
def list_books_by_genre(genre: str, library: Library = Depends(get_library)):
    return _to_models(library.get_books_by_genre(genre))


@api_router.get("/books/{book_id}", response_model=BookModel, tags=["books"])
def get_book(book_id: str, library: Library = Depends(get_library)):
    book = library.get_book(BookIdValidator.parse(book_id))
    if not book:
        raise NotFound("Book not found")
    return BookModel(**book.to_dict())


@api_router.post("/books/upload-cover", response_model=CoverUploadModel, tags=["books"])
async def upload_cover(
    cover: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
):
    """JPEG/PNG kapak resmini kaydet ve sunulduğu URL'yi döndür."""
    if cover is None or not cover.filename:
        raise UploadRejected("No file uploaded")

    validator = ImageUploadValidator(
        settings.allowed_image_extensions, settings.allowed_image_types, settings.max_upload_size
    )
    ext = validator.check_type(cover.filename, cover.content_type)
    contents = await cover.read()
    validator.check_size(len(contents))

    filename = f"book-cover-{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"
    path = os.path.join(settings.upload_dir, filename)
    with open(path, "wb") as f:
        f.write(contents)
    logger.info(f"Cover uploaded: {filename} ({len(contents)} bytes)")
    return CoverUploadModel(coverUrl=f"/uploads/{filename}")


@api_router.post("/books", response_model=BookModel, status_code=201, tags=["books"])
def create_book(payload: BookCreateModel, library: Library = Depends(get_library)):
    book = library.create_book(payload.model_dump(exclude_unset=True))
    return BookModel(**book.to_dict())


@api_router.patch("/books/{book_id}", response_model=BookModel, tags=["books"])
def update_book(book_id: str, payload: BookUpdateModel, library: Library = Depends(get_library)):
    book = library.update_book(BookIdValidator.parse(book_id), payload.model_dump(exclude_unset=True))
    if not book:
        raise NotFound("Book not found")
    return BookModel(**book.to_dict())


@api_router.delete("/books/{book_id}", status_code=204, response_class=Response, tags=["books"])
def delete_book(book_id: str, library: Library = Depends(get_library)):
    if not library.delete_book(BookIdValidator.parse(book_id)):
        raise NotFound("Book not found")
    return Response(status_code=204)


@api_router.get("/admin/stats", response_model=StatsModel, tags=["admin"])
def get_admin_stats(library: Library = Depends(get_library)):
    """Kataloğun tam taramasından hesaplanan panel sayaçları."""
    return StatsModel(**library.get_statistics())


# --- Sağlık Kontrolü ---
health_router = APIRouter()


@health_router.get("/health", response_model=HealthModel)
def health(library: Library = Depends(get_library), sessions: SessionStore = Depends(get_session_store)):
    """Süreç yöneticileri için hafif canlılık kontrolü."""
    return HealthModel(
        status="healthy",
        timestamp=datetime.utcnow().isoformat() + "Z",
        totalBooks=len(library.get_all_books()),
        activeSessions=sessions.get_stats()["active"],
    )


# --- Hata işleyicileri ---
async def library_error_handler(request: Request, exc: LibraryError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = "Invalid book data" if request.url.path.startswith("/api/books") else "Invalid request data"
    return JSONResponse(
        status_code=400,
        content={"message": message, "errors": jsonable_encoder(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    # Ayrıntılar yalnızca sunucu günlüğünde kalır
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# --- Uygulama fabrikası ---
def _register_client_routes(app: FastAPI, dist_dir: str) -> None:
    """Statik istemci dosyaları ve uygulama kabuğunu sunan genel rota."""
    assets_dir = os.path.join(dist_dir, "assets")
    if os.path.isdir(assets_dir):
        app.mount("/assets", StaticFiles(directory=assets_dir), name="assets")

    dist_root = os.path.realpath(dist_dir)
    index_file = os.path.join(dist_root, "index.html")

    @app.get("/{full_path:path}", include_in_schema=False)
    def serve_client(full_path: str, request: Request):
        if full_path == "api" or full_path.startswith("api/"):
            raise NotFound("Not found")

        path = "/" + full_path
        if path.startswith("/admin") and path != "/admin/login" and get_optional_user(request) is None:
            return RedirectResponse("/admin/login", status_code=302)

        if full_path:
            candidate = os.path.realpath(os.path.join(dist_root, full_path))
            if candidate.startswith(dist_root + os.sep) and os.path.isfile(candidate):
                return FileResponse(candidate)

        if not os.path.isfile(index_file):
            raise NotFound("Not found")
        return FileResponse(index_file)


def create_app(
    settings: Optional[Settings] = None,
    library: Optional[Library] = None,
    sessions: Optional[SessionStore] = None,
    verifier: Optional[CredentialVerifier] = None,
) -> FastAPI:
    """Uygulamayı kendi deposu, oturum sağlayıcısı ve kimlik doğrulayıcısıyla oluştur."""
    settings = settings or default_settings
    library = library if library is not None else Library(default_cover_color=settings.default_cover_color)
    sessions = sessions if sessions is not None else SessionStore(max_age=settings.session_max_age)
    verifier = verifier or FixedCredentialVerifier(settings.admin_username, settings.admin_password)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Periyodik oturum temizliğini başlat
        prune_task = asyncio.create_task(prune_periodically(sessions, settings.session_prune_interval))
        try:
            yield
        finally:
            prune_task.cancel()
            try:
                await prune_task
            except asyncio.CancelledError:
                pass

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.library = library
    app.state.sessions = sessions
    app.state.verifier = verifier

    ensure_admin_user(library, settings.admin_username)

    # --- Kimlik doğrulama kapısı ---
    # Gövde okunmadan önce çalışır; anonim istekler ayrıştırmaya ulaşmaz
    @app.middleware("http")
    async def require_login_for_api(request: Request, call_next):
        path = request.url.path
        if (path == "/api" or path.startswith("/api/")) and path not in OPEN_API_PATHS:
            if get_optional_user(request) is None:
                logger.debug(f"Unauthenticated request rejected: {request.method} {path}")
                return JSONResponse(status_code=401, content=Unauthorized().to_dict())
        return await call_next(request)

    # --- Yanıt Başlıkları Ara Katmanı ---
    @app.middleware("http")
    async def add_headers(request: Request, call_next):
        response = await call_next(request)
        # Yüklenen kapaklar başka kaynaklardan gömülebilir
        if request.url.path.startswith("/uploads/"):
            response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response

    app.add_exception_handler(LibraryError, library_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(api_router)

    os.makedirs(settings.upload_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    _register_client_routes(app, settings.client_dist_dir)
    return app


app = create_app()
