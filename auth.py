"""Yönetici kimlik doğrulaması: kimlik bilgisi kontrolü, oturum yaşam döngüsü ve rota kapısı."""

import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response

from book import User
from config import Settings
from errors import InvalidCredentials, Unauthorized
from library import Library
from session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Kimlik bilgisi kontrolünün sonucu."""
    success: bool
    username: Optional[str] = None
    message: str = "Invalid credentials"

    @classmethod
    def ok(cls, username: str) -> "AuthResult":
        return cls(success=True, username=username, message="Login successful")

    @classmethod
    def failed(cls, message: str = "Invalid credentials") -> "AuthResult":
        return cls(success=False, message=message)


class CredentialVerifier(ABC):
    @abstractmethod
    def verify(self, username: str, password: str) -> AuthResult: ...


class FixedCredentialVerifier(CredentialVerifier):
    """Tam olarak bir kullanıcı adı/parola çiftini kabul eder."""

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    def verify(self, username: str, password: str) -> AuthResult:
        user_ok = secrets.compare_digest((username or "").encode("utf-8"), self.username.encode("utf-8"))
        pass_ok = secrets.compare_digest((password or "").encode("utf-8"), self.password.encode("utf-8"))
        if user_ok and pass_ok:
            return AuthResult.ok(self.username)
        return AuthResult.failed()


def ensure_admin_user(library: Library, username: str) -> User:
    """Yönetici hesabının depoda bulunduğundan emin ol; boş depoda id 1 alır."""
    user = library.get_user_by_username(username)
    if user is None:
        user = library.create_user({"username": username})
        logger.info(f"Admin user registered: id={user.id}")
    return user


# --- Bağımlılıklar ---
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_library(request: Request) -> Library:
    return request.app.state.library


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def _session_token(request: Request) -> Optional[str]:
    return request.cookies.get(request.app.state.settings.session_cookie_name)


def _resolve_user(request: Request) -> Optional[User]:
    sessions: SessionStore = request.app.state.sessions
    library: Library = request.app.state.library
    token = _session_token(request)
    data = sessions.get(token)
    if not data:
        return None
    user = library.get_user(data.get("userId"))
    if user is None:
        return None
    sessions.touch(token)
    return user


def get_optional_user(request: Request) -> Optional[User]:
    """Giriş yapmış yönetici; anonim isteklerde None."""
    return _resolve_user(request)


def require_authenticated(request: Request) -> User:
    """Rota kapısı: istek canlı bir yönetici oturumu taşımıyorsa 401."""
    user = _resolve_user(request)
    if user is None:
        logger.debug(f"Unauthenticated request rejected: {request.method} {request.url.path}")
        raise Unauthorized()
    return user


# --- Oturum yaşam döngüsü ---
def login(request: Request, response: Response, username: str, password: str) -> User:
    """Kimlik bilgilerini kontrol et ve yönetici için oturum aç.

    Başarısızlıkta hiçbir oturuma dokunmadan InvalidCredentials yükseltir.
    """
    settings: Settings = request.app.state.settings
    sessions: SessionStore = request.app.state.sessions
    verifier: CredentialVerifier = request.app.state.verifier
    library: Library = request.app.state.library

    result = verifier.verify(username, password)
    if not result.success:
        logger.info(f"Login failed for username={username!r}")
        raise InvalidCredentials(result.message)

    user = ensure_admin_user(library, result.username)

    # Önceki oturum kimliği girişten sonra asla taşınmaz
    sessions.destroy(_session_token(request))
    token = sessions.create({"userId": user.id, "username": user.username})
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    logger.info(f"Login successful: user id={user.id}")
    return user


def logout(request: Request, response: Response) -> None:
    """Çağıranın oturumunu (varsa) sil ve çerezi temizle."""
    settings: Settings = request.app.state.settings
    sessions: SessionStore = request.app.state.sessions
    sessions.destroy(_session_token(request))
    response.delete_cookie(settings.session_cookie_name, path="/")
    logger.info("Logout successful, session destroyed")
