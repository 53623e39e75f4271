import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # API Ayarları
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "3000"))

    # Uygulama Ayarları
    app_name: str = os.getenv("APP_NAME", "Book Admin API")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Yönetici Kimlik Bilgileri (tek sabit hesap)
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "admin123")

    # Oturum Ayarları
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "connect.sid")
    session_max_age: int = int(os.getenv("SESSION_MAX_AGE", "86400"))  # 24 saat
    session_prune_interval: int = int(os.getenv("SESSION_PRUNE_INTERVAL", "86400"))  # 24 saat
    session_cookie_secure: bool = os.getenv("SESSION_COOKIE_SECURE", "False").lower() in ("true", "1", "yes")

    # Yükleme Ayarları
    upload_dir: str = os.getenv("UPLOAD_DIR", "uploads")
    max_upload_size: int = int(os.getenv("MAX_UPLOAD_SIZE", "5242880"))  # 5MB
    allowed_image_extensions: list = field(default_factory=lambda: [".jpg", ".jpeg", ".png"])
    allowed_image_types: list = field(default_factory=lambda: ["image/jpeg", "image/jpg", "image/png"])

    # Genel rota tarafından sunulan ön yüz derlemesi
    client_dist_dir: str = os.getenv("CLIENT_DIST_DIR", os.path.join("client", "dist"))

    # Kitap Varsayılanları
    default_cover_color: str = os.getenv("DEFAULT_COVER_COLOR", "purple")


settings = Settings()
