from typing import Any, List, Optional


class LibraryError(Exception):
    """Raporlandığı HTTP durum kodunu taşıyan temel hata."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(LibraryError):
    """Hatalı id veya istek gövdesi. Alan düzeyindeki hatalar istemciye iletilir."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Any]] = None) -> None:
        super().__init__(message)
        self.errors = errors

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.errors is not None:
            payload["errors"] = self.errors
        return payload


class NotFound(LibraryError):
    status_code = 404


class Unauthorized(LibraryError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InvalidCredentials(Unauthorized):
    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class UploadRejected(LibraryError):
    status_code = 400


class InternalError(LibraryError):
    """Beklenmeyen hata; istemciye gönderilen mesaj her zaman geneldir."""

    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
