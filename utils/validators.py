import os
import re
from typing import Iterable, Optional

from errors import UploadRejected, ValidationError

_INT_RE = re.compile(r"^[+-]?\d+$")


class BookIdValidator:
    """URL yolundan alınan kitap id'lerini ayrıştırır."""

    @staticmethod
    def parse(raw: Optional[str]) -> int:
        if raw is None:
            raise ValidationError("Invalid book ID")
        s = raw.strip()
        if not _INT_RE.match(s):
            raise ValidationError("Invalid book ID")
        return int(s)


class ImageUploadValidator:
    """Yüklenen kapak resmini izin verilen türlere ve boyut sınırına göre denetler.

    Hem dosya uzantısı hem de bildirilen MIME türü kabul edilebilir olmalıdır.
    """

    def __init__(self, allowed_extensions: Iterable[str], allowed_types: Iterable[str], max_size: int) -> None:
        self.allowed_extensions = {e.lower() for e in allowed_extensions}
        self.allowed_types = {t.lower() for t in allowed_types}
        self.max_size = max_size

    def extension_of(self, filename: Optional[str]) -> str:
        return os.path.splitext(filename or "")[1].lower()

    def check_type(self, filename: Optional[str], content_type: Optional[str]) -> str:
        """Normalleştirilmiş uzantıyı döndür veya UploadRejected yükselt."""
        ext = self.extension_of(filename)
        ctype = (content_type or "").lower().split(";")[0].strip()
        if ext not in self.allowed_extensions or ctype not in self.allowed_types:
            raise UploadRejected("Only JPEG, JPG, and PNG files are allowed")
        return ext

    def check_size(self, size: int) -> None:
        if size > self.max_size:
            raise UploadRejected(f"File too large (max {self.max_size} bytes)")
