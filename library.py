from abc import ABC, abstractmethod
from datetime import date
from threading import RLock
from typing import List, Optional, Dict, Any
import logging

from book import Book, User, normalize_book_fields
from config import settings

logger = logging.getLogger(__name__)


class BaseStorage(ABC):
    """Her kitap/kullanıcı arka ucunun sağlaması gereken yetenekler.

    Kalıcı bir arka uç, bellek içi `Library` yerine geçmek için yalnızca
    bu yöntemleri uygulamalıdır.
    """

    # ------------------------- Kullanıcılar ------------------------- #
    @abstractmethod
    def create_user(self, fields: Dict[str, Any]) -> User: ...

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    # ------------------------- Kitaplar ------------------------- #
    @abstractmethod
    def get_all_books(self) -> List[Book]: ...

    @abstractmethod
    def get_book(self, book_id: int) -> Optional[Book]: ...

    @abstractmethod
    def create_book(self, fields: Dict[str, Any]) -> Book: ...

    @abstractmethod
    def update_book(self, book_id: int, fields: Dict[str, Any]) -> Optional[Book]: ...

    @abstractmethod
    def delete_book(self, book_id: int) -> bool: ...

    @abstractmethod
    def get_featured_books(self) -> List[Book]: ...

    @abstractmethod
    def get_books_by_genre(self, genre: str) -> List[Book]: ...

    @abstractmethod
    def search_books(self, query: str) -> List[Book]: ...


class Library(BaseStorage):
    """Kitap ve kullanıcı koleksiyonlarını süreç belleğinde yönetir.

    Her işlem kilidi süresi boyunca tutar; FastAPI işleyicileri iş parçacığı
    havuzunda çalıştırsa da her işlem diğerlerine göre atomiktir.
    Dışarı verilen kayıtlar her zaman kopyadır.
    """

    def __init__(self, default_cover_color: Optional[str] = None) -> None:
        self.default_cover_color = default_cover_color or settings.default_cover_color
        self._lock = RLock()
        self._books: List[Book] = []
        self._users: List[User] = []
        self._next_book_id = 1
        self._next_user_id = 1

    # ------------------------- Kullanıcılar ------------------------- #
    def create_user(self, fields: Dict[str, Any]) -> User:
        data = dict(fields)
        data.pop("id", None)
        username = data.pop("username")
        with self._lock:
            user = User(self._next_user_id, username, **data)
            self._next_user_id += 1
            self._users.append(user)
            logger.debug(f"User created: id={user.id} username={user.username}")
            return user.copy()

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            user = self._find_user(user_id)
            return user.copy() if user else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for user in self._users:
                if user.username == username:
                    return user.copy()
            return None

    def update_user(self, user_id: int, fields: Dict[str, Any]) -> Optional[User]:
        """Kullanıcının verilen alanlarını değiştir. id asla değişmez."""
        with self._lock:
            user = self._find_user(user_id)
            if not user:
                return None
            for key, value in fields.items():
                if key == "id":
                    continue
                if key == "username":
                    user.username = value
                else:
                    user.extra[key] = value
            return user.copy()

    # ------------------------- Kitaplar ------------------------- #
    def get_all_books(self) -> List[Book]:
        with self._lock:
            return [b.copy() for b in self._books]

    def get_book(self, book_id: int) -> Optional[Book]:
        with self._lock:
            book = self._find_book(book_id)
            return book.copy() if book else None

    def create_book(self, fields: Dict[str, Any]) -> Book:
        """Yeni bir kitap kaydet, eksik isteğe bağlı alanları varsayılanlarla doldur."""
        data = normalize_book_fields(fields)
        with self._lock:
            book = Book(
                id=self._next_book_id,
                title=data["title"],
                author=data["author"],
                genre=data["genre"],
                description=data.get("description") or None,
                amazon_link=data.get("amazon_link") or None,
                cover_color=data.get("cover_color") or self.default_cover_color,
                cover_image=data.get("cover_image"),
                featured=bool(data.get("featured") or False),
                date_added=data.get("date_added") or date.today().isoformat(),
            )
            self._next_book_id += 1
            self._books.append(book)
            logger.info(f"Book created: id={book.id} title={book.title!r}")
            return book.copy()

    def update_book(self, book_id: int, fields: Dict[str, Any]) -> Optional[Book]:
        """Verilen alanları mevcut kitabın üzerine sığ birleştir.

        Güncellenen kitabı, id bilinmiyorsa None döndürür.
        """
        data = normalize_book_fields(fields)
        with self._lock:
            book = self._find_book(book_id)
            if not book:
                return None
            for key, value in data.items():
                setattr(book, key, value)
            logger.info(f"Book updated: id={book.id} fields={sorted(data)}")
            return book.copy()

    def delete_book(self, book_id: int) -> bool:
        with self._lock:
            before = len(self._books)
            self._books = [b for b in self._books if b.id != book_id]
            removed = len(self._books) != before
            if removed:
                logger.info(f"Book deleted: id={book_id}")
            return removed

    def get_featured_books(self) -> List[Book]:
        with self._lock:
            return [b.copy() for b in self._books if b.featured]

    def get_books_by_genre(self, genre: str) -> List[Book]:
        """Tam, büyük/küçük harfe duyarlı tür eşleşmesi."""
        with self._lock:
            return [b.copy() for b in self._books if b.genre == genre]

    def search_books(self, query: str) -> List[Book]:
        """Başlık, yazar ve türde büyük/küçük harfe duyarsız alt dize araması.

        Boş sorgu hiçbir şeyle eşleşmez.
        """
        needle = (query or "").strip().lower()
        if not needle:
            return []
        with self._lock:
            return [
                b.copy() for b in self._books
                if needle in b.title.lower()
                or needle in b.author.lower()
                or needle in b.genre.lower()
            ]

    def get_statistics(self, today: Optional[date] = None) -> Dict[str, int]:
        """Tek bir anlık görüntüden alınan yönetici paneli sayıları."""
        today_str = (today or date.today()).isoformat()
        books = self.get_all_books()
        return {
            "totalBooks": len(books),
            "totalCategories": len({b.genre for b in books}),
            "featuredBooks": sum(1 for b in books if b.featured),
            "recentBooks": sum(1 for b in books if b.date_added == today_str),
        }

    def clear(self) -> None:
        """Tüm kayıtları sil ve id atamasını baştan başlat."""
        with self._lock:
            self._books = []
            self._users = []
            self._next_book_id = 1
            self._next_user_id = 1

    # ------------------------- Yardımcılar ------------------------- #
    def _find_book(self, book_id: int) -> Optional[Book]:
        for book in self._books:
            if book.id == book_id:
                return book
        return None

    def _find_user(self, user_id: int) -> Optional[User]:
        for user in self._users:
            if user.id == user_id:
                return user
        return None
