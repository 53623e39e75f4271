from __future__ import annotations

import copy
from datetime import date


# JSON alan adı -> öznitelik adı
_CAMEL_TO_SNAKE = {
    "amazonLink": "amazon_link",
    "coverColor": "cover_color",
    "coverImage": "cover_image",
    "dateAdded": "date_added",
}

BOOK_FIELDS = (
    "title", "author", "genre", "description", "amazon_link",
    "cover_color", "cover_image", "featured", "date_added",
)


def normalize_book_fields(data: dict) -> dict:
    """camelCase JSON anahtarlarını öznitelik adlarına eşle, Book alanı olmayanları at."""
    normalized = {}
    for key, value in data.items():
        key = _CAMEL_TO_SNAKE.get(key, key)
        if key in BOOK_FIELDS:
            normalized[key] = value
    return normalized


class Book:
    """Katalogdaki tek bir kitap."""

    def __init__(self, id: int, title: str, author: str, genre: str,
                 description: str | None = None, amazon_link: str | None = None,
                 cover_color: str = "purple", cover_image: str | None = None,
                 featured: bool = False, date_added: str | None = None) -> None:
        self.id = id
        self.title = title
        self.author = author
        self.genre = genre
        self.description = description
        self.amazon_link = amazon_link
        self.cover_color = cover_color
        self.cover_image = cover_image
        self.featured = featured
        self.date_added = date_added or date.today().isoformat()

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.genre})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def copy(self) -> "Book":
        return copy.copy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "genre": self.genre,
            "description": self.description,
            "amazonLink": self.amazon_link,
            "coverColor": self.cover_color,
            "coverImage": self.cover_image,
            "featured": self.featured,
            "dateAdded": self.date_added,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        fields = normalize_book_fields(data)
        return Book(id=data["id"], **fields)


class User:
    """Hesap kaydı. id ve username dışındaki alanlar verildiği gibi saklanır."""

    def __init__(self, id: int, username: str, **extra) -> None:
        self.id = id
        self.username = username
        self.extra = dict(extra)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return (self.id, self.username, self.extra) == (other.id, other.username, other.extra)

    def copy(self) -> "User":
        return User(self.id, self.username, **copy.deepcopy(self.extra))

    def to_dict(self) -> dict:
        # Saklanan kimlik bilgisi alanları süreçten asla çıkmaz
        return {"id": self.id, "username": self.username}
