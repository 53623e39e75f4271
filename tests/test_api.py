import os
from datetime import date

import pytest
from fastapi.testclient import TestClient

DUNE = {"title": "Dune", "author": "Herbert", "genre": "Sci-Fi"}
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _create(client, **overrides):
    response = client.post("/api/books", json={**DUNE, **overrides})
    assert response.status_code == 201
    return response.json()


def test_create_book_applies_defaults(auth_client):
    response = auth_client.post("/api/books", json=DUNE)
    assert response.status_code == 201
    assert response.json() == {
        "id": 1,
        "title": "Dune",
        "author": "Herbert",
        "genre": "Sci-Fi",
        "description": None,
        "amazonLink": None,
        "coverColor": "purple",
        "coverImage": None,
        "featured": False,
        "dateAdded": date.today().isoformat(),
    }


def test_create_book_accepts_camel_case_fields(auth_client):
    book = _create(auth_client, amazonLink="https://a.co/dune", coverColor="blue", featured=True, dateAdded="2023-03-04")
    assert book["amazonLink"] == "https://a.co/dune"
    assert book["coverColor"] == "blue"
    assert book["featured"] is True
    assert book["dateAdded"] == "2023-03-04"


def test_create_book_ignores_client_id(auth_client):
    assert _create(auth_client, id=50)["id"] == 1


def test_create_book_schema_errors(auth_client, lib):
    response = auth_client.post("/api/books", json={"title": "Dune"})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid book data"
    missing = {e["loc"][-1] for e in body["errors"]}
    assert {"author", "genre"} <= missing
    assert lib.get_all_books() == []


@pytest.mark.parametrize("payload", [
    {"title": "", "author": "Herbert", "genre": "Sci-Fi"},
    {"title": "   ", "author": "Herbert", "genre": "Sci-Fi"},
    {"title": "Dune", "author": "Herbert", "genre": "Sci-Fi", "dateAdded": "yesterday"},
    {"title": "Dune", "author": "Herbert", "genre": "Sci-Fi", "featured": "maybe"},
])
def test_create_book_rejects_bad_fields(auth_client, payload):
    response = auth_client.post("/api/books", json=payload)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid book data"


def test_create_book_rejects_malformed_json(auth_client):
    response = auth_client.post(
        "/api/books", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400


def test_get_book(auth_client):
    created = _create(auth_client)
    response = auth_client.get(f"/api/books/{created['id']}")
    assert response.status_code == 200
    assert response.json() == created


def test_get_book_not_found(auth_client):
    response = auth_client.get("/api/books/999")
    assert response.status_code == 404
    assert response.json() == {"message": "Book not found"}


@pytest.mark.parametrize("bad_id", ["abc", "1.5", "12abc"])
def test_invalid_book_id(auth_client, bad_id):
    assert auth_client.get(f"/api/books/{bad_id}").json() == {"message": "Invalid book ID"}
    assert auth_client.get(f"/api/books/{bad_id}").status_code == 400
    assert auth_client.patch(f"/api/books/{bad_id}", json={"featured": True}).status_code == 400
    assert auth_client.delete(f"/api/books/{bad_id}").status_code == 400


def test_list_books(auth_client):
    assert auth_client.get("/api/books").json() == []
    _create(auth_client)
    _create(auth_client, title="Emma", author="Austen", genre="Romance")
    titles = [b["title"] for b in auth_client.get("/api/books").json()]
    assert titles == ["Dune", "Emma"]


def test_featured_books(auth_client):
    _create(auth_client, featured=True)
    _create(auth_client, title="Emma", author="Austen", genre="Romance")
    response = auth_client.get("/api/books/featured")
    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["Dune"]


def test_search_books(auth_client):
    _create(auth_client)
    _create(auth_client, title="Emma", author="Jane Austen", genre="Romance")
    assert [b["title"] for b in auth_client.get("/api/books/search/dune").json()] == ["Dune"]
    assert [b["title"] for b in auth_client.get("/api/books/search/jane austen").json()] == ["Emma"]
    assert auth_client.get("/api/books/search/tolkien").json() == []


def test_books_by_genre(auth_client):
    _create(auth_client)
    _create(auth_client, title="Hyperion", author="Simmons", genre="sci-fi")
    response = auth_client.get("/api/books/genre/Sci-Fi")
    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["Dune"]


def test_update_book_partial(auth_client):
    created = _create(auth_client, description="Desert planet")
    response = auth_client.patch(f"/api/books/{created['id']}", json={"featured": True, "id": 77})
    assert response.status_code == 200
    updated = response.json()
    assert updated == {**created, "featured": True}


def test_update_book_not_found(auth_client):
    response = auth_client.patch("/api/books/42", json={"title": "Nope"})
    assert response.status_code == 404
    assert response.json() == {"message": "Book not found"}


@pytest.mark.parametrize("payload", [
    {"title": None},
    {"title": ""},
    {"featured": None},
    {"coverColor": None},
    {"dateAdded": "05/01/2024"},
])
def test_update_book_schema_errors(auth_client, payload):
    created = _create(auth_client)
    response = auth_client.patch(f"/api/books/{created['id']}", json=payload)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid book data"
    assert auth_client.get(f"/api/books/{created['id']}").json() == created
    assert auth_client.get("/api/books").status_code == 200


def test_delete_book(auth_client):
    created = _create(auth_client)
    response = auth_client.delete(f"/api/books/{created['id']}")
    assert response.status_code == 204
    assert response.content == b""
    assert auth_client.get(f"/api/books/{created['id']}").status_code == 404
    assert auth_client.delete(f"/api/books/{created['id']}").status_code == 404


def test_admin_stats(auth_client):
    _create(auth_client, featured=True)
    _create(auth_client, title="Foundation", author="Asimov")
    _create(auth_client, title="Emma", author="Austen", genre="Romance", dateAdded="2001-01-01")
    response = auth_client.get("/api/admin/stats")
    assert response.status_code == 200
    assert response.json() == {
        "totalBooks": 3,
        "totalCategories": 2,
        "featuredBooks": 1,
        "recentBooks": 2,
    }


def test_upload_cover(auth_client, app_settings):
    response = auth_client.post(
        "/api/books/upload-cover", files={"cover": ("dune.png", PNG_BYTES, "image/png")}
    )
    assert response.status_code == 200
    cover_url = response.json()["coverUrl"]
    assert cover_url.startswith("/uploads/book-cover-")
    assert cover_url.endswith(".png")

    filename = cover_url.rsplit("/", 1)[1]
    assert os.path.exists(os.path.join(app_settings.upload_dir, filename))

    served = auth_client.get(cover_url)
    assert served.status_code == 200
    assert served.content == PNG_BYTES
    assert served.headers["access-control-allow-origin"] == "*"


def test_upload_cover_without_file(auth_client):
    response = auth_client.post("/api/books/upload-cover")
    assert response.status_code == 400
    assert response.json() == {"message": "No file uploaded"}


@pytest.mark.parametrize("filename,content_type", [
    ("cover.gif", "image/gif"),
    ("cover.png", "text/plain"),
    ("cover.txt", "image/png"),
])
def test_upload_cover_wrong_type(auth_client, app_settings, filename, content_type):
    response = auth_client.post(
        "/api/books/upload-cover", files={"cover": (filename, PNG_BYTES, content_type)}
    )
    assert response.status_code == 400
    assert response.json() == {"message": "Only JPEG, JPG, and PNG files are allowed"}
    assert os.listdir(app_settings.upload_dir) == []


def test_upload_cover_too_large(auth_client, app_settings):
    big = b"\xff\xd8\xff" + b"\x00" * (app_settings.max_upload_size + 1)
    response = auth_client.post(
        "/api/books/upload-cover", files={"cover": ("big.jpg", big, "image/jpeg")}
    )
    assert response.status_code == 400
    assert os.listdir(app_settings.upload_dir) == []


def test_upload_cover_requires_login(client):
    response = client.post(
        "/api/books/upload-cover", files={"cover": ("dune.png", PNG_BYTES, "image/png")}
    )
    assert response.status_code == 401


def test_unexpected_error_is_opaque(app, auth_client, lib, monkeypatch):
    def boom():
        raise RuntimeError("secret internals")

    monkeypatch.setattr(lib, "get_all_books", boom)
    client = TestClient(app, raise_server_exceptions=False)
    client.cookies = auth_client.cookies
    response = client.get("/api/books")
    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}
    assert "secret" not in response.text


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["totalBooks"] == 0
    assert body["activeSessions"] == 0


# --- Client shell / catch-all ---
def test_catch_all_serves_app_shell(client):
    response = client.get("/some/page")
    assert response.status_code == 200
    assert "app shell" in response.text


def test_catch_all_serves_existing_client_file(client):
    response = client.get("/favicon.ico")
    assert response.status_code == 200
    assert response.content == b"icon"


def test_catch_all_does_not_escape_dist(client):
    response = client.get("/..%2F..%2Fetc%2Fpasswd")
    assert response.status_code == 200
    assert "app shell" in response.text


def test_admin_pages_redirect_when_anonymous(client):
    response = client.get("/admin/books", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/admin/login"


def test_admin_login_page_is_served(client):
    response = client.get("/admin/login", follow_redirects=False)
    assert response.status_code == 200
    assert "app shell" in response.text


def test_admin_pages_served_when_logged_in(auth_client):
    response = auth_client.get("/admin/books", follow_redirects=False)
    assert response.status_code == 200
    assert "app shell" in response.text


def test_unknown_api_path_is_json_404(auth_client):
    response = auth_client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"message": "Not found"}


def test_anonymous_bad_body_is_unauthorized(client):
    response = client.post(
        "/api/books", content=b"{bad", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 401
    assert response.json() == {"message": "Unauthorized"}


def test_anonymous_upload_is_rejected_before_parsing(client):
    response = client.post(
        "/api/books/upload-cover",
        content=b"not multipart at all",
        headers={"Content-Type": "multipart/form-data; boundary=missing"},
    )
    assert response.status_code == 401


def test_unknown_api_path_requires_login(client):
    response = client.get("/api/nope")
    assert response.status_code == 401
    assert response.json() == {"message": "Unauthorized"}
    assert response.headers["x-content-type-options"] == "nosniff"
