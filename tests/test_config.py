from config import Settings


def test_default_settings():
    s = Settings()
    assert s.session_cookie_name
    assert s.session_max_age > 0
    assert s.session_prune_interval > 0
    assert ".png" in s.allowed_image_extensions
    assert "image/jpeg" in s.allowed_image_types


def test_settings_can_be_overridden():
    s = Settings(admin_username="root", admin_password="pw", max_upload_size=10, default_cover_color="red")
    assert s.admin_username == "root"
    assert s.admin_password == "pw"
    assert s.max_upload_size == 10
    assert s.default_cover_color == "red"


def test_image_lists_are_not_shared():
    a = Settings()
    b = Settings()
    a.allowed_image_extensions.append(".gif")
    assert ".gif" not in b.allowed_image_extensions
