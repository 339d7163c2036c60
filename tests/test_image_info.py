import io

from PIL import Image

from conftest import make_jpeg
from gallery_api.services.image_info import is_image_type, read_dimensions, resolve_content_type


def test_read_jpeg_dimensions():
    assert read_dimensions(make_jpeg(2000, 1000)) == (2000, 1000)


def test_read_png_dimensions():
    buf = io.BytesIO()
    Image.new("RGBA", (3, 7)).save(buf, format="PNG")
    assert read_dimensions(buf.getvalue()) == (3, 7)


def test_unreadable_image():
    assert read_dimensions(b"definitely not an image") is None


def test_resolve_content_type():
    assert resolve_content_type("a.jpg", "image/png") == "image/png"
    assert resolve_content_type("a.png", "application/octet-stream") == "image/png"
    assert resolve_content_type("a.jpg", None) == "image/jpeg"
    assert resolve_content_type("noext", None) is None


def test_is_image_type():
    assert is_image_type("image/webp")
    assert not is_image_type("text/plain")
    assert not is_image_type(None)
