import pytest

from gallery_api.exceptions import ConfigurationError
from gallery_api.services.url_resolver import PublicUrlResolver


def test_resolve_joins_base_and_key():
    resolver = PublicUrlResolver("https://cdn.example.com/photos/")
    assert resolver.resolve("1718-abc.jpg") == "https://cdn.example.com/photos/1718-abc.jpg"


def test_resolve_quotes_key():
    resolver = PublicUrlResolver("https://cdn.example.com")
    assert resolver.resolve("a b/ü.jpg") == "https://cdn.example.com/a%20b/%C3%BC.jpg"


def test_absolute_path_base():
    assert PublicUrlResolver("/media").resolve("k.jpg") == "/media/k.jpg"


@pytest.mark.parametrize("base", ["", "   ", "cdn.example.com", "ftp://cdn.example.com", "https://", "//cdn.example.com"])
def test_rejects_bad_base(base):
    with pytest.raises(ConfigurationError):
        PublicUrlResolver(base)
