"""
Public URL resolution for stored objects.
"""
from functools import lru_cache
from typing import Optional
from urllib.parse import quote, urlparse

from gallery_api.config import Settings, get_settings
from gallery_api.exceptions import ConfigurationError


class PublicUrlResolver:
    """
    Derives the public URL of a blob from the configured base and its key.

    Pure: no I/O, no per-call failure. A bad base URL is rejected when the
    resolver is constructed, which happens at startup.
    """

    def __init__(self, base_url: str):
        self.base_url = self._validate(base_url)

    @staticmethod
    def _validate(base_url: Optional[str]) -> str:
        base = (base_url or "").strip()
        if not base:
            raise ConfigurationError("Public storage base URL is not configured")
        if base.startswith("/"):
            if base.startswith("//"):
                raise ConfigurationError(f"Public storage base URL must not be protocol-relative: {base!r}")
            return base.rstrip("/")
        parsed = urlparse(base)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(
                f"Public storage base URL must be an http(s) URL or an absolute path: {base!r}"
            )
        return base.rstrip("/")

    def resolve(self, storage_key: str) -> str:
        """Return the public URL for ``storage_key``."""
        return f"{self.base_url}/{quote(storage_key.lstrip('/'), safe='/')}"


def build_url_resolver(settings: Settings) -> PublicUrlResolver:
    """Create a resolver from settings; raises ConfigurationError when misconfigured."""
    return PublicUrlResolver(settings.public_base_url)


@lru_cache()
def get_url_resolver() -> PublicUrlResolver:
    """Get the process-wide resolver."""
    return build_url_resolver(get_settings())
