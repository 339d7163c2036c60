"""Settings defaults and startup validation."""
import pytest

from gallery_api.config import DEFAULT_DATABASE_URL, Environment, Settings, StorageBackend
from gallery_api.exceptions import ConfigurationError
from gallery_api.utils.config_validator import validate_configuration, validate_storage_config


def _settings(**overrides):
    values = {"storage_public_base_url": ""}
    values.update(overrides)
    return Settings(**values)


def test_local_backend_public_base():
    settings = _settings(storage_backend=StorageBackend.LOCAL)
    assert settings.public_base_url == "/media"


def test_s3_public_base_from_endpoint():
    settings = _settings(
        storage_backend=StorageBackend.S3,
        storage_bucket="gallery",
        s3_endpoint_url="https://objects.example.com/",
    )
    assert settings.public_base_url == "https://objects.example.com/gallery"


def test_s3_public_base_defaults_to_aws():
    settings = _settings(storage_backend=StorageBackend.S3, storage_bucket="gallery", s3_region_name="eu-west-1")
    assert settings.public_base_url == "https://s3.eu-west-1.amazonaws.com/gallery"


def test_configured_public_base_wins():
    settings = _settings(storage_public_base_url="https://cdn.example.com/")
    assert settings.public_base_url == "https://cdn.example.com"


def test_empty_database_url_falls_back():
    assert _settings(database_url="  ").database_url == DEFAULT_DATABASE_URL


def test_validate_configuration_returns_resolver():
    resolver = validate_configuration(_settings(storage_public_base_url="https://cdn.example.com"))
    assert resolver.resolve("k.jpg") == "https://cdn.example.com/k.jpg"


def test_bad_public_base_aborts_startup():
    with pytest.raises(ConfigurationError):
        validate_configuration(_settings(storage_public_base_url="not a url"))


def test_half_configured_s3_credentials():
    settings = _settings(storage_backend=StorageBackend.S3, s3_access_key="AKIA", s3_secret_key="")
    assert validate_storage_config(settings) == ["S3_ACCESS_KEY and S3_SECRET_KEY must be set together"]


def test_storage_problems_fatal_only_in_production():
    dev = _settings(storage_backend=StorageBackend.S3, s3_access_key="AKIA", environment=Environment.DEV)
    prod = _settings(storage_backend=StorageBackend.S3, s3_access_key="AKIA", environment=Environment.PRODUCTION)

    validate_configuration(dev)
    with pytest.raises(ConfigurationError):
        validate_configuration(prod)
