"""Liveness endpoint and connection diagnostics."""
from conftest import auth_headers
from gallery_api.config import get_settings
from gallery_api.schemas.health import CheckStatus
from gallery_api.services.diagnostics import DiagnosticsService
from gallery_api.utils.prometheus_metrics import ready


async def test_diagnostics_all_pass(db_session, blob_store):
    report = await DiagnosticsService(db_session, blob_store).run_checks()

    assert report.healthy is True
    assert [c.name for c in report.checks] == [
        "configuration",
        "database",
        "metadata_table",
        "storage_access",
        "storage_write",
    ]
    assert all(c.status == CheckStatus.SUCCESS for c in report.checks)
    # Write probe cleans up after itself
    assert blob_store.objects == {}
    assert any(op == "put" and key.startswith(".healthcheck/") for op, key in blob_store.calls)


async def test_diagnostics_skips_write_when_storage_unreachable(db_session, blob_store):
    blob_store.fail_list = True

    report = await DiagnosticsService(db_session, blob_store).run_checks()
    checks = {c.name: c for c in report.checks}

    assert report.healthy is False
    assert checks["storage_access"].status == CheckStatus.ERROR
    assert checks["storage_write"].status == CheckStatus.SKIPPED
    assert checks["database"].status == CheckStatus.SUCCESS
    assert not any(op == "put" for op, _ in blob_store.calls)


async def test_diagnostics_reports_write_failure(db_session, blob_store):
    blob_store.fail_put = True

    report = await DiagnosticsService(db_session, blob_store).run_checks()
    checks = {c.name: c for c in report.checks}

    assert report.healthy is False
    assert checks["storage_write"].status == CheckStatus.ERROR
    assert "put failed" in checks["storage_write"].details


async def test_diagnostics_reports_bad_public_url(db_session, blob_store):
    settings = get_settings().model_copy(update={"storage_public_base_url": "ftp://nope"})

    report = await DiagnosticsService(db_session, blob_store, settings=settings).run_checks()

    assert report.checks[0].name == "configuration"
    assert report.checks[0].status == CheckStatus.ERROR
    assert report.healthy is False


async def test_health_endpoint(client):
    ready.set(1)
    try:
        response = await client.get("/health")
    finally:
        ready.set(0)

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_health_endpoint_not_ready(client):
    ready.set(0)
    response = await client.get("/health")
    assert response.status_code == 503


async def test_connection_endpoint_requires_token(client):
    response = await client.get("/health/connection")
    assert response.status_code == 401


async def test_connection_endpoint(client):
    response = await client.get("/health/connection", headers=auth_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["healthy"] is True
    assert len(body["checks"]) == 5
