from __future__ import annotations

import logging
import threading
import zipfile
from io import BytesIO

import pytest

from nexus.clients.netlify import NetlifyClient
from nexus.deployer import deploy, export_site, resolve_live_url
from nexus.models import DeploymentHistoryRecord, RemoteDeploy, RemoteSite

from .conftest import FakeResponse, connection_error, deploy_payload, site_payload


@pytest.fixture
def request_data(site, components) -> dict:
    return {
        "site": site.model_dump(),
        "components": [c.model_dump() for c in components],
        "site_name": "my-site-1",
        "token": "nfp_test_token",
        "project_id": "proj-1",
    }


def test_demo_mode_makes_no_http_calls(client, session, request_data) -> None:
    request_data.update(token=None, demo_mode=True)

    result = deploy(request_data, client=client)

    assert result.success is True
    assert result.is_demo is True
    assert result.live_url == "https://my-site-1.netlify.app"
    assert result.deploy_id.startswith("demo-")
    assert session.calls == []


def test_invalid_input_fails_without_network(client, session, request_data) -> None:
    request_data["site_name"] = "My_Site"

    result = deploy(request_data, client=client)

    assert result.success is False
    assert result.error_type == "validation_error"
    assert "lowercase" in result.error_message
    assert session.calls == []


def test_missing_token_fails_without_network(client, session, request_data) -> None:
    request_data["token"] = ""

    result = deploy(request_data, client=client)

    assert result.error_type == "validation_error"
    assert session.calls == []


def test_empty_archive_is_rejected_before_site_creation(client, session, request_data) -> None:
    result = deploy(request_data, client=client, generator=lambda site, components, fmt: [])

    assert result.success is False
    assert result.error_type == "empty_archive"
    assert session.calls == []


def test_successful_deploy(client, session, request_data) -> None:
    session.queue(
        site_payload(),
        deploy_payload("uploaded"),
        deploy_payload("processing"),
        deploy_payload(
            "ready",
            ssl_url="https://my-site-1.netlify.app",
            deploy_ssl_url="https://deploy-456--my-site-1.netlify.app",
        ),
    )
    progress: list[tuple[int, str]] = []
    history: list[DeploymentHistoryRecord] = []
    backups: list[tuple[str, bytes]] = []

    result = deploy(
        request_data,
        client=client,
        on_progress=lambda percent, message: progress.append((percent, message)),
        history=history.append,
        backup=lambda name, archive: backups.append((name, archive)),
    )

    assert result.success is True
    assert result.live_url == "https://my-site-1.netlify.app"
    assert result.preview_url == "https://deploy-456--my-site-1.netlify.app"
    assert result.site_id == "site-123"
    assert result.deploy_id == "deploy-456"
    assert result.state == "ready"

    assert [call["method"] for call in session.calls] == ["POST", "POST", "GET", "GET"]
    with zipfile.ZipFile(BytesIO(session.calls[1]["body"])) as archive:
        assert "index.html" in archive.namelist()

    percents = [percent for percent, _ in progress]
    assert percents == sorted(percents)
    assert progress[-1] == (100, "Deployment complete!")
    assert "Creating Netlify site..." in [message for _, message in progress]

    assert len(history) == 1
    assert history[0].project_id == "proj-1"
    assert history[0].url == "https://my-site-1.netlify.app"
    assert history[0].status == "success"
    assert backups[0][0] == "my-site-1"


def test_ready_upload_skips_polling(client, session, request_data) -> None:
    session.queue(site_payload(), deploy_payload("ready"))

    result = deploy(request_data, client=client)

    assert result.success is True
    assert len(session.calls) == 2


def test_live_url_falls_back_to_conventional_pattern(client, session, request_data) -> None:
    session.queue(FakeResponse(201, {"id": "site-123", "name": "my-site-1"}), deploy_payload("ready"))

    result = deploy(request_data, client=client)

    assert result.live_url == "https://my-site-1.netlify.app"


def test_resolve_live_url_prefers_secure_url() -> None:
    deploy_state = RemoteDeploy(id="d", url="http://plain.example", ssl_url="https://secure.example")
    site_state = RemoteSite(id="s", name="n", ssl_url="https://site.example")

    assert resolve_live_url("n", deploy_state, site_state) == "https://secure.example"
    assert resolve_live_url("n", RemoteDeploy(id="d", url="http://plain.example"), site_state) == "http://plain.example"
    assert resolve_live_url("n", RemoteDeploy(id="d"), site_state) == "https://site.example"
    assert resolve_live_url("n") == "https://n.netlify.app"


def test_upload_failure_reports_created_site(client, session, request_data) -> None:
    session.queue(site_payload(), connection_error())

    result = deploy(request_data, client=client)

    assert result.success is False
    assert result.error_type == "network_error"
    assert result.site_id == "site-123"
    assert result.deploy_id is None
    assert result.hint == "Check your internet connection and try again"


def test_timeout_is_distinct_from_remote_error(client, session, request_data) -> None:
    session.queue(site_payload(), deploy_payload("uploaded"))
    session.queue(*[deploy_payload("building") for _ in range(3)])

    result = deploy(request_data, client=client, max_attempts=3)

    assert result.success is False
    assert result.error_type == "timeout"
    assert result.state == "timeout"
    assert result.site_id == "site-123"
    assert result.deploy_id == "deploy-456"


def test_failed_build_message_is_verbatim(client, session, request_data) -> None:
    session.queue(
        site_payload(),
        deploy_payload("uploaded"),
        deploy_payload("error", error_message="Deploy directory 'dist' does not exist"),
    )

    result = deploy(request_data, client=client)

    assert result.error_type == "remote_error"
    assert result.error_message == "Deploy directory 'dist' does not exist"
    assert result.state == "error"


def test_redeploy_to_existing_site(client, session, request_data) -> None:
    request_data["site_id"] = "site-999"
    session.queue(deploy_payload("ready"))

    result = deploy(request_data, client=client)

    assert result.success is True
    assert result.site_id == "site-999"
    assert session.calls[0]["url"].endswith("/sites/site-999/deploys")


def test_unexpected_exception_becomes_result(client, session, request_data) -> None:
    def broken_generator(site, components, fmt):
        raise RuntimeError("disk on fire")

    result = deploy(request_data, client=client, generator=broken_generator)

    assert result.success is False
    assert result.error_type == "internal_error"
    assert result.error_message == "disk on fire"


def test_failing_sinks_and_observer_do_not_fail_deploy(client, session, request_data) -> None:
    session.queue(site_payload(), deploy_payload("ready"))

    def explode(*args):
        raise RuntimeError("sink down")

    result = deploy(request_data, client=client, on_progress=explode, history=explode, backup=explode)

    assert result.success is True


def test_malformed_request_is_validation_failure() -> None:
    result = deploy({"site_name": "my-site-1"})

    assert result.success is False
    assert result.error_type == "validation_error"


def test_unsupported_format_is_validation_failure(client, session, request_data) -> None:
    request_data["target_format"] = "flash"

    result = deploy(request_data, client=client)

    assert result.error_type == "validation_error"
    assert session.calls == []


def test_export_site_returns_named_zip(site, components) -> None:
    filename, archive = export_site(site, components, "astro")

    assert filename == "acme-bakery-netlify-ready.zip"
    with zipfile.ZipFile(BytesIO(archive)) as zf:
        assert "src/pages/index.astro" in zf.namelist()
        assert "netlify.toml" in zf.namelist()


def test_invalid_request_never_echoes_token(caplog) -> None:
    caplog.set_level(logging.DEBUG)

    result = deploy({"site_name": "my-site-1", "token": "nfp_SECRET_TOKEN_123"})

    assert result.error_type == "validation_error"
    assert "site" in result.error_message
    assert "nfp_SECRET_TOKEN_123" not in result.error_message
    assert "nfp_SECRET_TOKEN_123" not in caplog.text


def test_non_ascii_token_rejected_before_generation(client, session, request_data) -> None:
    request_data["token"] = "tok€"
    generated = []

    result = deploy(request_data, client=client, generator=lambda *args: generated.append(args) or [])

    assert result.error_type == "validation_error"
    assert generated == []
    assert session.calls == []


def test_cancel_event_reaches_injected_client(session, request_data) -> None:
    cancel = threading.Event()
    client = NetlifyClient("nfp_test_token", session=session, sleep=lambda seconds: cancel.set())
    session.queue(site_payload(), deploy_payload("uploaded"))

    result = deploy(request_data, client=client, cancel_event=cancel)

    assert result.error_type == "cancelled"
    assert result.state == "cancelled"
    assert result.deploy_id == "deploy-456"
    assert len(session.calls) == 2
