"""
Deployment orchestrator: generate, archive, upload and wait, behind one call.

`deploy()` is the only place internal failures are turned into the
DeploymentResult handed back to callers; it never raises.
"""

import hashlib
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as ModelValidationError

from .archiver import archive_filename, build_archive
from .clients.netlify import NetlifyClient
from .config import EXPORT_FORMAT, PROVIDER_DOMAIN
from .errors import DeployError, ValidationError
from .generator import generate_site, normalize_format
from .models import (
    ComponentRecord,
    DeploymentHistoryRecord,
    DeploymentRequest,
    DeploymentResult,
    RemoteDeploy,
    RemoteSite,
    SiteDescriptor,
    describe_validation_error,
)
from .validation import validate_deploy_input

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[int, str], None]
HistorySink = Callable[[DeploymentHistoryRecord], Any]
BackupSink = Callable[[str, bytes], Any]

# Terminal state reported for each failure type once a deploy exists
_FAILURE_STATES = {
    'timeout': 'timeout',
    'cancelled': 'cancelled',
    'remote_error': 'error',
}


class _MonotonicProgress:
    """Forwards progress to an observer, never letting the percentage go down"""

    def __init__(self, observer: Optional[ProgressObserver]):
        self._observer = observer
        self._lock = threading.Lock()
        self.percent = 0

    def __call__(self, percent: float, message: str) -> None:
        if self._observer is None:
            return
        with self._lock:
            self.percent = max(self.percent, min(100, int(percent)))
            current = self.percent
        try:
            self._observer(current, message)
        except Exception as e:
            logger.warning("Progress observer failed: %s", e)


def default_live_url(site_name: str) -> str:
    return f"https://{site_name}.{PROVIDER_DOMAIN}"


def resolve_live_url(
    site_name: str,
    deploy: Optional[RemoteDeploy] = None,
    site: Optional[RemoteSite] = None
) -> str:
    """Prefer the provider's secure URL, then its plain URL, then the conventional one"""
    for source in (deploy, site):
        if source is None:
            continue
        if source.ssl_url:
            return source.ssl_url
        if source.url:
            return source.url
    return default_live_url(site_name)


def demo_result(site_name: str) -> DeploymentResult:
    """A successful result computed locally, without touching the network"""
    digest = hashlib.sha1(site_name.encode('utf-8')).hexdigest()[:12]
    url = default_live_url(site_name)
    return DeploymentResult(
        success=True,
        live_url=url,
        preview_url=url,
        deploy_id=f'demo-{digest}',
        site_name=site_name,
        state='ready',
        is_demo=True,
    )


def export_site(
    site: SiteDescriptor,
    components: Sequence[ComponentRecord] = (),
    target_format: str = None,
    generated_at: Optional[datetime] = None
) -> Tuple[str, bytes]:
    """
    Generate and archive a site for download.

    Returns:
        (download filename, zip bytes)
    """
    fmt = normalize_format(target_format or EXPORT_FORMAT)
    files = generate_site(site, components, fmt, generated_at=generated_at)
    archive = build_archive(files)
    return archive_filename(site.name), archive


def _failure(
    error: DeployError,
    site_name: Optional[str],
    site_id: Optional[str],
    deploy_id: Optional[str]
) -> DeploymentResult:
    return DeploymentResult(
        success=False,
        error_type=error.error_type,
        error_message=error.message,
        hint=error.hint,
        site_name=site_name,
        site_id=site_id,
        deploy_id=deploy_id,
        state=_FAILURE_STATES.get(error.error_type) if deploy_id else None,
    )


def _emit_history(history: Optional[HistorySink], request: DeploymentRequest, result: DeploymentResult) -> None:
    if history is None:
        return
    record = DeploymentHistoryRecord(
        project_id=request.project_id,
        site_name=result.site_name,
        url=result.live_url,
        status='success',
    )
    try:
        history(record)
    except Exception as e:
        logger.warning("Failed to record deployment history for %s: %s", result.site_name, e)


def _emit_backup(backup: Optional[BackupSink], site_name: str, archive: bytes) -> None:
    if backup is None:
        return
    try:
        backup(site_name, archive)
    except Exception as e:
        logger.warning("Failed to back up archive for %s: %s", site_name, e)


def deploy(
    request: Union[DeploymentRequest, Dict[str, Any]],
    client: Optional[NetlifyClient] = None,
    generator: Callable = generate_site,
    on_progress: Optional[ProgressObserver] = None,
    history: Optional[HistorySink] = None,
    backup: Optional[BackupSink] = None,
    cancel_event: Optional[threading.Event] = None,
    poll_interval: Optional[float] = None,
    max_attempts: Optional[int] = None
) -> DeploymentResult:
    """
    Deploy a site to Netlify and report the outcome.

    Steps: validate input, short-circuit demo mode, generate and archive the
    site, create the remote site (unless `request.site_id` names an existing
    one), upload the deploy, poll until it is ready, resolve the live URL.

    Args:
        request: DeploymentRequest or its dict form
        client: Optional NetlifyClient; one is created (and closed) per call otherwise
        generator: Site generator, called as generator(site, components, format)
        on_progress: Optional observer called with (percent, message)
        history: Optional sink for the DeploymentHistoryRecord of a success
        backup: Optional sink called with (site_name, archive) after a success
        cancel_event: Abandons polling when set, also with an injected client
        poll_interval: Seconds between status checks
        max_attempts: Status check budget

    Returns:
        DeploymentResult; failures carry error_type, error_message and any
        remote ids obtained before the failure
    """
    progress = _MonotonicProgress(on_progress)
    site_name = site_id = deploy_id = None
    owned_client = None

    try:
        if request is None:
            raise ValidationError('A deployment request is required')
        if isinstance(request, dict):
            try:
                request = DeploymentRequest.model_validate(request)
            except ModelValidationError as e:
                raise ValidationError(f'Invalid deployment request: {describe_validation_error(e)}') from e

        site_name = request.site_name

        is_valid, errors = validate_deploy_input(request.site_name, request.token, request.demo_mode)
        if not is_valid:
            raise ValidationError('; '.join(errors))

        if request.demo_mode:
            logger.info("Demo deployment for %s, skipping Netlify", site_name)
            progress(100, 'Demo deployment complete!')
            return demo_result(site_name)

        target_format = normalize_format(request.target_format or EXPORT_FORMAT)

        progress(2, 'Generating site files...')
        files = generator(request.site, request.components, target_format)
        archive = build_archive(files)

        if client is None:
            client = owned_client = NetlifyClient(request.token, cancel_event=cancel_event)

        remote_site = None
        if request.site_id:
            site_id = request.site_id
            progress(20, 'Redeploying to existing site...')
        else:
            progress(5, 'Creating Netlify site...')
            remote_site = client.create_site(site_name)
            site_id = remote_site.id
            site_name = remote_site.name or site_name
            progress(20, 'Site created. Preparing deployment...')

        progress(30, 'Uploading files...')
        remote_deploy = client.upload_deploy(
            site_id,
            archive,
            on_progress=lambda sent, total: progress(
                30 + (30 * sent // total if total else 30), f'Uploading files ({sent}/{total} bytes)...'
            )
        )
        deploy_id = remote_deploy.id
        progress(60, 'Files uploaded. Building site...')

        if remote_deploy.state != 'ready':
            progress(70, 'Waiting for deployment to complete...')
            remote_deploy = client.poll_until_terminal(
                site_id,
                deploy_id,
                interval=poll_interval,
                max_attempts=max_attempts,
                cancel_event=cancel_event,
                on_state=lambda current, attempt: progress(80, f'Building site ({current.state})...')
            )

        live_url = resolve_live_url(site_name, remote_deploy, remote_site)
        progress(100, 'Deployment complete!')
        logger.info("Deployed %s to %s", site_name, live_url, extra={'site_id': site_id, 'deploy_id': deploy_id})

        result = DeploymentResult(
            success=True,
            live_url=live_url,
            preview_url=remote_deploy.deploy_ssl_url or remote_deploy.deploy_url,
            deploy_id=deploy_id,
            site_id=site_id,
            site_name=site_name,
            state=remote_deploy.state,
        )
        _emit_history(history, request, result)
        _emit_backup(backup, site_name, archive)
        return result

    except DeployError as e:
        logger.warning(
            "Deployment failed (%s): %s", e.error_type, e.message,
            extra={'site_name': site_name, 'site_id': site_id, 'deploy_id': deploy_id},
        )
        return _failure(e, site_name, site_id, deploy_id)

    except Exception as e:
        logger.exception("Unexpected deployment failure for %s", site_name)
        return DeploymentResult(
            success=False,
            error_type='internal_error',
            error_message=str(e) or e.__class__.__name__,
            site_name=site_name,
            site_id=site_id,
            deploy_id=deploy_id,
        )

    finally:
        if owned_client is not None:
            owned_client.close()
