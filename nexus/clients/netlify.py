"""
Netlify deployment integration
"""

import io
import logging
import threading
from typing import Any, Callable, Dict, Iterator, Optional

import requests

from nexus.config import (
    NETLIFY_API_URL,
    POLL_INTERVAL_SECONDS,
    POLL_MAX_ATTEMPTS,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from nexus.errors import (
    DeploymentCancelled,
    DeployTimeoutError,
    NetworkError,
    RemoteError,
    ValidationError,
)
from nexus.models import RemoteDeploy, RemoteSite
from nexus.validation import site_name_errors

logger = logging.getLogger(__name__)

UploadObserver = Callable[[int, int], None]
StateObserver = Callable[[RemoteDeploy, int], None]


class ProgressReader:
    """
    File-like view over an archive that reports bytes handed to the transport.

    Reports are monotonic (bytes only ever increase) and stop for good once
    `close()` is called, so nothing is reported after the upload settles.
    """

    chunk_size = 64 * 1024

    def __init__(self, data: bytes, callback: Optional[UploadObserver] = None):
        self._stream = io.BytesIO(data)
        self._callback = callback
        self._settled = False
        self.total = len(data)
        self.sent = 0

    def __len__(self) -> int:
        return self.total

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size if size and size > 0 else -1)
        if chunk:
            self.sent += len(chunk)
            if self._callback and not self._settled:
                self._callback(self.sent, self.total)
        return chunk

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(self.chunk_size)
            if not chunk:
                break
            yield chunk

    def close(self) -> None:
        self._settled = True
        self._stream.close()


def _error_message(response: requests.Response) -> str:
    """Provider message verbatim when there is one, else a status-derived message"""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        for key in ('message', 'error_message', 'error'):
            if payload.get(key):
                return str(payload[key])

    return f"HTTP {response.status_code}: {response.reason or 'Request failed'}"


class NetlifyClient:
    """
    One deployment attempt's view of the Netlify REST API.

    Args:
        token: Personal access token, sent as a bearer token and never logged
        api_url: API base URL
        session: Optional requests.Session (tests pass a fake)
        timeout: Per-request timeout in seconds
        sleep: Optional wait function used between status checks
        cancel_event: Set it to abandon polling; no further request is issued
    """

    def __init__(
        self,
        token: str,
        api_url: str = NETLIFY_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
        sleep: Optional[Callable[[float], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.token = token
        self.api_url = api_url.rstrip('/')
        self.session = session or requests.Session()
        self._owns_session = session is None
        self.timeout = timeout
        self.cancel_event = cancel_event or threading.Event()
        self._sleep = sleep

    def __enter__(self) -> 'NetlifyClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def _wait(self, seconds: float, cancel_event: threading.Event) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        else:
            # Event.wait returns early when the deployment is cancelled
            cancel_event.wait(seconds)

    def _check_cancelled(self, cancel_event: threading.Event) -> None:
        if cancel_event.is_set():
            raise DeploymentCancelled('Deployment was cancelled')

    def _headers(self, extra: Dict[str, str] = None) -> Dict[str, str]:
        headers = {
            'Authorization': f'Bearer {self.token}',
            'User-Agent': USER_AGENT,
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, path: str, headers: Dict[str, str] = None, **kwargs) -> Any:
        url = f"{self.api_url}{path}"

        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(headers),
                timeout=self.timeout,
                **kwargs
            )
        except UnicodeEncodeError as e:
            # Header values must be latin-1; the token is never echoed
            raise ValidationError('Access token contains characters that cannot be sent in a header') from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Failed to connect to Netlify API ({method} {path}): {str(e)}") from e

        if not 200 <= response.status_code < 300:
            message = _error_message(response)
            logger.warning(
                "Netlify API error on %s %s: %s - %s", method, path, response.status_code, message
            )
            raise RemoteError(message, status_code=response.status_code)

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(
                f"Invalid JSON from Netlify (status {response.status_code})",
                status_code=response.status_code,
            ) from e

    def validate_credential(self) -> bool:
        """
        Check that the token reaches the API and is accepted.

        Returns:
            True when `GET /sites` succeeds; False on any network or auth failure
        """
        try:
            self._request('GET', '/sites', params={'per_page': 1})
            return True
        except (NetworkError, RemoteError, ValidationError) as e:
            logger.warning("Netlify credential check failed: %s", e.message)
            return False

    def create_site(self, name: str) -> RemoteSite:
        """
        Create a new site.

        Args:
            name: Desired site name (becomes {name}.netlify.app)

        Returns:
            RemoteSite with the provider-assigned id

        Raises:
            ValidationError: invalid name; raised before any request
        """
        errors = site_name_errors(name)
        if errors:
            raise ValidationError('; '.join(errors))

        payload = {
            'name': name,
            'custom_domain': None,
            'build_settings': {
                'cmd': '',
                'dir': '',
                'env': {}
            }
        }

        logger.info("Creating Netlify site: %s", name)
        data = self._request('POST', '/sites', json=payload, headers={'Content-Type': 'application/json'})

        if not isinstance(data, dict) or not data.get('id'):
            raise RemoteError('Netlify did not return a site id')

        data.setdefault('name', name)
        return RemoteSite.model_validate(data)

    def upload_deploy(
        self,
        site_id: str,
        archive: bytes,
        on_progress: Optional[UploadObserver] = None
    ) -> RemoteDeploy:
        """
        Upload a zip archive as a new deploy of a site.

        Args:
            site_id: Netlify site id
            archive: Zip bytes
            on_progress: Optional observer called with (bytes_sent, total)

        Returns:
            RemoteDeploy as accepted by the provider (usually not yet ready)
        """
        reader = ProgressReader(archive, on_progress)
        logger.info("Uploading deploy to site %s (%.2f KB)", site_id, len(archive) / 1024)

        try:
            data = self._request(
                'POST',
                f'/sites/{site_id}/deploys',
                data=reader,
                headers={'Content-Type': 'application/zip'}
            )
        finally:
            reader.close()

        if not isinstance(data, dict) or not data.get('id'):
            raise RemoteError('Netlify did not return a deploy id')

        data.setdefault('site_id', site_id)
        return RemoteDeploy.model_validate(data)

    def get_deploy(self, site_id: str, deploy_id: str) -> RemoteDeploy:
        data = self._request('GET', f'/sites/{site_id}/deploys/{deploy_id}')
        if not isinstance(data, dict):
            raise RemoteError('Unexpected deploy status payload from Netlify')
        data.setdefault('id', deploy_id)
        data.setdefault('site_id', site_id)
        return RemoteDeploy.model_validate(data)

    def poll_until_terminal(
        self,
        site_id: str,
        deploy_id: str,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        on_state: Optional[StateObserver] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> RemoteDeploy:
        """
        Poll deploy status until it is ready or failed.

        Waits `interval` seconds before each status check. Transient failures
        of a check (network, 429, 5xx) use up an attempt and are retried.

        Args:
            site_id: Netlify site id
            deploy_id: Netlify deploy id
            interval: Seconds between checks (default: POLL_INTERVAL_SECONDS)
            max_attempts: Status checks before giving up (default: POLL_MAX_ATTEMPTS)
            on_state: Optional observer called with (deploy, attempt) after each check
            cancel_event: Overrides the client's own cancel event for this poll

        Returns:
            The deploy in state 'ready'

        Raises:
            RemoteError: the deploy reached state 'error'
            DeployTimeoutError: no terminal state within max_attempts checks
            DeploymentCancelled: the cancel event was set
        """
        interval = POLL_INTERVAL_SECONDS if interval is None else interval
        max_attempts = POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        cancel_event = cancel_event or self.cancel_event

        attempt = 0
        while attempt < max_attempts:
            self._check_cancelled(cancel_event)
            self._wait(interval, cancel_event)
            self._check_cancelled(cancel_event)
            attempt += 1

            try:
                deploy = self.get_deploy(site_id, deploy_id)
            except NetworkError as e:
                logger.warning(
                    "Failed to check deployment status (attempt %d/%d): %s", attempt, max_attempts, e.message
                )
                continue
            except RemoteError as e:
                if e.status_code is not None and (e.status_code == 429 or e.status_code >= 500):
                    logger.warning(
                        "Failed to check deployment status (attempt %d/%d): %s",
                        attempt, max_attempts, e.message
                    )
                    continue
                raise

            logger.info("Build status: %s (check %d/%d)", deploy.state, attempt, max_attempts)

            if on_state:
                on_state(deploy, attempt)

            if deploy.state == 'ready':
                return deploy

            if deploy.state == 'error':
                raise RemoteError(deploy.error_message or 'Deployment failed with unknown error')

        raise DeployTimeoutError(
            f'Deployment timed out after {max_attempts} status checks. '
            'Please check your Netlify dashboard for status.'
        )
