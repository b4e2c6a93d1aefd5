"""
Failure taxonomy for site generation and deployment
"""

from typing import Optional


class DeployError(Exception):
    """Base class for every failure the pipeline raises"""

    error_type = 'deploy_error'
    hint = 'Review the error details and try again'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DeployError):
    """Bad input detected before any network activity"""

    error_type = 'validation_error'
    hint = 'Fix the highlighted input and try again'


class EmptyArchiveError(ValidationError):
    """The archive would contain no files"""

    error_type = 'empty_archive'
    hint = 'Add at least one page or component before deploying'

    def __init__(self, message: str = 'Cannot deploy an empty archive: no files were generated'):
        super().__init__(message)


class GenerationError(DeployError):
    error_type = 'generation_error'
    hint = 'The site could not be generated from the current project'


class NetworkError(DeployError):
    """The request never reached the provider"""

    error_type = 'network_error'
    hint = 'Check your internet connection and try again'


class RemoteError(DeployError):
    """
    The provider rejected a request or reported a failed deploy.

    The provider's own message is kept verbatim in `message`.
    """

    error_type = 'remote_error'
    hint = 'Review the provider response and deployment logs'

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DeployTimeoutError(DeployError):
    """The poll budget ran out before the deploy reached a terminal state"""

    error_type = 'timeout'
    hint = 'The build may still finish; check the hosting dashboard for its status'


class DeploymentCancelled(DeployError):
    error_type = 'cancelled'
    hint = 'The deployment was cancelled before it finished'
