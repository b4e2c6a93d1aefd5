"""
Input validation for deployments
"""

import re
from typing import List, Tuple

SITE_NAME_PATTERN = re.compile(r'^[a-z0-9][a-z0-9-]*[a-z0-9]$')
SITE_NAME_MAX_LENGTH = 63


def site_name_errors(site_name: str) -> List[str]:
    """
    Check a desired site name against the provider's subdomain rules.

    Args:
        site_name: Desired site name (becomes {site_name}.netlify.app)

    Returns:
        List of error messages (empty when valid)
    """
    errors = []

    if not site_name or not site_name.strip():
        return ['Site name is required']

    if len(site_name) > SITE_NAME_MAX_LENGTH:
        errors.append(f'Site name must be {SITE_NAME_MAX_LENGTH} characters or less')

    if not SITE_NAME_PATTERN.fullmatch(site_name):
        errors.append(
            'Site name must contain only lowercase letters, numbers, and hyphens, '
            'and cannot start or end with a hyphen'
        )

    return errors


def is_valid_site_name(site_name: str) -> bool:
    return not site_name_errors(site_name)


def validate_deploy_input(site_name: str, token: str, demo_mode: bool = False) -> Tuple[bool, List[str]]:
    """
    Validate everything a deployment needs before touching the network.

    Only presence and shape of the token are checked here; whether the
    provider accepts it is a live check (NetlifyClient.validate_credential).

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = site_name_errors(site_name)

    if not demo_mode:
        if not token or not token.strip():
            errors.append('A hosting provider access token is required')
        elif any(ch.isspace() for ch in token):
            errors.append('Access token must not contain whitespace')
        elif not (token.isascii() and token.isprintable()):
            errors.append('Access token must contain only printable ASCII characters')

    return len(errors) == 0, errors


def sanitize_site_name(name: str) -> str:
    """
    Turn a free-form project name into a candidate site name

    Args:
        name: Raw name input (e.g. 'My Cool Site!')

    Returns:
        Sanitized name (e.g. 'my-cool-site')
    """
    name = name.lower().strip()

    # Spaces and underscores become hyphens
    name = re.sub(r'[\s_]+', '-', name)
    name = re.sub(r'[^a-z0-9-]', '', name)
    name = re.sub(r'-+', '-', name)
    name = name.strip('-')

    return name[:SITE_NAME_MAX_LENGTH].rstrip('-')
