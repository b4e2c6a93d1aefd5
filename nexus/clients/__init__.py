"""Nexus site deployer - Client modules"""

from .netlify import NetlifyClient, ProgressReader
from .history import record_deployment
from .gcp import store_archive_backup

__all__ = [
    'NetlifyClient',
    'ProgressReader',
    'record_deployment',
    'store_archive_backup',
]
