"""Nexus site deployer - generate, package and deploy component-based sites to Netlify"""

from .deployer import deploy, export_site
from .generator import generate_site
from .archiver import build_archive, extract_archive

__all__ = [
    'deploy',
    'export_site',
    'generate_site',
    'build_archive',
    'extract_archive',
]
