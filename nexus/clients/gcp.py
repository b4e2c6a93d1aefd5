"""
Cloud Storage backups of deployed archives
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from google.cloud import storage

from nexus.config import ARCHIVE_BUCKET, GCP_PROJECT

logger = logging.getLogger(__name__)


def store_archive_backup(site_name: str, archive: bytes, bucket_name: str = None, client=None) -> Dict[str, Any]:
    """
    Store a deployed archive in Cloud Storage.

    Args:
        site_name: Site the archive was deployed to
        archive: Zip bytes
        bucket_name: Target bucket (default: ARCHIVE_BUCKET)
        client: Optional storage.Client

    Returns:
        {
            'success': bool,
            'backup_url': str,
            'error': str (if failed)
        }
    """
    bucket_name = bucket_name or ARCHIVE_BUCKET
    if not bucket_name:
        return {
            'success': False,
            'error': 'ARCHIVE_BUCKET not configured'
        }

    try:
        storage_client = client or storage.Client(project=GCP_PROJECT)
        bucket = storage_client.bucket(bucket_name)

        # sites/{site-name}/deploy-{timestamp}.zip
        timestamp = datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')
        blob_name = f"sites/{site_name}/deploy-{timestamp}.zip"

        blob = bucket.blob(blob_name)
        blob.upload_from_string(archive, content_type='application/zip')

        backup_url = f"gs://{bucket_name}/{blob_name}"
        logger.info("Archive backup stored: %s", backup_url)

        return {
            'success': True,
            'backup_url': backup_url
        }

    except Exception as e:
        logger.warning("Archive backup failed: %s", e)
        return {
            'success': False,
            'error': str(e)
        }
