"""
Deployment history sink backed by Supabase
"""

import logging
from typing import Any, Dict

from nexus.config import HISTORY_TABLE, SUPABASE_KEY, SUPABASE_URL
from nexus.models import DeploymentHistoryRecord

logger = logging.getLogger(__name__)

_supabase_client = None


def get_supabase():
    """Get Supabase client for history storage, or None when not configured"""
    global _supabase_client

    if _supabase_client is not None:
        return _supabase_client

    if not SUPABASE_URL or not SUPABASE_KEY:
        return None

    from supabase import create_client

    _supabase_client = create_client(SUPABASE_URL, SUPABASE_KEY)
    return _supabase_client


def record_deployment(record: DeploymentHistoryRecord, client=None) -> Dict[str, Any]:
    """
    Hand a successful deployment to the history store.

    Args:
        record: History record emitted by the deployer
        client: Optional Supabase client (defaults to the configured one)

    Returns:
        {
            'success': bool,
            'note': str (if skipped),
            'error': str (if failed)
        }
    """
    row = {
        'project_id': record.project_id,
        'site_name': record.site_name,
        'url': record.url,
        'deploy_time': record.deploy_time.isoformat(),
        'status': record.status,
    }

    try:
        supabase = client or get_supabase()
        if supabase is None:
            logger.info("Supabase not configured, deployment history not stored", extra={'history': row})
            return {
                'success': True,
                'note': 'History store not configured'
            }

        supabase.table(HISTORY_TABLE).insert(row).execute()
        logger.info("Logged deployment of %s to Supabase", record.site_name)

        return {'success': True}

    except Exception as e:
        logger.warning("Failed to save deployment history: %s", e)
        return {
            'success': False,
            'error': str(e)
        }
