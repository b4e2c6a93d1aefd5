"""
Service configuration, read once from the environment
"""

import os

ENVIRONMENT = os.getenv('ENVIRONMENT', 'dev')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
GCP_PROJECT = os.getenv('GCP_PROJECT')

# Hosting provider
NETLIFY_API_URL = os.getenv('NETLIFY_API_URL', 'https://api.netlify.com/api/v1')
NETLIFY_TOKEN = os.getenv('NETLIFY_TOKEN')
PROVIDER_DOMAIN = os.getenv('PROVIDER_DOMAIN', 'netlify.app')
USER_AGENT = 'Nexus-Website-Builder'
REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', '30'))

# 2s x 75 checks bounds the wait to ~2.5 minutes
POLL_INTERVAL_SECONDS = float(os.getenv('POLL_INTERVAL_SECONDS', '2'))
POLL_MAX_ATTEMPTS = int(os.getenv('POLL_MAX_ATTEMPTS', '75'))
SECONDARY_POLL_INTERVAL_SECONDS = float(os.getenv('SECONDARY_POLL_INTERVAL_SECONDS', '5'))
SECONDARY_POLL_MAX_ATTEMPTS = int(os.getenv('SECONDARY_POLL_MAX_ATTEMPTS', '30'))

# Generation
EXPORT_FORMAT = os.getenv('EXPORT_FORMAT', 'html')

# Optional sinks
SUPABASE_URL = os.getenv('SUPABASE_URL')
SUPABASE_KEY = os.getenv('SUPABASE_KEY')
HISTORY_TABLE = os.getenv('HISTORY_TABLE', 'deployments')
ARCHIVE_BUCKET = os.getenv('ARCHIVE_BUCKET')

# HTTP service
DEPLOY_WORKERS = int(os.getenv('DEPLOY_WORKERS', '4'))
# Finished jobs are dropped from the in-memory store after this long
JOB_RETENTION_SECONDS = float(os.getenv('JOB_RETENTION_SECONDS', '3600'))
PORT = int(os.getenv('PORT', '8080'))
