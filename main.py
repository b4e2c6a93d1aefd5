"""
Nexus Site Deployer - Cloud Run Service

Generates static sites and framework projects from component-based site
descriptors and deploys them to Netlify.
"""

import logging
from io import BytesIO
from typing import Any, Dict

from flask import Flask, request, jsonify, send_file
from pydantic import ValidationError as ModelValidationError

from nexus import registry
from nexus.clients import NetlifyClient, record_deployment, store_archive_backup
from nexus.config import ARCHIVE_BUCKET, ENVIRONMENT, GCP_PROJECT, LOG_LEVEL, NETLIFY_TOKEN, PORT
from nexus.deployer import deploy, export_site
from nexus.errors import DeployError
from nexus.jobs import JobStore
from nexus.logging_config import setup_logging
from nexus.models import ComponentRecord, DeploymentRequest, SiteDescriptor, describe_validation_error

setup_logging(environment=ENVIRONMENT, project_id=GCP_PROJECT, log_level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# HTTP status per failure type; anything unlisted is a 500
_STATUS_CODES = {
    'validation_error': 400,
    'empty_archive': 400,
    'generation_error': 400,
    'network_error': 502,
    'remote_error': 502,
    'timeout': 504,
    'cancelled': 409,
}

_ERROR_HELP = {
    'validation_error': {
        'message': 'The deployment request is invalid',
        'next_steps': [
            'Use 2-63 lowercase letters, digits and hyphens for the site name',
            'Provide a Netlify access token or enable demo mode',
        ]
    },
    'empty_archive': {
        'message': 'Nothing to deploy',
        'next_steps': [
            'Add at least one page or component to the site',
        ]
    },
    'network_error': {
        'message': 'Could not reach the Netlify API',
        'next_steps': [
            'Check your internet connection and try again',
        ]
    },
    'remote_error': {
        'message': 'Netlify API or build error',
        'next_steps': [
            'Check Netlify access token is valid',
            'Check the site name is not already taken',
            'Review Netlify deployment logs',
        ]
    },
    'timeout': {
        'message': 'Deployment did not finish in time',
        'next_steps': [
            'Check your Netlify dashboard for the deploy status',
        ]
    },
}


def _backup_sink():
    if not ARCHIVE_BUCKET:
        return None
    return store_archive_backup


def _deploy_sinks() -> Dict[str, Any]:
    return {
        'history': record_deployment,
        'backup': _backup_sink(),
    }


def _with_default_token(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fall back to the service's own token when the caller sends none"""
    if not data.get('token') and not data.get('demo_mode') and NETLIFY_TOKEN:
        data = dict(data, token=NETLIFY_TOKEN)
    return data


def _error_response(result) -> Dict[str, Any]:
    body = result.to_dict()
    help_info = _ERROR_HELP.get(result.error_type)
    if help_info:
        body['help'] = help_info
    return body


app = Flask(__name__)
jobs = JobStore(deploy_kwargs=_deploy_sinks())


@app.after_request
def _allow_cross_origin(response):
    response.headers.setdefault('Access-Control-Allow-Origin', '*')
    return response


@app.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    return jsonify({'status': 'healthy', 'service': 'nexus-site-deployer'}), 200


@app.route('/components', methods=['GET'])
def list_components():
    """
    Component library, optionally filtered by category.

    Query:
        category: e.g. 'navbar', 'hero', 'footer'
    """
    category = request.args.get('category')
    if category:
        if category not in registry.categories():
            return jsonify({
                'error': f'Unknown category: {category}',
                'categories': registry.categories()
            }), 400
        templates = registry.by_category(category)
    else:
        templates = registry.list_all()

    return jsonify({
        'categories': registry.categories(),
        'components': [template.model_dump() for template in templates]
    }), 200


@app.route('/export', methods=['POST', 'OPTIONS'])
def export():
    """
    Download a site as a zip archive.

    Request body:
    {
        "site": {"name": "My Site", "pages": [...]},
        "components": [{"id": "...", "type": "hero-simple", "order": 0, "props": {...}}],
        "target_format": "html" (optional: html, nextjs, react, astro)
    }
    """
    if request.method == 'OPTIONS':
        return _cors_response()

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No JSON data provided'}), 400

    try:
        site = SiteDescriptor.model_validate(data.get('site') or {})
        components = [ComponentRecord.model_validate(c) for c in data.get('components') or []]
    except ModelValidationError as e:
        return jsonify({'error': f'Invalid request: {describe_validation_error(e)}'}), 400

    try:
        filename, archive = export_site(site, components, data.get('target_format'))
    except DeployError as e:
        logger.warning("Export failed (%s): %s", e.error_type, e.message)
        return jsonify({
            'error': e.message,
            'error_type': e.error_type,
            'hint': e.hint
        }), _STATUS_CODES.get(e.error_type, 500)

    logger.info("Exported %s (%.2f KB)", filename, len(archive) / 1024)
    return send_file(
        BytesIO(archive),
        mimetype='application/zip',
        as_attachment=True,
        download_name=filename
    )


@app.route('/deploy', methods=['POST', 'OPTIONS'])
def deploy_site():
    """
    Deploy a site and wait for the outcome.

    Request body:
    {
        "site": {...},
        "components": [...],
        "site_name": "my-site",
        "token": "nfp_..." (optional when the service has NETLIFY_TOKEN),
        "demo_mode": false,
        "target_format": "html",
        "project_id": "..." (optional, recorded in history),
        "site_id": "..." (optional, redeploy an existing site)
    }

    Returns:
        DeploymentResult JSON
    """
    if request.method == 'OPTIONS':
        return _cors_response()

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No JSON data provided'}), 400

    result = deploy(_with_default_token(data), **_deploy_sinks())

    if result.success:
        return jsonify(result.to_dict()), 200

    return jsonify(_error_response(result)), _STATUS_CODES.get(result.error_type, 500)


@app.route('/deployments', methods=['POST', 'OPTIONS'])
def start_deployment():
    """Queue a background deployment; same body as /deploy"""
    if request.method == 'OPTIONS':
        return _cors_response()

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No JSON data provided'}), 400

    try:
        deployment = DeploymentRequest.model_validate(_with_default_token(data))
    except ModelValidationError as e:
        return jsonify({'error': f'Invalid request: {describe_validation_error(e)}'}), 400

    job = jobs.submit(deployment)
    return jsonify(job.to_dict()), 202


@app.route('/deployments/<job_id>', methods=['GET'])
def get_deployment(job_id):
    job = jobs.get_job(job_id)
    if job is None:
        return jsonify({'error': f'Deployment job not found: {job_id}'}), 404
    return jsonify(job.to_dict()), 200


@app.route('/deployments/<job_id>', methods=['DELETE'])
def cancel_deployment(job_id):
    job = jobs.cancel(job_id)
    if job is None:
        return jsonify({'error': f'Deployment job not found: {job_id}'}), 404
    return jsonify(job.to_dict()), 200


@app.route('/credentials/validate', methods=['POST', 'OPTIONS'])
def validate_credentials():
    """Check a Netlify token against the live API; the token is never logged"""
    if request.method == 'OPTIONS':
        return _cors_response()

    data = request.get_json(silent=True) or {}
    token = (data.get('token') or '').strip()
    if not token:
        return jsonify({'valid': False, 'error': 'Netlify access token is required'}), 400

    with NetlifyClient(token) as client:
        valid = client.validate_credential()

    return jsonify({'valid': valid}), 200


def _cors_response():
    """Handle CORS preflight requests"""
    headers = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Methods': 'GET, POST, DELETE, OPTIONS',
        'Access-Control-Allow-Headers': 'Content-Type',
        'Access-Control-Max-Age': '3600'
    }
    return ('', 204, headers)


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=PORT)
