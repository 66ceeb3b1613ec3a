"""AWS Lambda handler for the event catalog."""
import json
import logging
import os
import time
from typing import Any, Dict, Optional

from catalog.augmenter import map_links
from catalog.catalog_store import CatalogStore
from catalog.index_manager import IndexCorruptionError
from catalog.models import MutationResult, Outcome
from catalog.mutation_pipeline import MutationPipeline
from catalog.permissions import Authorizer
from catalog.query_engine import QueryEngine
from geocoding.maps_client import MapsClient
from storage.document_store import StorageError
from storage.s3_document_store import S3DocumentStore


LOGGED_EXTRAS = ('action', 'user', 'status_code', 'duration_seconds', 'error_type')

OUTCOME_STATUS = {
    Outcome.OK: 200,
    Outcome.CHOOSE_CENTER: 300,
    Outcome.UNAUTHORIZED: 402,
    Outcome.NOT_FOUND: 404,
    Outcome.INVALID: 412,
}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key in LOGGED_EXTRAS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


class CatalogService:
    """Catalog components wired together for one process."""

    def __init__(self, catalog: CatalogStore, authorizer: Authorizer):
        self.catalog = catalog
        self.queries = QueryEngine(catalog)
        self.mutations = MutationPipeline(catalog, authorizer)


# Built on the first invocation and reused while the container stays warm
_service: Optional[CatalogService] = None


def build_service() -> CatalogService:
    """Create the catalog from environment configuration and load its index."""
    bucket_name = os.environ.get('BUCKET_NAME', 'event-catalog')
    prefix = os.environ.get('STORE_PREFIX', '')
    endpoint_url = os.environ.get('S3_ENDPOINT_URL') or None
    maps_api_key = os.environ.get('MAPS_API_KEY')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '10'))
    admin_users = [
        user.strip()
        for user in os.environ.get('ADMIN_USERS', '').split(',')
        if user.strip()
    ]
    invalidate_events = (
        os.environ.get('INVALIDATE_EVENTS_ON_PULL', 'false').lower() == 'true'
    )

    store = S3DocumentStore(bucket_name, prefix=prefix, endpoint_url=endpoint_url)
    geocoder = MapsClient(maps_api_key, timeout=timeout_seconds) if maps_api_key else None
    catalog = CatalogStore(
        store,
        geocoder=geocoder,
        invalidate_events_on_pull=invalidate_events
    )
    catalog.load()
    return CatalogService(catalog, Authorizer(admin_users))


def get_service() -> CatalogService:
    global _service
    if _service is None:
        _service = build_service()
    return _service


def _response(status_code: int, body: Any) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def _mutation_response(result: MutationResult) -> Dict[str, Any]:
    status_code = OUTCOME_STATUS[result.outcome]
    if result.outcome is Outcome.OK:
        return _response(status_code, result.record.to_dict())
    if result.outcome is Outcome.CHOOSE_CENTER:
        return _response(status_code, {
            'centers': [center.public_view() for center in result.choices]
        })
    return _response(status_code, {'error': result.error})


def _get_event(service: CatalogService, request: Dict[str, Any]) -> Dict[str, Any]:
    try:
        event_id = int((request.get('params') or {}).get('id'))
    except (TypeError, ValueError):
        return _response(404, {})
    event = service.queries.get_event(event_id)
    if event is None:
        return _response(404, {})
    body = event.to_dict()
    body['maps'] = map_links(event.name, event.address, service.catalog.geocoder)
    return _response(200, body)


def _query_events(service: CatalogService, request: Dict[str, Any]) -> Dict[str, Any]:
    result = service.queries.query(request.get('params') or {})
    return _response(200, result.to_dict())


def _get_center(service: CatalogService, request: Dict[str, Any]) -> Dict[str, Any]:
    center = service.catalog.centers.get((request.get('params') or {}).get('id'))
    if center is None:
        return _response(404, {})
    body = center.to_dict() if request.get('user') else center.public_view()
    body['maps'] = map_links(center.name, center.address, service.catalog.geocoder)
    return _response(200, body)


def _list_centers(service: CatalogService, request: Dict[str, Any]) -> Dict[str, Any]:
    centers = service.catalog.centers.get_all().values()
    if request.get('user'):
        return _response(200, {'centers': [c.to_dict() for c in centers]})
    return _response(200, {'centers': [c.public_view() for c in centers]})


def _save_event(service: CatalogService, request: Dict[str, Any]) -> Dict[str, Any]:
    return _mutation_response(
        service.mutations.save_event(request.get('body') or {}, request['user'])
    )


def _update_center(service: CatalogService, request: Dict[str, Any]) -> Dict[str, Any]:
    return _mutation_response(
        service.mutations.update_center(request.get('body') or {}, request['user'])
    )


def _draft_event(service: CatalogService, request: Dict[str, Any]) -> Dict[str, Any]:
    params = request.get('params') or {}
    clone_id = params.get('clone')
    try:
        clone_id = int(clone_id) if clone_id is not None else None
    except (TypeError, ValueError):
        return _response(404, {'error': 'cannot clone'})
    return _mutation_response(
        service.mutations.draft_event(request['user'], params.get('center'), clone_id)
    )


def _refresh(service: CatalogService, request: Dict[str, Any]) -> Dict[str, Any]:
    is_pull = service.catalog.store.poke()
    return _response(200, {'pulled': is_pull})


ACTIONS = {
    'get_event': (_get_event, False),
    'query_events': (_query_events, False),
    'get_center': (_get_center, False),
    'list_centers': (_list_centers, False),
    'save_event': (_save_event, True),
    'update_center': (_update_center, True),
    'draft_event': (_draft_event, True),
    'refresh': (_refresh, False),
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the event catalog.

    Args:
        event: Request payload with action, user, params and body;
            scheduled EventBridge events (source aws.events) refresh the store
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    action = event.get('action')
    if action is None and event.get('source') == 'aws.events':
        action = 'refresh'
    user = event.get('user')

    if action not in ACTIONS:
        logger.warning(f"Unknown action: {action}", extra={'action': action})
        return _response(400, {'error': f"unknown action: {action}"})

    handler, needs_user = ACTIONS[action]
    if needs_user and not user:
        return _response(403, {'error': 'login required'})

    try:
        response = handler(get_service(), event)
    except (StorageError, IndexCorruptionError) as e:
        duration = time.time() - start_time
        logger.error(
            f"Catalog {action} failed: {str(e)}",
            extra={
                'action': action,
                'user': user,
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            },
            exc_info=True
        )
        return _response(500, {
            'message': 'Catalog storage failure',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Catalog {action} failed unexpectedly: {str(e)}",
            extra={
                'action': action,
                'user': user,
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            },
            exc_info=True
        )
        return _response(500, {
            'message': 'Catalog request failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })

    duration = time.time() - start_time
    logger.info(
        f"Catalog {action} completed",
        extra={
            'action': action,
            'user': user,
            'status_code': response['statusCode'],
            'duration_seconds': round(duration, 2)
        }
    )
    return response
