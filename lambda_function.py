"""AWS Lambda handlers for the Calendar Tag Filter."""
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

from calendar_api.google_calendar import GoogleCalendarClient
from processor.errors import (
    AlreadyExists,
    AuthRequired,
    CalendarTagFilterError,
    FetchError,
    InvalidFormat,
    NoCalendarSelected,
    NotFound,
)
from processor.event_processor import EventProcessor
from processor.periods import normalize_period, week_start
from processor.pipeline import EventPipeline
from processor.tag_parser import TagParser
from processor.visibility import parse_requested_tags
from storage.category_registry import CategoryRegistry
from storage.dynamodb_cache import DynamoDBCacheStore
from storage.dynamodb_config import DynamoDBConfigStore
from storage.event_cache import EventCache

OPTION_CALENDAR_ID = 'calendar_id'
OPTION_ACCESS_TOKEN = 'access_token'

ERROR_STATUS = {
    AuthRequired: 401,
    NoCalendarSelected: 409,
    FetchError: 502,
    InvalidFormat: 400,
    AlreadyExists: 409,
    NotFound: 404,
}

# Attributes present on every LogRecord; anything else came from `extra`
_RESERVED_LOG_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including fields passed via extra."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
                log_data[key] = value

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

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_settings() -> Dict[str, Any]:
    """Read configuration from environment variables."""
    return {
        'config_table_name': os.environ.get('CONFIG_TABLE_NAME', 'calendar-tag-filter-config'),
        'cache_table_name': os.environ.get('CACHE_TABLE_NAME', 'calendar-tag-filter-cache'),
        'log_level': os.environ.get('LOG_LEVEL', 'INFO'),
        'timeout_seconds': int(os.environ.get('TIMEOUT_SECONDS', '30')),
        'max_results': int(os.environ.get('MAX_RESULTS', '100')),
        'admin_group': os.environ.get('ADMIN_GROUP', 'admins'),
        'calendar_id': os.environ.get('GOOGLE_CALENDAR_ID', ''),
        'access_token': os.environ.get('GOOGLE_ACCESS_TOKEN', '')
    }


def is_privileged_viewer(event: Dict[str, Any], admin_group: str) -> bool:
    """
    Check whether the caller belongs to the admin group.

    Reads the groups claim placed on the request by the gateway's
    Cognito/JWT authorizer.
    """
    authorizer = (event.get('requestContext') or {}).get('authorizer') or {}
    claims = authorizer.get('claims') or (authorizer.get('jwt') or {}).get('claims') or {}
    groups = claims.get('cognito:groups') or []

    if isinstance(groups, str):
        groups = groups.strip('[]').replace(',', ' ').split()
    return admin_group in groups


def build_components(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Instantiate stores, registry, parser, cache and pipeline."""
    config_store = DynamoDBConfigStore(table_name=settings['config_table_name'])
    cache_store = DynamoDBCacheStore(table_name=settings['cache_table_name'])

    registry = CategoryRegistry(config_store)
    tag_parser = TagParser(registry)
    cache = EventCache(cache_store, config_store)

    access_token = config_store.get(OPTION_ACCESS_TOKEN) or settings['access_token']
    calendar_id = config_store.get(OPTION_CALENDAR_ID) or settings['calendar_id']
    calendar_client = None
    if access_token:
        calendar_client = GoogleCalendarClient(
            access_token, timeout=settings['timeout_seconds']
        )

    pipeline = EventPipeline(
        calendar_client,
        EventProcessor(tag_parser),
        cache,
        calendar_id,
        max_results=settings['max_results']
    )
    return {
        'registry': registry,
        'tag_parser': tag_parser,
        'cache': cache,
        'pipeline': pipeline
    }


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def _error_response(error: Exception, start_time: float) -> Dict[str, Any]:
    status_code = ERROR_STATUS.get(type(error), 500)
    message = error.message if isinstance(error, CalendarTagFilterError) else str(error)
    return _response(status_code, {
        'message': message,
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    })


def _parse_int(value: Optional[str], low: int, high: int) -> Optional[int]:
    """Parse an integer query parameter; out of range or invalid gives None."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if low <= number <= high else None


def _parse_date_params(params: Dict[str, str]) -> Dict[str, Optional[int]]:
    year = _parse_int(params.get('year'), 1970, 9999)
    month = _parse_int(params.get('month'), 1, 12)
    week = _parse_int(params.get('week'), 1, 53)

    if year and week:
        try:
            week_start(year, month, week)
        except ValueError:
            week = None
    return {'year': year, 'month': month, 'week': week}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Serve tagged calendar events.

    Query parameters: period, tags, year, month, week, debug.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    settings = load_settings()
    setup_logging(settings['log_level'])
    logger = logging.getLogger(__name__)

    start_time = time.time()
    params = event.get('queryStringParameters') or {}
    privileged = is_privileged_viewer(event, settings['admin_group'])

    logger.info(
        "Events request started",
        extra={'query': params, 'privileged': privileged}
    )

    try:
        components = build_components(settings)
        period = normalize_period(params.get('period'))
        tags = parse_requested_tags(params.get('tags'), components['tag_parser'])
        bypass_cache = privileged and params.get('debug') == '1'

        result = components['pipeline'].get_events(
            period,
            tags,
            viewer_is_privileged=privileged,
            bypass_cache=bypass_cache,
            **_parse_date_params(params)
        )

        if not result.ok:
            logger.error(
                f"Failed to get events: {result.error.message}",
                extra={'error_type': type(result.error).__name__}
            )
            return _error_response(result.error, start_time)

        categories = components['registry'].list()
        duration = time.time() - start_time
        logger.info(
            "Events request completed",
            extra={
                'duration_seconds': round(duration, 2),
                'event_count': len(result.events),
                'from_cache': result.from_cache
            }
        )

        return _response(200, {
            'events': [item.to_dict() for item in result.events],
            'count': len(result.events),
            'period': period,
            'tags': tags,
            'categories': [category.to_dict() for category in categories],
            'from_cache': result.from_cache
        })

    except Exception as e:
        logger.error(
            f"Events request failed: {str(e)}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(e, start_time)


def _category_list(registry: CategoryRegistry) -> List[Dict[str, str]]:
    return [category.to_dict() for category in registry.list()]


def _handle_admin_action(action: str, body: Dict[str, Any],
                         components: Dict[str, Any]) -> Dict[str, Any]:
    """Run one admin action and return the response body."""
    registry = components['registry']
    cache = components['cache']

    if action == 'list_categories':
        return {'categories': _category_list(registry)}

    if action == 'add_category':
        registry.add(body.get('id', ''), body.get('display_name', ''),
                     body.get('color', CategoryRegistry.DEFAULT_COLOR))
        return {'message': 'Category added.', 'categories': _category_list(registry)}

    if action == 'update_category':
        registry.update(body.get('id', ''), body.get('display_name', ''),
                        body.get('color', ''))
        return {'message': 'Category updated.', 'categories': _category_list(registry)}

    if action == 'delete_category':
        registry.delete(body.get('id', ''))
        return {'message': 'Category deleted.', 'categories': _category_list(registry)}

    if action == 'reset_categories':
        registry.reset_to_defaults()
        return {'message': 'Categories reset.', 'categories': _category_list(registry)}

    if action == 'export_categories':
        return registry.export()

    if action == 'import_categories':
        entries = (body.get('data') or {}).get('categories')
        if not isinstance(entries, list) or not entries:
            raise ValueError('Invalid import file structure.')
        result = registry.import_entries(entries, merge=bool(body.get('merge', False)))
        return {
            'imported_count': result.imported,
            'skipped_count': result.skipped,
            'errors': result.errors
        }

    if action == 'clear_cache':
        return {'message': 'Cache cleared.', 'deleted': cache.clear_all()}

    if action == 'cache_stats':
        return cache.get_stats()

    if action == 'set_cache_duration':
        return {'duration': cache.set_duration(body.get('duration'))}

    if action == 'test_connection':
        return components['pipeline'].test_connection()

    raise ValueError(f"Unknown action: {action}")


def admin_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Administrative actions: category management and cache control.

    Args:
        event: API Gateway proxy event with a JSON body holding 'action'
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    settings = load_settings()
    setup_logging(settings['log_level'])
    logger = logging.getLogger(__name__)
    start_time = time.time()

    if not is_privileged_viewer(event, settings['admin_group']):
        logger.warning("Admin request denied: caller is not privileged")
        return _response(403, {'message': 'Permission denied.'})

    try:
        body = json.loads(event.get('body') or '{}')
    except ValueError:
        return _response(400, {'message': 'Invalid JSON format.'})
    if not isinstance(body, dict):
        return _response(400, {'message': 'Invalid JSON format.'})

    action = body.get('action', '')
    logger.info("Admin action started", extra={'action': action})

    try:
        components = build_components(settings)
        result = _handle_admin_action(action, body, components)
    except CalendarTagFilterError as e:
        logger.warning(
            f"Admin action {action} failed: {e.message}",
            extra={'error_type': type(e).__name__}
        )
        return _error_response(e, start_time)
    except ValueError as e:
        return _response(400, {'message': str(e)})
    except Exception as e:
        logger.error(
            f"Admin action {action} failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(e, start_time)

    logger.info(
        "Admin action completed",
        extra={'action': action, 'duration_seconds': round(time.time() - start_time, 2)}
    )
    return _response(200, result)
