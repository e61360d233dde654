"""AWS Lambda handler for the Event Tracker."""
import json
import logging
import os
import time
from datetime import datetime
from typing import Any, Callable, Dict

from botocore.exceptions import ClientError

from calculator.date_calculator import DateDifferenceCalculator
from calculator.dates import InvalidDateInput, format_iso_date, to_calendar_date
from storage.dynamodb_store import DynamoDBEventStore
from tracker.event_tracker import EventTracker

ACTIONS = ('list', 'add', 'update', 'delete', 'move', 'toggle')


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

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


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


def _build_clock(payload: Dict[str, Any]) -> Callable[[], datetime]:
    """Return a clock pinned to payload['now'] when given, else the local clock."""
    if payload.get('now'):
        pinned = datetime.combine(to_calendar_date(payload['now']), datetime.min.time())
        return lambda: pinned
    return datetime.now


def _apply_action(tracker: EventTracker, action: str, payload: Dict[str, Any]) -> str:
    """
    Run one mutation on the tracker.

    Returns:
        Response message
    """
    if action == 'add':
        event = tracker.add_event(
            title=payload.get('title', ''),
            date=payload.get('date'),
            direction=payload.get('direction'),
            visible=payload.get('visible', True)
        )
        return f"Added event '{event.title}'"

    if action == 'update':
        event = tracker.update_event(
            int(payload['index']),
            title=payload.get('title'),
            date=payload.get('date'),
            direction=payload.get('direction'),
            visible=payload.get('visible')
        )
        return f"Updated event '{event.title}'"

    if action == 'delete':
        event = tracker.delete_event(int(payload['index']))
        return f"Deleted event '{event.title}'"

    if action == 'move':
        tracker.move_event(int(payload['index']), int(payload['to_index']))
        return 'Moved event'

    if action == 'toggle':
        event = tracker.toggle_visible(int(payload['index']))
        return f"Event '{event.title}' is now {'visible' if event.visible else 'hidden'}"

    return 'Listed events'


def _error_response(status_code: int, message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    duration = time.time() - start_time
    return {
        'statusCode': status_code,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(duration, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the Event Tracker.

    The payload selects an action (list, add, update, delete, move, toggle)
    and may pin "now" to a date and ask for numbers wrapped in bold markup.

    Args:
        event: Request payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and the formatted event list
    """
    # Read configuration from environment variables
    table_name = os.environ.get('TABLE_NAME', 'event-tracker')
    storage_key = os.environ.get('STORAGE_KEY', DynamoDBEventStore.DEFAULT_STORAGE_KEY)
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    payload = event or {}
    action = payload.get('action', 'list')

    start_time = time.time()
    logger.info(
        f"Lambda execution started",
        extra={
            'table_name': table_name,
            'storage_key': storage_key,
            'action': action
        }
    )

    if action not in ACTIONS:
        logger.warning(f"Unknown action requested: {action}")
        return _error_response(
            400, 'Unknown action', ValueError(f"Unsupported action: {action}"), start_time
        )

    try:
        clock = _build_clock(payload)
    except InvalidDateInput as e:
        logger.warning(f"Invalid 'now' in request: {e}")
        return _error_response(400, 'Invalid request', e, start_time)

    try:
        store = DynamoDBEventStore(table_name=table_name, storage_key=storage_key)
        tracker = EventTracker(
            store=store,
            calculator=DateDifferenceCalculator(),
            clock=clock
        )

        logger.info("Loading events")
        tracker.load()

        try:
            message = _apply_action(tracker, action, payload)
        except (InvalidDateInput, ValueError, TypeError, IndexError, KeyError) as e:
            logger.warning(
                f"Rejected {action} request: {e}",
                extra={'error_type': type(e).__name__}
            )
            return _error_response(400, 'Invalid request', e, start_time)

        differences = tracker.refresh()
        if payload.get('html'):
            differences = tracker.differences_html()

        duration = time.time() - start_time
        logger.info(
            f"Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'event_count': len(tracker.events)
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': message,
                'events': [
                    {
                        'index': index,
                        'title': tracked.title,
                        'date': format_iso_date(tracked.date),
                        'direction': tracked.direction.value,
                        'visible': tracked.visible,
                        'difference': differences.get(index)
                    }
                    for index, tracked in enumerate(tracker.events)
                ],
                'duration_seconds': round(duration, 2)
            })
        }

    except ClientError as e:
        logger.error(
            f"Error accessing DynamoDB: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(500, 'Failed to access event storage', e, start_time)

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(500, 'Request failed', e, start_time)
