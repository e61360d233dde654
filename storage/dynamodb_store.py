"""DynamoDB-backed storage for the event list."""
import json
import logging
import time
from datetime import date
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from calculator.date_calculator import DateDifferenceCalculator
from calculator.dates import format_iso_date, to_calendar_date
from calculator.models import Event, EventDirection

logger = logging.getLogger(__name__)


class DynamoDBEventStore:
    """Stores the whole event list as one JSON document under a fixed key."""

    DEFAULT_STORAGE_KEY = 'event-tracker-events'
    KEY_ATTRIBUTE = 'storage_key'

    def __init__(self, table_name: str, storage_key: str = DEFAULT_STORAGE_KEY):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            storage_key: Key of the item holding the event list
        """
        self.table_name = table_name
        self.storage_key = storage_key
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        self.calculator = DateDifferenceCalculator()
        logger.info(
            f"Initialized DynamoDBEventStore for table: {table_name} "
            f"(key: {storage_key})"
        )

    def load(self, today: Optional[date] = None) -> List[Event]:
        """
        Read the event list from DynamoDB.

        Records that cannot be converted are skipped.

        Args:
            today: Reference date for records stored without a direction
                (default: the host date)

        Returns:
            Events in stored order; empty list when nothing is stored yet
        """
        logger.info(f"Loading events from {self.table_name}")

        try:
            response = self.table.get_item(
                Key={self.KEY_ATTRIBUTE: self.storage_key}
            )
        except ClientError as e:
            logger.error(f"Error reading events from DynamoDB: {e}")
            raise

        item = response.get('Item')
        if not item:
            logger.info("No stored events found")
            return []

        try:
            records = json.loads(item.get('events', '[]'))
        except (TypeError, ValueError) as e:
            logger.warning(f"Stored event list is not valid JSON: {e}")
            return []

        if not isinstance(records, list):
            logger.warning("Stored event list is not a JSON array")
            return []

        if today is None:
            today = date.today()
        events = []
        for record in records:
            event = self._record_to_event(record, today)
            if event:
                events.append(event)

        logger.info(f"Loaded {len(events)} of {len(records)} stored events")
        return events

    def save(self, events: List[Event]) -> None:
        """
        Write the event list to DynamoDB, replacing what was stored.

        Args:
            events: Events in display order
        """
        records = [self._event_to_record(event) for event in events]
        item = {
            self.KEY_ATTRIBUTE: self.storage_key,
            'events': json.dumps(records),
            'last_updated': int(time.time()),
        }

        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error writing events to DynamoDB: {e}")
            raise

        logger.info(f"Saved {len(records)} events to {self.table_name}")

    def _record_to_event(self, record: dict, today: date) -> Optional[Event]:
        """
        Convert a stored JSON record to an Event.

        Args:
            record: Dictionary with title, date, countDirection and visible
            today: Reference date for records stored without a direction

        Returns:
            Event object or None if conversion fails
        """
        try:
            event_date = to_calendar_date(record['date'])
            raw_direction = record.get('countDirection')
            if raw_direction:
                direction = EventDirection(raw_direction)
            else:
                direction = self.calculator.determine_direction(today, event_date)

            return Event(
                title=record['title'],
                date=event_date,
                direction=direction,
                visible=self._visible_flag(record),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to convert stored record to Event: {e}")
            return None

    def _event_to_record(self, event: Event) -> dict:
        """
        Convert an Event to its stored JSON record.

        Args:
            event: Event object

        Returns:
            JSON-serializable dictionary
        """
        return {
            'title': event.title,
            'date': format_iso_date(event.date),
            'countDirection': EventDirection(event.direction).value,
            'visible': event.visible,
        }

    @staticmethod
    def _visible_flag(record: dict) -> bool:
        visible = record.get('visible', True)
        if not isinstance(visible, bool):
            logger.warning(
                f"Stored visible flag {visible!r} for '{record.get('title')}' "
                f"is not a boolean, showing the event"
            )
            return True
        return visible
