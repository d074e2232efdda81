"""
Realtime change broadcasting.

Mutations announce `(entity_type, entity_id, change_kind)` after their database
transaction commits. Subscribers listen per operator (workspace changes), per
tab session, or per preparation station. Delivery is fire-and-forget: a failed
broadcast is logged and never fails the mutation that caused it.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

STATIONS = ("kitchen", "bartender")


def sanitize_group_name(value) -> str:
    """Channels group names allow only ASCII alphanumerics, hyphens, underscores and periods."""
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in str(value))


def operator_group(operator_id) -> str:
    return f"operator_{sanitize_group_name(operator_id)}"


def session_group(session_id) -> str:
    return f"session_{sanitize_group_name(session_id)}"


def station_group(destination) -> str:
    return f"station_{sanitize_group_name(destination)}"


def station_groups(destination) -> List[str]:
    if destination == "both":
        return [station_group(station) for station in STATIONS]
    return [station_group(destination)]


class ChangeBroadcaster:
    """Publishes entity change events to Channels groups."""

    def __init__(self):
        self._channel_layer = None

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def groups_for(self, operator_id=None, session_id=None, destination=None) -> List[str]:
        groups = []
        if operator_id is not None:
            groups.append(operator_group(operator_id))
        if session_id is not None:
            groups.append(session_group(session_id))
        if destination:
            groups.extend(station_groups(destination))
        return groups

    def publish(
        self,
        entity_type: str,
        entity_id,
        change_kind: str,
        *,
        operator_id=None,
        session_id=None,
        destination: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Queue a change event; it is sent once the current transaction commits."""
        try:
            groups = self.groups_for(operator_id, session_id, destination)
            if not groups:
                logger.debug(f"No subscribers addressed for {entity_type} {entity_id} {change_kind}")
                return

            message = {
                "type": "entity_changed",
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "change_kind": change_kind,
                "data": data or {},
                "timestamp": timezone.now().isoformat(),
            }

            if transaction.get_connection().in_atomic_block:
                transaction.on_commit(lambda: self._send(groups, message))
            else:
                self._send(groups, message)

        except Exception as e:
            logger.error(f"Error publishing {entity_type} {change_kind} event: {e}")

    def _send(self, groups: Iterable[str], message: Dict[str, Any]) -> None:
        if not self.channel_layer:
            logger.warning("No channel layer available for notifications")
            return

        for group in groups:
            try:
                async_to_sync(self.channel_layer.group_send)(group, message)
                logger.debug(f"Sent {message['entity_type']} {message['change_kind']} to {group}")
            except Exception as e:
                logger.error(f"Error sending notification to group {group}: {e}")


change_broadcaster = ChangeBroadcaster()
