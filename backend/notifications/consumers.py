import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

from .services import operator_group, session_group, station_group, STATIONS

logger = logging.getLogger(__name__)


class ChangeConsumer(AsyncWebsocketConsumer):
    """
    Base consumer: joins one group and forwards `entity_changed` events to the
    socket. Subclasses decide which group a connection belongs to.
    """

    group_name = None

    def resolve_group(self):
        raise NotImplementedError

    async def connect(self):
        self.group_name = self.resolve_group()
        if not self.group_name:
            await self.close(code=4004)
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"{self.__class__.__name__} connected to {self.group_name}")

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"{self.__class__.__name__} disconnected from {self.group_name} (code={close_code})")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON received on {self.group_name}")
            return

        if data.get("action") == "ping":
            await self.send(text_data=json.dumps({"type": "pong"}))

    async def entity_changed(self, event):
        await self.send(
            text_data=json.dumps(
                {
                    "type": "entity_changed",
                    "entity_type": event["entity_type"],
                    "entity_id": event["entity_id"],
                    "change_kind": event["change_kind"],
                    "data": event.get("data", {}),
                    "timestamp": event.get("timestamp"),
                },
                default=str,
            )
        )


class StationConsumer(ChangeConsumer):
    """Ticket queue updates for one preparation station."""

    def resolve_group(self):
        destination = self.scope["url_route"]["kwargs"].get("destination")
        if destination not in STATIONS:
            logger.warning(f"StationConsumer: unknown station '{destination}'")
            return None
        return station_group(destination)


class SessionConsumer(ChangeConsumer):
    """Bill updates for one tab session."""

    def resolve_group(self):
        return session_group(self.scope["url_route"]["kwargs"]["session_id"])


class OperatorConsumer(ChangeConsumer):
    """Workspace updates for the signed-in operator only."""

    def resolve_group(self):
        user = self.scope.get("user")
        operator_id = self.scope["url_route"]["kwargs"]["operator_id"]
        if not user or not user.is_authenticated or str(user.pk) != str(operator_id):
            logger.warning(f"OperatorConsumer: rejected subscription to operator {operator_id}")
            return None
        return operator_group(operator_id)
