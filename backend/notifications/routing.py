from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(r"ws/stations/(?P<destination>[^/]+)/$", consumers.StationConsumer.as_asgi()),
    re_path(r"ws/sessions/(?P<session_id>[^/]+)/$", consumers.SessionConsumer.as_asgi()),
    re_path(r"ws/operators/(?P<operator_id>[^/]+)/$", consumers.OperatorConsumer.as_asgi()),
]
