"""
WSGI config for core_backend project.

Realtime channels need the ASGI entry point in asgi.py; this module serves
plain HTTP deployments.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core_backend.settings")

application = get_wsgi_application()
