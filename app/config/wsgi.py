"""
WSGI config for the notification service.

The service is normally served over ASGI (the websocket feed needs it). WSGI
remains available for deployments that only expose the HTTP API.

https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
