"""
ASGI config for the clinic staff desk (HTTP only).
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "clinicdesk.settings")

from django.core.asgi import get_asgi_application  # noqa: E402

application = get_asgi_application()
