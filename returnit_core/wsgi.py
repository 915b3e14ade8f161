"""
WSGI entry point for ReturnIt.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'returnit_core.settings')

application = get_wsgi_application()
