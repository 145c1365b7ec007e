# config/wsgi.py

import os
from django.core.wsgi import get_wsgi_application

# Servidores WSGI atendem apenas HTTP; WebSockets exigem o config.asgi
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.production')

application = get_wsgi_application()
