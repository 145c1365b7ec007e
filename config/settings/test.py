# config/settings/test.py

from .base import *

# === TESTES (pytest-django) ===

DEBUG = False

SECRET_KEY = 'test-secret-key-not-for-production'
JWT_SECRET_KEY = 'test-jwt-secret'

ALLOWED_HOSTS = ['testserver', 'localhost']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'trackboard-test-cache',
    }
}

CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer'
    }
}

STORAGES['staticfiles'] = {
    'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
}

# Hash rápido para acelerar a suíte
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

# Desabilitar logs em testes
LOGGING['handlers'] = {}
LOGGING['loggers'] = {}
LOGGING['root']['handlers'] = []
