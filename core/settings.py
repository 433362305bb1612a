"""
Django settings for the ELD Trip Planner project.

Environment driven; values are read from a .env file when present.

Environment variables:
- DJANGO_SECRET_KEY, DJANGO_DEBUG, DJANGO_ALLOWED_HOSTS
- DATABASE_URL (PostgreSQL URL; SQLite is used when unset)
- CORS_ALLOWED_ORIGINS (comma separated)
- ROUTING_PROVIDER (osrm, openrouteservice or static), OPENROUTESERVICE_API_KEY
- DJANGO_LOG_LEVEL
"""

import os
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def _env_list(name, default=''):
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-eld-trip-planner-dev-key')

DEBUG = os.environ.get('DJANGO_DEBUG', 'False').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = _env_list('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1')


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',
    'rest_framework',
    'trips',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'core.wsgi.application'


# Database
# DATABASE_URL selects a hosted database; SQLite for local development

DATABASES = {
    'default': dj_database_url.config(
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}


# Internationalization

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# CORS

CORS_ALLOWED_ORIGINS = _env_list('CORS_ALLOWED_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000')


# Django REST Framework

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
        'rest_framework.renderers.BrowsableAPIRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
}


# Routing / distance provider

ROUTING_CONFIG = {
    'PROVIDER': os.environ.get('ROUTING_PROVIDER', 'osrm'),
    'NOMINATIM_BASE_URL': os.environ.get('NOMINATIM_BASE_URL', 'https://nominatim.openstreetmap.org'),
    'OSRM_BASE_URL': os.environ.get('OSRM_BASE_URL', 'https://router.project-osrm.org'),
    'OPENROUTESERVICE_BASE_URL': os.environ.get('OPENROUTESERVICE_BASE_URL', 'https://api.openrouteservice.org'),
    'OPENROUTESERVICE_API_KEY': os.environ.get('OPENROUTESERVICE_API_KEY', ''),
    'REQUEST_TIMEOUT': int(os.environ.get('ROUTING_REQUEST_TIMEOUT', '30')),
    # Used when PROVIDER is 'static' (offline demos)
    'STATIC_TABLE': {
        'locations': {
            'New York, NY': [40.7128, -74.0060],
            'Chicago, IL': [41.8781, -87.6298],
            'Los Angeles, CA': [34.0522, -118.2437],
            'Dallas, TX': [32.7767, -96.7970],
            'Houston, TX': [29.7604, -95.3698],
        },
        'legs': [
            {'from': 'New York, NY', 'to': 'Chicago, IL', 'distance_miles': 790},
            {'from': 'Chicago, IL', 'to': 'Los Angeles, CA', 'distance_miles': 2015},
            {'from': 'Dallas, TX', 'to': 'Houston, TX', 'distance_miles': 239},
            {'from': 'Chicago, IL', 'to': 'Dallas, TX', 'distance_miles': 967},
            {'from': 'Dallas, TX', 'to': 'Los Angeles, CA', 'distance_miles': 1435},
        ],
    },
}


# HOS rule overrides (see trips.services.hos_service.HOSConfig)

HOS_CONFIG = {}


# Logging

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'trips': {
            'handlers': ['console'],
            'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
