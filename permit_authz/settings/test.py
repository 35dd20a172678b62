"""
Test settings for permit_authz.
"""

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": "default.db",
        "USER": "",
        "PASSWORD": "",
        "HOST": "",
        "PORT": "",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "permit-authz-tests",
    }
}

INSTALLED_APPS = (
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.messages",
    "django.contrib.sessions",
    "rest_framework",
    "permit_authz.apps.PermitAuthzConfig",
)

MIDDLEWARE = [
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "permit_authz.middleware.CurrentUserMiddleware",
]

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

ROOT_URLCONF = "permit_authz.tests.urls"

SECRET_KEY = "test-secret-key"

USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# permit_authz configuration
PERMIT_SUPER_ADMIN_ROLE = "super-admin"
PERMIT_ROLE_HIERARCHY = True
PERMIT_CACHE = {
    "enabled": True,
    "ttl": 3600,
    "prefix": "permit-test:",
    "alias": "default",
}
