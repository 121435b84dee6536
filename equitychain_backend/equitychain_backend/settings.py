"""Django settings for the EquityChain backend.

Every value comes from the environment with a development default. Chain
networks, contract addresses, database and JWT secret are read once here and
never mutated at runtime.
"""

import os
from pathlib import Path
from decimal import Decimal


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    # local apps
    "users",
    "projects",
    "blockchain",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "equitychain_backend.urls"
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

WSGI_APPLICATION = "equitychain_backend.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "equitychain"),
            "USER": os.getenv("POSTGRES_USER", "equitychain"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "equitychain"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
            # psycopg 3 pool: one bounded pool per process
            "OPTIONS": {
                "pool": {
                    "min_size": int(os.getenv("DB_POOL_MIN", "2")),
                    "max_size": int(os.getenv("DB_POOL_MAX", "20")),
                    "timeout": int(os.getenv("DB_POOL_TIMEOUT", "2")),
                },
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


AUTH_PASSWORD_VALIDATORS = []

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": ["users.authentication.JWTAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "EXCEPTION_HANDLER": "equitychain_backend.api.exception_handler",
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "anon": os.getenv("THROTTLE_ANON", "100/min"),
        "user": os.getenv("THROTTLE_USER", "300/min"),
    },
}


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            "rename_fields": {"levelname": "level", "name": "logger"},
        },
    },
    "handlers": {
        "stdout": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "json",
        },
    },
    "root": {"handlers": ["stdout"], "level": LOG_LEVEL},
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
        "web3": {"level": "WARNING"},
        "urllib3": {"level": "WARNING"},
    },
}


# JWT
JWT_SECRET = os.getenv("JWT_SECRET", "fallback-secret-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(7 * 24 * 60)))


# Chain networks, keyed by chain id. A network without an RPC URL is unsupported.
CHAIN_NETWORKS = {
    1: {
        "name": "Ethereum Mainnet",
        "currency": "ETH",
        "rpc_url": os.getenv("ETHEREUM_RPC_URL", ""),
        "factory_address": os.getenv("FACTORY_CONTRACT_MAINNET", ""),
    },
    137: {
        "name": "Polygon Mainnet",
        "currency": "MATIC",
        "rpc_url": os.getenv("POLYGON_RPC_URL", ""),
        "factory_address": os.getenv("FACTORY_CONTRACT_POLYGON", ""),
    },
    11155111: {
        "name": "Sepolia Testnet",
        "currency": "SepoliaETH",
        "rpc_url": os.getenv("SEPOLIA_RPC_URL", ""),
        "factory_address": os.getenv("FACTORY_CONTRACT_SEPOLIA", ""),
    },
}
DEFAULT_CHAIN_ID = int(os.getenv("DEFAULT_CHAIN_ID", "1"))

# seconds
CHAIN_READ_TIMEOUT = int(os.getenv("CHAIN_READ_TIMEOUT", "10"))
CHAIN_RECEIPT_TIMEOUT = int(os.getenv("CHAIN_RECEIPT_TIMEOUT", "20"))
CHAIN_RECEIPT_POLL = float(os.getenv("CHAIN_RECEIPT_POLL", "1"))

VERIFICATION_ATTEMPTS = int(os.getenv("VERIFICATION_ATTEMPTS", "3"))
VERIFICATION_BACKOFF = float(os.getenv("VERIFICATION_BACKOFF", "2"))

RECONCILE_WORKERS = int(os.getenv("RECONCILE_WORKERS", "4"))
RECONCILE_TIMEOUT = int(os.getenv("RECONCILE_TIMEOUT", "60"))


# Platform rules
MIN_PROJECT_FUNDING = Decimal(os.getenv("MIN_PROJECT_FUNDING", "10000"))
MAX_PROJECT_FUNDING = Decimal(os.getenv("MAX_PROJECT_FUNDING", "10000000"))
DEFAULT_FUNDING_DURATION = 30
