from .base import LOGGING, REST_FRAMEWORK
from .base import *  # noqa: F403

# Keep tests self-contained without external services.
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_TASK_STORE_EAGER_RESULT = False
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

DATABASES = {"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}}
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYABLES_ACTIVITY_SOURCES: list[str] = []
GITHUB_TOKEN = ""

REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = ()

# caplog listens on the root logger.
LOGGING["loggers"]["apps"]["propagate"] = True
