import os

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
bays_directory_url = os.environ.get("BAYS_DIRECTORY_URL", "http://localhost:8010")
advisors_directory_url = os.environ.get(
    "ADVISORS_DIRECTORY_URL", "http://localhost:8011"
)
directory_timeout = float(os.environ.get("DIRECTORY_TIMEOUT_SECONDS", "5.0"))
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
HISTORY_CACHE_TTL = int(os.environ.get("HISTORY_CACHE_TTL", "60"))

TORTOISE_ORM = {
    "connections": {"default": db_url},
    "apps": {
        "models": {
            "models": ["workshop.models"],
            "default_connection": "default",
        }
    },
}
