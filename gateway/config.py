# gateway/config.py
import os

# Cache configuration:
#   REDIS_URL: connection string for the shared cache; unset means no Redis
#   CACHE_BACKEND: "none" | "memory" | "redis"
#   CACHE_CAPACITY: max number of items (memory backend only)
#   DEFAULT_CACHE_TTL_HOURS: TTL used when a caller does not pass one; 0 means no expiration
REDIS_URL = os.getenv("REDIS_URL") or None
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "redis" if REDIS_URL else "none").lower()
CACHE_CAPACITY = int(os.getenv("CACHE_CAPACITY", "10000"))
DEFAULT_CACHE_TTL_HOURS = int(os.getenv("DEFAULT_CACHE_TTL_HOURS", "1"))

# Deadline for a single provider call; 0 leaves it to the provider library.
PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "0"))

# Rate limiting (global, per client address)
WINDOW_IN_MINUTES = int(os.getenv("WINDOW_IN_MINUTES", "1")) or 1  # 0 falls back to one minute
MAX_API_REQUESTS = int(os.getenv("MAX_API_REQUESTS", "120"))

# Listen address; PORT is validated at startup by gateway.main.run
HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "3000")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Provider registry: "anilist=package.module:Anilist,jikan=package.module:Jikan"
PROVIDERS = os.getenv("PROVIDERS", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DOCS_URL = os.getenv("DOCS_URL", "https://hakai-documentation.vercel.app")
