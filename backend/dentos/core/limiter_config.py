import os

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Global Limiter instance imported by controllers. create_app toggles
# ``enabled`` from RATE_LIMIT_ENABLED before calling init_app.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per hour", "50 per minute"],
    storage_uri=os.getenv("LIMITER_STORAGE_URI", "memory://"),
    enabled=True,
)

WRITE_LIMIT = "30 per minute"
AUTH_LIMIT = "10 per minute"
