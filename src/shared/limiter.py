from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Se identifica al cliente por IP. El almacenamiento y la activación vienen
# de RATELIMIT_STORAGE_URI y RATELIMIT_ENABLED en la configuración de Flask.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "300 per hour"]
)
