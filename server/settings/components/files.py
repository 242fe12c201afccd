"""Files API settings."""

from server.settings.components import config

# Lifetime of presigned download URLs in seconds
FILES_DOWNLOAD_URL_EXPIRE = config(
    'FILES_DOWNLOAD_URL_EXPIRE',
    cast=int,
    default=3600,
)

# Maximum age of API tokens in seconds (5 hours)
FILES_TOKEN_MAX_AGE = config('FILES_TOKEN_MAX_AGE', cast=int, default=18000)
