# API Key Configuration
API_KEY_PREFIX = "pk_"
API_KEY_RANDOM_BYTES = 32
API_KEY_DISPLAY_CHARS = 8
BEARER_SCHEME = "Bearer"

# JWT Configuration
JWT_ALGORITHM = "HS256"

# API key validation
API_KEY_NAME_MAX_LENGTH = 100
DEFAULT_API_KEY_PERMISSIONS = ["content:generate"]
DEFAULT_ROUTE_API_KEY_PERMISSIONS = ["content:generate", "content:read", "client:read"]

# Usage
DEFAULT_USAGE_WINDOW_DAYS = 30
RECENT_USAGE_LIMIT = 50

# Authentication endpoints configuration
SKIP_AUTH_PATHS = {
    "/openapi.json",
    "/docs",
    "/redoc",
    "/health",
    "/health/",
    "/health/liveness",
}

# Only these prefixes accept machine credentials; everything else needs an operator JWT
API_KEY_ALLOWED_PREFIXES = ("/v1/external/",)
