import time
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from redis.exceptions import RedisError
from utils.jwt_handler import decode_access_token
from utils.logger import get_logger

logger = get_logger("RedisRateLimit")

DEFAULT_EXCLUDED_PATHS = frozenset({"/", "/docs", "/openapi.json"})

# endpoints that send an email / SMS or check a password
AUTH_SENSITIVE_PATHS = frozenset({
    "/auth/send-verification",
    "/auth/forgot-password",
    "/auth/login",
})

class RedisRateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed window request counter in Redis, one counter per caller and window.
    Auth endpoints that deliver codes get their own, smaller budget.
    """

    def __init__(
        self,
        app,
        redis_client,
        requests: int = 100,
        window_seconds: int = 60,
        auth_requests: int | None = None,
        exclude_paths=DEFAULT_EXCLUDED_PATHS
    ):
        super().__init__(app)
        self.redis = redis_client
        self.requests = requests
        self.auth_requests = auth_requests if auth_requests is not None else requests
        self.window = window_seconds
        self.exclude_paths = set(exclude_paths)

    def _get_identity(self, request: Request) -> str:
        """
        Priority:
        1. JWT subject (logged-in user)
        2. Client IP
        """
        host = request.client.host if request.client else "unknown"
        auth = request.headers.get("Authorization")
        if not auth or " " not in auth:
            return host

        try:
            payload = decode_access_token(auth.split(" ", 1)[1])
            return payload.get("sub", host)
        except ValueError:
            return host

    def _bucket(self, path: str):
        if path in AUTH_SENSITIVE_PATHS:
            return "auth", self.auth_requests
        return "api", self.requests

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in self.exclude_paths:
            return await call_next(request)

        identity = self._get_identity(request)
        bucket, limit = self._bucket(path)
        now = int(time.time())
        redis_key = f"rate:{bucket}:{identity}:{now // self.window}"

        try:
            current_count = await self.redis.incr(redis_key)
            if current_count == 1:
                await self.redis.expire(redis_key, self.window)

            if current_count > limit:
                logger.warning(
                    "Rate limit exceeded",
                    extra={"identity": identity, "bucket": bucket, "count": current_count}
                )
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too many requests, please slow down"},
                    headers={"Retry-After": str(self.window - now % self.window)}
                )
        except (RedisError, OSError) as e:
            # fail-open → allow request
            logger.error("Redis rate limit error", exc_info=e)

        return await call_next(request)
