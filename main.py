from fastapi import FastAPI
from settings.config import settings
from db.db_operation import create_indexes
from core.exceptions import global_exception_handler
from utils.logger import get_logger
from routes import auth, booking_routes, restaurant_routes, user_routes

logger = get_logger("main")

app = FastAPI(title=settings.PROJECT_NAME, version="1.0.0")

@app.get("/")
async def health_check():
    logger.info("Health check is successful")
    return {
        "status": "ok",
        "app": settings.PROJECT_NAME,
        "message": "FastAPI is running"
    }

@app.on_event("startup")
async def startup_event():
    await create_indexes()

app.add_exception_handler(Exception, global_exception_handler)

if settings.RATE_LIMIT_ENABLED:
    from core.rate_limiter import RedisRateLimitMiddleware
    from db.redis_client import redis_client
    app.add_middleware(
        RedisRateLimitMiddleware,
        redis_client=redis_client,
        requests=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        auth_requests=settings.RATE_LIMIT_AUTH_REQUESTS
    )

app.include_router(auth.router)
app.include_router(user_routes.router)
app.include_router(restaurant_routes.router)
app.include_router(booking_routes.router)
