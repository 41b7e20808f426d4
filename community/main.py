from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
import logging

from community.core.config import settings
from community.core.exceptions import register_exception_handlers
from community.middleware.request_logging import RequestLoggingMiddleware
from community.middleware.auth_logging import AuthLoggingMiddleware
from community.modules.auth.api.router import router as auth_router
from community.modules.posts.api.router import router as posts_router
from community.modules.posts.likes.api.router import router as likes_router
from community.modules.support.api.router import router as support_router
from community.modules.media.router import router as media_router
from community.db.init_db import create_all_tables

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("app")

# Initialize the FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    exception_handlers={
        RequestValidationError: request_validation_exception_handler,
        HTTPException: http_exception_handler,
    },
    debug=settings.DEBUG,
    description="Community board: admin-authored posts, likes from anyone, support inbox",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    swagger_ui_parameters={"defaultModelsExpandDepth": -1},
)
register_exception_handlers(app)

@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting server in {settings.ENVIRONMENT} mode")
    logger.info(f"BASE_URL: {settings.BASE_URL}")

    create_all_tables()

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(AuthLoggingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(auth_router, prefix=f"{settings.API_V1_STR}/auth", tags=["authentication"])
app.include_router(posts_router, prefix=f"{settings.API_V1_STR}/posts", tags=["posts"])
app.include_router(likes_router, prefix=f"{settings.API_V1_STR}/posts/{{post_id}}/like", tags=["likes"])
app.include_router(support_router, prefix=f"{settings.API_V1_STR}/support", tags=["support"])
app.include_router(media_router, prefix=f"{settings.API_V1_STR}/media", tags=["media"])

@app.get("/")
async def root():
    return {
        "message": "Welcome to the Community Board",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "documentation": "/docs" if settings.DEBUG else None,
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("community.main:app", host="0.0.0.0", port=8000, reload=True)
