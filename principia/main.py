from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from principia.api.routes import jobs, mastery, progress, quizzes, reviews, topics
from principia.config import get_settings
from principia.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler
from principia.core.lifespan import lifespan
from principia.core.middleware import RequestLoggingMiddleware

settings = get_settings()

app = FastAPI(title="Principia", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None if settings.environment == "production" else "/openapi.json")

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization", "x-learner-id"], expose_headers=["content-length", "x-request-id"])


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(topics.router, prefix="/v1/topics", tags=["topics"])
app.include_router(jobs.router, prefix="/v1/jobs", tags=["jobs"])
app.include_router(reviews.router, prefix="/v1/reviews", tags=["reviews"])
app.include_router(mastery.router, prefix="/v1/mastery", tags=["mastery"])
app.include_router(quizzes.router, prefix="/v1/quizzes", tags=["quizzes"])
app.include_router(progress.router, prefix="/v1/progress", tags=["progress"])
