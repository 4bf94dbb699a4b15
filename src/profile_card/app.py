"""
GitHub Profile Card - FastAPI Application

Serves aggregated GitHub profile data for the card renderer.
"""

import logging
import re
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from profile_card import __version__
from profile_card.config import settings
from profile_card.errors import (
    ConfigurationError,
    OverloadError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamNotFoundError,
    UpstreamRateLimitError,
)
from profile_card.service import ProfileService

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,39}$")
CACHE_CONTROL = "public, max-age=0, s-maxage=1800, stale-while-revalidate=1800"
LANGUAGE_FIELDS = {"all", "languages", "langs"}


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_fields(raw: str | None) -> set[str] | None:
    """Parse the comma-separated ``fields`` query parameter."""
    if not raw:
        return None
    fields = {part.strip().lower() for part in raw.split(",")}
    fields.discard("")
    return fields or None


def wants_languages(fields: set[str] | None) -> bool:
    return fields is None or bool(fields & LANGUAGE_FIELDS)


def create_app(service: ProfileService | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        service: Pre-built service (tests); built from settings when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        configure_logging(settings.log_level)
        profile_service = service or ProfileService.from_settings(settings)
        app.state.profile_service = profile_service
        profile_service.start()
        logger.info(
            "Starting GitHub Profile Card API (cache ttl %ss, max %d entries, remote tier %s)",
            settings.cache_ttl_seconds,
            settings.cache_max_size,
            "on" if profile_service.remote is not None else "off",
        )

        yield

        await profile_service.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="GitHub Profile Card API",
        description="Cached GitHub profile statistics for SVG profile cards",
        version=__version__,
        lifespan=lifespan,
    )

    # Cards are embedded from anywhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "[%s] %s - %d - %.0fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    @app.get("/")
    async def root():
        """API info."""
        return {
            "service": "GitHub Profile Card API",
            "version": __version__,
            "usage": "GET /profile/{username}?fields=languages,stats",
            "docs": "/docs",
        }

    @app.get("/profile/{username}")
    async def get_profile(username: str, request: Request, fields: str | None = None):
        """
        Fetch profile data for a GitHub user.

        Query parameters:
          - fields: Comma-separated list ("languages", "stats", "all")
        """
        if not USERNAME_PATTERN.match(username):
            raise HTTPException(
                status_code=400,
                detail=(
                    "Invalid GitHub username. Username must be 1-39 characters and "
                    "contain only alphanumeric characters, hyphens, or underscores."
                ),
            )

        profile_service: ProfileService = request.app.state.profile_service
        include_languages = wants_languages(parse_fields(fields))

        try:
            profile = await profile_service.fetch_profile(username, include_languages)
        except UpstreamNotFoundError:
            raise HTTPException(status_code=404, detail=f'GitHub user "{username}" not found')
        except UpstreamRateLimitError:
            raise HTTPException(
                status_code=429,
                detail="GitHub API rate limit exceeded. Please try again later.",
            )
        except UpstreamAuthError:
            raise HTTPException(status_code=502, detail="GitHub API rejected the server credentials.")
        except ConfigurationError:
            raise HTTPException(
                status_code=500,
                detail="Server configuration error. Please contact the administrator.",
            )
        except OverloadError as e:
            raise HTTPException(status_code=503, detail=str(e))
        except UpstreamError:
            raise HTTPException(status_code=503, detail="GitHub API error. Please try again later.")

        return JSONResponse(
            content=profile.model_dump(mode="json", by_alias=True),
            headers={"Cache-Control": CACHE_CONTROL},
        )

    @app.get("/health")
    async def health_check():
        """Simple health check for uptime pings."""
        return {"status": "ok", "timestamp": datetime.now(tz=UTC).isoformat()}

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
        )

    return app


app = create_app()


def main():
    """Entry point for running the server."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
