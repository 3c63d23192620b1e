from contextlib import asynccontextmanager
import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from academy_backend.api.auth import auth_router
from academy_backend.api.exceptions import to_http_exception
from academy_backend.api.reports import instructor_router, reports_router
from academy_backend.api.security import security_router
from academy_backend.database import build_engine, build_session_factory
from academy_backend.errors import AccessError
from academy_backend.permissions.claims import ClaimVerifier
from academy_backend.settings import settings

logger = logging.getLogger(__name__)


async def access_error_handler(request: Request, exc: AccessError):
    http_exception = to_http_exception(exc)
    return JSONResponse(
        status_code=http_exception.status_code,
        content={"detail": http_exception.detail},
        headers=http_exception.headers,
    )


def create_app(session_factory: Optional[sessionmaker] = None, claim_verifier: Optional[ClaimVerifier] = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "session_factory", None) is None:
            app.state.session_factory = build_session_factory(build_engine(settings.DATABASE_URL))
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.session_factory = session_factory
    app.state.claim_verifier = claim_verifier

    origins = [
        "*"
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Total-Count"],
    )

    app.add_exception_handler(AccessError, access_error_handler)

    app.include_router(
        auth_router,
        prefix="/auth",
        tags=["auth"]
    )

    app.include_router(
        security_router,
        prefix="/admin/security",
        tags=["security"]
    )

    app.include_router(
        reports_router,
        prefix="/admin",
        tags=["reports"]
    )

    app.include_router(
        instructor_router,
        prefix="/instructor",
        tags=["instructor"]
    )

    return app
