from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from reposignal.core.config import GitHubAppConfig, Settings, get_settings
from reposignal.core.errors import register_exception_handlers
from reposignal.core.limiter import limiter
from reposignal.core.middleware import RequestIdMiddleware, SecurityHeadersMiddleware
from reposignal.github.auth import AppCredentialIssuer
from reposignal.github.client import InstallationVerifier
from reposignal.feedback.router import router as feedback_router
from reposignal.installations.router import router as installations_router
from reposignal.repositories.router import bot_router as repositories_bot_router
from reposignal.repositories.router import public_router as repositories_public_router
from reposignal.setup.router import router as setup_router


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API.

    Raises ConfigurationError when the GitHub App identity or signing key
    is missing or malformed, so a misconfigured process never starts serving.
    """
    settings = settings or get_settings()

    # ---------------------------------------------------------------------------
    # Logging: configure structlog before anything logs
    # ---------------------------------------------------------------------------
    from reposignal.core.logging import configure_structlog

    configure_structlog(debug=settings.debug)

    # ---------------------------------------------------------------------------
    # GitHub App credentials: validated once, injected everywhere
    # ---------------------------------------------------------------------------
    github_app = GitHubAppConfig.from_settings(settings)
    issuer = AppCredentialIssuer(github_app)
    verifier = InstallationVerifier(
        issuer,
        api_base=settings.github_api_base,
        timeout=settings.github_timeout_seconds,
    )

    _app = FastAPI(
        title="Reposignal API",
        description="Installation setup and repository discovery backend for the Reposignal GitHub App",
        version="0.1.0",
    )
    _app.state.installation_verifier = verifier

    # ---------------------------------------------------------------------------
    # Rate limiter state: SlowAPI reads limiter from app.state
    # ---------------------------------------------------------------------------
    _app.state.limiter = limiter

    register_exception_handlers(_app)

    # ---------------------------------------------------------------------------
    # Middleware (registered outermost → innermost; executed innermost → outermost)
    # ---------------------------------------------------------------------------

    # CORS: must be added before other custom middleware so preflight OPTIONS
    # requests are handled before they reach downstream middleware.
    _app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # SlowAPI: must be before security headers so 429s also get security headers
    _app.add_middleware(SlowAPIMiddleware)

    _app.add_middleware(SecurityHeadersMiddleware)

    _app.add_middleware(RequestIdMiddleware)

    # ---------------------------------------------------------------------------
    # Sentry: initialised here so it captures startup errors too
    # ---------------------------------------------------------------------------
    from reposignal.core.sentry import init_sentry

    init_sentry(
        dsn=settings.sentry_dsn,
        environment="development" if settings.debug else "production",
    )

    # ---------------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------------

    @_app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    _app.include_router(setup_router)
    _app.include_router(installations_router)
    _app.include_router(feedback_router)
    _app.include_router(repositories_bot_router)
    _app.include_router(repositories_public_router)

    return _app


app = create_app()
