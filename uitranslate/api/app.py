"""
FastAPI application for the translation layer.

Language endpoints for server-rendered pages, plus a WebSocket hub that
streams translation events to connected browsers. The preferred-language
cookie is only read and written here; everything below takes the language as
an explicit argument.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import Depends, FastAPI, Form, HTTPException, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from uitranslate.cache import RequestTranslationCache, TranslationCache
from uitranslate.config import Settings, get_settings
from uitranslate.core.events import TranslationBroadcaster, get_broadcaster
from uitranslate.core.models import SwitchResponse, TranslationStats, TranslationStringView
from uitranslate.integrations.sentry import configure_logging, init_sentry
from uitranslate.providers import ProviderFactory, create_provider_factory
from uitranslate.services import (
    KeyLocks,
    LanguageSwitchService,
    TranslationJobRunner,
    TranslationService,
    create_dependency_factory,
)
from uitranslate.storage import InMemoryCacheStorage, StoreFactory, create_store_factory

logger = logging.getLogger(__name__)

COOKIE_MAX_AGE = 365 * 24 * 60 * 60


# =============================================================================
# App State
# =============================================================================


class AppState:
    """Application state - initialized at startup."""

    settings: Settings
    store_factory: StoreFactory
    provider_factory: ProviderFactory
    cache: TranslationCache
    broadcaster: TranslationBroadcaster
    key_locks: KeyLocks
    job_runner: TranslationJobRunner


# =============================================================================
# Request / Response Models
# =============================================================================


class SwitchRequest(BaseModel):
    keys: list[str] = Field(default_factory=list)


class TranslateAllResponse(BaseModel):
    language: str
    translated_count: int


class ResolveResponse(BaseModel):
    key: str
    language: str
    text: str


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    settings: Settings | None = None,
    store_factory: StoreFactory | None = None,
    provider_factory: ProviderFactory | None = None,
    broadcaster: TranslationBroadcaster | None = None,
) -> FastAPI:
    """
    Build the application.

    Storage and provider factories default to the ones described by
    ``settings``; tests pass their own.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        init_sentry(settings)

        state = AppState()
        state.settings = settings
        state.store_factory = store_factory or create_store_factory(settings)
        state.provider_factory = provider_factory or create_provider_factory(settings)
        state.cache = TranslationCache(
            InMemoryCacheStorage(),
            ttl_seconds=settings.cache_ttl_seconds,
            enabled=settings.enable_memory_cache,
        )
        state.broadcaster = broadcaster or get_broadcaster()
        state.key_locks = KeyLocks()
        state.job_runner = TranslationJobRunner(
            create_dependency_factory(
                state.store_factory,
                state.provider_factory,
                state.cache,
                state.broadcaster,
                state.key_locks,
                default_language=settings.default_language,
            ),
            dedupe=settings.dedupe_jobs,
        )
        app.state.services = state

        logger.info(
            "Translation API starting in %s mode (storage=%s, provider=%s)",
            settings.environment,
            settings.storage_type,
            settings.ai_provider,
        )

        yield

        await state.job_runner.shutdown()
        logger.info("Translation API shut down")

    app = FastAPI(
        title="UI Translate API",
        description="On-demand AI translation of UI strings with live updates",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


# =============================================================================
# Dependencies
# =============================================================================


def get_state(request: Request) -> AppState:
    return request.app.state.services


async def get_request_cache() -> AsyncIterator[RequestTranslationCache]:
    """One cache per request, cleared when the response is done."""
    cache = RequestTranslationCache()
    try:
        yield cache
    finally:
        cache.clear()


async def get_translation_service(state: AppState = Depends(get_state)) -> AsyncIterator[TranslationService]:
    provider = state.provider_factory()
    try:
        yield TranslationService(
            state.store_factory(),
            provider,
            state.cache,
            default_language=state.settings.default_language,
            job_runner=state.job_runner,
            key_locks=state.key_locks,
        )
    finally:
        await provider.aclose()


def get_switch_service(state: AppState = Depends(get_state)) -> LanguageSwitchService:
    return LanguageSwitchService(
        state.store_factory(),
        state.job_runner,
        default_language=state.settings.default_language,
    )


def set_language_cookie(response: Response, settings: Settings, language_code: str) -> None:
    response.set_cookie(
        settings.language_cookie,
        language_code,
        max_age=COOKIE_MAX_AGE,
        path="/",
        samesite="lax",
        httponly=False,  # read by the client script
    )


# =============================================================================
# Routes
# =============================================================================


def _register_routes(app: FastAPI) -> None:

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    # -------------------------------------------------------------------------
    # Language preference
    # -------------------------------------------------------------------------

    @app.post("/language/set")
    async def set_language(
        response: Response,
        language_code: str = Form(""),
        state: AppState = Depends(get_state),
    ):
        """Remember the visitor's language in a cookie."""
        language_code = language_code.strip().lower()
        if not language_code:
            raise HTTPException(status_code=400, detail="language_code is required")

        set_language_cookie(response, state.settings, language_code)
        return {"language": language_code}

    @app.get("/language/current")
    async def current_language(request: Request, state: AppState = Depends(get_state)):
        language_code = request.cookies.get(state.settings.language_cookie) or state.settings.default_language
        return {"language": language_code.lower()}

    @app.get("/language/available", response_model=list[str])
    async def available_languages(service: TranslationService = Depends(get_translation_service)):
        return await service.list_languages()

    # -------------------------------------------------------------------------
    # Strings
    # -------------------------------------------------------------------------

    @app.get("/language/all/{language_code}", response_model=list[TranslationStringView])
    async def all_strings(language_code: str, service: TranslationService = Depends(get_translation_service)):
        return await service.get_all_strings(language_code)

    @app.get("/language/resolve/{language_code}/{key}", response_model=ResolveResponse)
    async def resolve_string(
        language_code: str,
        key: str,
        default_text: str | None = None,
        service: TranslationService = Depends(get_translation_service),
        request_cache: RequestTranslationCache = Depends(get_request_cache),
    ):
        text = await service.resolve(key, language_code, default_text=default_text, request_cache=request_cache)
        return ResolveResponse(key=key, language=language_code.lower(), text=text)

    @app.get("/language/stats/{language_code}", response_model=TranslationStats)
    async def language_stats(language_code: str, service: TranslationService = Depends(get_translation_service)):
        return await service.get_stats(language_code)

    # -------------------------------------------------------------------------
    # Translation
    # -------------------------------------------------------------------------

    @app.post("/language/switch/{language_code}", response_model=SwitchResponse)
    async def switch_language(
        language_code: str,
        body: SwitchRequest,
        response: Response,
        state: AppState = Depends(get_state),
        switcher: LanguageSwitchService = Depends(get_switch_service),
    ):
        """
        Switch the page to a language.

        Returns translations that exist now; the rest arrive over the
        ``/hubs/translation`` WebSocket as they are produced.
        """
        language_code = language_code.strip().lower()
        if not language_code:
            raise HTTPException(status_code=400, detail="language_code is required")

        set_language_cookie(response, state.settings, language_code)
        return await switcher.build_switch_response(language_code, body.keys)

    @app.post("/language/translate-all/{language_code}", response_model=TranslateAllResponse)
    async def translate_all(
        language_code: str,
        overwrite: bool = False,
        service: TranslationService = Depends(get_translation_service),
    ):
        count = await service.translate_all(language_code, overwrite_existing=overwrite)
        return TranslateAllResponse(language=language_code.lower(), translated_count=count)

    # -------------------------------------------------------------------------
    # Real-time updates
    # -------------------------------------------------------------------------

    @app.websocket("/hubs/translation")
    async def translation_hub(websocket: WebSocket):
        """Push every broadcast event to the client as ``{"type", "payload"}``."""
        state: AppState = websocket.app.state.services
        await websocket.accept()

        async def forward() -> None:
            async for event in state.broadcaster.stream():
                await websocket.send_json({"type": event.event_type, "payload": event.payload})

        sender = asyncio.create_task(forward())
        try:
            # Incoming messages are ignored; receiving detects the disconnect
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Translation hub client disconnected")
        finally:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)


app = create_app()


def main() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "uitranslate.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
