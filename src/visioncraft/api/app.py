from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Callable

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from visioncraft.api.panels import (
    DOWNLOAD_FILENAME,
    advisor_panel,
    canvas_panel,
    control_panel,
    state_snapshot,
)
from visioncraft.config import Settings, configure_logging, warn_if_unconfigured
from visioncraft.config import settings as default_settings
from visioncraft.controller import PosterStudio, ProductUpload
from visioncraft.imaging import InvalidImageError, read_upload, to_png_bytes
from visioncraft.models import AspectRatio, PromptMode
from visioncraft.providers.base import CompositeProvider, PosterProvider
from visioncraft.providers.gemini_provider import GeminiProvider
from visioncraft.providers.openai_provider import OpenAITextProvider
from visioncraft.sessions import SessionStore
from visioncraft.themes import parse_theme

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def _build_provider(cfg: Settings) -> PosterProvider:
    gemini = GeminiProvider(api_key=cfg.gemini_api_key, cfg=cfg)
    if cfg.advice_provider == "openai":
        return CompositeProvider(images=gemini, advice=OpenAITextProvider(api_key=cfg.openai_api_key, cfg=cfg))
    return gemini


def _parse_bool(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except Exception:
        return default


def _studio(request: Request) -> PosterStudio:
    return request.state.session.studio


def _apply_settings_form(
    studio: PosterStudio,
    aspect_ratio: str | None,
    prompt_mode: str | None,
    prompt: str | None,
    json_prompt: str | None,
    creativity: str | None,
) -> None:
    changes: dict = {}
    if aspect_ratio is not None:
        try:
            changes["aspect_ratio"] = AspectRatio(aspect_ratio.strip())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"unsupported aspect ratio '{aspect_ratio}'")
    if prompt_mode is not None:
        try:
            changes["prompt_mode"] = PromptMode(prompt_mode.strip())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"unsupported prompt mode '{prompt_mode}'")
    if prompt is not None:
        changes["prompt"] = prompt
    if json_prompt is not None:
        changes["json_prompt"] = json_prompt
    if creativity is not None:
        changes["creativity"] = _parse_float(creativity, studio.state.settings.creativity)
    if changes:
        studio.update_settings(**changes)


def _back_home() -> RedirectResponse:
    return RedirectResponse(url="/", status_code=303)


def create_app(
    cfg: Settings | None = None,
    provider_factory: Callable[[], PosterProvider] | None = None,
) -> FastAPI:
    cfg = cfg or default_settings
    configure_logging(cfg.log_level)
    warn_if_unconfigured(cfg)

    if provider_factory is None:
        shared = _build_provider(cfg)
        provider_factory = lambda: shared  # noqa: E731

    app = FastAPI(title="VisionCraft AI")
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    store = SessionStore(provider_factory)
    app.state.sessions = store
    max_idle = timedelta(minutes=cfg.session_max_idle_minutes)

    @app.middleware("http")
    async def attach_session(request: Request, call_next):
        cookie_id = request.cookies.get(cfg.session_cookie)
        session = store.get(cookie_id)
        is_new = session is None
        if is_new:
            pruned = store.prune(max_idle)
            if pruned:
                logger.info("Pruned %d idle sessions", pruned)
            session = store.create_session()
        request.state.session = session
        response = await call_next(request)
        if is_new:
            response.set_cookie(cfg.session_cookie, session.session_id, httponly=True, samesite="lax")
        return response

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request):
        state = _studio(request).state
        return templates.TemplateResponse(
            request=request,
            name="index.html",
            context={
                "theme": state.theme.value,
                "busy": state.busy,
                "control": control_panel(state),
                "canvas": canvas_panel(state),
                "advisor": advisor_panel(state),
                "prompt_modes": list(PromptMode),
            },
        )

    @app.get("/api/state")
    def get_state(request: Request):
        return JSONResponse(state_snapshot(_studio(request).state))

    @app.post("/settings")
    def update_settings(
        request: Request,
        aspect_ratio: str | None = Form(None),
        prompt_mode: str | None = Form(None),
        prompt: str | None = Form(None),
        json_prompt: str | None = Form(None),
        creativity: str | None = Form(None),
    ):
        _apply_settings_form(_studio(request), aspect_ratio, prompt_mode, prompt, json_prompt, creativity)
        return _back_home()

    @app.post("/theme")
    def select_theme(request: Request, theme: str = Form(...)):
        try:
            theme_id = parse_theme(theme)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"unknown theme '{theme}'")
        _studio(request).set_theme(theme_id)
        return _back_home()

    @app.post("/upload")
    async def upload_product(request: Request, file: UploadFile | None = File(None)):
        studio = _studio(request)
        content = await file.read() if file is not None else b""
        if not content:
            await studio.upload_image(None)
            return _back_home()
        try:
            mime_type = read_upload(content)
        except InvalidImageError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        upload = ProductUpload(data=content, mime_type=mime_type, filename=file.filename or "upload")
        await studio.upload_image(upload)
        return _back_home()

    @app.post("/background-removal")
    async def toggle_background_removal(request: Request, enabled: str | None = Form(None)):
        await _studio(request).set_background_removal(_parse_bool(enabled))
        return _back_home()

    @app.post("/generate")
    async def generate_poster(
        request: Request,
        aspect_ratio: str | None = Form(None),
        prompt_mode: str | None = Form(None),
        prompt: str | None = Form(None),
        json_prompt: str | None = Form(None),
        creativity: str | None = Form(None),
    ):
        # The prompt form posts here directly, so apply whatever it carried first.
        studio = _studio(request)
        _apply_settings_form(studio, aspect_ratio, prompt_mode, prompt, json_prompt, creativity)
        await studio.generate()
        return _back_home()

    @app.post("/advice")
    async def get_advice(request: Request):
        await _studio(request).get_advice()
        return _back_home()

    @app.post("/canvas/view")
    def set_canvas_view(request: Request, view: str = Form(...)):
        if view not in ("original", "generated"):
            raise HTTPException(status_code=400, detail=f"unknown view '{view}'")
        _studio(request).set_canvas_view(view == "original")
        return _back_home()

    @app.get("/images/{kind}")
    def get_image(request: Request, kind: str):
        state = _studio(request).state
        images = {
            "product": state.product_image,
            "product-nobg": state.background_removed_image,
            "poster": state.generated_image,
        }
        if kind not in images:
            raise HTTPException(status_code=404, detail="unknown image kind")
        image = images[kind]
        if image is None:
            raise HTTPException(status_code=404, detail="image not found")
        return Response(content=image.data, media_type=image.mime_type, headers={"Cache-Control": "no-store"})

    @app.get("/download")
    def download_poster(request: Request):
        generated = _studio(request).state.generated_image
        if generated is None:
            raise HTTPException(status_code=404, detail="no poster has been generated")
        png = to_png_bytes(generated.data, generated.mime_type)
        headers = {"Content-Disposition": f'attachment; filename="{DOWNLOAD_FILENAME}"'}
        return Response(content=png, media_type="image/png", headers=headers)

    return app


app = create_app()
