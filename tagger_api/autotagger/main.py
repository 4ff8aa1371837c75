from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Depends, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .completion import OpenAICompletionService
from .config import settings
from .errors import ConfigurationError, ExternalServiceError
from .logging_utils import setup_logger
from .models import ApiKeyRequest, ClassifyRequest, PromptPreviewRequest, UpdateSettingsRequest
from .presentation.html_renderer import HtmlRenderer
from .presentation.presenters import create_presenter
from .security import require_api_key
from .store import JsonSettingsStore
from .tagger import TaggerService, TaggingResult
from .updates import ConfigUpdate
from .vault import VaultVocabulary


app = FastAPI(title="Auto Tagger API", version="0.1.0")

origins = (
    [o.strip() for o in settings.cors_origins.split(",")]
    if getattr(settings, "cors_origins", None)
    else ["*"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins if origins != ["*"] else ["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = setup_logger("api")

VAULT_ROOT = Path(settings.vault_root)
DATA_FILE = Path(settings.data_file)

TAGGER = TaggerService(
    store=JsonSettingsStore(DATA_FILE),
    source=VaultVocabulary(VAULT_ROOT),
    completion=OpenAICompletionService(model=settings.openai_model, timeout=settings.openai_timeout),
    vault_root=VAULT_ROOT,
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.warning(f"⚠️ Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": "configuration"})


@app.exception_handler(ExternalServiceError)
async def external_service_error_handler(request: Request, exc: ExternalServiceError):
    logger.error(f"❌ {exc.service} failed on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=502,
        content={"detail": exc.message, "error": "external_service", "service": exc.service},
    )


async def get_tagger() -> TaggerService:
    tagger = TAGGER
    if not tagger.loaded:
        await tagger.load()
    return tagger


def _result_to_dict(result: TaggingResult) -> dict:
    placement = result.placement
    return {
        "tag": result.tag,
        "placement": {
            "location": placement.location.value,
            "key": placement.key,
            "overwrite": placement.overwrite,
        },
        "request": asdict(result.request),
        "metrics": asdict(result.metrics),
        "path": result.path,
        "written": result.written,
    }


@app.get("/health")
def health(response: Response):
    response.headers["Cache-Control"] = "no-store"
    return {
        "status": "ok",
        "service": "autotagger",
        "version": "0.1.0",
        "vault_root": str(VAULT_ROOT),
        "data_file": str(DATA_FILE),
        "time": datetime.now().astimezone().isoformat()
    }


# ---- settings ----

@app.get("/settings", dependencies=[Depends(require_api_key)])
async def get_settings(
    format: str = Query(default="json", pattern="^(json|markdown|html)$"),
    tagger: TaggerService = Depends(get_tagger),
):
    data = tagger.settings.masked()
    if format == "json":
        return data
    md = create_presenter("settings").to_markdown(data)
    if format == "markdown":
        return PlainTextResponse(md, media_type="text/markdown")
    return Response(content=HtmlRenderer().render(md, "Auto Tagger Settings"), media_type="text/html")


@app.patch("/settings", dependencies=[Depends(require_api_key)])
async def update_settings(body: UpdateSettingsRequest, tagger: TaggerService = Depends(get_tagger)):
    updates = [ConfigUpdate.parse(u.kind, u.value) for u in body.updates]
    option = await tagger.update(updates)
    return {"command_option": option.model_dump(mode="json")}


@app.post("/settings/reset", dependencies=[Depends(require_api_key)])
async def reset_settings(tagger: TaggerService = Depends(get_tagger)):
    await tagger.reset()
    return tagger.settings.masked()


@app.put("/settings/api-key", dependencies=[Depends(require_api_key)])
async def set_api_key(body: ApiKeyRequest, tagger: TaggerService = Depends(get_tagger)):
    await tagger.set_api_key(body.api_key)
    return {"ok": True, "api_key_created_at": None}


@app.post("/settings/api-key/test", dependencies=[Depends(require_api_key)])
async def test_api_key(tagger: TaggerService = Depends(get_tagger)):
    tested_at = await tagger.test_api_key()
    return {"ok": True, "message": "Success! API working.", "api_key_created_at": tested_at.isoformat()}


# ---- references ----

@app.get("/references", dependencies=[Depends(require_api_key)])
async def view_references(
    format: str = Query(default="json", pattern="^(json|text|markdown|html)$"),
    tagger: TaggerService = Depends(get_tagger),
):
    option = tagger.option
    presenter = create_presenter("references")
    if format == "json":
        return {
            "mode": option.mode.value,
            "use_reference": option.use_reference,
            "count": len(option.reference_set),
            "references": option.reference_set,
        }
    if format == "text":
        return PlainTextResponse(presenter.to_text(option.reference_set))
    md = presenter.to_markdown(option.reference_set, option.mode.value)
    if format == "markdown":
        return PlainTextResponse(md, media_type="text/markdown")
    return Response(
        content=HtmlRenderer().render(md, "Reference Tags", metadata={"count": len(option.reference_set)}),
        media_type="text/html",
    )


@app.post("/references/refresh", dependencies=[Depends(require_api_key)])
async def refresh_references(tagger: TaggerService = Depends(get_tagger)):
    option = await tagger.refresh_references()
    return {"mode": option.mode.value, "count": len(option.reference_set), "references": option.reference_set}


@app.post("/references/load-all", dependencies=[Depends(require_api_key)])
async def load_all_references(tagger: TaggerService = Depends(get_tagger)):
    option = await tagger.load_all_into_manual()
    return {"mode": option.mode.value, "count": len(option.reference_set), "references": option.reference_set}


# ---- tagging ----

@app.post("/prompt", dependencies=[Depends(require_api_key)])
async def preview_prompt(
    body: PromptPreviewRequest,
    format: str = Query(default="json", pattern="^(json|markdown)$"),
    tagger: TaggerService = Depends(get_tagger),
):
    request = tagger.build_prompt(body.text)
    if format == "markdown":
        md = create_presenter("prompt").to_markdown(request.role, request.prompt)
        return PlainTextResponse(md, media_type="text/markdown")
    return asdict(request)


@app.post("/classify", dependencies=[Depends(require_api_key)])
async def classify(body: ClassifyRequest, tagger: TaggerService = Depends(get_tagger)):
    if body.path:
        try:
            result = await tagger.classify_note(body.path, cursor=body.cursor, write=body.write)
        except FileNotFoundError as e:
            raise HTTPException(404, detail=str(e))
        except ConfigurationError:
            raise
        except ValueError as e:
            raise HTTPException(400, detail=str(e))
        return _result_to_dict(result)

    if body.text is None:
        raise HTTPException(422, detail="Either 'text' or 'path' is required")
    result = await tagger.classify(body.text)
    return _result_to_dict(result)
