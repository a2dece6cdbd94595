from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware

from adcreative import __version__
from adcreative.config import get_settings
from adcreative.errors import CreativePipelineError, InvalidInputError
from adcreative.middlewares import BodyGuardMiddleware
from adcreative.models import AdAssets, AdMetadata, AdTemplate, GeneratedAd, VisualGuideline
from adcreative.schemas import (
    CompatibilityRequest,
    CompatibilityResponse,
    DeriveTemplateRequest,
    GeneratedAdListResponse,
    GuidelineHistoryResponse,
    RegenerateGuidelinesRequest,
    RenderAdRequest,
    RenderAdResponse,
    SelectTemplateRequest,
    TemplateListResponse,
)
from adcreative.services import compatibility
from adcreative.services.catalog import TemplateCatalog
from adcreative.services.creative_storage import CreativeStorage, StorageError, StoredCreative
from adcreative.services.guidelines import GuidelineExtractor
from adcreative.services.history import GuidelineService
from adcreative.services.oracle import build_oracle
from adcreative.services.qa import check_ad
from adcreative.services.records import GENERATED_ADS, RecordStore, build_record_store
from adcreative.services.renderer import AdRenderer, canvas_dimensions, to_data_url

settings = get_settings()
LOG_LEVEL = settings.log_level

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("uvicorn").setLevel(LOG_LEVEL)
logging.getLogger("uvicorn.error").setLevel(LOG_LEVEL)
logging.getLogger("uvicorn.access").setLevel(LOG_LEVEL)
logging.getLogger("adcreative").setLevel(LOG_LEVEL)

logger = logging.getLogger("adcreative")
app = FastAPI(title="Ad Creative API", version=__version__)

app.add_middleware(
    BodyGuardMiddleware,
    max_body_bytes=settings.guard.max_body_bytes,
    max_inline_base64_bytes=settings.guard.max_inline_base64_bytes,
)

allow_all = "*" in settings.allowed_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=not allow_all,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)


@lru_cache(maxsize=1)
def _get_store() -> RecordStore:
    return build_record_store(settings.storage.data_dir)


@lru_cache(maxsize=1)
def _get_catalog() -> TemplateCatalog:
    return TemplateCatalog(_get_store())


@lru_cache(maxsize=1)
def _get_guideline_service() -> GuidelineService:
    extractor: Optional[GuidelineExtractor] = None
    try:
        oracle = build_oracle(settings.oracle)
    except (CreativePipelineError, ValueError) as exc:
        logger.warning("Reasoning oracle unavailable: %s", exc)
    else:
        extractor = GuidelineExtractor(
            oracle,
            max_samples=settings.oracle.max_samples_per_competitor,
            timeout=settings.oracle.timeout_seconds,
        )
        logger.info(
            "Using %s reasoning oracle",
            oracle.name,
            extra={"model": settings.oracle.model},
        )
    return GuidelineService(_get_store(), extractor)


@lru_cache(maxsize=1)
def _get_renderer() -> AdRenderer:
    return AdRenderer(settings.renderer)


@lru_cache(maxsize=1)
def _get_storage() -> CreativeStorage:
    return CreativeStorage(settings.storage)


def _http_error(exc: CreativePipelineError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


@app.get("/", include_in_schema=False)
def root() -> dict[str, Any]:
    return {"service": "adcreative", "ok": True}


@app.head("/", include_in_schema=False)
def root_head() -> Response:
    return Response(status_code=200)


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@app.get("/api/projects/{project_id}/guidelines", response_model=GuidelineHistoryResponse)
def list_guidelines(project_id: str) -> GuidelineHistoryResponse:
    history = _get_guideline_service().history(project_id)
    return GuidelineHistoryResponse(
        project_id=project_id,
        active=history[0] if history else None,
        history=history,
    )


@app.post("/api/projects/{project_id}/guidelines", response_model=VisualGuideline)
async def regenerate_guidelines(
    project_id: str, request_data: RegenerateGuidelinesRequest
) -> VisualGuideline:
    logger.info(
        "guideline regeneration requested",
        extra={"project_id": project_id, "batches": len(request_data.competitor_ads)},
    )
    try:
        return await _get_guideline_service().regenerate(
            project_id, request_data.competitor_ads, request_data.brand_identity
        )
    except CreativePipelineError as exc:
        logger.warning(
            "guideline regeneration failed",
            extra={"project_id": project_id, "error": exc.error_code},
        )
        raise _http_error(exc) from exc


@app.get("/api/templates", response_model=TemplateListResponse)
def list_templates(platform: Optional[str] = None) -> TemplateListResponse:
    return TemplateListResponse(
        platform=platform,
        templates=_get_catalog().list_for_platform(platform),
    )


@app.get("/api/templates/{template_id}", response_model=AdTemplate)
def get_template(template_id: str) -> AdTemplate:
    try:
        return _get_catalog().get(template_id)
    except CreativePipelineError as exc:
        raise _http_error(exc) from exc


@app.post("/api/templates", response_model=AdTemplate, status_code=201)
def add_template(template: AdTemplate) -> AdTemplate:
    try:
        return _get_catalog().add(template)
    except CreativePipelineError as exc:
        raise _http_error(exc) from exc


@app.post("/api/projects/{project_id}/templates/derive", response_model=AdTemplate, status_code=201)
def derive_template(project_id: str, request_data: DeriveTemplateRequest) -> AdTemplate:
    service = _get_guideline_service()
    if request_data.guideline_id:
        guideline = service.find(project_id, request_data.guideline_id)
    else:
        guideline = service.active(project_id)
    if guideline is None:
        raise HTTPException(
            status_code=404,
            detail={
                "ok": False,
                "error": "GUIDELINE_NOT_FOUND",
                "message": "No visual guideline available for this project",
                "project_id": project_id,
            },
        )

    try:
        template = _get_catalog().derive_from_guideline(
            guideline,
            name=request_data.name,
            platform=request_data.platform,
            template_type=request_data.template_type,
        )
    except CreativePipelineError as exc:
        raise _http_error(exc) from exc
    logger.info(
        "template derived",
        extra={"project_id": project_id, "guideline_id": guideline.id, "template_id": template.id},
    )
    return template


@app.post("/api/templates/select", response_model=AdTemplate)
def select_template(request_data: SelectTemplateRequest) -> AdTemplate:
    return _get_catalog().select_for_image(request_data.layout_map, request_data.angle)


@app.post("/api/compatibility", response_model=CompatibilityResponse)
def check_compatibility(request_data: CompatibilityRequest) -> CompatibilityResponse:
    try:
        if request_data.template_id:
            template: Any = _get_catalog().get(request_data.template_id)
        elif request_data.template is not None:
            template = request_data.template
        else:
            raise InvalidInputError("Either template_id or template is required")
        result = compatibility.validate(template, request_data.layout_map)
    except CreativePipelineError as exc:
        raise _http_error(exc) from exc
    return CompatibilityResponse(template_id=request_data.template_id, result=result)


def _store_render(project_id: str, data: bytes) -> Optional[StoredCreative]:
    storage = _get_storage()
    if not storage.enabled:
        return None
    try:
        return storage.upload(data, project_id=project_id, content_type="image/jpeg")
    except StorageError as exc:
        logger.exception("Rendered ad storage failed", extra={"project_id": project_id})
        raise HTTPException(status_code=500, detail="Rendered ad storage failed") from exc


@app.post("/api/projects/{project_id}/ads/render", response_model=RenderAdResponse, status_code=201)
def render_ad(project_id: str, request_data: RenderAdRequest) -> RenderAdResponse:
    catalog = _get_catalog()
    try:
        template = catalog.get(request_data.template_id) if request_data.template_id else None
    except CreativePipelineError as exc:
        raise _http_error(exc) from exc

    assets = AdAssets(
        image_url=request_data.image_url,
        headline=request_data.headline,
        body_copy=request_data.body_copy,
        cta=request_data.cta,
        hook=request_data.hook,
    )
    draft = GeneratedAd(
        project_id=project_id,
        template_id=template.id if template else None,
        assets_json=assets,
        metadata_json=AdMetadata(
            dimensions=canvas_dimensions(
                request_data.dimensions, template, settings.renderer.default_dimensions
            ),
            platform=request_data.platform or (template.platform if template else None),
        ),
    )

    qa = check_ad(draft, template)
    if not qa.passed:
        logger.info("ad QA issues", extra={"project_id": project_id, "issues": qa.issues})

    try:
        data = _get_renderer().render(draft, template)
    except CreativePipelineError as exc:
        logger.warning("ad render failed", extra={"project_id": project_id, "error": exc.message})
        raise _http_error(exc) from exc

    stored = _store_render(project_id, data)
    metadata = draft.metadata_json.model_copy(
        update={
            "rendered_key": stored.key if stored else None,
            "rendered_url": stored.url if stored else None,
            "content_type": "image/jpeg",
        }
    )
    ad = draft.model_copy(update={"metadata_json": metadata})
    _get_store().insert(GENERATED_ADS, ad.model_dump(mode="json"))
    logger.info(
        "ad rendered",
        extra={"project_id": project_id, "ad_id": ad.id, "stored": bool(stored)},
    )

    image_url = stored.url if stored else to_data_url(data)
    return RenderAdResponse(ad=ad, image_url=image_url, qa=qa)


@app.get("/api/projects/{project_id}/ads", response_model=GeneratedAdListResponse)
def list_ads(project_id: str) -> GeneratedAdListResponse:
    records = _get_store().list_latest(GENERATED_ADS, project_id)
    return GeneratedAdListResponse(
        project_id=project_id,
        ads=[GeneratedAd.model_validate(record) for record in records],
    )
