"""FastAPI interface for drafts, approvals, publishing and trend data."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..core.images import prompts_for
from ..core.pipelines import AVAILABLE_PIPELINES
from ..errors import (
    CanvaAuthError,
    DraftflowError,
    DraftLocked,
    DraftNotFound,
    DraftNotReady,
    GeneratorNotConfigured,
    MissingInput,
    NotConnected,
    PublishFailed,
    UnknownDestination,
    UnknownPipeline,
    UnknownSection,
)
from ..models.content import (
    GeneratedImage,
    PublishResult,
    TopicSuggestion,
    Trend,
    UserProfile,
)
from ..models.draft import ApprovedSection, Draft, DraftStatus
from ..models.settings import Settings
from ..services import Services

logger = logging.getLogger(__name__)

ERROR_STATUS = [
    (DraftNotFound, 404),
    (DraftNotReady, 409),
    (DraftLocked, 409),
    (UnknownSection, 400),
    (UnknownPipeline, 400),
    (UnknownDestination, 400),
    (MissingInput, 400),
    (NotConnected, 401),
    (PublishFailed, 502),
    (CanvaAuthError, 400),
    (GeneratorNotConfigured, 503),
]


def status_for(error: DraftflowError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


class StartDraftRequest(BaseModel):
    pipeline: str = Field(..., description="Pipeline name, e.g. content_lab")
    topic: str = Field(..., min_length=1, description="Seed topic or prompt")
    scope: Optional[str] = Field(None, description="Grouping key, e.g. 2026-W04")
    context: Dict[str, Any] = Field(default_factory=dict)


class MasterResumeRequest(BaseModel):
    resume: str = Field(..., min_length=1, description="Markdown resume")
    bio: Optional[str] = None
    target_roles: Optional[List[str]] = None


class DiscoverTopicsRequest(BaseModel):
    week: str = Field(..., pattern=r"^\d{4}-W\d{2}$", description="ISO week")
    region: str = "NL"


class ImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    content_type: str = Field(..., description="instagram, blog, ebook or etsy")
    aspect_ratio: str = Field("1:1", pattern=r"^(1:1|16:9|9:16|4:3|3:4)$")
    style: Optional[str] = None
    draft_id: Optional[str] = None


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user(
    request: Request, x_user_id: Optional[str] = Header(None)
) -> str:
    """Caller identity from ``X-User-Id``, or the configured dev user."""
    if x_user_id:
        return x_user_id
    dev_user_id = request.app.state.services.settings.dev_user_id
    if dev_user_id:
        return dev_user_id
    raise HTTPException(status_code=401, detail="Missing X-User-Id header")


def create_app(
    settings: Optional[Settings] = None, services: Optional[Services] = None
) -> FastAPI:
    """Build the API. Serve with ``uvicorn --factory draftflow.web.app:create_app``."""
    settings = settings or Settings()
    services = services or Services.from_settings(settings)

    app = FastAPI(
        title="Draftflow",
        description="Draft generation, approval and publishing for content marketing",
        version=__version__,
    )
    app.state.services = services

    @app.exception_handler(DraftflowError)
    async def draftflow_error_handler(request: Request, exc: DraftflowError):
        status = status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    @app.get("/api/health")
    async def health_check(svc: Services = Depends(get_services)):
        """Health check endpoint."""
        stale = svc.orchestrator.stale_drafts()
        api_keys = {
            "gemini": bool(svc.settings.gemini_api_key),
            "canva": bool(svc.settings.canva_client_id and svc.settings.canva_client_secret),
        }
        return {
            "status": "healthy" if api_keys["gemini"] and not stale else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "api_keys": api_keys,
            "pipelines": list(AVAILABLE_PIPELINES),
            "running_tasks": svc.orchestrator.in_flight,
            "stale_drafts": len(stale),
        }

    @app.get("/api/pipelines")
    async def list_pipelines():
        return [
            {"name": p.name, "description": p.description, "sections": p.sections}
            for p in AVAILABLE_PIPELINES.values()
        ]

    # Drafts ---------------------------------------------------------------

    @app.post("/api/drafts", status_code=202, response_model=Draft)
    async def start_draft(
        body: StartDraftRequest,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return await svc.orchestrator.start(
            body.pipeline, user_id, body.topic, scope=body.scope, context=body.context
        )

    @app.get("/api/drafts", response_model=List[Draft])
    async def list_drafts(
        pipeline: Optional[str] = None,
        status: Optional[DraftStatus] = None,
        scope: Optional[str] = None,
        limit: int = 50,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.drafts.list(user_id, pipeline=pipeline, status=status, scope=scope, limit=limit)

    @app.get("/api/drafts/stale", response_model=List[Draft])
    async def stale_drafts(
        minutes: Optional[int] = None,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        older_than = timedelta(minutes=minutes) if minutes else None
        return [d for d in svc.orchestrator.stale_drafts(older_than) if d.user_id == user_id]

    @app.get("/api/drafts/{draft_id}", response_model=Draft)
    async def get_draft(
        draft_id: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.drafts.get(draft_id, user_id=user_id)

    @app.delete("/api/drafts/{draft_id}", status_code=204)
    async def delete_draft(
        draft_id: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        svc.orchestrator.delete(draft_id, user_id=user_id)

    @app.post("/api/drafts/{draft_id}/regenerate", status_code=202, response_model=Draft)
    async def regenerate_draft(
        draft_id: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return await svc.orchestrator.regenerate(draft_id, user_id=user_id)

    @app.post("/api/drafts/{draft_id}/posted", response_model=Draft)
    async def mark_posted(
        draft_id: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.orchestrator.mark_posted(draft_id, user_id=user_id)

    # Approvals --------------------------------------------------------------

    @app.post("/api/drafts/{draft_id}/sections/{section}/approve", response_model=Draft)
    async def approve_section(
        draft_id: str,
        section: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.gate.approve_section(draft_id, section, user_id=user_id)

    @app.post("/api/drafts/{draft_id}/sections/{section}/reject", response_model=Draft)
    async def reject_section(
        draft_id: str,
        section: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.gate.reject_section(draft_id, section, user_id=user_id)

    @app.post("/api/drafts/{draft_id}/approve-all", response_model=Draft)
    async def approve_all(
        draft_id: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.gate.approve_all(draft_id, user_id=user_id)

    @app.post("/api/drafts/{draft_id}/reset-approvals", response_model=Draft)
    async def reset_approvals(
        draft_id: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.gate.reset_approvals(draft_id, user_id=user_id)

    @app.post("/api/approvals/reset")
    async def reset_all_approvals(
        user_id: str = Depends(current_user), svc: Services = Depends(get_services)
    ):
        return {"reset": svc.gate.reset_all_approvals(user_id)}

    @app.get("/api/approved", response_model=List[ApprovedSection])
    async def approved_sections(
        scope: Optional[str] = None,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.gate.list_approved_sections(user_id, scope=scope)

    @app.post(
        "/api/drafts/{draft_id}/sections/{section}/publish",
        response_model=PublishResult,
    )
    async def publish_section(
        draft_id: str,
        section: str,
        destination: str = "canva",
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        publisher = svc.publisher(destination)
        approved = svc.gate.get_approved_section(draft_id, section, user_id=user_id)
        return await publisher.publish(approved, user_id)

    # Profile ----------------------------------------------------------------

    @app.get("/api/profile", response_model=UserProfile)
    async def get_profile(
        user_id: str = Depends(current_user), svc: Services = Depends(get_services)
    ):
        return svc.profiles.get(user_id) or UserProfile(user_id=user_id)

    @app.put("/api/profile/master-resume", response_model=UserProfile)
    async def update_master_resume(
        body: MasterResumeRequest,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        return svc.profiles.update_master_resume(
            user_id, body.resume, bio=body.bio, target_roles=body.target_roles
        )

    # Images -----------------------------------------------------------------

    @app.post("/api/images", response_model=GeneratedImage)
    async def generate_image(
        body: ImageRequest,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        if body.draft_id:
            svc.drafts.get(body.draft_id, user_id=user_id)
        return await svc.studio.generate(
            body.prompt,
            body.content_type,
            aspect_ratio=body.aspect_ratio,
            style=body.style,
            draft_id=body.draft_id,
        )

    @app.get("/api/drafts/{draft_id}/images", response_model=List[GeneratedImage])
    async def draft_images(
        draft_id: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        svc.drafts.get(draft_id, user_id=user_id)
        return svc.images.for_draft(draft_id)

    @app.get("/api/drafts/{draft_id}/sections/{section}/image-prompts")
    async def image_prompts(
        draft_id: str,
        section: str,
        user_id: str = Depends(current_user),
        svc: Services = Depends(get_services),
    ):
        draft = svc.drafts.get(draft_id, user_id=user_id)
        if section not in draft.sections:
            raise UnknownSection(section, list(draft.sections))
        return {"prompts": prompts_for(draft, section)}

    # Trends and topics ------------------------------------------------------

    @app.get("/api/trends", response_model=List[Trend])
    async def list_trends(
        limit: int = 20,
        category: Optional[str] = None,
        svc: Services = Depends(get_services),
    ):
        return svc.trends.recent_trends(limit=limit, category=category)

    @app.post("/api/trends/scan", status_code=202)
    async def scan_trends(
        background_tasks: BackgroundTasks, svc: Services = Depends(get_services)
    ):
        background_tasks.add_task(_scan_trends, svc)
        return {"status": "started", "sources": len(svc.scanner.sources)}

    @app.post("/api/topics/discover", response_model=List[TopicSuggestion])
    async def discover_topics(
        body: DiscoverTopicsRequest, svc: Services = Depends(get_services)
    ):
        return await svc.topics.discover(body.week, region=body.region)

    @app.get("/api/topics/{week}", response_model=List[TopicSuggestion])
    async def weekly_topics(week: str, svc: Services = Depends(get_services)):
        return svc.trends.topics_for_week(week)

    # Canva ------------------------------------------------------------------

    @app.get("/api/canva/auth-url")
    async def canva_auth_url(
        user_id: str = Depends(current_user), svc: Services = Depends(get_services)
    ):
        url, state = svc.canva.begin(user_id)
        return {"auth_url": url, "state": state}

    @app.get("/api/canva/callback")
    async def canva_callback(
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        svc: Services = Depends(get_services),
    ):
        if error:
            logger.error(f"Canva OAuth error: {error}")
            raise HTTPException(status_code=400, detail=f"Canva authorization failed: {error}")
        if not code or not state:
            raise HTTPException(status_code=400, detail="missing_params")

        token = await svc.canva.complete(code, state)
        return {"connected": True, "user_id": token.user_id, "expires_at": token.expires_at}

    @app.get("/api/canva/status")
    async def canva_status(
        user_id: str = Depends(current_user), svc: Services = Depends(get_services)
    ):
        return {"connected": svc.canva.is_connected(user_id)}

    @app.post("/api/canva/refresh")
    async def canva_refresh(
        user_id: str = Depends(current_user), svc: Services = Depends(get_services)
    ):
        token = await svc.canva.refresh(user_id)
        return {"connected": True, "expires_at": token.expires_at}

    return app


async def _scan_trends(svc: Services) -> None:
    """Background task to scan trend sources."""
    try:
        trends = await svc.scanner.scan()
        svc.trends.save_trends(trends)
    except Exception as e:
        logger.error(f"Trend scan error: {e}")
