"""Health check routes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from scribeflow.config import Settings
from scribeflow.exceptions import ConfigurationError

router = APIRouter(tags=["health"])


class ProviderStatus(BaseModel):
    provider: str
    model: str
    configured: bool
    error: str | None = None


class ProvidersHealthResponse(BaseModel):
    default_provider: str
    active_runs: int
    providers: dict[str, ProviderStatus]


@router.get("/health/providers", response_model=ProvidersHealthResponse)
async def providers_health(request: Request) -> ProvidersHealthResponse:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(status_code=500, detail="settings not initialized")

    providers: dict[str, ProviderStatus] = {}
    for provider_id in settings.provider_ids:
        profile = getattr(settings, provider_id)
        try:
            cfg = settings.provider_config_for(provider_id)
        except ConfigurationError as exc:
            providers[provider_id] = ProviderStatus(
                provider=str(profile.provider), model=str(profile.model), configured=False, error=str(exc)
            )
            continue
        providers[provider_id] = ProviderStatus(
            provider=str(cfg.get("provider")), model=str(cfg.get("model")), configured=True
        )

    registry = getattr(request.app.state, "run_registry", None)
    return ProvidersHealthResponse(
        default_provider=settings.default_provider,
        active_runs=len(registry.active()) if registry is not None else 0,
        providers=providers,
    )
