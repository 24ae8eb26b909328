"""Configuration API routes."""

from fastapi import APIRouter, Depends

from ...config import Settings, get_settings
from ...providers.factory import ProviderType, get_provider

router = APIRouter()


@router.get("/providers")
async def get_provider_status(settings: Settings = Depends(get_settings)):
    """Get status of all supported providers."""
    providers = []
    for provider_type in ProviderType:
        provider = get_provider(provider_type)
        providers.append({
            "name": provider_type.value,
            "available": provider.is_available(),
            "default_model": provider.get_model(),
        })

    return {
        "default_provider": settings.default_provider,
        "providers": providers,
        "available_providers": [p["name"] for p in providers if p["available"]],
    }
