"""Theme router: preset catalog and resolved theme preview."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from coursegen.errors import ValidationError

from ..dependencies import JobControllerDep, get_credential
from ..models import ResolveThemeRequest, ThemeCatalogResponse

router = APIRouter(prefix="/themes", tags=["themes"], dependencies=[Depends(get_credential)])


@router.get("", response_model=ThemeCatalogResponse)
def list_themes(controller: JobControllerDep) -> ThemeCatalogResponse:
    """List theme presets and color schemes."""
    resolver = controller.resolver
    return ThemeCatalogResponse(
        default_preset=resolver.default_preset,
        presets=resolver.presets(),
        color_schemes=resolver.color_schemes(),
    )


@router.post("/resolve")
def resolve_theme(request: ResolveThemeRequest, controller: JobControllerDep) -> dict[str, Any]:
    """Resolve a preset plus overrides into the full theme configuration."""
    try:
        theme = controller.resolve_theme(request.preset, request.overrides)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return theme.model_dump(mode="json")
