"""
Admin Redirects API Routes.

Admin endpoints for managing redirect rules: CRUD, paginated listing,
bulk delete, CSV import/export and a dry-run resolver.

Authentication is the host application's responsibility.
"""

from __future__ import annotations

import io
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from seo_redirects.api.deps import get_redirect_config, get_redirect_repo, get_redirect_service
from seo_redirects.components.redirects import (
    RedirectConfig,
    RedirectResolver,
    RedirectRule,
    RedirectService,
    RedirectValidationError,
    RuleStorePort,
)

router = APIRouter()


class CreateRedirectRequest(BaseModel):
    """Request to create a redirect."""

    source: str = Field(..., description="Path, path prefix or regex pattern")
    target: str = Field(..., description="Destination URL (absolute or relative)")
    status: int | None = Field(None, description="HTTP status code (301/302/307/308)")
    match_type: str = Field("exact", description="exact, prefix or regex")


class UpdateRedirectRequest(BaseModel):
    """Request to update a redirect."""

    source: str | None = Field(None, description="New source")
    target: str | None = Field(None, description="New target")
    status: int | None = Field(None, description="HTTP status code")
    match_type: str | None = Field(None, description="exact, prefix or regex")


class BulkDeleteRequest(BaseModel):
    """Request to delete several redirects."""

    ids: list[int] = Field(..., description="Rule ids to delete")


class RedirectRuleResponse(BaseModel):
    """Redirect rule response."""

    id: int
    source: str
    target: str
    status: int
    match_type: str
    hits: int
    last_hit: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class RedirectListResponse(BaseModel):
    """One page of redirects."""

    redirects: list[RedirectRuleResponse]
    total: int
    page: int
    per_page: int


class ResolveResponse(BaseModel):
    """Dry-run resolution result."""

    matched: bool
    target: str | None = None
    status: int | None = None
    rule_id: int | None = None


class ImportResponse(BaseModel):
    """CSV import counts."""

    imported: int
    skipped: int


class ValidationErrorResponse(BaseModel):
    """Validation error response."""

    errors: list[dict[str, Any]]


# --- Helper Functions ---


def _rule_to_response(rule: RedirectRule) -> RedirectRuleResponse:
    """Convert RedirectRule to response model."""
    return RedirectRuleResponse(
        id=rule.id,
        source=rule.source,
        target=rule.target,
        status=rule.status,
        match_type=rule.match_type,
        hits=rule.hits,
        last_hit=rule.last_hit.isoformat() if rule.last_hit else None,
        created_at=rule.created_at.isoformat() if rule.created_at else None,
        updated_at=rule.updated_at.isoformat() if rule.updated_at else None,
    )


def _serialize_errors(
    errors: list[RedirectValidationError],
) -> list[dict[str, Any]]:
    """Serialize validation errors."""
    return [
        {
            "code": e.code,
            "message": e.message,
            "field": e.field,
        }
        for e in errors
    ]


# --- Routes ---


@router.get("/redirects", response_model=RedirectListResponse)
def list_redirects(
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1, le=500),
    service: RedirectService = Depends(get_redirect_service),
    config: RedirectConfig = Depends(get_redirect_config),
) -> RedirectListResponse:
    """List redirects, newest first."""
    per_page = per_page or config.list_per_page
    result = service.list_page(page, per_page)
    return RedirectListResponse(
        redirects=[_rule_to_response(r) for r in result.rows],
        total=result.total,
        page=page,
        per_page=per_page,
    )


@router.post(
    "/redirects",
    response_model=RedirectRuleResponse,
    responses={400: {"model": ValidationErrorResponse}},
)
def create_redirect(
    request: CreateRedirectRequest,
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectRuleResponse:
    """Create a new redirect."""
    rule, errors = service.create(
        source=request.source,
        target=request.target,
        status=request.status,
        match_type=request.match_type,
    )

    if errors:
        raise HTTPException(
            status_code=400,
            detail={"errors": _serialize_errors(errors)},
        )

    assert rule is not None
    return _rule_to_response(rule)


@router.post("/redirects/bulk-delete")
def bulk_delete_redirects(
    request: BulkDeleteRequest,
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, int]:
    """Delete several redirects."""
    return {"deleted": service.bulk_delete(request.ids)}


@router.get("/redirects/export")
def export_redirects(
    service: RedirectService = Depends(get_redirect_service),
) -> StreamingResponse:
    """Export all redirects as CSV."""
    return StreamingResponse(
        service.iter_export(),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": 'attachment; filename="redirects.csv"',
            "Cache-Control": "no-store",
        },
    )


@router.post("/redirects/import", response_model=ImportResponse)
def import_redirects(
    file: UploadFile = File(...),
    service: RedirectService = Depends(get_redirect_service),
) -> ImportResponse:
    """Import redirects from an uploaded CSV file (additive)."""
    stream = io.TextIOWrapper(file.file, encoding="utf-8-sig", newline="")
    try:
        result = service.import_csv(stream)
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail="File must be UTF-8 CSV") from e
    finally:
        stream.detach()

    return ImportResponse(imported=result.imported, skipped=result.skipped)


@router.get("/redirects/resolve", response_model=ResolveResponse)
def resolve_redirect(
    uri: str = Query(..., description="Request path and query"),
    host: str = Query("", description="Request host"),
    repo: RuleStorePort = Depends(get_redirect_repo),
    config: RedirectConfig = Depends(get_redirect_config),
) -> ResolveResponse:
    """Show which rule a request would hit, without recording a hit."""
    result = RedirectResolver(store=repo, config=config).resolve(uri, host)
    return ResolveResponse(
        matched=result.matched,
        target=result.target,
        status=result.status,
        rule_id=result.rule_id,
    )


@router.get(
    "/redirects/{rule_id}",
    response_model=RedirectRuleResponse,
    responses={404: {"description": "Redirect not found"}},
)
def get_redirect(
    rule_id: int,
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectRuleResponse:
    """Get a redirect by ID."""
    rule = service.get(rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="Redirect not found")
    return _rule_to_response(rule)


@router.put(
    "/redirects/{rule_id}",
    response_model=RedirectRuleResponse,
    responses={
        400: {"model": ValidationErrorResponse},
        404: {"description": "Redirect not found"},
    },
)
def update_redirect(
    rule_id: int,
    request: UpdateRedirectRequest,
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectRuleResponse:
    """Update a redirect; only the supplied fields change."""
    updates = request.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")

    rule, errors = service.update(rule_id, updates)

    if errors:
        if any(e.code == "not_found" for e in errors):
            raise HTTPException(status_code=404, detail="Redirect not found")
        raise HTTPException(
            status_code=400,
            detail={"errors": _serialize_errors(errors)},
        )

    assert rule is not None
    return _rule_to_response(rule)


@router.delete(
    "/redirects/{rule_id}",
    responses={404: {"description": "Redirect not found"}},
)
def delete_redirect(
    rule_id: int,
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, bool]:
    """Delete a redirect."""
    if not service.delete(rule_id):
        raise HTTPException(status_code=404, detail="Redirect not found")
    return {"deleted": True}
