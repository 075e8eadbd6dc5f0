"""
Redirects component - URL redirect rules.

Handles rule CRUD, request resolution and CSV import/export.

Invariants:
- Rule ids are unique and never reused
- match_type is one of exact, prefix, regex
- status is one of 301, 302, 307, 308
- A relative target equal to the request is never followed
- Resolution fails open when storage is unavailable
"""

from __future__ import annotations

from ._impl import RedirectConfig, RedirectResolver, RedirectService
from .models import (
    BulkDeleteRedirectsInput,
    CreateRedirectInput,
    DeleteRedirectInput,
    ExportRedirectsInput,
    GetRedirectInput,
    ImportRedirectsInput,
    ListRedirectsInput,
    RedirectListOutput,
    RedirectOperationOutput,
    RedirectOutput,
    RedirectValidationError,
    ResolveOutput,
    ResolveRedirectInput,
    TransferOutput,
    UpdateRedirectInput,
)
from .ports import HitRecorderPort, RuleStorePort


def _not_found(rule_id: int) -> RedirectValidationError:
    return RedirectValidationError(
        code="not_found",
        message=f"Redirect {rule_id} not found",
    )


# --- Component Entry Points ---


def run_create(
    inp: CreateRedirectInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> RedirectOperationOutput:
    """
    Create a new redirect.

    Args:
        inp: Input containing source, target, status and match type.
        store: Rule store port.
        config: Optional redirect configuration.

    Returns:
        RedirectOperationOutput with created redirect or errors.
    """
    service = RedirectService(store=store, config=config)
    redirect, errors = service.create(
        source=inp.source,
        target=inp.target,
        status=inp.status,
        match_type=inp.match_type,
    )
    return RedirectOperationOutput(
        redirect=redirect,
        errors=errors,
        success=len(errors) == 0,
    )


def run_update(
    inp: UpdateRedirectInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> RedirectOperationOutput:
    """
    Update an existing redirect.

    Args:
        inp: Input containing rule_id and updates.
        store: Rule store port.
        config: Optional redirect configuration.

    Returns:
        RedirectOperationOutput with updated redirect or errors.
    """
    service = RedirectService(store=store, config=config)
    redirect, errors = service.update(inp.rule_id, inp.updates)
    return RedirectOperationOutput(
        redirect=redirect,
        errors=errors,
        success=len(errors) == 0,
    )


def run_delete(
    inp: DeleteRedirectInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> RedirectOperationOutput:
    """Delete a redirect."""
    service = RedirectService(store=store, config=config)

    if not service.delete(inp.rule_id):
        return RedirectOperationOutput(
            errors=[_not_found(inp.rule_id)],
            success=False,
        )

    return RedirectOperationOutput(deleted=1)


def run_bulk_delete(
    inp: BulkDeleteRedirectsInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> RedirectOperationOutput:
    """Delete several redirects; success even if some ids were unknown."""
    service = RedirectService(store=store, config=config)
    return RedirectOperationOutput(deleted=service.bulk_delete(inp.rule_ids))


def run_get(
    inp: GetRedirectInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> RedirectOutput:
    """Get a redirect by ID."""
    service = RedirectService(store=store, config=config)
    redirect = service.get(inp.rule_id)

    if redirect is None:
        return RedirectOutput(
            redirect=None,
            errors=[_not_found(inp.rule_id)],
            success=False,
        )

    return RedirectOutput(redirect=redirect)


def run_list(
    inp: ListRedirectsInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> RedirectListOutput:
    """
    List one page of redirects, newest first.

    Args:
        inp: Page number and page size.
        store: Rule store port.
        config: Optional redirect configuration.

    Returns:
        RedirectListOutput with rows and the total count.
    """
    service = RedirectService(store=store, config=config)
    page = service.list_page(inp.page, inp.per_page)
    return RedirectListOutput(
        redirects=page.rows,
        total=page.total,
        page=max(1, inp.page),
        per_page=inp.per_page,
    )


def run_resolve(
    inp: ResolveRedirectInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
    hit_recorder: HitRecorderPort | None = None,
) -> ResolveOutput:
    """
    Resolve a request URI to a redirect.

    Args:
        inp: Request URI, host and the host's skip signal.
        store: Rule store port.
        config: Optional redirect configuration.
        hit_recorder: Optional hit recorder; hits are not tracked without one.

    Returns:
        ResolveOutput; matched is False when no redirect applies.
    """
    resolver = RedirectResolver(store=store, hit_recorder=hit_recorder, config=config)
    result = resolver.resolve(inp.request_uri, inp.host, inp.is_admin_or_async)
    return ResolveOutput(
        target=result.target,
        status=result.status,
        matched=result.matched,
        rule_id=result.rule_id,
    )


def run_import(
    inp: ImportRedirectsInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> TransferOutput:
    """Import redirects from CSV text."""
    service = RedirectService(store=store, config=config)
    result = service.import_csv(inp.stream)
    return TransferOutput(count=result.imported, skipped=result.skipped)


def run_export(
    inp: ExportRedirectsInput,
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> TransferOutput:
    """Export all redirects as CSV text."""
    service = RedirectService(store=store, config=config)
    return TransferOutput(count=service.export_csv(inp.stream))


def run(
    inp: (
        CreateRedirectInput
        | UpdateRedirectInput
        | DeleteRedirectInput
        | BulkDeleteRedirectsInput
        | GetRedirectInput
        | ListRedirectsInput
        | ResolveRedirectInput
        | ImportRedirectsInput
        | ExportRedirectsInput
    ),
    *,
    store: RuleStorePort,
    config: RedirectConfig | None = None,
    hit_recorder: HitRecorderPort | None = None,
) -> RedirectOutput | RedirectListOutput | RedirectOperationOutput | ResolveOutput | TransferOutput:
    """
    Main entry point for the redirects component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, CreateRedirectInput):
        return run_create(inp, store=store, config=config)
    elif isinstance(inp, UpdateRedirectInput):
        return run_update(inp, store=store, config=config)
    elif isinstance(inp, DeleteRedirectInput):
        return run_delete(inp, store=store, config=config)
    elif isinstance(inp, BulkDeleteRedirectsInput):
        return run_bulk_delete(inp, store=store, config=config)
    elif isinstance(inp, GetRedirectInput):
        return run_get(inp, store=store, config=config)
    elif isinstance(inp, ListRedirectsInput):
        return run_list(inp, store=store, config=config)
    elif isinstance(inp, ResolveRedirectInput):
        return run_resolve(inp, store=store, config=config, hit_recorder=hit_recorder)
    elif isinstance(inp, ImportRedirectsInput):
        return run_import(inp, store=store, config=config)
    elif isinstance(inp, ExportRedirectsInput):
        return run_export(inp, store=store, config=config)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
