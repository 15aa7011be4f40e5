"""Client search API endpoints backed by the filterable selector."""

from fastapi import APIRouter, Depends, Query

from app.core.config import config
from app.core.dependencies import get_client_catalog, require_session
from app.models.responses import ClientOption, OptionsResponse, SuggestResponse
from app.services.catalog import CatalogName, ClientCatalog
from app.services.selector import FilterableSelector, SelectorMode

router = APIRouter(prefix="/api/clients", tags=["clients"], dependencies=[Depends(require_session)])


@router.get("/suggest", response_model=SuggestResponse)
def suggest_clients(
    q: str = Query(default=""),
    catalog: CatalogName = Query(default=CatalogName.INTERNET),
    clients: ClientCatalog = Depends(get_client_catalog),
):
    """Names starting with ``q``; the dropdown is open only for a non-empty query."""
    names, meta = clients.names(catalog)
    selector = FilterableSelector(SelectorMode.SEARCH, names, placeholder=config.SEARCH_PLACEHOLDER)
    selector.set_query(q)
    view = selector.render()
    return SuggestResponse(
        query=view.query,
        open=view.is_open,
        items=view.items,
        empty_message=view.empty_message,
        meta=meta,
    )


@router.get("/options", response_model=OptionsResponse)
def client_options(
    q: str = Query(default=""),
    value: str | None = Query(default=None),
    catalog: CatalogName = Query(default=CatalogName.INTERNET),
    clients: ClientCatalog = Depends(get_client_catalog),
):
    """Options whose name contains ``q`` or whose id contains it, for a focused select."""
    options, meta = clients.options(catalog)
    selector = FilterableSelector(
        SelectorMode.SELECT,
        options,
        value=value,
        placeholder=config.SELECT_PLACEHOLDER,
        max_options=config.SELECTOR_MAX_OPTIONS,
        blur_close_delay=config.SELECTOR_BLUR_CLOSE_MS / 1000.0,
    )
    selector.focus()
    if q:
        selector.set_query(q)
    view = selector.render()
    return OptionsResponse(
        query=view.query,
        open=view.is_open,
        options=[ClientOption(id=opt.id, nombre=opt.nombre) for opt in view.items],
        placeholder=view.placeholder,
        hidden_value=view.hidden_value,
        meta=meta,
    )
