import csv
from io import StringIO

import structlog
from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from .aggregate import build_summary
from .errors import (
    AuthenticationError,
    AuthorizationError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from .insights import InsightProvider, StaticInsightProvider
from .log import configure_logging
from .models import ADMIN, User
from .settings import Settings, get_settings
from .sources import SourceRegistry
from .store import TransactionStore


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")

_STATUS_CODES = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
)


def get_store(request: Request) -> TransactionStore:
    return request.app.state.store


def get_sources(request: Request) -> SourceRegistry:
    return request.app.state.sources


def get_caller(request: Request) -> User:
    header = request.app.state.settings.identity_header
    return request.app.state.store.resolve_caller(request.headers.get(header))


def require_admin(caller: User = Depends(get_caller)) -> User:
    # runs before the body is read, so non-admins get 403 whatever they send
    if not caller.is_admin:
        raise AuthorizationError("Forbidden")
    return caller


async def _ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = next(
        (code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 400
    )
    body = {"error": exc.message}
    if isinstance(exc, ValidationError):
        body["fields"] = exc.fields
    logger.info(
        "request_rejected",
        method=request.method,
        path=request.url.path,
        status_code=status_code,
        error=type(exc).__name__,
    )
    return JSONResponse(status_code=status_code, content=body)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info(
        "request_rejected",
        method=request.method,
        path=request.url.path,
        status_code=400,
        error="RequestValidationError",
    )
    return JSONResponse(
        status_code=400, content={"error": "request body must be a JSON object"}
    )


@router.post("/transactions", status_code=201)
def create_transaction(
    payload: dict = Body(...),
    caller: User = Depends(get_caller),
    store: TransactionStore = Depends(get_store),
):
    return store.create_txn(payload, caller).to_dict()


@router.get("/transactions")
def list_transactions(
    caller: User = Depends(get_caller),
    store: TransactionStore = Depends(get_store),
):
    return [txn.to_dict() for txn in store.list_txns_for_caller(caller)]


@router.get("/transactions/export.csv")
def export_csv(
    caller: User = Depends(get_caller),
    store: TransactionStore = Depends(get_store),
):
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(
        ["id", "sourceId", "date", "type", "amount", "category", "description", "status"]
    )
    for txn in store.list_txns_for_caller(caller):
        writer.writerow(
            [
                txn.id,
                txn.source_id,
                txn.date,
                txn.type,
                f"{txn.amount:.2f}",
                txn.category,
                txn.description,
                txn.status,
            ]
        )

    body = "\ufeff" + output.getvalue()
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="transactions.csv"'},
    )


@router.patch("/transactions/{txn_id}/status")
def set_transaction_status(
    txn_id: str,
    payload: dict | None = Body(None),
    caller: User = Depends(require_admin),
    store: TransactionStore = Depends(get_store),
):
    status = (payload or {}).get("status")
    return store.set_status(txn_id, status, caller).to_dict()


@router.patch("/transactions/{txn_id}")
def edit_transaction(
    txn_id: str,
    payload: dict = Body(...),
    caller: User = Depends(get_caller),
    store: TransactionStore = Depends(get_store),
):
    return store.update_txn(txn_id, payload, caller).to_dict()


@router.get("/insights")
def list_insights(request: Request, caller: User = Depends(get_caller)):
    provider: InsightProvider = request.app.state.insights
    transactions = request.app.state.store.list_txns_for_caller(caller)
    return provider.insights_for(transactions)


@router.get("/summary")
def summary(
    request: Request,
    source_id: str | None = None,
    caller: User = Depends(get_caller),
    store: TransactionStore = Depends(get_store),
    sources: SourceRegistry = Depends(get_sources),
):
    return build_summary(
        store.list_txns_for_caller(caller),
        sources.list_sources(caller.id),
        source_id=source_id,
        include_year=request.app.state.settings.month_labels_with_year,
    )


@router.get("/sources")
def list_sources(
    caller: User = Depends(get_caller),
    sources: SourceRegistry = Depends(get_sources),
):
    return [source.to_dict() for source in sources.list_sources(caller.id)]


@router.post("/sources", status_code=201)
def create_source(
    payload: dict = Body(...),
    caller: User = Depends(get_caller),
    sources: SourceRegistry = Depends(get_sources),
):
    source = sources.add_source(
        caller.id,
        payload.get("name"),
        type=payload.get("type", "SIDE_HUSTLE"),
        platform=payload.get("platform"),
        description=payload.get("description"),
    )
    return source.to_dict()


@router.delete("/sources/{source_id}")
def delete_source(
    source_id: str,
    caller: User = Depends(get_caller),
    sources: SourceRegistry = Depends(get_sources),
):
    sources.delete_source(caller.id, source_id)
    return [source.to_dict() for source in sources.list_sources(caller.id)]


def create_app(
    settings: Settings | None = None,
    *,
    insights: InsightProvider | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    source_registry = SourceRegistry()
    store = TransactionStore(
        sources=source_registry, enforce_owner=settings.enforce_owner
    )
    for admin_id in settings.admin_ids:
        store.register_user(admin_id, ADMIN)

    app = FastAPI(title="sideledger")
    app.state.settings = settings
    app.state.store = store
    app.state.sources = source_registry
    app.state.insights = insights or StaticInsightProvider()
    app.add_exception_handler(LedgerError, _ledger_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.include_router(router)
    return app


app = create_app()
