import csv
import json
import logging
from decimal import Decimal
from io import StringIO

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse

from .auth import login, resolve_token
from .db import init_db
from .errors import AppError, StorageError, ValidationError
from .filters import normalize_filters, normalize_pagination
from .models import Caller, Role, Transaction
from .service import (
    create_transaction,
    generate_report,
    get_transaction,
    iter_report,
    list_transactions,
)
from .settings import Settings, get_settings
from .visibility import require_role

logger = logging.getLogger(__name__)

router = APIRouter()

CSV_HEADER = [
    "id",
    "transactionType",
    "amount",
    "currency",
    "accountId",
    "transactionTimestamp",
    "description",
    "sourceSystem",
    "createdAt",
    "createdById",
]


def _txn_to_json(txn: Transaction) -> dict:
    return {
        "id": txn.id,
        "transactionType": txn.transaction_type,
        "amount": str(txn.amount),
        "currency": txn.currency,
        "accountId": txn.account_id,
        "transactionTimestamp": txn.transaction_timestamp,
        "description": txn.description,
        "sourceSystem": txn.source_system,
        "createdAt": txn.created_at,
        "createdById": txn.created_by_id,
    }


async def _read_json(request: Request) -> dict:
    raw = await request.body()
    try:
        # Decimal keeps amounts exact from the wire onwards
        body = json.loads(raw or b"{}", parse_float=Decimal)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValidationError("request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object")
    return body


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_caller(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> Caller:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        token = ""
    return resolve_token(settings.db_path, token.strip())


@router.post("/login")
async def login_route(
    request: Request, settings: Settings = Depends(get_app_settings)
):
    body = await _read_json(request)
    username = body.get("username")
    password = body.get("password")
    if not isinstance(username, str) or not isinstance(password, str):
        raise ValidationError("Username and password are required.")
    if not username or not password:
        raise ValidationError("Username and password are required.")
    token, user = await run_in_threadpool(
        login,
        settings.db_path,
        username,
        password,
        ttl_minutes=settings.session_ttl_minutes,
    )
    return {
        "token": token,
        "user": {"id": user.id, "username": user.username, "role": user.role},
    }


@router.get("/transactions")
def list_transactions_route(
    request: Request,
    caller: Caller = Depends(get_caller),
    settings: Settings = Depends(get_app_settings),
):
    params = dict(request.query_params)
    filters = normalize_filters(params)
    pagination = normalize_pagination(params)
    page = list_transactions(settings.db_path, filters, pagination, caller)
    return {
        "data": [_txn_to_json(txn) for txn in page.data],
        "totalCount": page.total_count,
    }


@router.get("/transactions/{txn_id}")
def get_transaction_route(
    txn_id: int,
    caller: Caller = Depends(get_caller),
    settings: Settings = Depends(get_app_settings),
):
    return _txn_to_json(get_transaction(settings.db_path, txn_id, caller))


@router.post("/transactions", status_code=201)
async def create_transaction_route(
    request: Request,
    caller: Caller = Depends(get_caller),
    settings: Settings = Depends(get_app_settings),
):
    require_role(caller, Role.TRANSACTOR)
    body = await _read_json(request)
    txn = await run_in_threadpool(
        create_transaction, settings.db_path, body, caller.id
    )
    return {"transactionId": txn.id}


@router.get("/reports")
def report_route(
    request: Request,
    caller: Caller = Depends(get_caller),
    settings: Settings = Depends(get_app_settings),
):
    require_role(caller, Role.AUDITOR)
    filters = normalize_filters(dict(request.query_params))
    rows = generate_report(
        settings.db_path,
        filters,
        caller,
        batch_size=settings.report_batch_size,
    )
    return [_txn_to_json(txn) for txn in rows]


def _csv_chunks(rows):
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    yield "\ufeff" + output.getvalue()
    written = 0
    try:
        for txn in rows:
            output.seek(0)
            output.truncate()
            writer.writerow(
                [
                    txn.id,
                    txn.transaction_type,
                    f"{txn.amount:.2f}",
                    txn.currency,
                    txn.account_id,
                    txn.transaction_timestamp,
                    txn.description or "",
                    txn.source_system or "",
                    txn.created_at,
                    txn.created_by_id,
                ]
            )
            written += 1
            yield output.getvalue()
    except StorageError:
        # headers are already sent, so the client only sees a short file
        logger.error("report_export_truncated rows_written=%d", written)
        raise
    logger.info("report_export_finished rows=%d", written)


@router.get("/reports/export.csv")
def export_report_csv(
    request: Request,
    caller: Caller = Depends(get_caller),
    settings: Settings = Depends(get_app_settings),
):
    require_role(caller, Role.AUDITOR)
    filters = normalize_filters(dict(request.query_params))
    rows = iter_report(
        settings.db_path,
        filters,
        caller,
        batch_size=settings.report_batch_size,
    )
    logger.info("report_export_started caller_id=%s", caller.id)
    return StreamingResponse(
        _csv_chunks(rows),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": 'attachment; filename="transactions-report.csv"'
        },
    )


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_failed method=%s path=%s error=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
        )
        message = "An unexpected error occurred."
    else:
        message = exc.message
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": message},
    )


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": ValidationError.error, "message": "Invalid request parameters."},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled_error method=%s path=%s", request.method, request.url.path
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred.",
        },
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)
    init_db(settings)

    app = FastAPI(title="audit-ledger")
    app.state.settings = settings
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router)
    return app
