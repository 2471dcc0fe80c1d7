"""
Document Ledger API: FastAPI application.

JSON over HTTP for clients, purchase orders, invoices, finance records and
application settings.  All state lives in one SQLite database; the
``Database`` handle is created by ``create_app`` and shared by every
repository through ``app.state``.

Endpoints
---------
  GET    /api/health                          → liveness + database probe
  GET    /api/clients                         → paginated list
  POST   /api/clients                         → create
  GET    /api/clients/{id}                    → one client
  PATCH  /api/clients/{id}  (PUT alike)       → partial update
  DELETE /api/clients/{id}                    → delete (204)
  GET    /api/purchases                       → list (?status ?clientId ?poPrefix ?order ?sortBy)
  GET    /api/purchases/byClient/{clientId}   → list for one client
  POST   /api/purchases/byIds                 → purchases for {ids: [...]}
  GET    /api/purchases/{id}                  → one purchase with items
  POST   /api/purchases                       → create (items in the same transaction)
  PATCH  /api/purchases/{id}  (PUT alike)     → partial update, items replaced when sent
  DELETE /api/purchases/{id}                  → delete with items
  GET    /api/invoices/stats                  → counts / revenue by status over a window
  GET    /api/invoices                        → list (?status ?clientId ?order ?sortBy)
  GET    /api/invoices/{id}                   → one invoice with items and purchase links
  GET    /api/invoices/{id}/document          → printable HTML
  POST   /api/invoices                        → create (number allocated when absent)
  PATCH  /api/invoices/{id}  (PUT alike)      → partial update
  PATCH  /api/invoices/{id}/status            → status only (stamps paidAt on first "paid")
  DELETE /api/invoices/{id}                   → delete with items and links
  GET    /api/finance/stats                   → invested / expenses / TDS / profit
  GET    /api/finance                         → list (?type ?category ?status ?paymentMethod ?search ?order)
  POST   /api/finance                         → create
  PATCH  /api/finance/{id}                    → partial update
  DELETE /api/finance/{id}                    → delete
  GET    /api/settings                        → current settings
  PATCH  /api/settings                        → merge onto current
  PUT    /api/settings                        → merge onto defaults
  GET    /api/settings/history                → settings snapshots, newest first
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Response
from fastapi.responses import HTMLResponse, JSONResponse

from config import Config
from ledger import (
    ClientRepository,
    Database,
    FinanceRepository,
    InvoiceRepository,
    LedgerAggregator,
    ListEngine,
    ListPage,
    PurchaseRepository,
    SequenceGenerator,
    SettingsStore,
)
from models import (
    ClientInput,
    ClientUpdate,
    FinanceRecordInput,
    FinanceRecordUpdate,
    InvoiceInput,
    InvoiceStatusUpdate,
    PurchaseInput,
)

from .errors import register_error_handlers
from .models import IdsRequest
from .services import render_invoice_html

logger = logging.getLogger(__name__)

NOT_FOUND = "Not found"


def _dump(model) -> dict:
    return model.model_dump(by_alias=True)


def _page(items: list, page: ListPage, cursor: bool = False, total: bool = False) -> dict:
    body: dict[str, Any] = {
        "items": [_dump(i) for i in items],
        "nextPageToken": page.next_page_token,
    }
    if cursor:
        body["nextCursor"] = page.next_cursor
    if total:
        body["total"] = page.total
    return body


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the application around one explicitly owned Database handle."""
    config = config or Config()
    db = Database(
        config.db_path,
        timeout=config.db_timeout_seconds,
        statement_timeout=config.statement_timeout_seconds,
    )
    sequences = SequenceGenerator()

    app = FastAPI(title="Document Ledger", docs_url=None, redoc_url=None)
    app.state.config = config
    app.state.db = db
    app.state.started = time.monotonic()

    clients = ClientRepository(db)
    purchases = PurchaseRepository(db, sequences, config.default_currency)
    invoices = InvoiceRepository(
        db, sequences, config.default_currency, config.default_payment_terms,
    )
    finance = FinanceRepository(db)
    aggregator = LedgerAggregator(ListEngine(db))
    settings = SettingsStore(db)

    register_error_handlers(app, config)

    # ── Health ───────────────────────────────────────────────────────────────

    @app.get("/api/health")
    def health():
        body: dict[str, Any] = {
            "ok": True,
            "uptime": round(time.monotonic() - app.state.started, 3),
            "database": "connected",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            db.ping()
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            body.update(ok=False, database="disconnected", error=str(exc))
            return JSONResponse(status_code=503, content=body)
        return body

    # ── Clients ──────────────────────────────────────────────────────────────

    @app.get("/api/clients")
    def list_clients(
        limit: Optional[str] = None,
        page_token: Optional[str] = Query(None, alias="pageToken"),
        status: Optional[str] = None,
    ):
        items, page = clients.list(status=status, limit=limit, page_token=page_token)
        return _page(items, page)

    @app.post("/api/clients", status_code=201)
    def create_client(body: ClientInput):
        return _dump(clients.create(body))

    @app.get("/api/clients/{client_id}")
    def get_client(client_id: str):
        client = clients.get(client_id)
        if client is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return _dump(client)

    @app.api_route("/api/clients/{client_id}", methods=["PATCH", "PUT"])
    def update_client(client_id: str, body: ClientUpdate):
        client = clients.update(client_id, body)
        if client is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return _dump(client)

    @app.delete("/api/clients/{client_id}", status_code=204)
    def delete_client(client_id: str):
        if not clients.delete(client_id):
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return Response(status_code=204)

    # ── Purchases ────────────────────────────────────────────────────────────

    @app.get("/api/purchases")
    def list_purchases(
        limit: Optional[str] = None,
        page_token: Optional[str] = Query(None, alias="pageToken"),
        status: Optional[str] = None,
        client_id: Optional[str] = Query(None, alias="clientId"),
        po_prefix: Optional[str] = Query(None, alias="poPrefix"),
        order: Optional[str] = "desc",
        sort_by: Optional[str] = Query(None, alias="sortBy"),
    ):
        items, page = purchases.list(
            {"status": status, "clientId": client_id, "poPrefix": po_prefix},
            order=order, sort_by=sort_by, limit=limit, page_token=page_token,
        )
        return _page(items, page, cursor=True, total=True)

    @app.get("/api/purchases/byClient/{client_id}")
    def list_purchases_by_client(
        client_id: str,
        limit: Optional[str] = None,
        page_token: Optional[str] = Query(None, alias="pageToken"),
        order: Optional[str] = "desc",
    ):
        items, page = purchases.list_by_client(
            client_id, order=order, limit=limit, page_token=page_token,
        )
        return _page(items, page, cursor=True, total=True)

    @app.post("/api/purchases/byIds")
    def purchases_by_ids(body: IdsRequest):
        return [_dump(p) for p in purchases.get_many(body.ids)]

    @app.get("/api/purchases/{purchase_id}")
    def get_purchase(purchase_id: str):
        purchase = purchases.get(purchase_id)
        if purchase is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return _dump(purchase)

    @app.post("/api/purchases", status_code=201)
    def create_purchase(body: PurchaseInput):
        return _dump(purchases.create(body))

    @app.api_route("/api/purchases/{purchase_id}", methods=["PATCH", "PUT"])
    def update_purchase(purchase_id: str, body: PurchaseInput):
        purchase = purchases.update(purchase_id, body)
        if purchase is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return _dump(purchase)

    @app.delete("/api/purchases/{purchase_id}")
    def delete_purchase(purchase_id: str):
        if not purchases.delete(purchase_id):
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return {"ok": True}

    # ── Invoices ─────────────────────────────────────────────────────────────

    @app.get("/api/invoices/stats")
    def invoice_stats(
        date_from: Optional[str] = Query(None, alias="dateFrom"),
        date_to: Optional[str] = Query(None, alias="dateTo"),
        client_id: Optional[str] = Query(None, alias="clientId"),
    ):
        try:
            stats = aggregator.invoice_stats(date_from, date_to, client_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid date: {exc}")
        return _dump(stats)

    @app.get("/api/invoices")
    def list_invoices(
        limit: Optional[str] = None,
        page_token: Optional[str] = Query(None, alias="pageToken"),
        status: Optional[str] = None,
        client_id: Optional[str] = Query(None, alias="clientId"),
        order: Optional[str] = "desc",
        sort_by: Optional[str] = Query(None, alias="sortBy"),
    ):
        items, page = invoices.list(
            {"status": status, "clientId": client_id},
            order=order, sort_by=sort_by, limit=limit, page_token=page_token,
        )
        return _page(items, page, cursor=True, total=True)

    @app.get("/api/invoices/{invoice_id}")
    def get_invoice(invoice_id: str):
        invoice = invoices.get(invoice_id)
        if invoice is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return _dump(invoice)

    @app.get("/api/invoices/{invoice_id}/document", response_class=HTMLResponse)
    def invoice_document(invoice_id: str):
        invoice = invoices.get(invoice_id)
        if invoice is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        html = render_invoice_html(
            invoice,
            settings.get(),
            clients.get(invoice.client_id),
            config.invoice_template_path,
        )
        return HTMLResponse(html)

    @app.post("/api/invoices", status_code=201)
    def create_invoice(body: InvoiceInput):
        return _dump(invoices.create(body))

    @app.api_route("/api/invoices/{invoice_id}", methods=["PATCH", "PUT"])
    def update_invoice(invoice_id: str, body: InvoiceInput):
        invoice = invoices.update(invoice_id, body)
        if invoice is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return _dump(invoice)

    @app.patch("/api/invoices/{invoice_id}/status")
    def update_invoice_status(invoice_id: str, body: InvoiceStatusUpdate):
        invoice = invoices.set_status(invoice_id, body.status)
        if invoice is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return _dump(invoice)

    @app.delete("/api/invoices/{invoice_id}")
    def delete_invoice(invoice_id: str):
        if not invoices.delete(invoice_id):
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return {"ok": True}

    # ── Finance records ──────────────────────────────────────────────────────

    def _finance_filters(type_, category, status, payment_method) -> dict:
        return {
            "type": type_,
            "category": category,
            "status": status,
            "paymentMethod": payment_method,
        }

    @app.get("/api/finance/stats")
    def finance_stats(
        type_: Optional[str] = Query(None, alias="type"),
        category: Optional[str] = None,
        status: Optional[str] = None,
        payment_method: Optional[str] = Query(None, alias="paymentMethod"),
        search: Optional[str] = None,
    ):
        stats = aggregator.finance_stats(
            _finance_filters(type_, category, status, payment_method), search,
        )
        return _dump(stats)

    @app.get("/api/finance")
    def list_finance(
        limit: Optional[str] = None,
        page_token: Optional[str] = Query(None, alias="pageToken"),
        type_: Optional[str] = Query(None, alias="type"),
        category: Optional[str] = None,
        status: Optional[str] = None,
        payment_method: Optional[str] = Query(None, alias="paymentMethod"),
        search: Optional[str] = None,
        order: Optional[str] = "desc",
    ):
        items, page = finance.list(
            _finance_filters(type_, category, status, payment_method),
            search=search, order=order, limit=limit, page_token=page_token,
        )
        return _page(items, page, total=True)

    @app.post("/api/finance", status_code=201)
    def create_finance_record(body: FinanceRecordInput):
        return _dump(finance.create(body))

    @app.patch("/api/finance/{record_id}")
    def update_finance_record(record_id: str, body: FinanceRecordUpdate):
        record = finance.update(record_id, body)
        if record is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return _dump(record)

    @app.delete("/api/finance/{record_id}")
    def delete_finance_record(record_id: str):
        if not finance.delete(record_id):
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return {"ok": True}

    # ── Settings ─────────────────────────────────────────────────────────────

    @app.get("/api/settings")
    def get_settings():
        return settings.get()

    @app.patch("/api/settings")
    def patch_settings(body: dict[str, Any] = Body(default={})):
        return settings.patch(body)

    @app.put("/api/settings")
    def replace_settings(body: dict[str, Any] = Body(default={})):
        return settings.replace(body)

    @app.get("/api/settings/history")
    def settings_history(limit: Optional[str] = None):
        return {"items": settings.history(limit)}

    logger.info("Document ledger API ready (db=%s, env=%s)", config.db_path, config.environment)
    return app
