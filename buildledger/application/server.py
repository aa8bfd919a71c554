"""FastAPI server exposing tracking projections and ledger writes."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from buildledger.application.procurement import (
    PurchaseRequest,
    draft_purchase_from_quote,
    record_purchase,
    remove_purchase,
)
from buildledger.application.tracking import ProjectTracking, create_line_item, load_project_tracking
from buildledger.application.usage import UsageRecorder, UsageRecordRequest
from buildledger.domain.errors import ConversionError, ReferentialError, ValidationError
from buildledger.domain.reconcile import ReconciledItemView, TrackingStatus
from buildledger.domain.rfq import AcceptedQuote
from buildledger.ledger_access import JsonLedgerStore, LedgerStore
from buildledger.runtime import Settings, get_logger, get_settings

logger = get_logger(__name__)


class LineItemIn(BaseModel):
    name: str
    unit: str
    estimated_quantity: float
    estimated_unit_price: float
    category: str = ""
    material_key: str | None = None
    id: str | None = None


class PurchaseIn(BaseModel):
    item_id: str
    quantity: float
    unit_price: float
    supplier_ref: str
    purchased_at: datetime | None = None
    notes: str | None = None


class UsageIn(BaseModel):
    item_id: str
    quantity_used: float
    used_at: datetime | None = None
    notes: str | None = None


class AcceptedQuoteIn(BaseModel):
    quote_id: str
    rfq_id: str
    supplier_name: str
    material_key: str | None = None
    material_name: str | None = None
    supplier_id: str | None = None
    unit_price: float | None = None
    available_quantity: float | None = None


def view_payload(view: ReconciledItemView) -> dict[str, Any]:
    payload = asdict(view)
    payload["item"] = asdict(view.item)
    if view.last_purchased_at is not None:
        payload["last_purchased_at"] = view.last_purchased_at.isoformat()
    return payload


def tracking_payload(tracking: ProjectTracking) -> dict[str, Any]:
    return {
        "project_id": tracking.project_id,
        "threshold_percent": tracking.threshold_percent,
        "alerts_enabled": tracking.alerts_enabled,
        "summary": asdict(tracking.procurement),
        "usage": asdict(tracking.usage),
        "items": [view_payload(view) for view in tracking.views],
    }


def create_app(
    store: LedgerStore | None = None,
    *,
    settings: Settings | None = None,
    recorder: UsageRecorder | None = None,
) -> FastAPI:
    """Build the app around a ledger store (the JSON store under data/ by default)."""
    settings = settings or get_settings()
    store = store if store is not None else JsonLedgerStore()
    recorder = recorder or UsageRecorder(store, settings=settings)

    app = FastAPI(title="buildledger")

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse({"status": "error", "message": str(exc)}, status_code=422)

    @app.exception_handler(ConversionError)
    async def _conversion_error(request: Request, exc: ConversionError) -> JSONResponse:
        return JSONResponse({"status": "error", "action": "manual_entry", "message": str(exc)}, status_code=422)

    @app.exception_handler(ReferentialError)
    async def _referential_error(request: Request, exc: ReferentialError) -> JSONResponse:
        status_code = 404 if exc.missing else 409
        return JSONResponse({"status": "error", "message": str(exc)}, status_code=status_code)

    @app.get("/health")
    def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/projects/{project_id}/tracking")
    def project_tracking(
        project_id: str,
        status: TrackingStatus | None = None,
        search: str | None = None,
    ) -> dict[str, Any]:
        tracking = load_project_tracking(store, project_id, status=status, search=search, settings=settings)
        return tracking_payload(tracking)

    @app.get("/projects/{project_id}/usage")
    def project_usage(project_id: str) -> dict[str, Any]:
        tracking = load_project_tracking(store, project_id, settings=settings)
        return {
            "project_id": project_id,
            "threshold_percent": tracking.threshold_percent,
            "usage": asdict(tracking.usage),
            "low_stock": [view_payload(view) for view in tracking.low_stock],
        }

    @app.post("/projects/{project_id}/items", status_code=201)
    def add_item(project_id: str, body: LineItemIn) -> dict[str, Any]:
        item = create_line_item(
            store,
            project_id,
            name=body.name,
            unit=body.unit,
            estimated_quantity=body.estimated_quantity,
            estimated_unit_price=body.estimated_unit_price,
            category=body.category,
            material_key=body.material_key,
            item_id=body.id,
        )
        return asdict(item)

    @app.post("/projects/{project_id}/purchases", status_code=201)
    def add_purchase(project_id: str, body: PurchaseIn) -> dict[str, Any]:
        item = store.get_line_item(body.item_id)
        if item is None or item.project_id != project_id:
            raise ReferentialError(f"Line item {body.item_id!r} does not exist in project {project_id!r}")
        record = record_purchase(store, PurchaseRequest(**body.model_dump()))
        payload = asdict(record)
        payload["purchased_at"] = record.purchased_at.isoformat()
        return payload

    @app.delete("/purchases/{record_id}")
    def delete_purchase(record_id: str) -> dict[str, str]:
        removed = remove_purchase(store, record_id)
        return {"status": "deleted", "id": removed.id}

    @app.post("/projects/{project_id}/usage", status_code=201)
    def add_usage(project_id: str, body: UsageIn) -> dict[str, Any]:
        item = store.get_line_item(body.item_id)
        if item is None or item.project_id != project_id:
            raise ReferentialError(f"Line item {body.item_id!r} does not exist in project {project_id!r}")
        result = recorder.record_usage(UsageRecordRequest(**body.model_dump()))
        return {
            "id": result.record.id,
            "remaining_percent": result.view.remaining_percent,
            "previous_remaining_percent": result.previous_remaining_percent,
            "alert": result.alert.payload() if result.alert else None,
            "alert_delivered": result.alert_delivered,
        }

    @app.post("/projects/{project_id}/quotes/accept")
    def accept_quote(project_id: str, body: AcceptedQuoteIn) -> dict[str, Any]:
        draft = draft_purchase_from_quote(store, project_id, AcceptedQuote(**body.model_dump()))
        return {"status": "draft", "draft": asdict(draft)}

    return app
