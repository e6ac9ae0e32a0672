# backend/routes/webhooks.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from services.order_cascade import (
    FULFILLMENT_TOPICS, TOPIC_ORDER_CREATED,
    handle_fulfillment, handle_order_created, order_ref_of, parse_line_items,
)
from utils.audit import write_log, client_ip
from utils.shopify_client import verify_webhook_hmac

router = APIRouter(prefix="/webhook", tags=["Webhooks"])
logger = logging.getLogger(__name__)


@router.post("/shopify")
async def shopify_webhook(
    request: Request,
    db: Session = Depends(get_db),
    x_shopify_topic: Optional[str] = Header(None),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
):
    body = await request.body()
    logger.info("Shopify webhook received, topic=%s", x_shopify_topic or "unknown")

    if settings.SHOPIFY_WEBHOOK_SECRET:
        if not verify_webhook_hmac(settings.SHOPIFY_WEBHOOK_SECRET, body, x_shopify_hmac_sha256):
            logger.warning("Shopify webhook HMAC verification failed")
            raise HTTPException(status_code=401, detail="Webhook signature verification failed")

    try:
        payload = json.loads(body or b"null")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid webhook data")

    # Validates line_items before anything is written
    line_items = parse_line_items(payload)
    order_ref = order_ref_of(payload)

    # The cascade blocks on the database; it runs off the event loop
    if x_shopify_topic in FULFILLMENT_TOPICS:
        report = await run_in_threadpool(handle_fulfillment, db, line_items, order_ref)
        message = "Stock and BOM components debited"
        action = "WEBHOOK_FULFILLMENT"
    elif x_shopify_topic in (None, "", TOPIC_ORDER_CREATED):
        report = await run_in_threadpool(handle_order_created, db, line_items, order_ref)
        message = "Incoming order added"
        action = "WEBHOOK_ORDER_CREATED"
    else:
        logger.info("Unknown webhook type: %s", x_shopify_topic)
        return {"received": True, "message": "Webhook received but not processed"}

    await run_in_threadpool(
        write_log, db, user_id=None, action=action, resource="webhook", ip=client_ip(request),
        meta={"order": order_ref, "applied": len(report.applied), "skipped": report.skipped},
    )
    return {
        "success": True,
        "processedOrder": order_ref,
        "message": message,
        "applied": report.applied,
        "skipped": report.skipped,
    }
