import asyncio
import json
import time

import pytest
from sqlalchemy import select

from conftest import WEBHOOK_SECRET, WEBHOOK_URL, completed_event, sign
from food_ordering.exceptions import WebhookSignatureError
from food_ordering.models import OrderStatus, ProcessedWebhookEvent
from food_ordering.services.payment import StripePaymentService


def post_event(client, payload, signature=None):
    headers = {"content-type": "application/json"}
    headers["stripe-signature"] = sign(payload) if signature is None else signature
    return client.post(WEBHOOK_URL, content=payload, headers=headers)


def test_completed_event_marks_order_paid_with_provider_amount(client, make_order, load_order):
    order_id = make_order(total_amount=2300)

    response = post_event(client, completed_event(order_id, amount_total=2450))

    assert response.status_code == 200
    assert response.content == b""
    order = load_order(order_id)
    assert order.status == OrderStatus.PAID
    assert order.total_amount == 2450


def test_completed_event_without_amount_keeps_total(client, make_order, load_order):
    order_id = make_order(total_amount=2300)

    response = post_event(client, completed_event(order_id))

    assert response.status_code == 200
    order = load_order(order_id)
    assert order.status == OrderStatus.PAID
    assert order.total_amount == 2300


@pytest.mark.parametrize("signature", [
    "t=1700000000,v1=deadbeef",
    "garbage",
    sign(b"a different body"),
])
def test_invalid_signature_changes_nothing(client, make_order, load_order, db_session, signature):
    order_id = make_order(total_amount=2300)
    payload = completed_event(order_id, amount_total=1)

    response = post_event(client, payload, signature=signature)

    assert response.status_code == 400
    assert response.json()["error"].startswith("Webhook error")
    order = load_order(order_id)
    assert order.status == OrderStatus.PLACED
    assert order.total_amount == 2300
    assert db_session.scalars(select(ProcessedWebhookEvent)).all() == []


def test_signature_with_wrong_secret_is_rejected(client, make_order, load_order):
    order_id = make_order(total_amount=2300)
    payload = completed_event(order_id, amount_total=1)

    response = post_event(client, payload, signature=sign(payload, secret="whsec_wrong"))

    assert response.status_code == 400
    order = load_order(order_id)
    assert order.status == OrderStatus.PLACED
    assert order.total_amount == 2300


def test_missing_signature_is_rejected(client, make_order, load_order):
    order_id = make_order()

    response = client.post(WEBHOOK_URL, content=completed_event(order_id))

    assert response.status_code == 400
    assert load_order(order_id).status == OrderStatus.PLACED


def test_stale_signature_is_rejected(client, make_order, load_order):
    order_id = make_order()
    payload = completed_event(order_id)

    response = post_event(client, payload, signature=sign(payload, timestamp=int(time.time()) - 3600))

    assert response.status_code == 400
    assert load_order(order_id).status == OrderStatus.PLACED


def test_unknown_order_is_not_found(client, seed, db_session):
    response = post_event(client, completed_event("no-such-order"))

    assert response.status_code == 404
    assert response.json()["error"] == "Order not found"
    assert db_session.scalars(select(ProcessedWebhookEvent)).all() == []


def test_event_without_order_metadata_is_not_found(client, seed):
    payload = json.dumps({
        "id": "evt_no_metadata",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_test_2", "amount_total": 100}},
    }).encode("utf-8")

    response = post_event(client, payload)

    assert response.status_code == 404


def test_other_event_types_are_acknowledged(client, make_order, load_order):
    order_id = make_order()
    payload = json.dumps({
        "id": "evt_expired",
        "type": "checkout.session.expired",
        "data": {"object": {"id": "cs_test_3", "metadata": {"orderId": order_id}}},
    }).encode("utf-8")

    response = post_event(client, payload)

    assert response.status_code == 200
    assert load_order(order_id).status == OrderStatus.PLACED


def test_replayed_event_is_applied_once(client, make_order, load_order, db_session):
    order_id = make_order(total_amount=2300)
    payload = completed_event(order_id, event_id="evt_replayed", amount_total=2400)

    assert post_event(client, payload).status_code == 200

    # Restaurant starts preparing before the replay arrives
    order = load_order(order_id)
    order.status = OrderStatus.IN_PROGRESS
    db_session.commit()

    assert post_event(client, payload).status_code == 200

    order = load_order(order_id)
    assert order.status == OrderStatus.IN_PROGRESS
    assert order.total_amount == 2400
    ledger = db_session.scalars(select(ProcessedWebhookEvent)).all()
    assert [(e.event_id, e.order_id) for e in ledger] == [("evt_replayed", order_id)]


def test_completed_event_does_not_regress_progressed_order(client, make_order, load_order):
    order_id = make_order(status=OrderStatus.OUT_FOR_DELIVERY, total_amount=2300)

    response = post_event(client, completed_event(order_id, event_id="evt_late", amount_total=9999))

    assert response.status_code == 200
    order = load_order(order_id)
    assert order.status == OrderStatus.OUT_FOR_DELIVERY
    assert order.total_amount == 2300


def test_second_completion_for_paid_order_is_noop(client, make_order, load_order):
    order_id = make_order(total_amount=2300)

    post_event(client, completed_event(order_id, event_id="evt_first", amount_total=2300))
    post_event(client, completed_event(order_id, event_id="evt_second", amount_total=5000))

    order = load_order(order_id)
    assert order.status == OrderStatus.PAID
    assert order.total_amount == 2300


def test_stripe_service_verifies_signed_event():
    service = StripePaymentService(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)
    payload = completed_event("order-1", event_id="evt_direct", amount_total=2300, restaurant_id="rest-1")

    event = asyncio.run(service.verify_webhook(payload, sign(payload)))

    assert event.id == "evt_direct"
    assert event.type == "checkout.session.completed"
    assert event.order_id == "order-1"
    assert event.restaurant_id == "rest-1"
    assert event.amount_total == 2300


def test_stripe_service_rejects_bad_signature():
    service = StripePaymentService(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)
    payload = completed_event("order-1")

    with pytest.raises(WebhookSignatureError):
        asyncio.run(service.verify_webhook(payload, sign(payload, secret="whsec_other")))


def test_stripe_service_requires_api_key():
    with pytest.raises(ValueError):
        StripePaymentService()
