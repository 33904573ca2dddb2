from typing import Any

from app.models.order import Order


def order_event(event: str, order: Order, **extra: Any) -> dict:
    payload = {
        "event": event,
        "order_id": str(order.id),
        "user_id": str(order.user_id),
        "status": order.status,
        "total_amount": str(order.total_amount),
        "items": [
            {
                "product_id": str(i.product_id),
                "quantity": i.quantity,
                "unit_price": str(i.unit_price),
            }
            for i in order.items
        ],
    }
    payload.update(extra)
    return payload
