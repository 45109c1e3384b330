"""Demonstration script walking one order through its timeline."""

from __future__ import annotations

from pprint import pprint

from . import OrderService, OrderStatus
from .config import configure_logging
from .domain import CustomerInfo, ProductInfo, ShippingInfo, ShippingMethod
from .lifecycle import OrderDraft, OrderPatch, ProgressInput


def print_timeline(order) -> None:
    print(f"{order.order_id}: {order.status.value} / {order.current_phase} "
          f"({order.progress.current}/{order.progress.total}, {order.progress_percentage}%)")
    for step in order.timeline:
        dates = " ".join(part for part in (step.start_date, step.finish_date) if part)
        print(f"   {step.id}. {step.title:<32} {step.status.value:<12} {dates}")


def main() -> None:
    configure_logging(verbose=True)
    tracker = OrderService()
    admin = tracker.register_admin("Dana Whitfield", "dana@agency.example")

    # Master data
    order = tracker.create_order(
        OrderDraft(
            customer=CustomerInfo(
                name="Northwind Retail",
                email="Purchasing@Northwind.example",
            ),
            product=ProductInfo(
                name="Custom ceramic mugs",
                quantity="2,000 pcs",
                value="$8,400",
            ),
            shipping=ShippingInfo(
                destination="Hamburg, Germany",
                method=ShippingMethod.SEA_FREIGHT,
            ),
            status=OrderStatus.DEVELOPMENT,
        ),
        admin_id=admin.id,
    )
    print("New order")
    print_timeline(order)

    # Step-by-step progression
    for _ in range(3):
        order = tracker.advance_order_phase(order.order_id, admin_id=admin.id)
    print("\nAfter three advances")
    print_timeline(order)

    # Jump straight to transport
    order = tracker.set_order_phase(order.order_id, "Transport Phase", admin_id=admin.id)
    print("\nPhase set to transport")
    print_timeline(order)

    # Bulk edit with explicit progress
    order = tracker.update_order(
        order.order_id,
        OrderPatch(progress=ProgressInput(current=7), notes="Received at warehouse"),
        admin_id=admin.id,
    )
    print("\nMarked as delivered")
    print_timeline(order)

    print("\nCustomer statistics")
    pprint(tracker.get_customer_by_email("purchasing@northwind.example"))
    print("\nAdmin activity")
    pprint(tracker.admins.get(admin.id))


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
