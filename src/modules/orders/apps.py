from django.apps import AppConfig


class OrdersConfig(AppConfig):
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            CheckoutInitiated,
            OrderCreated,
            PaymentConfirmed,
        )
        from modules.orders.handlers import (
            checkout_initiated_handler,
            order_created_handler,
            payment_confirmed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(CheckoutInitiated, checkout_initiated_handler)
        event_bus.subscribe(PaymentConfirmed, payment_confirmed_handler)
