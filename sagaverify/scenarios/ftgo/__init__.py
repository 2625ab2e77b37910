"""
FTGO (Food To Go) scenarios: consumer, restaurant, accounting and order
services behind one application port.
"""

from sagaverify.scenarios.ftgo.api import (
    CancelOrderRequest,
    CreateConsumerRequest,
    CreateOrderRequest,
    CreateRestaurantRequest,
    FtgoApi,
    LineItem,
    MenuItem,
    OrderState,
    OrderView,
    PersonName,
    ReviseOrderRequest,
)
from sagaverify.scenarios.ftgo.order_saga import (
    SCENARIO_NAME,
    OrderSagaInputs,
    build_order_saga,
    run_order_saga,
)

__all__ = [
    "SCENARIO_NAME",
    "CancelOrderRequest",
    "CreateConsumerRequest",
    "CreateOrderRequest",
    "CreateRestaurantRequest",
    "FtgoApi",
    "LineItem",
    "MenuItem",
    "OrderSagaInputs",
    "OrderState",
    "OrderView",
    "PersonName",
    "ReviseOrderRequest",
    "build_order_saga",
    "run_order_saga",
]
