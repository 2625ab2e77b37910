# ============================================
# FILE: sagaverify/scenarios/ftgo/order_saga.py
# ============================================

"""
FTGO order saga: create, verify, revise, verify, cancel, verify.

Every action that changes remote state is followed by a convergence check
before anything built on it is used. Order creation, for instance, kicks off
the backend's own saga (consumer validation, ticket creation, card
authorization); the order only becomes usable once it reads back APPROVED.

    1.  create_consumer            -> consumer_id
    2.  verify_account_created     GET /accounts/{consumer_id} == 200
    3.  create_restaurant          -> restaurant_id
    4.  verify_restaurant_created  GET /restaurants/{restaurant_id} == 200
    5.  create_order               -> order_id
    6.  verify_order_approved      state == APPROVED
    7.  revise_order               quantity of menu item "1" -> 10
    8.  verify_order_revised       orderTotal == 12.34 x 10, state == APPROVED
    9.  cancel_order
    10. verify_order_cancelled     state == CANCELLED
"""

from dataclasses import dataclass

import httpx

from sagaverify.core.config import HarnessConfig
from sagaverify.core.context import RunContext
from sagaverify.core.exceptions import AssertionMismatch
from sagaverify.core.types import EntityRef, RunResult
from sagaverify.monitoring.metrics import RunMetrics
from sagaverify.money import Money
from sagaverify.orchestrator import WorkflowOrchestrator
from sagaverify.poller import RetryPoller
from sagaverify.probe import HTTPProbe
from sagaverify.scenarios.ftgo.api import (
    CreateConsumerRequest,
    CreateOrderRequest,
    CreateRestaurantRequest,
    FtgoApi,
    LineItem,
    MenuItem,
    OrderState,
    PersonName,
    ReviseOrderRequest,
)
from sagaverify.script import Assertion, ScenarioScript

SCENARIO_NAME = "ftgo-order-saga"


@dataclass(frozen=True)
class OrderSagaInputs:
    """Fixed seed data for one run of the order saga."""

    menu_item_id: str = "1"
    menu_item_name: str = "Chicken Vindaloo"
    menu_item_price: Money = Money("12.34")
    initial_quantity: int = 5
    revised_quantity: int = 10
    restaurant_name: str = "My Restaurant"
    consumer_first_name: str = "John"
    consumer_last_name: str = "Doe"

    @property
    def revised_total(self) -> Money:
        return self.menu_item_price.multiply(self.revised_quantity)


# =============================================================================
# Request construction
# =============================================================================


def consumer_request(inputs: OrderSagaInputs) -> CreateConsumerRequest:
    return CreateConsumerRequest(PersonName(inputs.consumer_first_name, inputs.consumer_last_name))


def restaurant_request(inputs: OrderSagaInputs) -> CreateRestaurantRequest:
    menu_item = MenuItem(inputs.menu_item_id, inputs.menu_item_name, inputs.menu_item_price)
    return CreateRestaurantRequest(inputs.restaurant_name, (menu_item,))


def order_request(
    inputs: OrderSagaInputs, consumer_id: EntityRef, restaurant_id: EntityRef
) -> CreateOrderRequest:
    return CreateOrderRequest(
        consumer_id, restaurant_id, (LineItem(inputs.menu_item_id, inputs.initial_quantity),)
    )


def revise_request(inputs: OrderSagaInputs) -> ReviseOrderRequest:
    return ReviseOrderRequest({inputs.menu_item_id: inputs.revised_quantity})


# =============================================================================
# Script
# =============================================================================


def expect_order_state(api: FtgoApi, expected: OrderState) -> Assertion:
    async def check(ctx: RunContext) -> None:
        order = await api.get_order(ctx.ref("order_id"))
        ctx.observe("order_state", order.state)
        if order.state != expected.value:
            raise AssertionMismatch(
                f"state of order {order.order_id}", expected.value, order.state
            )

    return Assertion(f"order state is {expected.value}", check)


def expect_order_total(api: FtgoApi, expected: Money) -> Assertion:
    async def check(ctx: RunContext) -> None:
        order = await api.get_order(ctx.ref("order_id"))
        ctx.observe("order_total", order.order_total)
        if order.order_total != expected.as_canonical_string():
            raise AssertionMismatch(
                f"orderTotal of order {order.order_id}",
                expected.as_canonical_string(),
                order.order_total,
            )

    return Assertion(f"order total is {expected}", check)


def build_order_saga(api: FtgoApi, inputs: OrderSagaInputs | None = None) -> ScenarioScript:
    """Build the ten-step order saga bound to ``api``."""
    inputs = inputs or OrderSagaInputs()

    async def create_consumer(ctx: RunContext) -> EntityRef:
        return await api.create_consumer(consumer_request(inputs))

    async def account_exists(ctx: RunContext) -> None:
        (await api.get_account(ctx.ref("consumer_id"))).expect_status(200)

    async def create_restaurant(ctx: RunContext) -> EntityRef:
        return await api.create_restaurant(restaurant_request(inputs))

    async def restaurant_exists(ctx: RunContext) -> None:
        (await api.get_restaurant(ctx.ref("restaurant_id"))).expect_status(200)

    async def create_order(ctx: RunContext) -> EntityRef:
        request = order_request(inputs, ctx.ref("consumer_id"), ctx.ref("restaurant_id"))
        return await api.create_order(request)

    async def revise_order(ctx: RunContext) -> None:
        await api.revise_order(ctx.ref("order_id"), revise_request(inputs))

    async def cancel_order(ctx: RunContext) -> None:
        await api.cancel_order(ctx.ref("order_id"))

    return (
        ScenarioScript(SCENARIO_NAME)
        .add_action("create_consumer", create_consumer, produces="consumer_id")
        .add_check(
            "verify_account_created",
            Assertion("account exists for consumer", account_exists),
            verifies=["consumer_id"],
        )
        .add_action("create_restaurant", create_restaurant, produces="restaurant_id")
        .add_check(
            "verify_restaurant_created",
            Assertion("restaurant is retrievable", restaurant_exists),
            verifies=["restaurant_id"],
        )
        .add_action(
            "create_order",
            create_order,
            produces="order_id",
            requires=["consumer_id", "restaurant_id"],
        )
        .add_check("verify_order_approved", expect_order_state(api, OrderState.APPROVED))
        .add_action("revise_order", revise_order, requires=["order_id"])
        .add_check(
            "verify_order_revised",
            expect_order_total(api, inputs.revised_total),
            expect_order_state(api, OrderState.APPROVED),
        )
        .add_action("cancel_order", cancel_order, requires=["order_id"])
        .add_check("verify_order_cancelled", expect_order_state(api, OrderState.CANCELLED))
    )


async def run_order_saga(
    config: HarnessConfig,
    client: httpx.AsyncClient | None = None,
    inputs: OrderSagaInputs | None = None,
    poller: RetryPoller | None = None,
    metrics: RunMetrics | None = None,
) -> RunResult:
    """Run the order saga once against ``config``'s target and return the result."""
    inputs = inputs or OrderSagaInputs()
    async with HTTPProbe(config, client=client) as probe:
        api = FtgoApi(probe, config)
        orchestrator = WorkflowOrchestrator(
            probe,
            config,
            poller=poller,
            context=RunContext(scenario_name=SCENARIO_NAME, inputs=inputs),
            metrics=metrics,
        )
        return await orchestrator.run(build_order_saga(api, inputs))
