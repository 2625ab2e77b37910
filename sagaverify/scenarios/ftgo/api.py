"""
FTGO service endpoints.

One frozen request struct per endpoint, each rendering its own JSON body,
and one plain async function per call. Money fields are sent as decimal
strings.

    POST /consumers                 -> consumerId
    GET  /accounts/{consumerId}
    POST /restaurants               -> id
    GET  /restaurants/{id}
    POST /orders                    -> orderId
    GET  /orders/{id}               -> state, orderTotal
    POST /orders/{id}/revise
    POST /orders/{id}/cancel
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sagaverify.core.config import HarnessConfig
from sagaverify.core.types import EntityRef
from sagaverify.money import Money
from sagaverify.probe import HTTPProbe, ProbeResponse


class OrderState(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"

    @classmethod
    def parse(cls, value: Any) -> OrderState | None:
        """Return the matching state, or None for a value outside the known set."""
        try:
            return cls(value)
        except ValueError:
            return None


# =============================================================================
# Request structs
# =============================================================================


@dataclass(frozen=True)
class PersonName:
    first_name: str
    last_name: str

    def to_json(self) -> dict[str, Any]:
        return {"firstName": self.first_name, "lastName": self.last_name}


@dataclass(frozen=True)
class CreateConsumerRequest:
    name: PersonName

    def to_json(self) -> dict[str, Any]:
        return {"name": self.name.to_json()}


@dataclass(frozen=True)
class MenuItem:
    id: str
    name: str
    price: Money

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "price": self.price.to_json()}


@dataclass(frozen=True)
class CreateRestaurantRequest:
    name: str
    menu_items: tuple[MenuItem, ...]

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "menu": {"menuItems": [item.to_json() for item in self.menu_items]},
        }


@dataclass(frozen=True)
class LineItem:
    menu_item_id: str
    quantity: int

    def to_json(self) -> dict[str, Any]:
        return {"menuItemId": self.menu_item_id, "quantity": self.quantity}


@dataclass(frozen=True)
class CreateOrderRequest:
    consumer_id: EntityRef
    restaurant_id: EntityRef
    line_items: tuple[LineItem, ...]

    def to_json(self) -> dict[str, Any]:
        return {
            "consumerId": self.consumer_id,
            "restaurantId": self.restaurant_id,
            "lineItems": [item.to_json() for item in self.line_items],
        }


@dataclass(frozen=True)
class ReviseOrderRequest:
    revised_line_item_quantities: dict[str, int] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {"revisedLineItemQuantities": dict(self.revised_line_item_quantities)}


@dataclass(frozen=True)
class CancelOrderRequest:
    def to_json(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class OrderView:
    """The fields of GET /orders/{id} the harness looks at."""

    order_id: EntityRef
    state: str
    order_total: str | None

    @property
    def order_state(self) -> OrderState | None:
        return OrderState.parse(self.state)


# =============================================================================
# Calls
# =============================================================================


class FtgoApi:
    """Binds the FTGO endpoints to a probe and a target configuration."""

    def __init__(self, probe: HTTPProbe, config: HarnessConfig):
        self.probe = probe
        self.config = config

    async def create_consumer(self, request: CreateConsumerRequest) -> EntityRef:
        response = await self.probe.post(self.config.url_for("consumers"), request.to_json())
        return response.expect_status(200).extract("consumerId")

    async def get_account(self, consumer_id: EntityRef) -> ProbeResponse:
        return await self.probe.get(self.config.url_for("accounts", consumer_id))

    async def create_restaurant(self, request: CreateRestaurantRequest) -> EntityRef:
        response = await self.probe.post(self.config.url_for("restaurants"), request.to_json())
        return response.expect_status(200).extract("id")

    async def get_restaurant(self, restaurant_id: EntityRef) -> ProbeResponse:
        return await self.probe.get(self.config.url_for("restaurants", restaurant_id))

    async def create_order(self, request: CreateOrderRequest) -> EntityRef:
        response = await self.probe.post(self.config.url_for("orders"), request.to_json())
        return response.expect_status(200).extract("orderId")

    async def get_order(self, order_id: EntityRef) -> OrderView:
        response = await self.probe.get(self.config.url_for("orders", order_id))
        response.expect_status(200)
        return OrderView(
            order_id=order_id,
            state=response.extract("state"),
            order_total=response.get("orderTotal"),
        )

    async def revise_order(self, order_id: EntityRef, request: ReviseOrderRequest) -> None:
        response = await self.probe.post(
            self.config.url_for("orders", order_id, "revise"), request.to_json()
        )
        response.expect_status(200)

    async def cancel_order(self, order_id: EntityRef) -> None:
        response = await self.probe.post(
            self.config.url_for("orders", order_id, "cancel"), CancelOrderRequest().to_json()
        )
        response.expect_status(200)
