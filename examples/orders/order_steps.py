"""
Step definitions for orders.feature

Run with:
    bdd-runner run examples/orders --steps examples/orders/order_steps.py --tags "not @wip"
"""

import asyncio
from datetime import timedelta
from enum import Enum

from bdd_runner import HookSet, given, then, when


class Status(Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"


class Priority(Enum):
    LOW = 72
    MEDIUM = 48
    HIGH = 24


@given(r'^an empty order for {email}$')
def empty_order(context, customer):
    context.store_data("order", {"customer": customer, "items": [], "status": Status.PENDING})


@given(r'^the order has {int} {string} items at {float} each$')
@when(r'^I add {int} {string} items at {float} each$')
def add_items(context, quantity, name, price):
    order = context.must_get("order")
    order["items"].append((name, quantity, price))
    context.logger.info(f"Added {quantity} x {name}")


@when(r'^I ship it with {priority} priority$')
async def ship(context, priority: Priority):
    await asyncio.sleep(0.01)
    context.store_data("delivery", timedelta(hours=priority.value))


@when(r'^I cancel the order$')
def cancel(context):
    context.must_get("order")["status"] = Status.CANCELLED


@when(r'^I cancel the order because:$')
def cancel_with_reason(context):
    cancel(context)
    context.store_data("note", context.doc_string)


@then(r'^the order total is {float}$')
def order_total(context, expected):
    total = sum(quantity * price for _, quantity, price in context.must_get("order")["items"])
    context.assert_equal(round(total, 2), expected)


@then(r'^the order status is {Status}$')
def order_status(context, status: Status):
    context.assert_equal(context.must_get("order")["status"], status)


@then(r'^the delivery takes {duration}$')
def delivery_time(context, expected: timedelta):
    context.assert_equal(context.must_get("delivery"), expected)


@then(r'^the cancellation note mentions {string}$')
def note_mentions(context, word):
    context.assert_in(word, context.must_get("note"))


hooks = HookSet(
    before_scenario=lambda scenario: print(f"-> {scenario.name}"),
    after_scenario=lambda scenario, error: print(f"<- {scenario.name}: {'failed' if error else 'passed'}"),
)
