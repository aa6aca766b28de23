"""Real-time notification dispatcher and WebSocket channel tests."""

import asyncio
import time

import pytest
from starlette.websockets import WebSocketDisconnect

from pos_api.core.errors import AuthenticationRequired
from pos_api.main import authenticate_socket
from pos_api.services import notifications
from pos_api.services.notifications import NotificationDispatcher


def test_publish_reaches_only_same_restaurant_subscribers() -> None:
    dispatcher = NotificationDispatcher()

    async def scenario() -> tuple[dict, bool]:
        mine = dispatcher.subscribe(1)
        theirs = dispatcher.subscribe(2)
        dispatcher.publish(1, notifications.ORDER_CREATED, {"order_id": 7})
        message = await asyncio.wait_for(mine.get(), timeout=1)
        await asyncio.sleep(0)
        return message, theirs.empty()

    message, other_empty = asyncio.run(scenario())

    assert message == {"event": "order:created", "restaurant_id": 1, "data": {"order_id": 7}}
    assert other_empty is True


def test_full_queue_drops_messages_without_raising() -> None:
    dispatcher = NotificationDispatcher(queue_size=1)

    async def scenario() -> int:
        queue = dispatcher.subscribe(1)
        dispatcher.publish(1, notifications.ORDER_UPDATED, {"order_id": 1})
        dispatcher.publish(1, notifications.ORDER_UPDATED, {"order_id": 2})
        await asyncio.sleep(0.01)
        return queue.qsize()

    assert asyncio.run(scenario()) == 1


def test_publish_to_closed_loop_is_ignored() -> None:
    dispatcher = NotificationDispatcher()
    loop = asyncio.new_event_loop()
    queue = dispatcher.subscribe(1, loop)
    loop.close()

    dispatcher.publish(1, notifications.ORDER_UPDATED, {"order_id": 1})

    dispatcher.unsubscribe(1, queue)
    assert dispatcher.subscriber_count(1) == 0


def test_publish_without_subscribers_is_a_no_op() -> None:
    NotificationDispatcher().publish(99, notifications.PAYMENT_CREATED, {"payment_id": 1})


def _wait_for_subscriber(restaurant_id: int) -> None:
    deadline = time.monotonic() + 2
    while notifications.dispatcher.subscriber_count(restaurant_id) == 0:
        if time.monotonic() > deadline:
            raise AssertionError("WebSocket subscriber never registered")
        time.sleep(0.01)


def test_websocket_receives_restaurant_events(client, world) -> None:
    url = f"/ws/restaurants/{world.restaurant_id}?token={world.tokens['server']}"

    with client.websocket_connect(url) as websocket:
        _wait_for_subscriber(world.restaurant_id)
        notifications.dispatcher.publish(world.restaurant_id, notifications.TABLE_STATUS_CHANGED, {"table_id": 1})
        message = websocket.receive_json()

    assert message["event"] == "table:status-changed"
    assert message["data"] == {"table_id": 1}


@pytest.mark.parametrize("who", ["other_server", None])
def test_websocket_rejects_foreign_or_missing_token(client, world, who) -> None:
    url = f"/ws/restaurants/{world.restaurant_id}"
    if who is not None:
        url += f"?token={world.tokens[who]}"

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(url):
            pass

    assert exc_info.value.code == 1008


def test_socket_authentication_uses_its_own_session(session_factory, world) -> None:
    ctx = authenticate_socket(world.tokens["kitchen"])
    assert ctx.role == "KITCHEN"
    assert ctx.restaurant_id == world.restaurant_id

    with pytest.raises(AuthenticationRequired):
        authenticate_socket("not-a-token")
