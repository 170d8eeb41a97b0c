import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from uconnect_api.app.api.v1.endpoints.realtime import _forward
from uconnect_api.app.infra.realtime import Channel, EventKind, NullPublisher, WebSocketHub, broadcast
from uconnect_api.app.main import create_app


async def test_hub_delivers_to_community_subscribers():
    hub = WebSocketHub(queue_size=10)
    listener = hub.subscribe(7)
    outsider = hub.subscribe(8)

    hub.publish(Channel(7, EventKind.NEW_COMMENT), {"id": 1})

    assert listener.queue.get_nowait() == {
        "event": "newComentario_7",
        "kind": "newComentario",
        "communityId": 7,
        "data": {"id": 1},
    }
    assert outsider.queue.empty()


async def test_hub_preserves_order_per_channel():
    hub = WebSocketHub(queue_size=10)
    listener = hub.subscribe(7)

    for i in range(3):
        hub.publish(Channel(7, EventKind.NEW_PUBLICATION), {"id": i})

    assert [listener.queue.get_nowait()["data"]["id"] for _ in range(3)] == [0, 1, 2]


async def test_hub_filters_event_kinds():
    hub = WebSocketHub(queue_size=10)
    listener = hub.subscribe(7, frozenset({EventKind.DELETE_PUBLICATION}))

    hub.publish(Channel(7, EventKind.NEW_COMMENT), {"id": 1})
    hub.publish(Channel(7, EventKind.DELETE_PUBLICATION), {"publicationId": 3})

    assert listener.queue.get_nowait()["event"] == "deletePublication_7"
    assert listener.queue.empty()


async def test_full_queue_drops_events_for_that_subscriber_only():
    hub = WebSocketHub(queue_size=1)
    slow = hub.subscribe(7)
    fast = hub.subscribe(7)

    hub.publish(Channel(7, EventKind.NEW_COMMENT), {"id": 1})
    fast.queue.get_nowait()
    hub.publish(Channel(7, EventKind.NEW_COMMENT), {"id": 2})

    assert slow.dropped == 1
    assert slow.queue.get_nowait()["data"] == {"id": 1}
    assert fast.queue.get_nowait()["data"] == {"id": 2}


async def test_unsubscribe():
    hub = WebSocketHub()
    listener = hub.subscribe(7)

    hub.unsubscribe(listener)
    hub.publish(Channel(7, EventKind.NEW_COMMENT), {"id": 1})

    assert hub.subscriber_count(7) == 0
    assert listener.queue.empty()


def test_broadcast_never_raises():
    class BrokenPublisher:
        def publish(self, channel, payload):
            raise ConnectionError("broker down")

    broadcast(BrokenPublisher(), 7, EventKind.NEW_COMMENT, {"id": 1})


def test_mutation_succeeds_when_fan_out_fails(client, factory, publisher):
    def broken(channel, payload):
        raise ConnectionError("broker down")

    publisher.publish = broken
    alice = factory.account("alice")
    software = factory.community("software", alice)

    response = client.post(
        "/api/v1/publicacion",
        data={"community_id": str(software), "text": "sigue funcionando"},
        headers=factory.headers(alice),
    )

    assert response.status_code == 201
    assert len(factory.fetch("SELECT id FROM publications")) == 1


def test_websocket_receives_new_comments(live_client, factory):
    alice = factory.account("alice")
    bob = factory.account("bob")
    software = factory.community("software", alice, bob)
    publication = live_client.post(
        "/api/v1/publicacion",
        data={"community_id": str(software), "text": "Parcial"},
        headers=factory.headers(alice),
    ).json()
    token = factory.headers(alice)["Authorization"].split()[1]

    url = f"/api/v1/ws/comunidad/{software}?token={token}&events=newComentario"
    with live_client.websocket_connect(url) as websocket:
        response = live_client.post(
            "/api/v1/comentario",
            json={"publication_id": publication["id"], "community_id": software, "text": "Voy"},
            headers=factory.headers(bob),
        )
        assert response.status_code == 201
        message = websocket.receive_json()

    assert message["event"] == f"newComentario_{software}"
    assert message["data"]["text"] == "Voy"
    assert message["data"]["author"]["username"] == "bob"


@pytest.mark.parametrize("query", ["token=nope", "", "events=unknownKind"])
def test_websocket_refuses_bad_requests(live_client, factory, query):
    alice = factory.account("alice")
    software = factory.community("software", alice)
    if "events" in query:
        query = f"token={factory.headers(alice)['Authorization'].split()[1]}&{query}"

    with pytest.raises(WebSocketDisconnect) as excinfo:
        with live_client.websocket_connect(f"/api/v1/ws/comunidad/{software}?{query}"):
            pass

    assert excinfo.value.code == 1008


def test_websocket_refuses_non_members(live_client, factory):
    software = factory.community("software", factory.account("alice"))
    carol = factory.account("carol")
    token = factory.headers(carol)["Authorization"].split()[1]

    with pytest.raises(WebSocketDisconnect) as excinfo:
        with live_client.websocket_connect(f"/api/v1/ws/comunidad/{software}?token={token}"):
            pass

    assert excinfo.value.code == 1008


def test_null_publisher_keeps_mutations_working(factory, asset_store, mailer):
    app = create_app(publisher=NullPublisher(), asset_store=asset_store, mailer=mailer)
    alice = factory.account("alice")
    software = factory.community("software", alice)

    with TestClient(app) as client:
        response = client.post(
            "/api/v1/publicacion",
            data={"community_id": str(software), "text": "sin tiempo real"},
            headers=factory.headers(alice),
        )

    assert response.status_code == 201
    assert len(factory.fetch("SELECT id FROM publications")) == 1


def test_binary_keep_alive_does_not_close_the_feed(live_client, factory):
    alice = factory.account("alice")
    software = factory.community("software", alice)
    token = factory.headers(alice)["Authorization"].split()[1]

    with live_client.websocket_connect(f"/api/v1/ws/comunidad/{software}?token={token}") as websocket:
        websocket.send_bytes(b"\x00")
        websocket.send_text("ping")
        response = live_client.post(
            "/api/v1/publicacion",
            data={"community_id": str(software), "text": "sigo conectado"},
            headers=factory.headers(alice),
        )
        assert response.status_code == 201
        message = websocket.receive_json()

    assert message["event"] == f"newPublication_{software}"
    assert message["data"]["text"] == "sigo conectado"


async def test_forwarder_stops_quietly_when_sending_fails():
    class BrokenSocket:
        async def send_json(self, message):
            raise ValueError("not serializable")

    hub = WebSocketHub()
    subscription = hub.subscribe(7)
    hub.publish(Channel(7, EventKind.NEW_COMMENT), {"id": 1})

    await asyncio.wait_for(_forward(BrokenSocket(), subscription), timeout=1)

    assert subscription.queue.empty()
