"""Integration tests for the block event push socket."""

import json

from fastapi.testclient import TestClient


def register(client: TestClient) -> None:
    response = client.post("/users", json={"username": "alice", "orgName": "org1"})
    assert response.status_code == 200


def test_liveness_frame_sent_on_connect(client: TestClient) -> None:
    """Test that a fresh connection gets the liveness frame immediately."""
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_text() == "something"


def test_root_path_accepts_push_sockets(client: TestClient) -> None:
    with client.websocket_connect("/") as ws:
        assert ws.receive_text() == "something"


def test_inbound_frames_are_ignored(client: TestClient) -> None:
    """Test that client messages do not produce replies or close the socket."""
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_text() == "something"
        ws.send_text("hello gateway")

        register(client)
        client.post("/asset", json={"id": "a1"})

        # Next frame is the block event, not a reply to "hello gateway"
        event = json.loads(ws.receive_text())
        assert event["block_number"] == 0


def test_connected_socket_receives_block_events(client: TestClient) -> None:
    """Test that writes after registration stream out as block events."""
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_text() == "something"

        register(client)
        client.post("/asset", json={"id": "a1", "owner": "alice"})
        client.post("/transfer", json={"id": "a1", "newOwner": "bob"})

        first = json.loads(ws.receive_text())
        second = json.loads(ws.receive_text())

    assert first["channel"] == "mychannel"
    assert first["block_number"] == 0
    assert first["transactions"][0]["function_name"] == "createAsset"
    assert first["transactions"][0]["creator"] == "alice@org1"
    assert second["block_number"] == 1
    assert second["transactions"][0]["function_name"] == "transferAsset"


def test_late_joiner_gets_no_replay(client: TestClient) -> None:
    """Test that a socket connected after a block only sees later blocks."""
    register(client)

    with client.websocket_connect("/ws") as early:
        assert early.receive_text() == "something"
        client.post("/asset", json={"id": "a1"})

        with client.websocket_connect("/ws") as late:
            assert late.receive_text() == "something"
            client.post("/asset", json={"id": "a2"})

            assert json.loads(late.receive_text())["block_number"] == 1

        assert json.loads(early.receive_text())["block_number"] == 0
        assert json.loads(early.receive_text())["block_number"] == 1


def test_reads_produce_no_block_events(client: TestClient) -> None:
    """Test that queries do not commit blocks."""
    register(client)
    client.post("/asset", json={"id": "a1"})

    with client.websocket_connect("/ws") as ws:
        assert ws.receive_text() == "something"
        client.get("/asset", params={"id": "a1"})
        client.put("/asset", json={"id": "a1", "value": "2"})

        # The first event seen is the update, block 1
        event = json.loads(ws.receive_text())
        assert event["block_number"] == 1
        assert event["transactions"][0]["function_name"] == "updateAsset"
