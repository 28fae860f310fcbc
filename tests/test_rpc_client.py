"""Unit tests for the rpc_client module."""

import json
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests
import numpy as np

from saxis_viewer.errors import ServerError, ProtocolError, TransportError
from saxis_viewer.rpc_client import RpcClient


def make_response(body: Any = None, status_code: int = 200, text: str | None = None) -> MagicMock:
    """Build a fake `requests.Response`."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text if text is not None else json.dumps(body)
    if text is not None and body is None:
        response.json = MagicMock(side_effect=ValueError("Expecting value"))
    else:
        response.json = MagicMock(return_value=body)
    return response


@pytest.fixture
def client() -> RpcClient:
    """Client with a mocked HTTP session."""
    rpc = RpcClient("http://robot:8080/", timeout=1.5)
    rpc._session = MagicMock()
    return rpc


class TestCall:
    """Tests for the raw request/response exchange."""

    def test_posts_form_encoded_query(self, client: RpcClient) -> None:
        """Test the query is sent as the `rpc` form field."""
        client._session.post.return_value = make_response({"ok": 1})

        assert client.call({"Cmd": "status", "Pcount": 3}) == {"ok": 1}

        client._session.post.assert_called_once_with(
            "http://robot:8080/rpc",
            data={"rpc": json.dumps({"Cmd": "status", "Pcount": 3})},
            timeout=1.5,
        )

    def test_connection_error_is_transport_error(self, client: RpcClient) -> None:
        """Test network failures map to TransportError."""
        client._session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError, match="connection lost"):
            client.call({"Cmd": "status"})

    def test_timeout_is_transport_error(self, client: RpcClient) -> None:
        """Test timeouts map to TransportError."""
        client._session.post.side_effect = requests.Timeout("slow")

        with pytest.raises(TransportError):
            client.call({"Cmd": "status"})

    def test_http_error_status_is_transport_error(self, client: RpcClient) -> None:
        """Test any non-200 status counts as a lost connection."""
        client._session.post.return_value = make_response(text="invalid rpc", status_code=400)

        with pytest.raises(TransportError, match="HTTP 400"):
            client.call({"Cmd": "status"})

    def test_bad_json_is_protocol_error(self, client: RpcClient) -> None:
        """Test unparseable bodies map to ProtocolError."""
        client._session.post.return_value = make_response(text="<html>")

        with pytest.raises(ProtocolError, match="bad JSON"):
            client.call({"Cmd": "status"})

    def test_non_object_is_protocol_error(self, client: RpcClient) -> None:
        """Test call insists on a JSON object."""
        client._session.post.return_value = make_response([1, 2, 3])

        with pytest.raises(ProtocolError, match="object"):
            client.call({"Cmd": "status"})

    def test_call_raw_accepts_lists(self, client: RpcClient) -> None:
        """Test call_raw returns any JSON body."""
        client._session.post.return_value = make_response([1, 2, 3])

        assert client.call_raw({"Cmd": "hilbert"}) == [1, 2, 3]

    def test_error_payload_is_server_error(self, client: RpcClient) -> None:
        """Test an Error field maps to ServerError."""
        client._session.post.return_value = make_response({"Error": "no robot"})

        with pytest.raises(ServerError, match="no robot") as excinfo:
            client.call({"Cmd": "status"})

        assert excinfo.value.message == "no robot"

    def test_empty_error_field_is_not_an_error(self, client: RpcClient) -> None:
        """Test an empty Error string is ignored."""
        client._session.post.return_value = make_response({"Error": "", "Pcount": 0})

        assert client.call({"Cmd": "status"})["Pcount"] == 0


class TestCommands:
    """Tests for the typed command helpers."""

    def test_fetch_status(self, client: RpcClient) -> None:
        """Test status requests carry Pcount and are parsed."""
        client._session.post.return_value = make_response(
            {"Program": [[{"Frac": 0.25, "J": [0.1]}]], "Pcount": 2, "Pose": {"J": [0.0]}}
        )

        status = client.fetch_status(1, joint_count=1)

        sent = json.loads(client._session.post.call_args.kwargs["data"]["rpc"])
        assert sent == {"Cmd": "status", "Pcount": 1}
        assert status.program is not None
        assert status.program.sequence_number == 2
        np.testing.assert_array_equal(status.pose, [0.0])

    def test_fetch_scene(self, client: RpcClient) -> None:
        """Test the scene request returns geometry and pose."""
        client._session.post.return_value = make_response(
            {"Robot": [{"Axis": "z", "Length": 1, "Width": 1.5}], "Pose": {"J": [0.3]}, "Hilbert": None}
        )

        scene = client.fetch_scene()

        assert len(scene.joints) == 1
        np.testing.assert_array_equal(scene.pose, [0.3])

    def test_fetch_path(self, client: RpcClient) -> None:
        """Test the path request returns points."""
        client._session.post.return_value = make_response([[0, 0, 0], [0, 1, 0]])

        path = client.fetch_path()

        assert path.shape == (2, 3)

    def test_close(self, client: RpcClient) -> None:
        """Test close releases the HTTP session."""
        client.close()

        client._session.close.assert_called_once()
