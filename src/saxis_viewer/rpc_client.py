"""Saxis server RPC client.

The server exposes a single endpoint, ``POST /rpc``, taking a form field
``rpc`` holding a JSON query such as ``{"Cmd": "status", "Pcount": 3}`` and
answering with JSON. Every failure is mapped onto the fatal error taxonomy in
`saxis_viewer.errors`.
"""

from __future__ import annotations
import json
import logging
from typing import Any, Dict

import numpy as np
import requests
from numpy.typing import NDArray

from saxis_viewer.errors import ServerError, ProtocolError, TransportError
from saxis_viewer.program import Scene, StatusResponse, parse_path, parse_scene, parse_status_response


logger = logging.getLogger(__name__)


class RpcClient:
    """Client for the saxis server's ``/rpc`` endpoint."""

    def __init__(self, server_url: str = "http://localhost:8080", timeout: float = 2.0):
        """Initialize the client.

        Args:
            server_url: Base URL of the saxis server (default: http://localhost:8080)
            timeout: Seconds to wait for each response

        """
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()

    def call_raw(self, query: Dict[str, Any]) -> Any:
        """Send one query and return the decoded JSON body, whatever its shape.

        Raises:
            TransportError: connection failure, timeout or non-200 status
            ProtocolError: the body is not JSON
            ServerError: the body is an object carrying an ``Error`` field

        """
        cmd = query.get("Cmd")
        try:
            response = self._session.post(
                f"{self.server_url}/rpc",
                data={"rpc": json.dumps(query)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"RPC {cmd} failed: {e}")
            raise TransportError(f"Server and client connection lost: {e}") from e

        if response.status_code != 200:
            logger.error(f"RPC {cmd} returned HTTP {response.status_code}: {response.text[:200]}")
            raise TransportError(f"Server and client connection lost (HTTP {response.status_code})")

        try:
            raw = response.json()
        except ValueError as e:
            raise ProtocolError(f"bad JSON ({e}): {response.text[:200]}") from e
        if isinstance(raw, dict) and raw.get("Error"):
            raise ServerError(str(raw["Error"]))
        return raw

    def call(self, query: Dict[str, Any]) -> Dict[str, Any]:
        """Send one query whose answer must be a JSON object."""
        raw = self.call_raw(query)
        if not isinstance(raw, dict):
            raise ProtocolError(f"expected a JSON object, got {type(raw).__name__}")
        return raw

    def fetch_scene(self) -> Scene:
        """Fetch the robot geometry, starting pose and traced path."""
        scene = parse_scene(self.call({"Cmd": "scene"}))
        logger.info(f"Connected to saxis server at {self.server_url}: {len(scene.joints)} joints")
        return scene

    def fetch_status(self, pcount: int, joint_count: int) -> StatusResponse:
        """Ask for program/pose updates.

        Args:
            pcount: Sequence number of the last finished program, or 0
            joint_count: Expected length of every joint vector

        """
        return parse_status_response(self.call({"Cmd": "status", "Pcount": pcount}), joint_count)

    def fetch_path(self) -> NDArray[np.float64]:
        """Fetch the traced path as an ``(N, 3)`` array."""
        return parse_path(self.call_raw({"Cmd": "hilbert"}))

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()
        logger.info("RPC client closed")
