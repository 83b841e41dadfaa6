"""
SubmapQuery client: the tile fetch collaborator backed by a ROS 2 service.

fetch() blocks until the response arrives or the timeout elapses. It must be
called from a thread other than the one spinning the client's callback group
(MultiThreadedExecutor + separate callback groups in the node).

Failure modes, all per tile and retried on the next batch:
    service not available, timeout, non-OK status -> TileFetchError
    response without textures                      -> None
"""

from __future__ import annotations

import threading
from typing import Optional

from cartographer_ros_msgs.msg import StatusCode
from cartographer_ros_msgs.srv import SubmapQuery

from submap_occupancy.common import constants
from submap_occupancy.common.texture_codec import decode_texture_cells
from submap_occupancy.backend.msg_conversion import rigid_from_pose_msg
from submap_occupancy.backend.structures.tile_cache import (
    FetchedTexture,
    TileFetchError,
    TileId,
)


class SubmapQueryClient:
    def __init__(
        self,
        node,
        service_name: str = constants.SUBMAP_QUERY_SERVICE_DEFAULT,
        timeout_sec: float = constants.FETCH_TIMEOUT_SEC_DEFAULT,
        callback_group=None,
    ):
        self._node = node
        self._timeout_sec = float(timeout_sec)
        self._client = node.create_client(SubmapQuery, service_name, callback_group=callback_group)
        self._service_name = service_name

    def fetch(self, tile_id: TileId) -> Optional[FetchedTexture]:
        if not self._client.wait_for_service(timeout_sec=constants.SERVICE_WAIT_TIMEOUT_SEC):
            raise TileFetchError(f"service {self._service_name} not available")

        request = SubmapQuery.Request()
        request.trajectory_id = int(tile_id.trajectory_id)
        request.submap_index = int(tile_id.submap_index)

        done = threading.Event()
        future = self._client.call_async(request)
        future.add_done_callback(lambda _f: done.set())
        if not done.wait(self._timeout_sec):
            self._client.remove_pending_request(future)
            raise TileFetchError(f"{self._service_name} timed out after {self._timeout_sec:.2f}s")

        response = future.result()
        if response is None:
            raise TileFetchError(f"{self._service_name} returned no response")
        if response.status.code != StatusCode.OK:
            raise TileFetchError(
                f"{self._service_name} status {response.status.code}: {response.status.message}"
            )
        if not response.textures:
            return None

        texture = response.textures[0]
        width = int(texture.width)
        height = int(texture.height)
        intensity, alpha = decode_texture_cells(bytes(texture.cells), width, height)
        return FetchedTexture(
            width=width,
            height=height,
            version=int(response.submap_version),
            slice_pose=rigid_from_pose_msg(texture.slice_pose),
            resolution=float(texture.resolution),
            intensity=intensity,
            alpha=alpha,
        )
