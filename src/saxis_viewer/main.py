"""Entrypoint for the saxis viewer."""

import sys
import argparse
from typing import Optional

from saxis_viewer.utils import parse_args, setup_logger
from saxis_viewer.config import config
from saxis_viewer.errors import CommunicationError
from saxis_viewer.rpc_client import RpcClient


def main() -> None:
    """Entrypoint for the saxis viewer."""
    args = parse_args()
    sys.exit(run(args))


def run(args: argparse.Namespace, client: Optional[RpcClient] = None) -> int:
    """Connect to the server and play programs until stopped.

    Returns:
        Process exit status: 0 after an orderly stop, 1 after a fatal one.

    """
    from saxis_viewer.rig import AxisRig
    from saxis_viewer.loop import PlaybackLoop
    from saxis_viewer.pose import PoseState
    from saxis_viewer.player import MotionPlayer
    from saxis_viewer.poller import StatusPoller, RecordingSignals
    from saxis_viewer.session import PlaybackSession

    logger = setup_logger(args.debug)
    logger.info("Starting saxis viewer")

    rpc = client if client is not None else RpcClient(args.server, timeout=args.timeout)

    try:
        scene = rpc.fetch_scene()
    except CommunicationError as e:
        logger.error(f"Unable to load the scene from {args.server}: {e}")
        rpc.close()
        return 1

    rig = AxisRig(scene.joints)
    session = PlaybackSession(
        joints=scene.joints,
        pose=PoseState(rig, scene.pose),
        path=scene.path,
    )
    logger.info("Scene: %d joints, %d path points", len(session.joints), len(session.path))
    player = MotionPlayer(session)

    def on_recording(active: bool) -> None:
        # Frame capture belongs to the renderer; headless runs only report it.
        logger.info("Recording %s", "ON AIR" if active else "stopped")

    poller = StatusPoller(
        session,
        player,
        rpc,
        period=args.poll_period,
        recording=RecordingSignals(config.RECORD_START_PCOUNT, config.RECORD_STOP_PCOUNT),
        on_recording=on_recording,
    )
    loop = PlaybackLoop(session, player, poller, fps=args.fps)

    try:
        loop.run(max_duration=args.duration)
    except KeyboardInterrupt:
        loop.request_stop("interrupted")
    finally:
        poller.close(timeout=args.timeout)
        logger.debug("Final status: %s", loop.get_status())
        logger.info("Final pose (deg): %s", ", ".join(rig.readout()))
        rpc.close()

    return 1 if session.fatal else 0


if __name__ == "__main__":
    main()
