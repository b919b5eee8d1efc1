"""Engraving session: image -> depth map -> passes, one request at a time.

The session is the top-level entry point for the CLI.  It resolves laser
profiles through an injected :class:`ProfileRegistry` and keeps at most one
computation active: submitting a new request cancels the previous one.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from .cancel import CancelToken, check
from .depthmap import DepthMap, DepthMapGenerator, DepthMapSettings
from .image import RasterImage
from .operation import ToolpathSettings
from .planner import ToolpathPlanner
from .power import MaterialOptics
from .profiles import LaserProfile, ProfileRegistry
from .toolpath.base import Pass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngravingResult:
    depth_map: DepthMap
    passes: list[Pass]
    laser: LaserProfile


class EngravingSession:
    """Serializes engraving requests for one user/document.

    Parameters
    ----------
    registry:
        Where laser names are resolved.
    executor:
        Runs the requests.  Defaults to a private single-thread pool, which
        is shut down by :meth:`close`.
    """

    def __init__(
        self,
        registry: ProfileRegistry,
        generator: Optional[DepthMapGenerator] = None,
        planner: Optional[ToolpathPlanner] = None,
        executor: Optional[Executor] = None,
    ):
        self.registry = registry
        self.generator = generator or DepthMapGenerator()
        self.planner = planner or ToolpathPlanner()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="engrave")
        self._lock = threading.Lock()
        self._token: Optional[CancelToken] = None

    def submit(
        self,
        image: RasterImage,
        laser_name: str,
        depth_settings: DepthMapSettings,
        toolpath_settings: ToolpathSettings,
        optics: Optional[MaterialOptics] = None,
    ) -> Future:
        """Queue a request and return a Future of :class:`EngravingResult`.

        Raises ProfileNotFound immediately if *laser_name* is unknown.  A
        request still running when the next one is submitted resolves by
        raising Cancelled.
        """
        laser = self.registry.require(laser_name)
        token = CancelToken()
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._token = token
        logger.debug("submitting request for %s (%dx%d)",
                     laser.name, image.width, image.height)
        return self._executor.submit(self._run, image, laser, depth_settings,
                                     toolpath_settings, optics, token)

    def cancel(self) -> None:
        """Abort the active request, if any."""
        with self._lock:
            if self._token is not None:
                self._token.cancel()
                self._token = None

    def close(self) -> None:
        self.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "EngravingSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _run(
        self,
        image: RasterImage,
        laser: LaserProfile,
        depth_settings: DepthMapSettings,
        toolpath_settings: ToolpathSettings,
        optics: Optional[MaterialOptics],
        token: CancelToken,
    ) -> EngravingResult:
        check(token)
        depth_map = self.generator.generate(image, depth_settings, cancel_token=token)
        passes = self.planner.plan(depth_map, laser, depth_settings,
                                   toolpath_settings, cancel_token=token,
                                   optics=optics)
        check(token)
        return EngravingResult(depth_map=depth_map, passes=passes, laser=laser)
