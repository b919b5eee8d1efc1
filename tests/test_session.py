"""Tests for the one-request-at-a-time engraving session."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from depthengrave.config.defaults import build_default_registry
from depthengrave.core.depthmap import DepthMapSettings
from depthengrave.core.image import RasterImage
from depthengrave.core.operation import ToolpathSettings
from depthengrave.core.planner import ToolpathPlanner
from depthengrave.core.session import EngravingResult, EngravingSession
from depthengrave.errors import Cancelled, ProfileNotFound

LASER = "Raycus 50W Fiber"


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=1)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def session(executor) -> EngravingSession:
    return EngravingSession(build_default_registry(),
                            planner=ToolpathPlanner(max_workers=2),
                            executor=executor)


@pytest.fixture
def image() -> RasterImage:
    return RasterImage.from_bytes(8, 8, bytes([255]) * 256)


@pytest.fixture
def settings():
    return DepthMapSettings(max_depth=1.0), ToolpathSettings(pass_layers=3)


class TestSession:
    def test_submit_returns_result(self, session, image, settings):
        result = session.submit(image, LASER, *settings).result(timeout=30)
        assert isinstance(result, EngravingResult)
        assert result.laser.name == LASER
        assert len(result.passes) == 3
        assert result.depth_map.shape == (8, 8)

    def test_unknown_laser(self, session, image, settings):
        with pytest.raises(ProfileNotFound):
            session.submit(image, "No Such Laser", *settings)

    def test_second_submit_cancels_first(self, session, executor, image, settings):
        gate = threading.Event()
        executor.submit(gate.wait)        # hold the single worker
        first = session.submit(image, LASER, *settings)
        second = session.submit(image, LASER, *settings)
        gate.set()

        with pytest.raises(Cancelled):
            first.result(timeout=30)
        assert len(second.result(timeout=30).passes) == 3

    def test_cancel(self, session, executor, image, settings):
        gate = threading.Event()
        executor.submit(gate.wait)
        fut = session.submit(image, LASER, *settings)
        session.cancel()
        gate.set()
        with pytest.raises(Cancelled):
            fut.result(timeout=30)

    def test_owned_executor_closes(self, image, settings):
        with EngravingSession(build_default_registry()) as own:
            result = own.submit(image, LASER, *settings).result(timeout=30)
        assert len(result.passes) == 3
