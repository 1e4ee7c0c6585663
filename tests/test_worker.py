"""Tests for background slicing with stale-request dropping."""

import threading

import pytest

from panocut import worker as worker_module
from panocut.schemas import SliceConfig
from panocut.slicer import SliceResult
from panocut.surfaces import SurfaceAllocationError
from panocut.worker import SliceMessage, SliceWorker
from tests.conftest import create_test_image


@pytest.fixture
def messages():
    return []


class TestSliceWorker:
    """Test cases for SliceWorker."""

    def test_delivers_result(self, messages):
        """A single request is sliced and delivered."""
        with SliceWorker(messages.append) as worker:
            request_id = worker.submit(create_test_image(2160, 1080), SliceConfig())
            worker.wait(timeout=10)

        assert len(messages) == 1
        message = messages[0]
        assert message.request_id == request_id
        assert message.success
        assert message.result.slice_count == 2

    def test_request_ids_increase(self, messages):
        """Every submission gets a larger id."""
        with SliceWorker(messages.append) as worker:
            image = create_test_image(1080, 1080)
            first = worker.submit(image, SliceConfig())
            second = worker.submit(image, SliceConfig())
            worker.wait(timeout=10)

        assert second > first
        assert worker.latest_request_id == second

    def test_stale_results_dropped(self, messages, monkeypatch):
        """Only the latest request is delivered; superseded ones are discarded."""
        started = threading.Event()
        release = threading.Event()
        released_results = []

        class TrackedResult(SliceResult):
            def release(self):
                released_results.append(self)
                super().release()

        def fake_slice_image(image, config, provider=None):
            if config.manual_padding_x == 1:
                started.set()
                release.wait(timeout=10)
            return TrackedResult(slice_count=config.manual_padding_x)

        monkeypatch.setattr(worker_module, "slice_image", fake_slice_image)
        image = create_test_image(100, 100)

        with SliceWorker(messages.append, max_workers=1) as worker:
            worker.submit(image, SliceConfig(manual_padding_x=1))
            assert started.wait(timeout=10)
            worker.submit(image, SliceConfig(manual_padding_x=2))  # queued, then cancelled
            latest = worker.submit(image, SliceConfig(manual_padding_x=3))
            release.set()
            worker.wait(timeout=10)

        assert [m.request_id for m in messages] == [latest]
        assert messages[0].result.slice_count == 3
        # The running stale request finished and its result was released
        assert len(released_results) == 1
        assert released_results[0].slice_count == 1

    def test_failure_reported_as_message(self, messages, monkeypatch):
        """Slicing errors come back as error messages."""

        def failing_slice_image(image, config, provider=None):
            raise SurfaceAllocationError("no memory for surface")

        monkeypatch.setattr(worker_module, "slice_image", failing_slice_image)

        with SliceWorker(messages.append) as worker:
            worker.submit(create_test_image(10, 10), SliceConfig())
            worker.wait(timeout=10)

        assert len(messages) == 1
        assert not messages[0].success
        assert messages[0].error == "no memory for surface"
        assert isinstance(messages[0].exception, SurfaceAllocationError)

    def test_not_busy_when_idle(self, messages):
        """busy reflects outstanding requests."""
        with SliceWorker(messages.append) as worker:
            assert not worker.busy
            worker.submit(create_test_image(1080, 1080), SliceConfig())
            worker.wait(timeout=10)
            assert not worker.busy


class TestSliceMessage:
    """Test cases for SliceMessage."""

    def test_success_flag(self):
        assert SliceMessage(request_id=1).success
        assert not SliceMessage(request_id=1, error="boom").success
