import asyncio
import io

import numpy as np
import soundfile as sf

from livescribe.audio.capture import QueueCaptureSource
from livescribe.services.processor import SegmentProcessor
from livescribe.services.session import SessionController

from conftest import FakeTranscriber, settle

CAPTURE_RATE = 44100
CHUNK = np.zeros(CAPTURE_RATE // 10, dtype=np.float32)


def _controller(transcriber, clock=None, display=None, interval=30):
    source = QueueCaptureSource(CAPTURE_RATE)
    processor = SegmentProcessor(transcriber, target_rate=16000, display=display)
    return source, SessionController(source, processor, interval=interval, clock=clock)


def test_sixty_one_second_stream_yields_two_windows(virtual_clock, recording_display):
    transcriber = FakeTranscriber()

    async def scenario():
        source, controller = _controller(transcriber, clock=virtual_clock, display=recording_display)
        controller.start_session()
        await settle()
        for ms in range(0, 65_000, 100):
            await virtual_clock.advance_to(ms)
            if ms < 61_000:
                source.push(CHUNK)
                await settle()
        await virtual_clock.advance_to(65_000)
        buffered = controller.scheduler.buffered_chunks
        controller.stop_session()
        await controller.wait_idle()
        await virtual_clock.advance_to(120_000)
        return controller, buffered

    controller, buffered = asyncio.run(scenario())
    assert buffered == 10
    assert len(transcriber.payloads) == 2
    for payload in transcriber.payloads:
        info = sf.info(io.BytesIO(payload))
        assert info.samplerate == 16000
        assert info.frames == 480_000
    assert [r.text for r in controller.results] == ["window 1", "window 2"]
    assert len(recording_display.shown) == 2
    assert not controller.is_running


def test_start_and_stop_are_idempotent(fake_transcriber):
    async def scenario():
        _, controller = _controller(fake_transcriber)
        assert controller.stop_session() is False
        assert controller.start_session() is True
        generation = controller.generation
        assert controller.start_session() is False
        assert controller.generation == generation
        assert controller.stop_session() is True
        assert controller.stop_session() is False

    asyncio.run(scenario())


def test_restart_clears_previous_results(fake_transcriber):
    async def scenario():
        source, controller = _controller(fake_transcriber)
        controller.start_session()
        source.push(CHUNK)
        await settle()
        controller.scheduler.tick()
        await controller.wait_idle()
        first = controller.results
        controller.stop_session()
        kept_after_stop = controller.results
        controller.start_session()
        restarted = controller.results
        buffered = controller.scheduler.buffered_chunks
        controller.stop_session()
        return first, kept_after_stop, restarted, buffered

    first, kept_after_stop, restarted, buffered = asyncio.run(scenario())
    assert len(first) == 1
    assert kept_after_stop == first
    assert restarted == ()
    assert buffered == 0


def test_result_from_previous_session_is_discarded(recording_display):
    async def scenario():
        gate = asyncio.Event()
        transcriber = FakeTranscriber(gate=gate)
        source, controller = _controller(transcriber, display=recording_display)
        controller.start_session()
        source.push(CHUNK)
        await settle()
        controller.scheduler.tick()
        await settle()
        controller.stop_session()
        controller.start_session()
        gate.set()
        await controller.wait_idle()
        controller.stop_session()
        return transcriber, controller

    transcriber, controller = asyncio.run(scenario())
    assert len(transcriber.payloads) == 1
    assert controller.results == ()
    assert recording_display.shown == []


def test_late_result_of_stopped_session_is_kept():
    async def scenario():
        gate = asyncio.Event()
        transcriber = FakeTranscriber(gate=gate)
        source, controller = _controller(transcriber)
        controller.start_session()
        source.push(CHUNK)
        await settle()
        controller.scheduler.tick()
        await settle()
        controller.stop_session()
        gate.set()
        await controller.wait_idle()
        return controller

    controller = asyncio.run(scenario())
    assert [r.text for r in controller.results] == ["window 1"]


def test_failed_window_does_not_stop_session():
    async def scenario():
        transcriber = FakeTranscriber(error=RuntimeError("timeout"))
        source, controller = _controller(transcriber)
        controller.start_session()
        for _ in range(2):
            source.push(CHUNK)
            await settle()
            controller.scheduler.tick()
            await controller.wait_idle()
        running = controller.is_running
        controller.stop_session()
        return transcriber, controller, running

    transcriber, controller, running = asyncio.run(scenario())
    assert running is True
    assert len(transcriber.payloads) == 2
    assert controller.results == ()


def test_capture_failure_force_stops_session(fake_transcriber):
    async def scenario():
        source, controller = _controller(fake_transcriber)
        controller.start_session()
        source.fail(OSError("input overflow"))
        await settle()
        stopped = not controller.is_running
        error = controller.last_error
        restarted = controller.start_session()
        error_after_restart = controller.last_error
        controller.stop_session()
        return stopped, error, restarted, error_after_restart

    stopped, error, restarted, error_after_restart = asyncio.run(scenario())
    assert stopped
    assert isinstance(error, OSError)
    assert restarted is True
    assert error_after_restart is None


def test_stop_with_cancel_pending_drops_in_flight_window(recording_display):
    async def scenario():
        gate = asyncio.Event()
        transcriber = FakeTranscriber(gate=gate)
        source, controller = _controller(transcriber, display=recording_display)
        controller.start_session()
        source.push(CHUNK)
        await settle()
        controller.scheduler.tick()
        await settle()
        (task,) = controller.scheduler._inflight
        controller.stop_session(cancel_pending=True)
        gate.set()
        await controller.wait_idle()
        return transcriber, controller, task

    transcriber, controller, task = asyncio.run(scenario())
    assert len(transcriber.payloads) == 1
    assert task.cancelled()
    assert controller.results == ()
    assert recording_display.shown == []
    assert controller.scheduler.pending == 0
