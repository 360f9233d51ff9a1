"""Tests for the reader session state machine."""
import asyncio

import pytest

from src.core.errors import ConfigurationError, NetworkError, ServiceError
from src.reader.models import Region, Status, TranslationMode
from src.reader.playback import HandleState
from src.reader.session import ReaderSession

IMAGE = b"\x89PNG fake image bytes"
HELLO = Region(text="Hello", box=(100, 100, 200, 300))
LO = Region(text="lo", box=(150, 250, 180, 290))


async def finish_playback(session, sink):
    handle = session.playback.current
    assert handle is not None
    sink.finish()
    await handle.wait()
    return handle


class TestImageLoading:
    """idle -> uploading -> detecting -> ready | error"""

    @pytest.mark.asyncio
    async def test_detection_success(self, session, statuses, detector):
        snapshot = await session.load_image(IMAGE, "image/jpeg")

        assert snapshot.status is Status.READY
        assert snapshot.regions == (HELLO, LO)
        assert snapshot.active_region is None
        assert snapshot.last_error is None
        assert statuses == [Status.UPLOADING, Status.DETECTING, Status.READY]
        assert detector.calls == [(IMAGE, "image/jpeg")]

    @pytest.mark.asyncio
    async def test_empty_detection_is_ready(self, session, detector):
        detector.regions = []
        snapshot = await session.load_image(IMAGE)
        assert snapshot.status is Status.READY
        assert snapshot.regions == ()

    @pytest.mark.asyncio
    async def test_detection_failure_enters_error(self, session, statuses, detector):
        detector.error = NetworkError("connection reset")
        snapshot = await session.load_image(IMAGE)

        assert snapshot.status is Status.ERROR
        assert snapshot.error_kind == "network"
        assert snapshot.last_error == NetworkError.default_user_message
        assert statuses[-1] is Status.ERROR

    @pytest.mark.asyncio
    async def test_configuration_error_has_stable_message(self, session, detector):
        detector.error = ConfigurationError("API_KEY_MISSING: raw backend text")
        snapshot = await session.load_image(IMAGE)

        assert snapshot.error_kind == "configuration"
        assert snapshot.last_error == ConfigurationError.default_user_message
        assert "API_KEY_MISSING" not in snapshot.last_error

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_classified(self, session, detector):
        detector.error = KeyError("blocks")
        snapshot = await session.load_image(IMAGE)
        assert snapshot.status is Status.ERROR
        assert snapshot.error_kind == "service"

    @pytest.mark.asyncio
    async def test_empty_image_never_reaches_detector(self, session, detector):
        snapshot = await session.load_image(b"")
        assert snapshot.status is Status.ERROR
        assert snapshot.error_kind == "input"
        assert detector.calls == []

    @pytest.mark.asyncio
    async def test_new_upload_recovers_from_error(self, session, detector):
        detector.error = ServiceError("bad json")
        await session.load_image(IMAGE)
        detector.error = None

        snapshot = await session.load_image(IMAGE)
        assert snapshot.status is Status.READY
        assert snapshot.last_error is None

    @pytest.mark.asyncio
    async def test_new_upload_replaces_regions(self, session, detector):
        await session.load_image(IMAGE)
        detector.regions = [LO]
        snapshot = await session.load_image(b"other image")
        assert snapshot.regions == (LO,)

    @pytest.mark.asyncio
    async def test_superseded_detection_is_discarded(self, session, detector):
        detector.gate = asyncio.Event()
        slow = asyncio.create_task(session.load_image(IMAGE))
        await asyncio.sleep(0)
        assert session.status is Status.DETECTING

        session.clear()
        detector.gate.set()
        await slow

        assert session.status is Status.IDLE
        assert session.regions == ()

    @pytest.mark.asyncio
    async def test_detection_timeout_is_network_error(self, detector, translator, synthesizer, playback):
        detector.gate = asyncio.Event()  # never released
        session = ReaderSession(detector, translator, synthesizer, playback, timeout=0.01)

        snapshot = await session.load_image(IMAGE)
        assert snapshot.status is Status.ERROR
        assert snapshot.error_kind == "network"


class TestTapping:
    """ready -> [translating ->] speaking -> ready"""

    @pytest.mark.asyncio
    async def test_original_mode_skips_translation(self, session, statuses, translator, synthesizer, sink):
        await session.load_image(IMAGE)
        statuses.clear()

        await session.select_region(HELLO, TranslationMode.ORIGINAL)

        assert session.status is Status.SPEAKING
        assert session.active_region == HELLO
        assert translator.calls == []
        assert synthesizer.calls == ["Hello"]
        assert len(sink.started) == 1

        await finish_playback(session, sink)
        assert statuses == [Status.SPEAKING, Status.READY]
        assert session.active_region is None

    @pytest.mark.asyncio
    async def test_translation_mode_translates_first(self, session, statuses, translator, synthesizer, sink):
        await session.load_image(IMAGE)
        statuses.clear()

        snapshot = await session.select_region(HELLO, "translate_en")

        assert translator.calls == [("Hello", TranslationMode.TRANSLATE_EN)]
        assert synthesizer.calls == ["Hello (English)"]
        assert snapshot.spoken_text == "Hello (English)"

        await finish_playback(session, sink)
        assert statuses == [Status.TRANSLATING, Status.SPEAKING, Status.READY]

    @pytest.mark.asyncio
    async def test_session_mode_is_default(self, session, translator):
        await session.load_image(IMAGE)
        session.set_mode(TranslationMode.TRANSLATE_ZH)
        await session.select_region(LO)
        assert translator.calls == [("lo", TranslationMode.TRANSLATE_ZH)]

    @pytest.mark.asyncio
    async def test_active_region_set_while_translating(self, session, translator):
        await session.load_image(IMAGE)
        translator.gates["Hello"] = asyncio.Event()

        flow = asyncio.create_task(session.select_region(HELLO, "translate_zh"))
        await asyncio.sleep(0)

        assert session.status is Status.TRANSLATING
        assert session.active_region == HELLO

        translator.gates["Hello"].set()
        await flow
        assert session.status is Status.SPEAKING

    @pytest.mark.asyncio
    async def test_translation_failure_returns_to_ready(self, session, translator, synthesizer):
        await session.load_image(IMAGE)
        translator.error = ServiceError("model refused")

        snapshot = await session.select_region(HELLO, "translate_en")

        assert snapshot.status is Status.READY
        assert snapshot.active_region is None
        assert snapshot.error_kind == "service"
        assert synthesizer.calls == []

    @pytest.mark.asyncio
    async def test_synthesis_failure_returns_to_ready(self, session, synthesizer, sink):
        await session.load_image(IMAGE)
        synthesizer.error = ServiceError("no audio payload")

        snapshot = await session.select_region(HELLO)

        assert snapshot.status is Status.READY
        assert snapshot.active_region is None
        assert snapshot.last_error == ServiceError.default_user_message
        assert sink.started == []

    @pytest.mark.asyncio
    async def test_empty_audio_is_service_error(self, session, synthesizer):
        await session.load_image(IMAGE)
        synthesizer.audio = b"\x01"

        snapshot = await session.select_region(HELLO)
        assert snapshot.status is Status.READY
        assert snapshot.error_kind == "service"

    @pytest.mark.asyncio
    async def test_new_tap_clears_previous_error(self, session, synthesizer):
        await session.load_image(IMAGE)
        synthesizer.error = ServiceError("boom")
        await session.select_region(HELLO)
        synthesizer.error = None

        snapshot = await session.select_region(HELLO)
        assert snapshot.last_error is None
        assert snapshot.status is Status.SPEAKING

    @pytest.mark.asyncio
    async def test_tap_ignored_before_ready(self, session, synthesizer):
        snapshot = await session.select_region(HELLO)
        assert snapshot.status is Status.IDLE
        assert synthesizer.calls == []

    @pytest.mark.asyncio
    async def test_tap_outside_regions_changes_nothing(self, session, statuses, synthesizer):
        await session.load_image(IMAGE)
        statuses.clear()

        hit = await session.tap_at(950, 950, 1000, 1000)

        assert hit is None
        assert statuses == []
        assert session.status is Status.READY
        assert synthesizer.calls == []

    @pytest.mark.asyncio
    async def test_tap_with_unrendered_image(self, session, synthesizer):
        await session.load_image(IMAGE)
        assert await session.tap_at(10, 10, 0, 0) is None
        assert synthesizer.calls == []


class TestSupersession:
    """A new tap cancels the old flow; stale completions are ignored."""

    @pytest.mark.asyncio
    async def test_new_tap_stops_playing_audio(self, session, sink):
        await session.load_image(IMAGE)
        await session.select_region(HELLO)
        first = session.playback.current

        await session.select_region(LO)
        second = session.playback.current

        assert first.state is HandleState.STOPPED
        assert second is not first
        assert session.active_region == LO

        # The stopped stream ending must not flip the session back to ready
        sink.finish(0)
        await asyncio.sleep(0)
        assert session.status is Status.SPEAKING

        await finish_playback(session, sink)
        assert session.status is Status.READY

    @pytest.mark.asyncio
    async def test_stale_translation_is_discarded(self, session, translator, synthesizer):
        await session.load_image(IMAGE)
        translator.gates["Hello"] = asyncio.Event()

        gen1 = asyncio.create_task(session.select_region(HELLO, "translate_en"))
        await asyncio.sleep(0)
        assert session.status is Status.TRANSLATING

        await session.select_region(LO, "original")
        assert session.status is Status.SPEAKING
        assert session.active_region == LO

        translator.gates["Hello"].set()
        await gen1

        assert session.status is Status.SPEAKING
        assert session.active_region == LO
        assert synthesizer.calls == ["lo"]

    @pytest.mark.asyncio
    async def test_stale_failure_is_discarded(self, session, translator):
        await session.load_image(IMAGE)
        translator.gates["Hello"] = asyncio.Event()
        translator.error = NetworkError("late failure")

        gen1 = asyncio.create_task(session.select_region(HELLO, "translate_en"))
        await asyncio.sleep(0)
        await session.select_region(LO, "original")

        translator.gates["Hello"].set()
        await gen1

        assert session.last_error is None
        assert session.active_region == LO

    @pytest.mark.asyncio
    async def test_clear_stops_audio_and_resets(self, session, sink):
        await session.load_image(IMAGE)
        await session.select_region(HELLO)
        handle = session.playback.current

        session.clear()

        assert session.status is Status.IDLE
        assert session.regions == ()
        assert session.active_region is None
        assert handle.state is HandleState.STOPPED


class TestEndToEnd:
    """Upload, tap the nested word, hear it."""

    @pytest.mark.asyncio
    async def test_nested_word_is_read(self, session, statuses, synthesizer, sink):
        await session.load_image(IMAGE)
        statuses.clear()

        hit = await session.tap_at(270, 160, 1000, 1000, mode="original")

        assert hit == LO
        assert synthesizer.calls == ["lo"]
        await finish_playback(session, sink)
        assert statuses == [Status.SPEAKING, Status.READY]

    @pytest.mark.asyncio
    async def test_listener_failure_does_not_break_session(self, session):
        def broken(snapshot):
            raise RuntimeError("presentation bug")

        session.add_listener(broken)
        snapshot = await session.load_image(IMAGE)
        assert snapshot.status is Status.READY

    @pytest.mark.asyncio
    async def test_unsubscribe(self, session):
        seen = []
        unsubscribe = session.add_listener(seen.append)
        unsubscribe()
        await session.load_image(IMAGE)
        assert seen == []
