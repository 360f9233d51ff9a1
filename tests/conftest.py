"""Shared fakes for the reader tests.

The fakes stand in for the gateway and the audio device so the session can
be driven deterministically: translations can be held back with per-text
gates and audio streams only end when a test calls ``sink.finish()``.
"""
import asyncio

import numpy as np
import pytest

from src.reader.collaborators import SpeechSynthesizer, TextDetector, Translator
from src.reader.models import Region
from src.reader.playback import AudioSink, PlaybackController
from src.reader.session import ReaderSession

PCM = np.array([0, 16384, -32768, 32767, -16384, 8192], dtype="<i2").tobytes()

HELLO = Region(text="Hello", box=(100, 100, 200, 300))
LO = Region(text="lo", box=(150, 250, 180, 290))


class FakeSink(AudioSink):
    def __init__(self):
        self.started = []
        self.streams = []
        self.stop_calls = 0

    def start(self, samples, sample_rate):
        stream = asyncio.Event()
        self.started.append(samples)
        self.streams.append(stream)
        return stream

    def stop(self):
        self.stop_calls += 1

    async def wait_done(self, stream):
        await stream.wait()

    def finish(self, index=-1):
        self.streams[index].set()


class FakeDetector(TextDetector):
    def __init__(self, regions=None):
        self.regions = list(regions or [])
        self.error = None
        self.gate = None
        self.calls = []

    async def detect(self, image, mime_type="image/png"):
        self.calls.append((image, mime_type))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.regions)


class FakeTranslator(Translator):
    def __init__(self):
        self.error = None
        self.gates = {}
        self.calls = []

    async def translate(self, text, mode):
        self.calls.append((text, mode))
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return f"{text} ({mode.target_language})"


class FakeSynthesizer(SpeechSynthesizer):
    def __init__(self, audio=PCM):
        self.audio = audio
        self.error = None
        self.calls = []

    async def synthesize(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.audio


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def playback(sink):
    return PlaybackController(sink, sample_rate=24000)


@pytest.fixture
def detector():
    return FakeDetector([HELLO, LO])


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def session(detector, translator, synthesizer, playback):
    return ReaderSession(detector, translator, synthesizer, playback, mode="original", timeout=5.0, channels=1)


@pytest.fixture
def statuses(session):
    """Statuses the session moves through, consecutive repeats collapsed."""
    seen = []

    def record(snapshot):
        if not seen or seen[-1] is not snapshot.status:
            seen.append(snapshot.status)

    session.add_listener(record)
    return seen
