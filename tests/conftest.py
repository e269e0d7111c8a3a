import pytest
from boardide.errors import VersionLoadFailure
from boardide.session.controller import SessionController
from boardide.session.editor import EditorBuffer
from boardide.session.loader import LibraryHandle
from boardide.session.scheduler import DeadlineScheduler
from boardide.storage.documents import DocumentStore
from boardide.storage.files import DownloadQueue
from boardide.storage.kv import HandoffSlot, MemoryKeyValueStore

VERSIONS = ["0.3.1", "0.3.0", "0.2.4"]
PREFIX = "EditorStorage:"
OPEN_FILE_KEY = "editorOpenFileId"


class FakeClock:
    """Millisecond clock advanced by hand."""
    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeLoader:
    """Library loader that can fail per version or hold a load open until released."""
    def __init__(self, fail=()):
        self.fail = set(fail)
        self.gate = None
        self.loaded = []
        self.unloaded = []

    async def load(self, version: str) -> LibraryHandle:
        self.loaded.append(version)
        if self.gate is not None:
            await self.gate.wait()
        if version in self.fail:
            raise VersionLoadFailure(version, "script error")
        return LibraryHandle(version=version, url=f"test://{version}", source="// lib")

    async def unload(self, handle: LibraryHandle) -> None:
        self.unloaded.append(handle.version)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv, clock):
    return DocumentStore(kv, PREFIX, clock=clock)


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def controller(kv, store, clock, loader):
    return SessionController(
        store,
        EditorBuffer(),
        loader,
        DeadlineScheduler(clock=clock),
        supported_versions=VERSIONS,
        autosave_delay_ms=2000,
        handoff=HandoffSlot(kv, OPEN_FILE_KEY),
        downloader=DownloadQueue(),
        clock=clock,
    )
