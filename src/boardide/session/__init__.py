from boardide.session.controller import SessionController
from boardide.session.editor import EditorBuffer, EditorWidget
from boardide.session.events import EventBus, Notice, NotificationCenter
from boardide.session.loader import HttpLibraryLoader, LibraryHandle, VersionLoader
from boardide.session.scheduler import DeadlineScheduler, TimerHandle
from boardide.session.state import SessionState

__all__ = [
    "SessionController",
    "SessionState",
    "EditorBuffer", "EditorWidget",
    "EventBus", "Notice", "NotificationCenter",
    "HttpLibraryLoader", "LibraryHandle", "VersionLoader",
    "DeadlineScheduler", "TimerHandle",
]
