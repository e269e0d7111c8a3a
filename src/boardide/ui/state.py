import asyncio
import streamlit as st
from boardide.config import settings
from boardide.logging import bind_session_id, new_session_id
from boardide.session.controller import SessionController
from boardide.storage.documents import DocumentStore
from boardide.storage.files import DownloadQueue
from boardide.storage.kv import HandoffSlot
from boardide.workspace import build_controller, open_handoff, open_kv

HOME_PAGE = "home"
EDITOR_PAGE = "editor"
FILES_PAGE = "files"

PAGE_PATHS = {
    HOME_PAGE: "src/boardide/ui/pages/1_home.py",
    EDITOR_PAGE: "src/boardide/ui/pages/2_editor.py",
    FILES_PAGE: "src/boardide/ui/pages/3_files.py",
}

EDITOR_KEY = "editor_text"
DISCARD_KEY = "discard_confirmed"

NOTICE_ICONS = {"success": "✅", "info": "ℹ️", "warning": "⚠️", "error": "🚨"}


@st.cache_resource
def _shared_kv():
    # One storage backend per server process, like one origin per browser
    return open_kv()


def _confirm_from_widget(message: str) -> bool:
    return bool(st.session_state.get(DISCARD_KEY, False))


def init_session():
    """Initialize session state variables."""
    if "session_id" not in st.session_state:
        st.session_state["session_id"] = new_session_id()
    bind_session_id(st.session_state["session_id"])

    if "controller" not in st.session_state:
        downloads = DownloadQueue()
        controller = build_controller(
            _shared_kv(),
            downloader=downloads,
            confirm=_confirm_from_widget,
        )
        controller.attach_pages(EDITOR_PAGE)
        st.session_state["downloads"] = downloads
        st.session_state["controller"] = controller

def get_controller() -> SessionController:
    return st.session_state["controller"]

def get_store() -> DocumentStore:
    return get_controller().store

def get_handoff() -> HandoffSlot:
    return open_handoff(_shared_kv(), settings)

def run_async(coro):
    """Drive a controller coroutine to completion from a Streamlit callback."""
    return asyncio.run(coro)

def sync_editor_widget():
    """Push the editor buffer into the text area after a programmatic load."""
    st.session_state[EDITOR_KEY] = get_controller().editor.get_content()
    st.session_state[DISCARD_KEY] = False

def show_page(page_id: str):
    """Announce the page to the session's listeners and navigate to it."""
    get_controller().bus.publish("page.shown", page_id)
    st.switch_page(PAGE_PATHS[page_id])

def render_notices():
    for notice in get_controller().notifier.drain():
        st.toast(notice.message, icon=NOTICE_ICONS.get(notice.status, "ℹ️"))

def render_downloads():
    downloads: DownloadQueue = st.session_state["downloads"]
    for i, item in enumerate(downloads.drain()):
        st.download_button(
            f"⬇️ Save {item.filename}",
            data=item.data,
            file_name=item.filename,
            mime=item.mime_type,
            key=f"download_{item.filename}_{i}",
        )
