import streamlit as st
from datetime import datetime
from boardide.config import settings
from boardide.errors import WorkspaceError
from boardide.share import extract_share_token
from boardide.storage.files import read_upload
from boardide.templates import TEMPLATES
from boardide.ui.state import (
    DISCARD_KEY, EDITOR_KEY, HOME_PAGE,
    get_controller, render_downloads, render_notices, run_async, show_page, sync_editor_widget,
)

controller = get_controller()

# --- Session entry: shared link first, then a pending "open this file" request ---
share_token = extract_share_token(st.query_params.to_dict(), settings.SHARE_PARAM_NAME)
if share_token or controller.pending_initialize or EDITOR_KEY not in st.session_state:
    run_async(controller.initialize(share_token))
    if share_token:
        # Consume the link so reruns do not reload it
        del st.query_params[settings.SHARE_PARAM_NAME]
    sync_editor_widget()

state = controller.state

# --- Callbacks ---
def on_edit():
    controller.editor.user_edit(st.session_state[EDITOR_KEY])

def on_version_change():
    run_async(controller.change_version(st.session_state["board_version"]))
    # Reverts the selector when the load failed
    st.session_state["board_version"] = controller.state.selected_version

def on_new(template: str):
    if run_async(controller.new_file(template)):
        sync_editor_widget()

def on_save():
    controller.save()

def on_save_as():
    if controller.save_as(st.session_state.get("save_as_name", "")):
        st.session_state["save_as_name"] = ""

def on_upload():
    uploaded = st.session_state.get("upload_file")
    if uploaded is None:
        return
    try:
        name, text = read_upload(uploaded)
    except WorkspaceError as e:
        controller.notifier.alert(str(e), "error")
        return
    if run_async(controller.load_external(name, text)):
        sync_editor_widget()

# --- Toolbar ---
title = state.current_file_name or "Untitled"
st.title(f"{'● ' if state.is_dirty else ''}{title}")

st.session_state["board_version"] = state.selected_version
t1, t2, t3, t4 = st.columns([2, 2, 2, 1])
t1.selectbox(
    "Board version",
    controller.supported_versions,
    key="board_version",
    on_change=on_version_change,
    disabled=state.is_version_loading,
)
with t2.popover("📄 New File"):
    template = st.selectbox("Template", list(TEMPLATES), key="new_template")
    st.button("Create", on_click=on_new, args=(template,))
with t3.popover("💾 Save File"):
    st.button("Save", on_click=on_save, disabled=not state.is_bound)
    st.text_input("Save as", key="save_as_name", placeholder="my-board.js")
    st.button("Save As", on_click=on_save_as)
    st.button("To Computer", on_click=controller.save_to_computer)
if t4.button("Exit"):
    if run_async(controller.exit()):
        # Next visit starts a fresh session
        st.session_state.pop(EDITOR_KEY, None)
        show_page(HOME_PAGE)

with st.expander("Open from computer"):
    st.file_uploader("Script file", type=["js", "txt"], key="upload_file", on_change=on_upload)

if state.is_dirty:
    st.checkbox("Discard unsaved changes when leaving", key=DISCARD_KEY)

st.text_area("Code", key=EDITOR_KEY, height=480, on_change=on_edit, label_visibility="collapsed")

# --- Share ---
with st.expander("Share"):
    base_url = st.text_input("App URL", value="http://localhost:8501/editor", key="share_base_url")
    if st.button("Create share link"):
        link = controller.share_link(base_url)
        if link:
            st.code(link, language=None)

render_downloads()

# --- Status & autosave timer ---
@st.fragment(run_every=1)
def status_bar():
    controller.scheduler.run_due()
    s = controller.state
    parts = []
    if s.is_version_loading:
        parts.append(f"⏳ Loading board {s.selected_version}...")
    elif controller.can_run:
        parts.append(f"🟢 Board {s.current_board_version}")
    else:
        parts.append("🔴 Board library not loaded")
    if s.is_bound:
        if s.is_dirty:
            parts.append("Unsaved changes")
        elif s.last_saved_at:
            parts.append(f"Saved at {datetime.fromtimestamp(s.last_saved_at / 1000):%H:%M:%S}")
    else:
        parts.append("Not saved to the IDE")
    st.caption(" · ".join(parts))
    render_notices()

status_bar()
