import streamlit as st
from datetime import datetime
from boardide.config import settings
from boardide.ui.state import (
    EDITOR_PAGE, FILES_PAGE, get_controller, get_handoff, get_store, render_notices, show_page,
)

st.title("Board IDE")

controller = get_controller()

def format_timestamp(timestamp) -> str:
    if not timestamp:
        return "N/A"
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")

if controller.state.is_dirty:
    st.warning("The editor has unsaved changes.")
    st.checkbox("Discard unsaved changes when opening another file", key="discard_confirmed")

c1, c2 = st.columns(2)
if c1.button("➕ Create New File", use_container_width=True):
    if controller.confirm_discard():
        # Clear any file id left by a previous navigation
        get_handoff().clear()
        show_page(EDITOR_PAGE)
    else:
        st.warning("Confirm discarding unsaved changes first.")

if c2.button("📁 File Manager", use_container_width=True):
    show_page(FILES_PAGE)

st.divider()

# --- Recent Files ---
st.subheader("Recent Files")
try:
    recent_files = get_store().recent(settings.MAX_RECENT_FILES)
except Exception as e:
    st.error(f"Error loading recent files: {e}")
    recent_files = []

if not recent_files:
    st.info("No recent files found.")
else:
    for f in recent_files:
        col1, col2, col3 = st.columns([4, 3, 1])
        col1.write(f"**{f.name}**")
        col2.caption(f"Modified: {format_timestamp(f.metadata.updated_at)}")
        if col3.button("Open", key=f"recent_{f.id}"):
            if controller.confirm_discard():
                get_handoff().offer(f.id)
                show_page(EDITOR_PAGE)
            else:
                st.warning("Confirm discarding unsaved changes first.")

render_notices()
