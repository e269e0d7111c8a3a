import streamlit as st
from datetime import datetime
from boardide.errors import WorkspaceError
from boardide.storage.files import build_zip_archive, zip_filename
from boardide.ui.state import (
    EDITOR_PAGE, get_controller, get_handoff, get_store, render_downloads, render_notices, show_page,
)

st.title("File Manager")

controller = get_controller()
store = get_store()

def format_timestamp(timestamp) -> str:
    if not timestamp:
        return "N/A"
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")

search = st.text_input("Search files", placeholder="Search by name...")

try:
    files = store.search(search)
except Exception as e:
    st.error(f"Error loading files: {e}")
    controller.notifier.alert("Failed to load file list.", "error")
    files = []

# --- Download all ---
if st.button("⬇️ Download All (ZIP)", disabled=not files):
    try:
        data, added, failed = build_zip_archive(store, [f.id for f in files])
        name = zip_filename()
        controller.downloader(name, data)
        msg = f"Downloaded {added} file(s) as {name}.{' Some files failed to load.' if failed else ''}"
        controller.notifier.alert(msg, "warning" if failed else "success", duration_ms=4000)
    except WorkspaceError as e:
        controller.notifier.alert(f"Failed to create ZIP: {e}", "error")

render_downloads()
st.divider()

if not files:
    st.info("No files found matching your search." if search else "No files found in the IDE storage.")
else:
    for f in files:
        with st.container(border=True):
            c1, c2, c3, c4, c5, c6 = st.columns([3, 2, 1, 1, 1, 1])
            c1.write(f"**{f.name}**")
            c2.caption(format_timestamp(f.metadata.updated_at))

            if c3.button("Open", key=f"open_{f.id}"):
                if controller.confirm_discard():
                    get_handoff().offer(f.id)
                    show_page(EDITOR_PAGE)
                else:
                    st.warning("The editor has unsaved changes; confirm discarding them in the editor first.")

            with c4.popover("Rename"):
                new_name = st.text_input("New name", value=f.name, key=f"rename_input_{f.id}")
                if st.button("Apply", key=f"rename_{f.id}"):
                    if new_name.strip() == f.name:
                        pass
                    elif not new_name.strip():
                        controller.notifier.alert("File name cannot be empty.", "warning")
                    else:
                        try:
                            store.rename(f.id, new_name)
                            if controller.state.current_file_id == f.id:
                                controller.state.current_file_name = new_name.strip()
                            controller.notifier.alert(f'File renamed to "{new_name.strip()}".', "success")
                            st.rerun()
                        except WorkspaceError as e:
                            controller.notifier.alert(f"Failed to rename file: {e}", "error")

            if c5.button("Download", key=f"dl_{f.id}"):
                try:
                    filename = store.export_file(f.id, controller.downloader)
                    controller.notifier.alert(f'Downloaded "{filename}".', "success", duration_ms=2000)
                    st.rerun()
                except WorkspaceError as e:
                    controller.notifier.alert(f"Failed to download file: {e}", "error")

            with c6.popover("Delete"):
                st.write("Permanently delete this file?")
                if st.button("Delete", key=f"del_{f.id}", type="primary"):
                    store.delete(f.id)
                    controller.notifier.alert("File deleted successfully.", "success")
                    st.rerun()

render_notices()
