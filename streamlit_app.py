import streamlit as st
from boardide.config import settings
from boardide.ui.validation import run_all_checks
from boardide.ui.state import init_session, PAGE_PATHS, HOME_PAGE, EDITOR_PAGE, FILES_PAGE

# Page configuration
st.set_page_config(
    page_title="Board IDE",
    page_icon="🧩",
    layout="wide",
    initial_sidebar_state="collapsed",
)

# Run pre-flight checks
errors = run_all_checks()

if errors:
    st.error("🚨 System Configuration Errors")
    for err in errors:
        st.write(f"- {err}")
    st.stop()

# Initialize State
init_session()

# A shared link opens the editor directly
default_page = EDITOR_PAGE if st.query_params.get(settings.SHARE_PARAM_NAME) else HOME_PAGE

pg = st.navigation([
    st.Page(PAGE_PATHS[HOME_PAGE], title="Home", icon="🏠", url_path="home", default=default_page == HOME_PAGE),
    st.Page(PAGE_PATHS[EDITOR_PAGE], title="Editor", icon="📝", url_path="editor", default=default_page == EDITOR_PAGE),
    st.Page(PAGE_PATHS[FILES_PAGE], title="Files", icon="📁", url_path="files"),
])

pg.run()
