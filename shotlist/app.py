from __future__ import annotations

import os
import sys
from datetime import datetime
from typing import List

import streamlit as st
from dotenv import load_dotenv

# Ensure project root is on sys.path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Load environment
load_dotenv()

from shotlist.config import load_config  # noqa: E402
from shotlist.gui.pipeline import Pipeline  # noqa: E402
from shotlist.gui.state import SessionState  # noqa: E402
from shotlist.services import connectivity_probe, openrouter_models_probe  # noqa: E402
from shotlist.services.prompts import DEFAULT_STYLE, FRAMING_OPTIONS, STYLE_OPTIONS  # noqa: E402
from shotlist.services.storage import data_url_to_bytes_and_mime, shot_file_name  # noqa: E402
from shotlist.types import GeneratedShot, ShotListError  # noqa: E402


SIDEBAR_THUMB_WIDTH = 180


# --------------------------
# Page configuration & Styles
# --------------------------
st.set_page_config(
    page_title="Cinematic Shot List Generator",
    layout="wide",
    page_icon="🎬",
    initial_sidebar_state="expanded",
)

st.markdown(
    """
<style>
  .main-header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 1.25rem 1rem; border-radius: 10px; margin-bottom: 1.25rem; text-align: center; }
  .main-header h1 { margin: 0; font-size: 2.25rem; font-weight: 700; }
  .status-indicator { padding: 0.35rem 0.75rem; border-radius: 16px; font-size: 0.85rem; font-weight: 600; display: inline-block; }
  .status-ok { background-color: #d4edda; color: #155724; border: 1px solid #c3e6cb; }
  .status-fail { background-color: #f8d7da; color: #721c24; border: 1px solid #f5c6cb; }
  .log-container { background: #2d3748; color: #e2e8f0; border-radius: 8px; padding: 0.75rem; font-family: 'Monaco','Menlo','Ubuntu Mono',monospace; font-size: 0.75rem; max-height: 320px; overflow-y: auto; }
</style>
""",
    unsafe_allow_html=True,
)


# --------------------------
# Session State & Utilities
# --------------------------
def _log(message: str) -> None:
    ts = datetime.now().strftime("%H:%M:%S")
    st.session_state.session.logs.append(f"[{ts}] {message}")


def _init_session() -> None:
    if "initialized" not in st.session_state:
        st.session_state.initialized = True
        st.session_state.cfg = load_config()
        st.session_state.session = SessionState()
        st.session_state.pipeline = None
        st.session_state.reference_image = None
        st.session_state.error = None
        if st.session_state.cfg.openrouter_api_key:
            st.session_state.pipeline = Pipeline(st.session_state.cfg, on_log=_log)


def _header() -> None:
    st.markdown(
        """
        <div class="main-header">
            <h1>🎬 Cinematic Shot List Generator</h1>
            <p>Turn a script into an illustrated, consistent shot list</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


# --------------------------
# Sidebar: Inputs
# --------------------------
def _sidebar() -> None:
    st.subheader("🔗 Connection")
    cfg = st.session_state.cfg
    if not cfg.openrouter_api_key:
        st.error("OPENROUTER_API_KEY is missing. Add it to your environment or .env.")
    else:
        ok, msg = connectivity_probe()
        klass = "status-ok" if ok else "status-fail"
        label = "✅ Connected" if ok else "❌ Disconnected"
        st.markdown(f'<div class="status-indicator {klass}">{label}</div>', unsafe_allow_html=True)
        if not ok:
            st.caption(f"Error: {msg}")
        else:
            models_ok, models_msg = openrouter_models_probe(cfg.openrouter_api_key)
            st.caption(f"{'✅' if models_ok else '❌'} Models: {models_msg}")

    st.divider()

    st.subheader("📝 Script")
    st.text_area("Your script", key="script_input", height=240, placeholder="Paste your script here...")

    ref_file = st.file_uploader("Idea image (optional)", type=["png", "jpg", "jpeg", "webp"], key="ref_uploader")
    if ref_file is not None and st.session_state.pipeline is not None:
        try:
            st.session_state.reference_image = st.session_state.pipeline.prepare_reference_image(ref_file.getvalue())
            st.image(st.session_state.reference_image, caption="Idea image", width=SIDEBAR_THUMB_WIDTH)
        except Exception as e:  # noqa: BLE001
            st.session_state.reference_image = None
            st.caption(f"Image unavailable: {e}")
    elif ref_file is None:
        st.session_state.reference_image = None

    st.selectbox("Style", options=STYLE_OPTIONS, index=STYLE_OPTIONS.index(DEFAULT_STYLE), key="style_input")
    st.selectbox("Framing", options=FRAMING_OPTIONS, index=0, key="framing_input")

    busy = st.session_state.session.in_progress
    disabled = busy or st.session_state.pipeline is None
    st.button("🎬 Generate", type="primary", disabled=disabled, use_container_width=True, key="generate_btn")


# --------------------------
# Main Content
# --------------------------
def _render_shot_card(shot: GeneratedShot) -> None:
    with st.container(border=True):
        col_img, col_text = st.columns([1, 2])
        with col_img:
            st.image(shot.image_url, caption=f"Shot {shot.shot_number}", use_container_width=True)
            data, mime = data_url_to_bytes_and_mime(shot.image_url)
            st.download_button(
                label="💾 Download",
                data=data,
                file_name=shot_file_name(shot),
                mime=mime,
                key=f"dl_{shot.shot_number}",
                use_container_width=True,
            )
        with col_text:
            st.markdown(f"### {shot.shot_number}. {shot.shot_type}")
            st.write(shot.description)
            st.caption(f"**Angle:** {shot.camera_angle} · **Lens:** {shot.lens} · **Movement:** {shot.movement}")


def _run_generate(timeline) -> None:
    session: SessionState = st.session_state.session
    st.session_state.error = None
    script = st.session_state.get("script_input", "")
    if not script.strip():
        st.session_state.error = "Please enter a script."
        return
    status = st.empty()
    status.info("🔄 Analyzing script and setting up scenes...")
    shots = None
    try:
        shots = st.session_state.pipeline.generate(
            session,
            script,
            st.session_state.reference_image,
            st.session_state.style_input,
            st.session_state.framing_input,
        )
        for shot in shots:
            total = len(session.analysis.shot_list) if session.analysis else 0
            with timeline:
                _render_shot_card(shot)
            if len(session.shots) < total:
                status.info(f"🔄 Generating shot {len(session.shots) + 1} of {total}...")
    except ShotListError as e:
        st.session_state.error = f"An error occurred: {e}"
    except Exception as e:  # noqa: BLE001
        st.session_state.error = f"An error occurred: {e}. Please check the activity log for details."
    finally:
        if shots is not None:
            shots.close()
        status.empty()


def _run_add_scene() -> None:
    st.session_state.error = None
    try:
        with st.spinner("Adding scene..."):
            st.session_state.pipeline.add_scene(st.session_state.session)
    except Exception as e:  # noqa: BLE001
        st.session_state.error = f"Failed to add a new scene: {e}"


def _main_content() -> None:
    session: SessionState = st.session_state.session
    timeline = st.container()

    if st.session_state.get("generate_btn"):
        _run_generate(timeline)
    else:
        with timeline:
            for shot in session.shots:
                _render_shot_card(shot)

    if st.session_state.error:
        st.error(st.session_state.error)

    if not session.shots and not st.session_state.error:
        st.info('Paste your script, upload an optional idea image, and click "Generate" to create your cinematic timeline.')
        return

    if session.shots:
        if st.button("➕ Add scene", disabled=not session.can_add_scene, use_container_width=True):
            _run_add_scene()
            st.rerun()


# --------------------------
# Right Panel: Logs
# --------------------------
def _right_panel() -> None:
    st.subheader("📋 Activity Log")
    logs: List[str] = st.session_state.session.logs
    if logs:
        st.markdown("<div class=\"log-container\">" + "<br>".join(logs[-40:]) + "</div>", unsafe_allow_html=True)
        if st.button("🗑️ Clear Logs", use_container_width=True):
            st.session_state.session.logs.clear()
    else:
        st.caption("No activity yet")


# --------------------------
# Entry Point
# --------------------------
def main() -> None:
    _init_session()
    _header()

    col1, col2, col3 = st.columns([1, 2.6, 0.8])
    with col1:
        _sidebar()
    with col2:
        _main_content()
    with col3:
        _right_panel()


if __name__ == "__main__":
    main()
