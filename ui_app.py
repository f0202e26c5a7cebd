"""Browser UI for the capture -> 3D model workflow.

Run with:
    streamlit run ui_app.py
"""
from __future__ import annotations

import asyncio
from pathlib import Path

import streamlit as st

from palace3d.core.logger import setup_logging
from palace3d.core.settings import ensure_directories, settings
from palace3d.schemas.contracts import WorkflowResult
from palace3d.services.capture import BytesCaptureSource, CaptureSource, FileCaptureSource, PlaceholderCaptureSource
from palace3d.services.model_store import ModelStore
from palace3d.services.workflow import build_orchestrator

st.set_page_config(page_title="Palace3D", page_icon="🏛️", layout="wide")
setup_logging(settings.log_level)
ensure_directories()


def pick_capture(camera_frame, uploaded) -> CaptureSource:
    if camera_frame is not None:
        return BytesCaptureSource(camera_frame.getvalue())
    if uploaded is not None:
        return BytesCaptureSource(uploaded.getvalue())
    if settings.capture_path:
        return FileCaptureSource(settings.capture_path)
    return PlaceholderCaptureSource()


def run_once(capture: CaptureSource, caption_box, providers: dict[str, str]) -> WorkflowResult:
    orchestrator = build_orchestrator(
        capture,
        caption_sink=lambda text: caption_box.info(f"Caption: {text}"),
        **providers,
    )
    return asyncio.run(orchestrator.run())


st.title("🏛️ Palace3D")
st.caption("Capture an object, get a 3D model for your memory palace")

with st.sidebar:
    st.header("Services")
    providers = {}
    providers["caption_provider"] = st.selectbox("Captioning", ["gemini", "mock"], index=0 if settings.caption_provider == "gemini" else 1)
    providers["image_provider"] = st.selectbox("Image generation", ["fal", "mock"], index=0 if settings.image_provider == "fal" else 1)
    providers["mesh_provider"] = st.selectbox("Image to 3D", ["stability", "mock"], index=0 if settings.mesh_provider == "stability" else 1)
    st.markdown("---")
    st.info("API keys are read from environment variables or .env")

col1, col2 = st.columns([1, 1])
with col1:
    camera_frame = st.camera_input("Capture")
    uploaded = st.file_uploader("...or upload an image", type=["png", "jpg", "jpeg", "webp"])
with col2:
    toggled = st.toggle("Start workflow", key="workflow_toggle")
    caption_box = st.empty()

# Any change of the toggle starts a run.
previous = st.session_state.get("workflow_toggle_prev")
st.session_state["workflow_toggle_prev"] = toggled
if previous is not None and previous != toggled:
    with st.spinner("Running workflow... (image generation can take up to a minute)"):
        result = run_once(pick_capture(camera_frame, uploaded), caption_box, providers)
    st.session_state["last_result"] = result

result = st.session_state.get("last_result")
if result is not None:
    if result.caption:
        caption_box.info(f"Caption: {result.caption}")
    if result.ok:
        st.success(f"Saved {Path(result.asset.path).name}")
        st.json(result.loaded.model_dump())
        st.download_button("Download GLB", data=Path(result.asset.path).read_bytes(), file_name=Path(result.asset.path).name)
    else:
        st.error(f"Failed at {result.stage.value} ({result.error_kind}): {result.error}")

st.markdown("---")
st.subheader("Saved models")
models = ModelStore().list_models()
if not models:
    st.write("No models yet.")
for path in models[:20]:
    st.write(f"- `{path.name}` ({path.stat().st_size} bytes)")
