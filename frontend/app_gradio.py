"""
Gradio-based demo UI for the face capture demo.

Three screens share one face analyzer and one face store:
- Enrollment: enter a name, capture a neutral face, then smile to store it
- Detect: continuously label faces against the stored records
- Scan: a 3 second landmark scan with a logged blink check

Everything else (webcam frame, controllers, active tab) lives in a
UISession held in gr.State, so each browser gets its own.

This is the main entry point for the frontend application.
Run with: python -m frontend.app_gradio
"""

import logging
from typing import Optional

import gradio as gr
import numpy as np

from core.config import get_config, get_ui_config
from core.controllers import EnrollmentError
from core.face_analyzer import ModelLoadError, get_face_analyzer
from core.face_store import get_face_store
from core.ui_overlay import draw_dim_overlay, draw_label
from frontend.components.camera_feed import CameraFeed
from frontend.session import DETECT_TAB, ENROLLMENT_TAB, SCAN_TAB, UISession

logger = logging.getLogger(__name__)

LOADING_MESSAGE = "Loading models and webcam..."
PROCESSING_MESSAGE = "Processing..."
START_SCAN_LABEL = "Start Scan"
SCANNING_LABEL = "Scanning..."


# ============================================================
# Shared State (one per process)
# ============================================================
analyzer = get_face_analyzer()
face_store = get_face_store()


def new_session() -> UISession:
    return UISession(analyzer, face_store, get_config())


def close_session(session: Optional[UISession]) -> None:
    if session is not None:
        session.close()


def load_models() -> str:
    """Load the analyzer models once per process (page loads reuse them)."""
    if analyzer.is_loaded:
        return "Models loaded."
    try:
        analyzer.load_models()
    except ModelLoadError as e:
        logger.error(f"Model loading failed: {e}")
        gr.Warning("Failed to load face models. See the server log.")
        return f"Model loading failed: {e}"
    return "Models loaded."


def on_page_load():
    """Every page load starts a fresh session."""
    return load_models(), new_session()


def _timers(session: Optional[UISession]):
    if session is None:
        return gr.Timer(active=False), gr.Timer(active=False), gr.Timer(active=False)
    active = session.timers_active()
    return (
        gr.Timer(active=active[ENROLLMENT_TAB]),
        gr.Timer(active=active[DETECT_TAB]),
        gr.Timer(active=active[SCAN_TAB]),
    )


def select_tab(tab: str, session: Optional[UISession]):
    """Switch screens: tear down the one being left and start its timers."""
    if session is not None:
        session.enter_tab(tab)
    prompt = session.enrollment.prompt_message if session is not None else ""
    return (*_timers(session), prompt, _scan_button(session), _scan_message(session), "")


def select_enrollment_tab(session: Optional[UISession]):
    return select_tab(ENROLLMENT_TAB, session)


def select_detect_tab(session: Optional[UISession]):
    return select_tab(DETECT_TAB, session)


def select_scan_tab(session: Optional[UISession]):
    return select_tab(SCAN_TAB, session)


# ============================================================
# Enrollment Tab Functions
# ============================================================

def on_enrollment_frame(frame: Optional[np.ndarray], session: Optional[UISession]):
    """Receive a webcam frame and render the enrollment preview."""
    if session is None:
        return None
    bgr = session.camera.update(frame)
    session.ensure_ready()
    if bgr is None:
        return None

    enrollment = session.enrollment
    if enrollment.loading:
        draw_dim_overlay(bgr, LOADING_MESSAGE)
    elif enrollment.processing:
        draw_dim_overlay(bgr, PROCESSING_MESSAGE, opacity=0.4)
        remaining = enrollment.seconds_remaining
        if remaining is not None:
            draw_label(bgr, f"{remaining:.0f}s", origin=(10, 30))
    return CameraFeed.to_display(bgr)


def capture_face(name: str, session: Optional[UISession]):
    """Start an enrollment attempt from the current frame."""
    if session is None:
        gr.Warning(LOADING_MESSAGE)
        return "", gr.Timer(active=False)

    session.ensure_ready()
    enrollment = session.enrollment
    try:
        prompt = enrollment.capture_face(name, session.camera.frame)
    except EnrollmentError as e:
        gr.Warning(str(e))
        return enrollment.prompt_message, gr.Timer(active=False)
    return prompt, gr.Timer(active=enrollment.capturing)


def enrollment_tick(session: Optional[UISession]):
    """Smile poll; the timer switches itself off once the attempt ends."""
    if session is None:
        return "", gr.Timer(active=False)

    enrollment = session.enrollment
    prompt = enrollment.poll(session.camera.frame)
    if enrollment.face_data_stored and not enrollment.capturing:
        gr.Info(prompt)
    return prompt, gr.Timer(active=session.timers_active()[ENROLLMENT_TAB])


# ============================================================
# Detect Tab Functions
# ============================================================

def on_frame(frame: Optional[np.ndarray], session: Optional[UISession]):
    if session is not None:
        session.camera.update(frame)


def detected_text(name: str) -> str:
    """Nothing until the first match, then the last matched name."""
    return f"Detected: {name}" if name else ""


def detection_tick(session: Optional[UISession]):
    """One matching pass on the current frame."""
    if session is None or not session.timers_active()[DETECT_TAB]:
        return None, "", gr.Timer(active=False)
    if not analyzer.is_loaded or not session.camera.is_ready:
        return None, f"**{LOADING_MESSAGE}**", gr.Timer(active=True)

    result = session.detection.tick(session.camera.frame)
    text = detected_text(result.detected_name)
    annotated = result.annotated
    if annotated is not None and text:
        draw_label(annotated, text, origin=(10, 30))
    return CameraFeed.to_display(annotated), (f"### {text}" if text else ""), gr.Timer(active=True)


# ============================================================
# Scan Tab Functions
# ============================================================

def _scan_button(session: Optional[UISession]):
    if session is None:
        return gr.update(value=START_SCAN_LABEL, interactive=False)
    scanner = session.scanner
    return gr.update(
        value=SCANNING_LABEL if scanner.is_scanning else START_SCAN_LABEL,
        interactive=scanner.can_start,
    )


def _scan_message(session: Optional[UISession]) -> str:
    return session.scanner.message if session is not None else ""


def start_scan(session: Optional[UISession]):
    if session is None or not session.scanner.start_scan():
        if not analyzer.is_loaded:
            gr.Warning(LOADING_MESSAGE)
        return _scan_button(session), _scan_message(session), gr.Timer(active=False)
    return _scan_button(session), session.scanner.message, gr.Timer(active=True)


def scan_tick(session: Optional[UISession]):
    if session is None:
        return None, "", _scan_button(None), gr.Timer(active=False)

    result = session.scanner.tick(session.camera.frame)
    return (
        CameraFeed.to_display(result.annotated),
        result.message,
        _scan_button(session),
        gr.Timer(active=session.timers_active()[SCAN_TAB]),
    )


# ============================================================
# Build Gradio Interface
# ============================================================

def create_demo():
    """Create the Gradio demo interface."""
    # Poll intervals come from config; each browser gets its own session on load
    intervals = new_session()

    with gr.Blocks(title="Face Capture Demo") as demo:

        gr.Markdown("""
        # Face Capture Demo

        Enroll a face with a neutral look and a smile, then recognize it live.
        """)

        session_state = gr.State(None, delete_callback=close_session)
        model_status = gr.Markdown(LOADING_MESSAGE)

        with gr.Tabs():
            # ==================== ENROLLMENT TAB ====================
            with gr.TabItem("Enrollment") as enroll_tab:
                gr.Markdown("Enter your name, look at the camera with a neutral face and press **Capture Face**.")

                with gr.Row():
                    with gr.Column(scale=2):
                        enroll_webcam = gr.Image(
                            label="Webcam Feed",
                            sources=["webcam"],
                            streaming=True,
                        )
                        enroll_preview = gr.Image(label="Preview", interactive=False)

                    with gr.Column(scale=1):
                        name_input = gr.Textbox(
                            label="Name",
                            placeholder="Enter your name...",
                            max_lines=1,
                        )
                        capture_btn = gr.Button("Capture Face", variant="primary")
                        prompt_md = gr.Markdown("")

                enroll_timer = gr.Timer(value=intervals.enrollment.poll_interval_sec, active=False)

                enroll_webcam.stream(
                    fn=on_enrollment_frame,
                    inputs=[enroll_webcam, session_state],
                    outputs=[enroll_preview],
                )
                capture_btn.click(
                    fn=capture_face,
                    inputs=[name_input, session_state],
                    outputs=[prompt_md, enroll_timer],
                )
                enroll_timer.tick(
                    fn=enrollment_tick,
                    inputs=[session_state],
                    outputs=[prompt_md, enroll_timer],
                )

            # ==================== DETECT TAB ====================
            with gr.TabItem("Detect") as detect_tab:
                with gr.Row():
                    with gr.Column(scale=2):
                        detect_webcam = gr.Image(
                            label="Webcam Feed",
                            sources=["webcam"],
                            streaming=True,
                        )
                    with gr.Column(scale=2):
                        detect_view = gr.Image(label="Detections", interactive=False)
                        detected_md = gr.Markdown("")

                detect_timer = gr.Timer(value=intervals.detection.poll_interval_sec, active=False)

                detect_webcam.stream(
                    fn=on_frame,
                    inputs=[detect_webcam, session_state],
                    outputs=[],
                )
                detect_timer.tick(
                    fn=detection_tick,
                    inputs=[session_state],
                    outputs=[detect_view, detected_md, detect_timer],
                )

            # ==================== SCAN TAB ====================
            with gr.TabItem("Scan") as scan_tab:
                with gr.Row():
                    with gr.Column(scale=2):
                        scan_webcam = gr.Image(
                            label="Webcam Feed",
                            sources=["webcam"],
                            streaming=True,
                        )
                        scan_btn = gr.Button(START_SCAN_LABEL, variant="primary")
                    with gr.Column(scale=2):
                        scan_view = gr.Image(label="Landmarks", interactive=False)
                        scan_status = gr.Markdown("")

                scan_timer = gr.Timer(value=intervals.scanner.poll_interval_sec, active=False)

                scan_webcam.stream(
                    fn=on_frame,
                    inputs=[scan_webcam, session_state],
                    outputs=[],
                )
                scan_btn.click(
                    fn=start_scan,
                    inputs=[session_state],
                    outputs=[scan_btn, scan_status, scan_timer],
                )
                scan_timer.tick(
                    fn=scan_tick,
                    inputs=[session_state],
                    outputs=[scan_view, scan_status, scan_btn, scan_timer],
                )

        tab_outputs = [enroll_timer, detect_timer, scan_timer, prompt_md, scan_btn, scan_status, detected_md]
        enroll_tab.select(fn=select_enrollment_tab, inputs=[session_state], outputs=tab_outputs)
        detect_tab.select(fn=select_detect_tab, inputs=[session_state], outputs=tab_outputs)
        scan_tab.select(fn=select_scan_tab, inputs=[session_state], outputs=tab_outputs)

        demo.load(fn=on_page_load, inputs=[], outputs=[model_status, session_state])

    return demo


# ============================================================
# Entry Point
# ============================================================

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ui = get_ui_config()

    demo = create_demo()
    demo.launch(
        server_name=ui.get("server_name", "0.0.0.0"),
        server_port=ui.get("server_port", 7860),
        share=ui.get("share", False),
        show_error=True,
    )
