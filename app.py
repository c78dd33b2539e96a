"""
Form Saathi - voice guide for any form.

=================================================================================
                        CONVERSATION FLOW
=================================================================================

        [USER OPENS APP]
               |
               v
        main() ── init_session_state() ── render_sidebar()
               |
               v
    ┌─────────────────────┐   confirm_upload()     FormParser.parse_form()
    │ STEP 1: UPLOAD      │ ─────────────────────> vision -> pdf text -> local
    └─────────────────────┘                        -> default fields
               |
               v
    ┌─────────────────────┐   select_language()    Translator (batches of 5)
    │ STEP 2: LANGUAGE    │ ─────────────────────> or English as-is
    │                     │   select_language_by_voice()
    │                     │ ─────────────────────> 3s capture -> default HINDI
    └─────────────────────┘
               |
               v
    ┌─────────────────────┐   speak_field()        SpeechSynthesizer -> audio
    │ STEP 3: FIELD LIST  │ ─────────────────────> player component
    └─────────────────────┘
               |  request_voice_query()
               v
    ┌─────────────────────┐   stop_query_recording() / submit_audio()
    │ STEP 4: VOICE QUERY │ ─────────────────────> SpeechToTextProcessor
    └─────────────────────┘                        -> match_query()
               |
               v
    ┌─────────────────────┐   ask_another()        back to STEP 3; the full
    │ STEP 5: RESPONSE    │ ─────────────────────> list returns 10s after a
    └─────────────────────┘                        targeted answer

    RESTART (any step > 1) -> reset() -> STEP 1, timers cancelled

=================================================================================

All session data lives in the ConversationController kept in
st.session_state; this file only renders the current step and turns button
clicks into controller actions.
"""

import streamlit as st
from loguru import logger

# Import our custom modules
from formsaathi.audio_utils import AudioProcessor, AudioRecorder
from formsaathi.config import config
from formsaathi.conversation import ConversationController, ConversationStep
from formsaathi.errors import UnsupportedLanguageError
from formsaathi.languages import Language, SELECTABLE_LANGUAGES, display_name
from formsaathi.models import FormField
from formsaathi.responses import (
    DEFAULT_QUERY,
    GREETING,
    ask_specific_hint,
    compose_response,
    ui_text,
)
from formsaathi.translation import localized_label
from components.audio_player_component import audio_player_component


def create_recorder() -> AudioRecorder:
    """Build the microphone recorder; the device is opened when recording starts."""
    return AudioRecorder(sample_rate=config.sample_rate)


def init_session_state():
    """
    Initialize Streamlit session state variables.

    Session state persists across Streamlit reruns and stores:
    - controller: ConversationController owning the FormSession
    - now_playing: (label, base64 audio) of the last spoken explanation
    """
    if 'controller' not in st.session_state:
        st.session_state.controller = ConversationController(recorder=create_recorder())
    if 'now_playing' not in st.session_state:
        st.session_state.now_playing = None


def get_controller() -> ConversationController:
    return st.session_state.controller


def render_sidebar():
    """Render sidebar status and options."""
    controller = get_controller()
    session = controller.session

    st.sidebar.title("📝 Form Saathi")
    st.sidebar.caption("YOUR VOICE GUIDE FOR ANY FORM")

    st.sidebar.markdown("---")
    st.sidebar.subheader("🌐 Status")
    st.sidebar.write(f"Step {int(session.step)} of 5: **{session.step.name.replace('_', ' ').title()}**")
    if session.language:
        st.sidebar.write(f"Language: **{session.language.name}**")
    if session.filename:
        st.sidebar.write(f"Form: `{session.filename}`")
    if session.detected_language:
        st.sidebar.write(f"Heard: **{display_name(session.detected_language)}**")
    if "field_restore" in controller.pending_timers:
        st.sidebar.caption(f"Full field list returns after {controller.restore_seconds:g}s")

    if config.sarvam_api_key:
        st.sidebar.success("✅ Speech & translation API configured")
    else:
        st.sidebar.warning("⚠️ SARVAM_API_KEY missing - using fallbacks")

    if config.openai_api_key:
        st.sidebar.success("✅ Vision API configured")
    else:
        st.sidebar.info("ℹ️ OPENAI_API_KEY missing - local field lists")

    if session.step >= ConversationStep.FIELD_LIST and session.fields:
        st.sidebar.markdown("---")
        if st.sidebar.button("🔊 Prepare audio for all fields", use_container_width=True):
            with st.spinner("Generating audio..."):
                ready = controller.prepare_field_audio()
            st.sidebar.success(f"Audio ready for {ready} of {len(session.fields)} fields")


def render_messages():
    """Show the dismissible alert and restart button."""
    controller = get_controller()
    session = controller.session

    if session.alert:
        col1, col2 = st.columns([5, 1])
        with col1:
            st.warning(session.alert)
        with col2:
            if st.button("✖", key="dismiss_alert"):
                controller.dismiss_alert()
                st.rerun()

    if session.step > ConversationStep.UPLOAD:
        if st.button("🔄 Restart", key="restart"):
            controller.reset()
            st.session_state.now_playing = None
            st.rerun()


def play_field(field: FormField):
    """Synthesize a field explanation and queue it for playback."""
    audio = get_controller().speak_field(field)
    if audio:
        st.session_state.now_playing = (field.label, audio)


def render_now_playing():
    playing = st.session_state.now_playing
    if playing:
        label, audio = playing
        audio_player_component(audio, label=label)


def render_upload_step():
    """STEP 1: upload a screenshot or PDF of the form."""
    controller = get_controller()
    session = controller.session

    st.subheader("UPLOAD A SCREENSHOT OR PDF OF THE FORM")

    uploaded_file = st.file_uploader(
        "TAP TO UPLOAD A FORM IMAGE OR PDF",
        type=["png", "jpg", "jpeg", "webp", "pdf"],
        key="form_file",
    )

    if uploaded_file is not None:
        if uploaded_file.type and "pdf" in uploaded_file.type:
            st.info("📄 PDF Document")
        else:
            st.image(uploaded_file, caption="Uploaded form", use_container_width=True)

    if st.button("CONTINUE", type="primary"):
        file_bytes = uploaded_file.getvalue() if uploaded_file is not None else None
        spinner = "Processing PDF, please wait..." if uploaded_file is not None and "pdf" in (uploaded_file.type or "") \
            else "Processing form..."
        with st.spinner(spinner):
            advanced = controller.confirm_upload(
                file_bytes,
                filename=uploaded_file.name if uploaded_file is not None else "",
                mime_type=uploaded_file.type if uploaded_file is not None else "",
            )
        if advanced:
            st.rerun()

    if session.form_error:
        st.error(session.form_error)


def render_language_step():
    """STEP 2: choose a language by tapping or speaking."""
    controller = get_controller()
    session = controller.session

    st.subheader("WHICH LANGUAGE WOULD YOU LIKE TO USE?")

    columns = st.columns(2)
    for index, language in enumerate(SELECTABLE_LANGUAGES):
        with columns[index % 2]:
            if st.button(language.name, key=f"lang_{language.name}", use_container_width=True):
                try:
                    with st.spinner("Translating explanations..."):
                        controller.select_language(language.name)
                except UnsupportedLanguageError as e:
                    st.error(str(e))
                else:
                    st.rerun()

    st.markdown("---")

    if st.button("🎤 SPEAK YOUR LANGUAGE", key="speak_language"):
        if controller.select_language_by_voice():
            with st.spinner("LISTENING..."):
                controller.wait_for_language_capture(timeout=controller.capture_seconds + 30)
            st.rerun()

    if session.mic_error:
        st.error(session.mic_error)


def render_field_list_step():
    """STEP 3: translated field cards with speech playback."""
    controller = get_controller()
    session = controller.session
    language = session.language

    st.subheader(ui_text("fields_heading", language))

    for index, field in enumerate(session.visible_fields):
        with st.container(border=True):
            col1, col2 = st.columns([6, 1])
            with col1:
                st.markdown(f"**{field.label}**")
                if language is not None and language is not Language.ENGLISH:
                    st.caption(localized_label(field.label, language))
                st.write(field.display_explanation)
            with col2:
                if st.button("🔊", key=f"speak_{index}_{field.label}"):
                    play_field(field)

    render_now_playing()

    if st.button(f"🎤 {ui_text('ask_with_voice', language)}", type="primary"):
        st.session_state.now_playing = None
        controller.request_voice_query()
        st.rerun()


def render_voice_query_step():
    """STEP 4: record a question with the microphone or the browser."""
    controller = get_controller()
    session = controller.session

    st.subheader("ASK YOUR QUESTION ABOUT THE FORM")
    st.chat_message("assistant").write(GREETING)

    col1, col2 = st.columns(2)
    with col1:
        if not session.is_recording:
            if st.button("🔴 Start Recording", use_container_width=True):
                if controller.start_query_recording():
                    st.rerun()
        else:
            st.info("LISTENING...")
            if st.button("⏹️ Stop Recording", use_container_width=True):
                with st.spinner("Processing..."):
                    controller.stop_query_recording()
                st.rerun()

    with col2:
        browser_audio = st.audio_input("Or record in your browser", key="browser_query")
        if browser_audio is not None and st.button("Send recording", use_container_width=True):
            try:
                wav_bytes = AudioProcessor.to_wav_bytes(browser_audio.getvalue())
            except Exception as e:
                logger.error(f"Error processing audio: {e}")
                st.error("Failed to process audio. Please try again.")
            else:
                duration = AudioProcessor.wav_duration(wav_bytes)
                logger.info(f"Browser recording: {duration:.2f}s")
                if duration <= 0:
                    st.error("No audio recorded. Please try again.")
                else:
                    with st.spinner("Processing..."):
                        controller.submit_audio(wav_bytes)
                    st.rerun()

    if session.mic_error:
        st.error(session.mic_error)

    st.caption('Ask about specific fields like "What is the name field?" or "Address kya hai?"')


def render_response_step():
    """STEP 5: the assistant's answer."""
    controller = get_controller()
    session = controller.session
    language = session.language
    result = session.match

    st.subheader("FORM EXPLANATION")
    st.chat_message("assistant").write(GREETING)
    st.chat_message("user").write(session.query or DEFAULT_QUERY)
    if result is not None:
        st.chat_message("assistant").write(compose_response(result, language))

    if result is not None and result.field is not None:
        field = result.field
        with st.container(border=True):
            col1, col2 = st.columns([6, 1])
            with col1:
                suffix = f" / {localized_label(field.label, language)}" \
                    if language is not None and language is not Language.ENGLISH else ""
                st.markdown(f"**{field.label}{suffix}**")
                st.write(field.display_explanation)
            with col2:
                if st.button("🔊", key="speak_answer"):
                    play_field(field)
        render_now_playing()
    elif result is not None and not result.is_general_question:
        st.info(ask_specific_hint(language))

    if st.button("ASK ANOTHER QUESTION", type="primary"):
        st.session_state.now_playing = None
        controller.ask_another()
        st.rerun()


STEP_RENDERERS = {
    ConversationStep.UPLOAD: render_upload_step,
    ConversationStep.LANGUAGE_SELECT: render_language_step,
    ConversationStep.FIELD_LIST: render_field_list_step,
    ConversationStep.VOICE_QUERY: render_voice_query_step,
    ConversationStep.RESPONSE: render_response_step,
}


def main():
    """Main function to run the Form Saathi application."""

    # Page config
    st.set_page_config(
        page_title="Form Saathi - Voice Guide for Any Form",
        page_icon="📝",
        layout="centered",
        initial_sidebar_state="collapsed"
    )

    st.markdown("""
    <style>
    /* Hide Streamlit branding */
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}

    .stApp {
        background: #FFF5EF;
    }

    /* Buttons */
    .stButton > button {
        border-radius: 8px;
        border: 1px solid #FF6A1A33;
        font-weight: 600;
    }

    .stButton > button[kind="primary"] {
        background: #FF6A1A;
        color: white !important;
        border: none;
    }
    </style>
    """, unsafe_allow_html=True)

    # Initialize session state
    init_session_state()

    st.title("FORM SAATHI")
    st.markdown("**YOUR VOICE GUIDE FOR ANY FORM**")
    st.markdown("---")

    render_sidebar()
    render_messages()

    step = get_controller().session.step
    STEP_RENDERERS[step]()


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        st.error(f"Application error: {e}")
        logger.error(f"Application error: {e}", exc_info=True)
