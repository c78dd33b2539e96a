"""
Streamlit component for playing synthesized speech in the browser.

Renders a small HTML audio element that starts playing as soon as it loads,
with a Web Audio API fallback for browsers that refuse autoplay of the
element itself.
"""

import json
from typing import Optional

import streamlit.components.v1 as components
from loguru import logger

from formsaathi.errors import SpeechSynthesisError
from formsaathi.text_to_speech import decode_audio


def build_player_html(base64_audio: str, label: str = "") -> str:
    """
    Build the HTML for an autoplaying audio player.

    Args:
        base64_audio (str): Base64-encoded WAV audio
        label (str): Caption shown next to the player

    Returns:
        str: HTML document
    """
    config_json = json.dumps({"audio": base64_audio, "label": label})

    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <style>
            body {{
                font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', 'Roboto', sans-serif;
                margin: 0;
                padding: 4px;
                background: transparent;
            }}
            .player {{
                display: flex;
                align-items: center;
                gap: 8px;
                color: #2F2F2F;
                font-size: 13px;
            }}
            audio {{ height: 32px; }}
        </style>
    </head>
    <body>
        <div class="player">
            <audio id="speech" controls autoplay></audio>
            <span id="label"></span>
        </div>
        <script>
            const config = {config_json};
            const audio = document.getElementById("speech");
            document.getElementById("label").textContent = config.label;

            function base64ToBytes(b64) {{
                const binary = atob(b64);
                const bytes = new Uint8Array(binary.length);
                for (let i = 0; i < binary.length; i++) {{
                    bytes[i] = binary.charCodeAt(i);
                }}
                return bytes;
            }}

            const bytes = base64ToBytes(config.audio);
            const url = URL.createObjectURL(new Blob([bytes], {{ type: "audio/wav" }}));
            audio.src = url;

            function fallbackPlayback() {{
                const Ctx = window.AudioContext || window.webkitAudioContext;
                if (!Ctx) return;
                const ctx = new Ctx();
                ctx.decodeAudioData(bytes.buffer.slice(0), (buffer) => {{
                    const source = ctx.createBufferSource();
                    source.buffer = buffer;
                    source.connect(ctx.destination);
                    source.start(0);
                }}, (err) => console.error("Error decoding audio data:", err));
            }}

            audio.onended = () => URL.revokeObjectURL(url);
            audio.onerror = () => {{ URL.revokeObjectURL(url); fallbackPlayback(); }};
            audio.play().catch(() => fallbackPlayback());
        </script>
    </body>
    </html>
    """


def audio_player_component(base64_audio: Optional[str], label: str = "",
                           height: int = 48) -> bool:
    """
    Play base64 audio in the page.

    Args:
        base64_audio (Optional[str]): Base64-encoded WAV audio
        label (str): Caption shown next to the player
        height (int): Component height in pixels

    Returns:
        bool: True if a player was rendered
    """
    if not base64_audio:
        return False

    try:
        decode_audio(base64_audio)
    except SpeechSynthesisError as e:
        logger.error(f"Invalid base64 audio data: {e}")
        return False

    components.html(build_player_html(base64_audio, label), height=height)
    return True
