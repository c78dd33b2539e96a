"""
Tests for the audio player component.
"""

from components.audio_player_component import audio_player_component, build_player_html


class TestAudioPlayerComponent:
    """Test cases for the browser audio player."""

    def test_html_embeds_audio_and_label(self):
        html = build_player_html("UklGRg==", label="Address")
        assert '"audio": "UklGRg=="' in html
        assert '"label": "Address"' in html
        assert "autoplay" in html

    def test_missing_audio_renders_nothing(self):
        assert audio_player_component(None) is False
        assert audio_player_component("") is False

    def test_invalid_audio_renders_nothing(self):
        assert audio_player_component("not base64!!") is False
