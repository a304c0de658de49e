"""Tests for numeric, translation, video and user-agent helpers (F1)."""

import pytest

from edugest.utils.numbers import format_number, round_half_up, round_to_int
from edugest.utils.translations import (
    DUPLICATE_PROCESSO_MESSAGE,
    DUPLICATE_VALUE_MESSAGE,
    translate_error,
    translate_success,
)
from edugest.utils.user_agent import UNKNOWN, detect_browser, detect_device_type, detect_os
from edugest.utils.video import get_embed_url, get_thumbnail_url

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


class TestNumbers:
    """Tests for rounding and formatting."""

    @pytest.mark.parametrize(
        "value,expected",
        [(2.345, 2.35), (2.344, 2.34), (12.005, 12.01), (10.0, 10.0)],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_round_half_up_digits(self):
        assert round_half_up(14.45, 1) == 14.5

    def test_round_half_up_large_values(self):
        assert round_half_up(1e20, 10) == 1e20
        assert round_half_up(1.5e300) == 1.5e300

    def test_round_to_int_halves_go_up(self):
        assert round_to_int(9.5) == 10
        assert round_to_int(9.49) == 9

    def test_format_number(self):
        assert format_number(15.0) == "15"
        assert format_number(12.5) == "12.5"


class TestTranslations:
    """Tests for translate_error / translate_success."""

    def test_exact_match(self):
        assert translate_error("Invalid login credentials") == "Email ou senha incorretos"

    def test_substring_case_insensitive(self):
        assert translate_error("TypeError: failed to fetch") == (
            "Erro de conexão. Verifique sua internet"
        )

    def test_duplicate_numero_processo(self):
        message = "UNIQUE constraint failed: alunos.numero_processo"
        assert translate_error(message) == DUPLICATE_PROCESSO_MESSAGE

    def test_duplicate_postgres_code(self):
        assert translate_error("error 23505 on insert") == DUPLICATE_VALUE_MESSAGE

    def test_foreign_key(self):
        assert translate_error("FOREIGN KEY constraint failed") == (
            "Erro de referência no banco de dados"
        )

    def test_unknown_passes_through(self):
        assert translate_error("Algo específico") == "Algo específico"

    def test_success(self):
        assert translate_success("Password updated successfully") == "Senha atualizada com sucesso"
        assert translate_success("Done") == "Done"


class TestVideo:
    """Tests for embed and thumbnail URLs."""

    def test_youtube_watch(self):
        url = "https://www.youtube.com/watch?v=abc123&t=10"
        assert get_embed_url(url) == "https://www.youtube.com/embed/abc123"
        assert get_thumbnail_url(url) == "https://img.youtube.com/vi/abc123/mqdefault.jpg"

    def test_youtube_short_link(self):
        assert get_embed_url("https://youtu.be/xyz789?si=share") == (
            "https://www.youtube.com/embed/xyz789"
        )

    def test_vimeo(self):
        assert get_embed_url("https://vimeo.com/123456") == "https://player.vimeo.com/video/123456"
        assert get_thumbnail_url("https://vimeo.com/123456") == ""

    def test_embed_url_unchanged(self):
        url = "https://player.vimeo.com/video/42"
        assert get_embed_url(url) == url

    def test_explicit_thumbnail_wins(self):
        url = "https://www.youtube.com/watch?v=abc123"
        assert get_thumbnail_url(url, "https://cdn/x.png") == "https://cdn/x.png"


class TestUserAgent:
    """Tests for user-agent classification."""

    def test_desktop_chrome_windows(self):
        assert detect_device_type(CHROME_WINDOWS) == "desktop"
        assert detect_browser(CHROME_WINDOWS) == "Chrome"
        assert detect_os(CHROME_WINDOWS) == "Windows"

    def test_iphone_safari(self):
        assert detect_device_type(SAFARI_IPHONE) == "mobile"
        assert detect_browser(SAFARI_IPHONE) == "Safari"
        assert detect_os(SAFARI_IPHONE) == "iOS"

    def test_ipad_is_tablet(self):
        assert detect_device_type("Mozilla/5.0 (iPad; CPU OS 16_0 like Mac OS X)") == "tablet"

    def test_unknown(self):
        assert detect_device_type(None) == UNKNOWN
        assert detect_browser("") == UNKNOWN
        assert detect_os("curl/8.0") == UNKNOWN
