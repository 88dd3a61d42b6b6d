"""Tests for card rendering and rasterization helpers.

Tests cover:
- Begging-message escalation and Yes-button growth
- No-button dodge bounds
- Card HTML for question and celebration states (escaping included)
- Flattening captured PNGs onto the theme backdrop with Pillow
- Theme lookup
- Browser launch failures releasing the Playwright driver
"""

import io
import random
from types import SimpleNamespace

import pytest
from PIL import Image, ImageColor

from playwright.async_api import Error as PlaywrightError

from valentine.services import rasterize as rasterize_module
from valentine.services.card import (
    CARD_SELECTOR,
    CardSurface,
    begging_message,
    build_card_surface,
    dodge_offset,
    render_card_html,
    yes_button_scale,
)
from valentine.services.rasterize import (
    PlaywrightRasterizer,
    RasterizeError,
    flatten_onto_background,
)
from valentine.themes import DEFAULT_THEME_ID, THEMES, get_theme, hsl


def make_page(**overrides):
    values = {
        "question": "Will you be my Valentine?",
        "begging_messages": ["one", "two", "three"],
        "final_message": "Yay!",
        "social_label": "DM me",
        "social_link": "https://instagram.com/alex",
        "sender_name": "Alex",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def png_bytes(image: Image.Image) -> bytes:
    out = io.BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()


class TestEscalation:
    """Begging messages and Yes-button scale."""

    @pytest.mark.parametrize(
        "attempts,expected",
        [(0, None), (1, "one"), (2, "two"), (3, "three"), (7, "three")],
    )
    def test_begging_message(self, attempts, expected):
        assert begging_message(["one", "two", "three"], attempts) == expected

    def test_begging_message_empty_list(self):
        assert begging_message([], 3) is None

    @pytest.mark.parametrize(
        "attempts,expected", [(0, 1.0), (1, 1.15), (4, 1.6), (10, 2.5), (50, 2.5)]
    )
    def test_yes_button_scale(self, attempts, expected):
        assert yes_button_scale(attempts) == pytest.approx(expected)

    def test_dodge_offset_bounds(self):
        rng = random.Random(7)
        for _ in range(200):
            x, y = dodge_offset(rng)
            assert -150 <= x <= 150
            assert -100 <= y <= 100


class TestRenderCardHtml:
    """Card markup for both states."""

    def test_question_state(self):
        html = render_card_html(make_page(), get_theme("pink"), accepted=False, no_attempts=2)

        assert 'class="valentine-card"' in html
        assert "Will you be my Valentine?" in html
        assert "two" in html
        assert "Yes!" in html
        assert "scale(1.30)" in html
        assert "Yay!" not in html

    def test_celebration_state(self):
        html = render_card_html(make_page(), get_theme("pink"), accepted=True)

        assert "Alex 💕" in html
        assert "Yay!" in html
        assert 'href="https://instagram.com/alex"' in html
        assert "Yes!" not in html

    def test_social_link_needs_label_and_url(self):
        html = render_card_html(make_page(social_label=None), get_theme("pink"), accepted=True)
        assert "instagram.com" not in html

    def test_user_text_is_escaped(self):
        page = make_page(sender_name="<b>Alex</b>", final_message="<script>x()</script>")

        html = render_card_html(page, get_theme("pink"), accepted=True)

        assert "<script>" not in html
        assert "&lt;b&gt;Alex&lt;/b&gt;" in html

    def test_build_card_surface_uses_theme_backdrop(self):
        theme = get_theme("gold")

        surface = build_card_surface(make_page(), theme)

        assert surface.selector == CARD_SELECTOR
        assert surface.background == "hsl(45, 40%, 97%)"
        assert "Yay!" in surface.html


class TestFlattenOntoBackground:
    """Pillow flattening of transparent captures."""

    def test_transparent_pixels_take_background(self):
        image = Image.new("RGBA", (2, 1), (0, 0, 0, 0))
        image.putpixel((1, 0), (255, 0, 0, 255))

        flat = flatten_onto_background(png_bytes(image), "#00ff00")

        with Image.open(io.BytesIO(flat)) as result:
            assert result.mode == "RGB"
            assert result.size == (2, 1)
            assert result.getpixel((0, 0)) == (0, 255, 0)
            assert result.getpixel((1, 0)) == (255, 0, 0)

    def test_accepts_hsl_backdrop(self):
        image = Image.new("RGBA", (1, 1), (0, 0, 0, 0))

        flat = flatten_onto_background(png_bytes(image), get_theme("pink").backdrop)

        with Image.open(io.BytesIO(flat)) as result:
            assert result.getpixel((0, 0)) == ImageColor.getrgb("hsl(350, 50%, 98%)")

    def test_invalid_image(self):
        with pytest.raises(RasterizeError):
            flatten_onto_background(b"not a png", "#ffffff")

    def test_invalid_color(self):
        image = Image.new("RGBA", (1, 1))
        with pytest.raises(RasterizeError):
            flatten_onto_background(png_bytes(image), "not-a-color")


class TestThemes:
    def test_unknown_theme_falls_back(self):
        assert get_theme("green").id == DEFAULT_THEME_ID
        assert get_theme(None).id == DEFAULT_THEME_ID

    @pytest.mark.parametrize("theme_id", sorted(THEMES))
    def test_every_backdrop_is_a_pillow_color(self, theme_id):
        ImageColor.getrgb(THEMES[theme_id].backdrop)

    def test_hsl(self):
        assert hsl("346 77% 50%") == "hsl(346, 77%, 50%)"


class TestPlaywrightRasterizerLaunch:
    """A failed browser launch must not leave Playwright drivers running."""

    @pytest.mark.asyncio
    async def test_failed_launch_stops_driver(self, monkeypatch):
        counts = {"started": 0, "stopped": 0}

        async def launch(**kwargs):
            raise PlaywrightError("Executable doesn't exist")

        async def stop():
            counts["stopped"] += 1

        class StubContextManager:
            async def start(self):
                counts["started"] += 1
                return SimpleNamespace(chromium=SimpleNamespace(launch=launch), stop=stop)

        monkeypatch.setattr(rasterize_module, "async_playwright", StubContextManager)
        rasterizer = PlaywrightRasterizer()
        surface = CardSurface(html="<div class='valentine-card'></div>", background="#fdf2f8")

        for _ in range(3):
            with pytest.raises(RasterizeError):
                await rasterizer.rasterize(surface, scale=2.0)

        assert counts == {"started": 3, "stopped": 3}
        await rasterizer.close()
        assert counts["stopped"] == 3
