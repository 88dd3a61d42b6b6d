"""Card surface rendering.

Renders the Valentine card as a self-contained HTML document for the
rasterizer. The card has two states:
- question: sender, question, current begging message, Yes/No buttons
- celebration: sender name, final message, contact link

All user-provided text is escaped. The markup carries no scripts.
"""

import random
from dataclasses import dataclass
from html import escape
from typing import Protocol

from valentine.themes import Theme

CARD_SELECTOR = ".valentine-card"

YES_SCALE_STEP = 0.15
YES_SCALE_MAX = 2.5

# Max No-button displacement in CSS pixels, per axis.
DODGE_MAX_X = 150
DODGE_MAX_Y = 100


class CardPage(Protocol):
    question: str
    begging_messages: list[str]
    final_message: str
    social_label: str | None
    social_link: str | None
    sender_name: str | None


@dataclass(frozen=True)
class CardSurface:
    """Reference to a renderable card.

    Attributes:
        html: Complete HTML document containing the card.
        background: CSS color painted behind transparent regions.
        selector: CSS selector of the element to capture.
    """

    html: str
    background: str
    selector: str = CARD_SELECTOR


def begging_message(messages: list[str], no_attempts: int) -> str | None:
    """Message shown after the recipient has dodged No `no_attempts` times.

    Escalates one message per attempt and sticks on the last one.
    """
    if no_attempts <= 0 or not messages:
        return None
    return messages[min(no_attempts - 1, len(messages) - 1)]


def yes_button_scale(no_attempts: int) -> float:
    return min(1 + max(no_attempts, 0) * YES_SCALE_STEP, YES_SCALE_MAX)


def dodge_offset(rng: random.Random | None = None) -> tuple[float, float]:
    """Random No-button offset in [-150, 150] x [-100, 100]."""
    rng = rng or random.Random()
    x = (rng.random() - 0.5) * DODGE_MAX_X * 2
    y = (rng.random() - 0.5) * DODGE_MAX_Y * 2
    return x, y


_STYLE = """
body {{ margin: 0; padding: 24px; background: transparent;
  font-family: Georgia, 'Times New Roman', serif; }}
.valentine-card {{ max-width: 480px; margin: 0 auto; padding: 40px 32px;
  border-radius: 24px; text-align: center; background: {card};
  color: {foreground}; box-shadow: 0 10px 40px rgba(0, 0, 0, 0.12); }}
.sender {{ color: {muted}; font-size: 14px; }}
.sender strong {{ color: {foreground}; }}
.heart {{ font-size: 56px; margin: 16px 0; }}
.question {{ font-size: 32px; margin: 0 0 16px; }}
.begging {{ color: {primary}; font-size: 18px; }}
.buttons {{ display: flex; justify-content: center; gap: 24px; padding-top: 16px; }}
.yes {{ background: {gradient}; color: white; border: none; border-radius: 999px;
  padding: 12px 32px; font-size: 18px; transform: scale({yes_scale}); }}
.no {{ background: transparent; color: {muted}; border: 1px solid {muted};
  border-radius: 999px; padding: 12px 32px; font-size: 18px;
  transform: translate({no_x}px, {no_y}px); }}
.sender-name {{ font-size: 36px; color: {primary}; margin: 0; }}
.final {{ font-size: 20px; }}
.social {{ display: inline-block; background: {gradient}; color: white;
  padding: 10px 24px; border-radius: 999px; text-decoration: none; }}
"""


def _question_body(page: CardPage, no_attempts: int) -> str:
    parts = []
    if page.sender_name:
        parts.append(f'<p class="sender">From <strong>{escape(page.sender_name)}</strong></p>')
    parts.append('<div class="heart">💕</div>')
    parts.append(f'<h1 class="question">{escape(page.question)}</h1>')
    message = begging_message(page.begging_messages, no_attempts)
    if message:
        parts.append(f'<p class="begging">{escape(message)}</p>')
    parts.append(
        '<div class="buttons"><button class="yes">Yes!</button>'
        '<button class="no">No</button></div>'
    )
    return "\n".join(parts)


def _celebration_body(page: CardPage) -> str:
    parts = ['<div class="heart">💖</div>']
    if page.sender_name:
        parts.append(f'<h2 class="sender-name">{escape(page.sender_name)} 💕</h2>')
    parts.append(f'<p class="final">{escape(page.final_message)}</p>')
    if page.social_link and page.social_label:
        parts.append(
            f'<a class="social" href="{escape(page.social_link, quote=True)}">'
            f"{escape(page.social_label)} 💌</a>"
        )
    return "\n".join(parts)


def render_card_html(
    page: CardPage,
    theme: Theme,
    *,
    accepted: bool,
    no_attempts: int = 0,
    no_offset: tuple[float, float] = (0.0, 0.0),
) -> str:
    """Render the card for the given state as a full HTML document."""
    style = _STYLE.format(
        card=theme.css("card"),
        foreground=theme.css("foreground"),
        muted=theme.css("muted"),
        primary=theme.css("primary"),
        gradient=theme.gradient,
        yes_scale=f"{yes_button_scale(no_attempts):.2f}",
        no_x=f"{no_offset[0]:.1f}",
        no_y=f"{no_offset[1]:.1f}",
    )
    body = _celebration_body(page) if accepted else _question_body(page, no_attempts)
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">'
        f"<style>{style}</style></head>\n"
        f'<body><div class="valentine-card">\n{body}\n</div></body></html>'
    )


def build_card_surface(page: CardPage, theme: Theme, *, accepted: bool = True) -> CardSurface:
    """Build the surface captured by the accept flow (celebration state by default)."""
    return CardSurface(
        html=render_card_html(page, theme, accepted=accepted),
        background=theme.backdrop,
    )
