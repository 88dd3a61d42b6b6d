"""Card color themes.

Each theme carries HSL tokens ("H S% L%") used by the card markup, and the
rasterizer backdrop derived from the background token.
"""

from dataclasses import dataclass

DEFAULT_THEME_ID = "pink"


@dataclass(frozen=True)
class ThemeColors:
    primary: str
    secondary: str
    accent: str
    background: str
    foreground: str
    muted: str
    card: str


@dataclass(frozen=True)
class Theme:
    id: str
    name: str
    emoji: str
    colors: ThemeColors
    gradient: str

    def css(self, token: str) -> str:
        """CSS color for a token, e.g. css("primary") -> "hsl(346, 77%, 50%)"."""
        return hsl(getattr(self.colors, token))

    @property
    def backdrop(self) -> str:
        """Color used behind transparent regions of a captured card."""
        return self.css("background")


def hsl(token: str) -> str:
    """Convert an "H S% L%" token to a comma-separated hsl() color.

    The comma form is understood by both browsers and PIL.ImageColor.
    """
    h, s, lightness = token.split()
    return f"hsl({h}, {s}, {lightness})"


THEMES: dict[str, Theme] = {
    theme.id: theme
    for theme in (
        Theme(
            id="pink",
            name="Pink",
            emoji="💗",
            colors=ThemeColors(
                primary="346 77% 50%",
                secondary="350 60% 92%",
                accent="340 70% 60%",
                background="350 50% 98%",
                foreground="350 30% 20%",
                muted="350 15% 45%",
                card="350 40% 97%",
            ),
            gradient="linear-gradient(135deg, hsl(346 77% 55%) 0%, hsl(340 70% 50%) 100%)",
        ),
        Theme(
            id="red",
            name="Red",
            emoji="❤️",
            colors=ThemeColors(
                primary="0 85% 45%",
                secondary="0 60% 90%",
                accent="5 80% 55%",
                background="0 30% 97%",
                foreground="0 40% 15%",
                muted="0 20% 45%",
                card="0 40% 96%",
            ),
            gradient="linear-gradient(135deg, hsl(0 85% 50%) 0%, hsl(350 80% 40%) 100%)",
        ),
        Theme(
            id="purple",
            name="Purple",
            emoji="💜",
            colors=ThemeColors(
                primary="270 60% 50%",
                secondary="270 50% 90%",
                accent="280 55% 55%",
                background="270 30% 97%",
                foreground="270 30% 18%",
                muted="270 15% 45%",
                card="270 30% 96%",
            ),
            gradient="linear-gradient(135deg, hsl(270 60% 55%) 0%, hsl(280 55% 45%) 100%)",
        ),
        Theme(
            id="blue",
            name="Blue",
            emoji="💙",
            colors=ThemeColors(
                primary="220 75% 50%",
                secondary="220 55% 90%",
                accent="210 65% 55%",
                background="220 30% 97%",
                foreground="220 30% 18%",
                muted="220 15% 45%",
                card="220 30% 96%",
            ),
            gradient="linear-gradient(135deg, hsl(220 75% 55%) 0%, hsl(210 65% 45%) 100%)",
        ),
        Theme(
            id="gold",
            name="Gold",
            emoji="💛",
            colors=ThemeColors(
                primary="40 90% 50%",
                secondary="45 70% 92%",
                accent="35 85% 50%",
                background="45 40% 97%",
                foreground="30 40% 18%",
                muted="40 20% 45%",
                card="45 40% 96%",
            ),
            gradient="linear-gradient(135deg, hsl(40 90% 55%) 0%, hsl(35 85% 45%) 100%)",
        ),
    )
}


def is_known_theme(theme_id: str) -> bool:
    return theme_id in THEMES


def get_theme(theme_id: str | None) -> Theme:
    """Look up a theme, falling back to the default for unknown ids."""
    if theme_id and theme_id in THEMES:
        return THEMES[theme_id]
    return THEMES[DEFAULT_THEME_ID]
