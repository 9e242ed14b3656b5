"""Fixed catalog of caption styles.

One style is drawn per render job and applied to every overlay in it, so all
captions of a video share the same font size, position and decoration.
"""

import random
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class SolidColor:
    """Fixed font color (FFmpeg color syntax, e.g. ``white@0.6``)."""

    value: str = "white"


@dataclass(frozen=True)
class ColorExpression:
    """Font color re-evaluated per frame by drawtext's ``fontcolor_expr``.

    ``expr`` uses text expansion (``%{...}``) and must expand to a color.
    """

    expr: str


@dataclass(frozen=True)
class Shadow:
    """Drop shadow behind the text."""

    x: int
    y: int
    color: str


@dataclass(frozen=True)
class Border:
    """Outline around each glyph."""

    width: int
    color: str


ColorMode = Union[SolidColor, ColorExpression]
Decoration = Optional[Union[Shadow, Border]]


@dataclass(frozen=True)
class TextStyle:
    """Named presentation style for drawtext overlays.

    ``x`` and ``y`` are FFmpeg expressions evaluated against the frame
    (``w``/``h``) and the rendered text box (``text_w``/``text_h``).
    """

    name: str
    font_size: int
    kerning: int
    x: str
    y: str
    color: ColorMode = SolidColor()
    decoration: Decoration = None


CENTER_X = "(w-text_w)/2"
CENTER_Y = "(h-text_h)/2"

# White (0xffffff) on 92% of frames, gray (0x808080) otherwise. drawtext
# expands %{eif:...} per frame; rand(min,max) draws from the filter's PRNG.
FLICKER_COLOR_EXPR = "0x%{eif:if(lt(rand(0,1),0.92),16777215,8421504):x:6}"


TEXT_STYLES: tuple[TextStyle, ...] = (
    TextStyle(
        name="quiet_center_reveal",
        font_size=36,
        kerning=2,
        x=CENTER_X,
        y=CENTER_Y,
        decoration=Shadow(x=2, y=2, color="black@0.4"),
    ),
    TextStyle(
        name="lower_third_fact",
        font_size=34,
        kerning=1,
        x=CENTER_X,
        y="h*0.72",
        decoration=Border(width=3, color="black@0.8"),
    ),
    TextStyle(
        name="internal_shift_up",
        font_size=36,
        kerning=2,
        x=CENTER_X,
        y=f"{CENTER_Y} + 50",
        decoration=Shadow(x=3, y=3, color="black@0.5"),
    ),
    TextStyle(
        name="freeze_response",
        font_size=38,
        kerning=1,
        x=CENTER_X,
        y=CENTER_Y,
        decoration=Shadow(x=4, y=4, color="black@0.6"),
    ),
    TextStyle(
        name="split_reality_top",
        font_size=34,
        kerning=1,
        x=CENTER_X,
        y="h*0.25",
        decoration=Border(width=2, color="black@0.7"),
    ),
    TextStyle(
        name="split_reality_bottom",
        font_size=36,
        kerning=2,
        x=CENTER_X,
        y="h*0.65",
        decoration=Shadow(x=3, y=3, color="black@0.5"),
    ),
    TextStyle(
        name="gaslight_flicker",
        font_size=36,
        kerning=1,
        x=CENTER_X,
        y=CENTER_Y,
        color=ColorExpression(expr=FLICKER_COLOR_EXPR),
        decoration=Shadow(x=2, y=2, color="black@0.4"),
    ),
    TextStyle(
        name="submission_sink",
        font_size=34,
        kerning=1,
        x=CENTER_X,
        y=f"{CENTER_Y} + 50",
        decoration=Shadow(x=3, y=3, color="black@0.6"),
    ),
    TextStyle(
        name="memory_echo",
        font_size=36,
        kerning=2,
        x=CENTER_X,
        y=CENTER_Y,
        color=SolidColor("white@0.6"),
        decoration=Shadow(x=4, y=4, color="black@0.7"),
    ),
    TextStyle(
        name="realization_snap",
        font_size=40,
        kerning=3,
        x=CENTER_X,
        y=CENTER_Y,
        decoration=Border(width=4, color="black@0.9"),
    ),
)

_STYLES_BY_NAME = {style.name: style for style in TEXT_STYLES}


def pick_style(rng: Optional[random.Random] = None) -> TextStyle:
    """Pick one catalog style uniformly at random."""
    return (rng or random).choice(TEXT_STYLES)


def get_style(name: str) -> TextStyle:
    """Look up a catalog style by name.

    Raises:
        KeyError: If no style has that name
    """
    return _STYLES_BY_NAME[name]
