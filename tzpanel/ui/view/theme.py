#!/usr/bin/env python
# encoding: utf-8
"""
UI theme tokens for the timezone panel and the preferences window.

Responsibilities:
- Define font, color, and spacing tokens shared by every widget.
- Provide helpers that apply the dark panel style and the card label styles.

Side effects:
- Modify style sheets and fonts of supplied widgets.
"""

from __future__ import annotations
from typing import Annotated

from PyQt5.QtCore import Qt
from PyQt5.QtGui import QFont
from PyQt5.QtWidgets import QLabel, QWidget

# -----------------------------------------------------------------------------
# Global Font and Color Constants (Annotated)
# -----------------------------------------------------------------------------

FONT_SIZE: Annotated[int, "Base font size in pixels for general UI text"] = 14
FONT_FAMILY: Annotated[str, "Primary UI font family"] = "Verdana"
TEXT_COLOR: Annotated[str, "Primary foreground color for text"] = "#fafafa"
MUTED_COLOR: Annotated[str, "Secondary text color for zone names"] = "#888888"
BACKGROUND_COLOR: Annotated[str, "Primary background color for dark theme"] = "#2b2b2b"
ACCENT_COLOR: Annotated[str, "Brand/accent color used for highlights and active states"] = "#0067c0"

STYLE_BASE: Annotated[str, "Base inline style snippet used in stylesheets (font-size & family)"] = (
    f"font-size:{FONT_SIZE}px; font-family:{FONT_FAMILY};"
)

TIME_FONT_PT: Annotated[int, "Point size of the large time label on each card"] = 24
ZONE_FONT_PT: Annotated[int, "Point size of the zone name under the time"] = 9
PERSON_FONT_PT: Annotated[int, "Point size of person names"] = 10
CARD_PADDING: Annotated[int, "Inner padding of a zone card in pixels"] = 10
CARD_MARGIN: Annotated[int, "Outer margin around a zone card in pixels"] = 5
AVATAR_DISPLAY_SIZE: Annotated[int, "Rendered avatar edge length in pixels"] = 20


def apply_theme(widget: QWidget, recursive: bool = False) -> None:
    """
    Apply dark theme and global font/color styles to a widget.

    Args:
        widget: QWidget to apply the theme to.
        recursive: If True, applies recursively to direct children.
    """
    widget.setStyleSheet(
        f"""
        {STYLE_BASE} color:{TEXT_COLOR}; background:{BACKGROUND_COLOR};
        """
    )
    widget.setFont(QFont(FONT_FAMILY, FONT_SIZE))

    if recursive:
        for child in widget.findChildren(QWidget, options=Qt.FindDirectChildrenOnly):
            apply_theme(child, True)


def style_time_label(label: QLabel) -> None:
    label.setObjectName("timezoneTime")
    label.setStyleSheet(f"font-size:{TIME_FONT_PT}pt; font-weight:bold; color:{TEXT_COLOR};")


def style_zone_label(label: QLabel) -> None:
    label.setObjectName("timezoneLabel")
    label.setStyleSheet(f"font-size:{ZONE_FONT_PT}pt; color:{MUTED_COLOR};")


def style_person_label(label: QLabel) -> None:
    label.setObjectName("timezonePerson")
    label.setStyleSheet(f"font-size:{PERSON_FONT_PT}pt; margin-top:2px; color:{TEXT_COLOR};")
