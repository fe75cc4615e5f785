"""Nord-themed console, header and message helpers."""

from typing import Optional

import pyfiglet
from rich.console import Console
from rich.panel import Panel
from rich.style import Style
from rich.text import Text
from rich.theme import Theme

from zabbix_setup import __version__

APP_NAME = "Zabbix Setup"
APP_SUBTITLE = "Zabbix / PostgreSQL / Nginx Installer"


# ----------------------------------------------------------------
# Nord-Themed Colors
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette for consistent theming throughout the application."""

    # Polar Night (dark) shades
    POLAR_NIGHT_1 = "#2E3440"
    POLAR_NIGHT_4 = "#4C566A"

    # Snow Storm (light) shades
    SNOW_STORM_1 = "#D8DEE9"
    SNOW_STORM_2 = "#E5E9F0"

    # Frost (blues/cyans) shades
    FROST_1 = "#8FBCBB"
    FROST_2 = "#88C0D0"
    FROST_3 = "#81A1C1"
    FROST_4 = "#5E81AC"

    # Aurora (accent) shades
    RED = "#BF616A"
    ORANGE = "#D08770"
    YELLOW = "#EBCB8B"
    GREEN = "#A3BE8C"


NORD_THEME = Theme(
    {
        "info": f"bold {NordColors.FROST_2}",
        "warning": f"bold {NordColors.YELLOW}",
        "error": f"bold {NordColors.RED}",
        "success": f"bold {NordColors.GREEN}",
        "pending": NordColors.POLAR_NIGHT_4,
        "step": NordColors.FROST_2,
        "command": f"bold {NordColors.FROST_4}",
        "path": f"italic {NordColors.FROST_1}",
    }
)


def make_console(**kwargs) -> Console:
    """Create a Console carrying the Nord theme."""
    kwargs.setdefault("highlight", False)
    return Console(theme=NORD_THEME, **kwargs)


console: Console = make_console()


# ----------------------------------------------------------------
# Console Helpers
# ----------------------------------------------------------------
def create_header(title: str = APP_NAME) -> Panel:
    """
    Create an ASCII art header panel.

    Args:
        title: Text rendered with pyfiglet

    Returns:
        Panel containing the styled header
    """
    ascii_art = ""
    for font_name in ("slant", "small", "standard"):
        try:
            ascii_art = pyfiglet.Figlet(font=font_name, width=60).renderText(title)
        except pyfiglet.FontNotFound:
            continue
        if ascii_art.strip():
            break

    ascii_lines = [line for line in ascii_art.split("\n") if line.strip()] or [title]
    colors = [
        NordColors.FROST_1,
        NordColors.FROST_2,
        NordColors.FROST_3,
        NordColors.FROST_4,
    ]

    styled_text = Text()
    for i, line in enumerate(ascii_lines):
        styled_text.append(line + "\n", style=f"bold {colors[i % len(colors)]}")
    styled_text.rstrip()

    return Panel(
        styled_text,
        border_style=Style(color=NordColors.FROST_1),
        padding=(1, 2),
        title=f"[bold {NordColors.SNOW_STORM_2}]v{__version__}[/]",
        title_align="right",
        subtitle=f"[bold {NordColors.SNOW_STORM_1}]{APP_SUBTITLE}[/]",
        subtitle_align="center",
    )


def print_message(
    text: str,
    style: str = NordColors.FROST_2,
    prefix: str = "•",
    target: Optional[Console] = None,
) -> None:
    """Print a styled message."""
    (target or console).print(Text(f"{prefix} {text}", style=style))


def print_success(message: str, target: Optional[Console] = None) -> None:
    """Print a success message."""
    print_message(message, NordColors.GREEN, "✓", target)


def print_warning(message: str, target: Optional[Console] = None) -> None:
    """Print a warning message."""
    print_message(message, NordColors.YELLOW, "⚠", target)


def print_error(message: str, target: Optional[Console] = None) -> None:
    """Print an error message."""
    print_message(message, NordColors.RED, "✗", target)
