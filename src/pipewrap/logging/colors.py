"""ANSI color codes for terminal output.

Usage:
    from pipewrap.logging.colors import GREEN, RED, RESET

    print(f"{GREEN}Success!{RESET}")
"""

# Basic colors
RESET = "\033[0m"

# Level colors, same palette as the xterm color map CI consoles use
BLUE = "\033[0;34m"  # Debug
GREEN = "\033[0;32m"  # Info / success
YELLOW = "\033[0;33m"  # Warnings
RED = "\033[0;31m"  # Errors / failure

# Component colors
CYAN = "\033[38;5;51m"
MAGENTA = "\033[38;5;201m"
LIGHT_BLUE = "\033[38;5;153m"

__all__ = [
    "RESET",
    "BLUE",
    "GREEN",
    "YELLOW",
    "RED",
    "CYAN",
    "MAGENTA",
    "LIGHT_BLUE",
]
