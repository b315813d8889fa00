"""
Launch Options - quoting and composition for Steam shortcut fields.

Steam splits LaunchOptions on whitespace, and Exe/StartDir/icon values that
contain spaces must be wrapped in double quotes for Steam to resolve them.

Examples:
    - quote_if_needed("/usr/bin/steam") -> '/usr/bin/steam'
    - quote_if_needed("/opt/My Launcher/run") -> '"/opt/My Launcher/run"'
    - compose_launch_options("-applaunch", "", "", "/g/Hades/hades.exe")
        -> '-applaunch "/g/Hades/hades.exe"'
"""

from typing import List

DOUBLE_QUOTE = '"'


def quote(value: str) -> str:
    """
    Wrap a value in double quotes unless it is already quoted.

    Args:
        value: String to quote

    Returns:
        The quoted string; empty strings are returned unchanged

    Examples:
        >>> quote('/g/Hades/hades.exe')
        '"/g/Hades/hades.exe"'
        >>> quote('"/already/quoted"')
        '"/already/quoted"'
    """
    if not value:
        return value

    if not value.startswith(DOUBLE_QUOTE):
        value = DOUBLE_QUOTE + value
    if len(value) == 1 or not value.endswith(DOUBLE_QUOTE):
        value = value + DOUBLE_QUOTE

    return value


def quote_if_needed(value: str) -> str:
    """
    Quote a path only when it contains a space.

    Pre-quoted strings are left alone.

    Examples:
        >>> quote_if_needed('/usr/bin/steam')
        '/usr/bin/steam'
        >>> quote_if_needed('C:/Program Files/Steam/steam.exe')
        '"C:/Program Files/Steam/steam.exe"'
    """
    if " " not in value:
        return value
    return quote(value)


def unquote(value: str) -> str:
    """Strip one pair of surrounding double quotes, if present."""
    if len(value) >= 2 and value.startswith(DOUBLE_QUOTE) and value.endswith(DOUBLE_QUOTE):
        return value[1:-1]
    return value


def compose_launch_options(default_args: str, additional_args: str,
                           override_args: str, exe_path: str) -> str:
    """
    Build a shortcut's LaunchOptions for a game.

    Override arguments replace the launcher's default arguments and the
    game's additional arguments. The game executable is always appended,
    quoted.

    Args:
        default_args: Launcher default arguments
        additional_args: Game-specific arguments appended to the defaults
        override_args: Game-specific arguments replacing everything else
        exe_path: Full path to the game executable

    Returns:
        Space-joined launch options string
    """
    options: List[str] = []

    if override_args.strip():
        options.append(override_args.strip())
    else:
        if default_args.strip():
            options.append(default_args.strip())
        if additional_args.strip():
            options.append(additional_args.strip())

    options.append(quote(exe_path))

    return " ".join(options)
