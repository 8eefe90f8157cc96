"""
Standardized Embed Templates for the Jukebox Bot
================================================

Consistent Discord embeds for every user-facing reply:
- Success embeds (green with checkmark)
- Error embeds (red with cross)
- Warning embeds (yellow with warning sign)
- Informational embeds (blue with info sign)
"""

import discord
from typing import Optional
from jukebox.utils.constants import COLORS


def _build_embed(prefix: str, default_title: str, color: int, title: Optional[str],
                 description: str, footer: Optional[str]) -> discord.Embed:
    if title is None:
        title = f"{prefix} {default_title}"
    elif not title.startswith(prefix):
        title = f"{prefix} {title}"

    embed = discord.Embed(
        title=title,
        description=description,
        color=color
    )

    if footer:
        embed.set_footer(text=footer)

    return embed


def create_success_embed(title: Optional[str] = None, description: str = "", footer: Optional[str] = None) -> discord.Embed:
    """
    Create a standardized success embed with green color and checkmark.

    Args:
        title: Optional title for the embed. If None, uses checkmark as prefix
        description: Main message content
        footer: Optional footer text

    Returns:
        discord.Embed: Success embed with green color (#2ecc71)
    """
    return _build_embed("✅", "Success", COLORS['SUCCESS'], title, description, footer)


def create_error_embed(title: Optional[str] = None, description: str = "", footer: Optional[str] = None) -> discord.Embed:
    """
    Create a standardized error embed with red color and cross.

    Args:
        title: Optional title for the embed. If None, uses cross as prefix
        description: Main message content
        footer: Optional footer text

    Returns:
        discord.Embed: Error embed with red color (#e74c3c)
    """
    return _build_embed("❌", "Error", COLORS['ERROR'], title, description, footer)


def create_warning_embed(title: Optional[str] = None, description: str = "", footer: Optional[str] = None) -> discord.Embed:
    """Create a standardized warning embed with yellow color (#f1c40f)."""
    return _build_embed("⚠️", "Warning", COLORS['WARNING'], title, description, footer)


def create_info_embed(title: Optional[str] = None, description: str = "", footer: Optional[str] = None) -> discord.Embed:
    """Create a standardized informational embed with blue color (#3498db)."""
    return _build_embed("ℹ️", "Information", COLORS['INFO'], title, description, footer)


# Convenience functions for common use cases
def success(message: str, footer: Optional[str] = None) -> discord.Embed:
    """Quick success embed with just a message."""
    return create_success_embed(description=message, footer=footer)


def error(message: str, footer: Optional[str] = None) -> discord.Embed:
    """Quick error embed with just a message."""
    return create_error_embed(description=message, footer=footer)


def warning(message: str, footer: Optional[str] = None) -> discord.Embed:
    """Quick warning embed with just a message."""
    return create_warning_embed(description=message, footer=footer)


def info(message: str, footer: Optional[str] = None) -> discord.Embed:
    """Quick info embed with just a message."""
    return create_info_embed(description=message, footer=footer)
