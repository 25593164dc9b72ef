"""Textual gate command grammar."""

from .commands import Command, apply_command, apply_script, parse_angle, parse_command

__all__ = [
    "Command",
    "parse_angle",
    "parse_command",
    "apply_command",
    "apply_script",
]
