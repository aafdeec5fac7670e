"""LLDB Copilot: ask an AI agent about the program you are debugging."""
from __future__ import annotations

__version__ = "0.1.0"
