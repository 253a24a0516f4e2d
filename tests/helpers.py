import shlex
import sys
from pathlib import Path


def fake_cli(tmp_path: Path, body: str, name: str = "fake_claude.py") -> str:
    """Write a stand-in for the claude CLI and return a command string that runs it."""
    script = tmp_path / name
    script.write_text("import os, sys, time\n" + body + "\n", encoding="utf-8")
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"
