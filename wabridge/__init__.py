"""
wabridge - relay WhatsApp messages to a local Claude Code CLI.
"""

__version__ = "0.1.0"
__logo__ = "📱"
