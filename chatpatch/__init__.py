"""
chatpatch — patch engine for an editor chat panel.

Turns assistant replies into reviewable file edits and picks the project
files sent along with each question::

    from chatpatch import AppContext, ChatSession, Config

    session = ChatSession(AppContext.from_config(Config.load()))
    result = await session.ask("Rename the helper in utils.py")
    for edit in result.edits:
        await session.accept(edit.id)
"""

from .config import Config
from .session import AppContext, AskResult, ChatMessage, ChatSession

__all__ = ["Config", "AppContext", "AskResult", "ChatMessage", "ChatSession"]
