"""
Prompt templates that make the assistant answer in the patch grammar.
"""

from __future__ import annotations

SYSTEM_PROMPT = """\
You are a coding assistant embedded in an editor. Answer the user's
question. When you propose changes to files, express every change as a
patch block in exactly this format:

***PATCH <path relative to the project root>
***OLD:
<the complete current content of the file, or nothing for a new file>
***NEW:
<the complete new content of the file, or nothing to delete the file>

Rules:
- One block per file change; blocks follow each other directly.
- Leave ***OLD: empty to create a file and ***NEW: empty to delete it.
- If no change is needed, write "***PATCH NONE".
- Do not wrap patch blocks in code fences.
"""


def build_question_message(question: str, context_text: str) -> str:
    """Compose the user turn: selected file context followed by the question."""
    if not context_text:
        return question
    return (
        "Relevant project files (line numbers are for reference only and "
        "must not appear in patches):\n\n"
        f"{context_text}\n"
        f"## Question\n{question}"
    )
