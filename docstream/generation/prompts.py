"""System prompts for document generation."""

TEXT_CREATE_SYSTEM_PROMPT = (
    "Write about the given topic. Markdown is supported. "
    "Use headings wherever appropriate."
)

CODE_CREATE_SYSTEM_PROMPT = """You are a Python code generator that writes self-contained, executable snippets.

When writing code:
1. Each snippet must be complete and runnable on its own
2. Prefer print() statements to show output
3. Include short comments where the code is not obvious
4. Keep snippets concise (generally under 15 lines)
5. Use only the Python standard library
6. Handle likely errors gracefully
7. Do not use input() or other interactive functions
8. Do not access files or network resources
9. Do not write infinite loops

Return the program in the `code` field.
"""

_KIND_LABELS = {
    "text": "text document",
    "code": "code snippet",
}


def update_document_prompt(current_content: str, kind: str) -> str:
    """System prompt for revising an existing document of ``kind``.

    The current content is embedded verbatim; the model is asked to revise
    it rather than start over.
    """
    label = _KIND_LABELS.get(kind, f"{kind} document")
    return (
        f"Improve the following {label} based on the given prompt.\n"
        "Keep everything that the prompt does not ask to change and return the "
        "full revised document.\n\n"
        f"{current_content}"
    )
