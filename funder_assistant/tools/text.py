"""LangChain tools for text analysis and transformation."""

from __future__ import annotations

import re
import textwrap
from typing import Literal

from langchain_core.tools import BaseTool, tool

WRAP_WIDTH = 80

TransformOperation = Literal[
    "uppercase",
    "lowercase",
    "title_case",
    "reverse",
    "remove_spaces",
    "trim",
    "remove_duplicates",
    "word_wrap",
]
ExtractType = Literal["emails", "urls", "phone_numbers", "numbers"]

_EXTRACTORS = {
    "emails": (
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        "📧", "email(s)", "No email addresses found",
    ),
    "urls": (
        re.compile(
            r"https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}"
            r"\b[-a-zA-Z0-9()@:%_+.~#?&/=]*"
        ),
        "🌐", "URL(s)", "No URLs found",
    ),
    "phone_numbers": (
        re.compile(r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}"),
        "📞", "phone number(s)", "No phone numbers found",
    ),
    "numbers": (
        re.compile(r"-?\d+(?:\.\d+)?"),
        "🔢", "number(s)", "No numbers found",
    ),
}


def transform(text: str, operation: str) -> str:
    """Apply one named transformation.  Raises ``ValueError`` for unknown names."""
    if operation == "uppercase":
        return text.upper()
    if operation == "lowercase":
        return text.lower()
    if operation == "title_case":
        return re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text)
    if operation == "reverse":
        return text[::-1]
    if operation == "remove_spaces":
        return re.sub(r"\s+", "", text)
    if operation == "trim":
        return text.strip()
    if operation == "remove_duplicates":
        return " ".join(dict.fromkeys(text.split()))
    if operation == "word_wrap":
        return textwrap.fill(text, width=WRAP_WIDTH, break_long_words=False)
    raise ValueError(operation)


@tool
def analyze_text(text: str) -> str:
    """Analyze text and report word, character, sentence and paragraph statistics.

    Args:
        text: The text to analyze.
    """
    if not text or not text.strip():
        return "❌ Error: No text provided for analysis"

    chars = len(text)
    chars_no_spaces = len(re.sub(r"\s", "", text))
    words = len(text.split())
    sentences = len([s for s in re.split(r"[.!?]+", text) if s.strip()])
    paragraphs = len([p for p in re.split(r"\n\s*\n", text) if p.strip()])
    lines = len(text.split("\n"))

    words_per_sentence = f"{words / sentences:.2f}" if sentences else "0"
    chars_per_word = f"{chars_no_spaces / words:.2f}" if words else "0"

    return (
        "📊 Text Analysis Results:\n\n"
        f"📝 Characters: {chars} ({chars_no_spaces} without spaces)\n"
        f"🔤 Words: {words}\n"
        f"📄 Sentences: {sentences}\n"
        f"📋 Paragraphs: {paragraphs}\n"
        f"📏 Lines: {lines}\n\n"
        "📈 Averages:\n"
        f"  • Words per sentence: {words_per_sentence}\n"
        f"  • Characters per word: {chars_per_word}"
    )


@tool
def transform_text(text: str, operation: TransformOperation) -> str:
    """Transform text: uppercase, lowercase, title_case, reverse, remove_spaces,
    trim, remove_duplicates (repeated words) or word_wrap (80 columns).

    Args:
        text: The text to transform.
        operation: The transformation operation to apply.
    """
    if not text:
        return "❌ Error: No text provided for transformation"
    try:
        result = transform(text, operation)
    except ValueError:
        return (
            f'❌ Error: Unknown operation "{operation}". Available operations: '
            "uppercase, lowercase, title_case, reverse, remove_spaces, trim, "
            "remove_duplicates, word_wrap"
        )
    return f"✅ Text transformation completed ({operation}):\n\n{result}"


@tool
def replace_text(text: str, search: str, replace: str, case_sensitive: bool = False) -> str:
    """Search and replace literal text, optionally case sensitive.

    Args:
        text: The text to search in.
        search: The text to search for.
        replace: The text to replace with.
        case_sensitive: Whether the search is case sensitive (default: false).
    """
    if not text or not search:
        return "❌ Error: Text and search term are required"

    pattern = re.compile(re.escape(search), 0 if case_sensitive else re.IGNORECASE)
    result, count = pattern.subn(lambda _: replace, text)
    if count == 0:
        return f'🔍 No matches found for "{search}" in the text'

    return (
        "✅ Text replacement completed:\n\n"
        f'🔍 Search term: "{search}"\n'
        f'🔄 Replace with: "{replace}"\n'
        f"📊 Replacements made: {count}\n"
        f"🔤 Case sensitive: {str(case_sensitive).lower()}\n\n"
        f"📝 Result:\n{result}"
    )


@tool
def extract_info(text: str, info_type: ExtractType) -> str:
    """Extract emails, urls, phone_numbers or numbers from text.

    Args:
        text: The text to extract information from.
        info_type: The type of information to extract.
    """
    if not text:
        return "❌ Error: No text provided for extraction"
    if info_type not in _EXTRACTORS:
        return (
            f'❌ Error: Unknown extraction type "{info_type}". '
            "Available types: emails, urls, phone_numbers, numbers"
        )

    pattern, icon, noun, empty = _EXTRACTORS[info_type]
    found = [m.group(0) for m in pattern.finditer(text)]
    if not found:
        return f"{icon} {empty}"
    listing = "\n".join(f"{i}. {item}" for i, item in enumerate(found, start=1))
    return f"{icon} Found {len(found)} {noun}:\n{listing}"


def build_text_tools() -> list[BaseTool]:
    return [analyze_text, transform_text, replace_text, extract_info]
