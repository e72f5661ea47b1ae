"""Prompt assembly around extracted document text.

The completion call itself lives with the caller; these helpers only shape
what is sent and check what comes back.
"""

from typing import Optional

from upload_extractor.config import PROMPT_CONTEXT_MAX_CHARS, TRUNCATION_MARKER
from upload_extractor.detector import Sentinels
from upload_extractor.exceptions import EmptyCompletionError
from upload_extractor.handler import truncate_text
from upload_extractor.logger import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a calm, empathetic assistant helping parents understand custody "
    "paperwork and communications. Never provide legal advice - instead focus "
    "on communication strategies, tone, and clarity."
)

DEFAULT_TONE = "calm"


def build_context(
    extracted_text: Optional[str], max_chars: int = PROMPT_CONTEXT_MAX_CHARS
) -> str:
    """Prepare extracted text for a prompt.

    Placeholders and empty extractions give an empty context; long text is
    capped with the usual truncation marker.
    """
    text = (extracted_text or "").strip()
    if not text or Sentinels.is_sentinel(text):
        return ""
    text, truncated = truncate_text(text, max_chars, TRUNCATION_MARKER)
    if truncated:
        logger.debug("Prompt context truncated", extra_data={"max_chars": max_chars})
    return text


def build_messages(
    question: str,
    tone: str = DEFAULT_TONE,
    recipient: Optional[str] = None,
    context_prompt: str = "",
    context: str = "",
) -> list[dict[str, str]]:
    """Chat messages for a coaching response.

    Args:
        question: The user's question
        tone: Requested tone of the answer (e.g. "calm", "firm", "friendly")
        recipient: Who the reply is addressed to (co-parent, attorney, court)
        context_prompt: Situation description supplied with the question
        context: Document text, usually from ``build_context``

    Raises:
        ValueError: If the question is blank
    """
    if not question or not question.strip():
        raise ValueError("question is required")

    tone = (tone or DEFAULT_TONE).strip()
    sections = []
    if context_prompt.strip():
        sections.append(context_prompt.strip())
    if recipient and recipient.strip():
        sections.append(f"Recipient: {recipient.strip()}")
    sections.append(f'Question: "{question.strip()}"')
    if context:
        sections.append(f"Relevant document context:\n{context}")
    sections.append(
        f"Please provide a helpful, {tone} response that assists with tone, "
        "clarity, and preparing professional communication. Always align your "
        "answer with family law best practices and avoid giving direct legal advice."
    )

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n\n".join(sections)},
    ]


def require_completion(completion: Optional[str]) -> str:
    """Return the stripped completion text.

    Raises:
        EmptyCompletionError: If the model returned nothing usable
    """
    text = (completion or "").strip()
    if not text:
        logger.error("Language model returned an empty completion")
        raise EmptyCompletionError("No response generated from the language model")
    return text
