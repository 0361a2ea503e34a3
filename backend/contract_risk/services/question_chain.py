"""Question enhancement chain: rewrite a user question, then extract search terms."""

from __future__ import annotations

import datetime
import logging

from contract_risk.clients import RagClients
from contract_risk.models.schemas import QuestionChainResult
from contract_risk.services import llm
from contract_risk.services.pipeline import collect_errors, run_stage

logger = logging.getLogger(__name__)

ENHANCE_SYSTEM_PROMPT = """\
You are a question enhancement specialist for contract risk analysis.

Your task is to:
1. Clarify vague questions
2. Add context about contract risk if missing
3. Make questions more specific and actionable
4. Keep the enhanced question concise and focused
5. Maintain the original intent of the user

Examples:
- "What is risk?" -> "What are the key types of risks in business contracts?"
- "How to avoid problems?" -> "What are the best practices to avoid common \
contract risks?"
- "Tell me about liability" -> "What are the different types of liability \
clauses in contracts and how do they protect parties?"

Return only the enhanced question, nothing else.
"""

KEY_TERMS_SYSTEM_PROMPT = """\
Extract 3-5 key terms from the question that would be useful for searching \
contract risk documents.

Focus on:
- Legal terms (liability, indemnification, breach, etc.)
- Risk-related terms (mitigation, assessment, exposure, etc.)
- Contract-specific terms (clauses, terms, conditions, etc.)

Return only the terms separated by commas, no explanations.
"""


def parse_terms(text: str) -> list[str]:
    """Split a comma-separated model response into trimmed, non-empty terms."""
    return [term.strip() for term in text.split(",") if term.strip()]


async def process_question(clients: RagClients, user_input: str) -> str:
    """Rewrite ``user_input`` for clarity. Raises on LLM failure."""
    prompt = llm.Prompt(
        system=ENHANCE_SYSTEM_PROMPT, user=f"Original question: {user_input}"
    )
    text = await llm.complete(
        clients,
        prompt,
        temperature=0.1,
        max_output_tokens=clients.settings.question_max_output_tokens,
    )
    return text.strip()


async def extract_key_terms(clients: RagClients, question: str) -> list[str]:
    """Extract search key terms from ``question``. Raises on LLM failure."""
    text = await llm.complete(
        clients,
        llm.Prompt(system=KEY_TERMS_SYSTEM_PROMPT, user=f"Question: {question}"),
        temperature=0.1,
        max_output_tokens=clients.settings.question_max_output_tokens,
    )
    return parse_terms(text)


def build_search_query(enhanced_question: str, key_terms: list[str]) -> str:
    if key_terms:
        return f"{enhanced_question} {' '.join(key_terms)}"
    return enhanced_question


async def create_question_chain(
    clients: RagClients, user_input: str
) -> QuestionChainResult:
    """Run both stages sequentially. Never raises; stage failures fall back.

    A failed or empty rewrite keeps the original question; failed or empty term
    extraction yields no terms. Stage errors are reported in ``error``.
    """
    logger.info("Processing question chain for: %r", user_input[:100])

    enhanced = await run_stage(
        "process_question",
        lambda: process_question(clients, user_input),
        default=user_input,
    )
    logger.info("Enhanced question (%s): %r", enhanced.status, enhanced.value)

    terms = await run_stage(
        "extract_key_terms",
        lambda: extract_key_terms(clients, enhanced.value),
        default=[],
    )
    logger.info("Key terms (%s): %s", terms.status, terms.value)

    return QuestionChainResult(
        original_question=user_input,
        enhanced_question=enhanced.value,
        key_terms=terms.value,
        search_query=build_search_query(enhanced.value, terms.value),
        timestamp=datetime.datetime.now(datetime.UTC),
        error=collect_errors(enhanced, terms),
    )
