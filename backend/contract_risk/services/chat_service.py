"""Question answering over a contract (and the knowledge base), streamed or one-shot."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from contract_risk.clients import RagClients
from contract_risk.models.schemas import QuestionChainResult
from contract_risk.services import llm
from contract_risk.services.question_chain import create_question_chain
from contract_risk.services.rag_service import fetch_relevant_docs, format_chat_context

logger = logging.getLogger(__name__)

END_OF_STREAM = "[DONE]"
ERROR_PREFIX = "Error: "

NO_CONTRACT_NOTICE = (
    "No contract content provided. Please use the contract analysis feature to "
    "analyze a contract first, then ask questions about it."
)
NO_CONTEXT_MESSAGE = "Sorry, I couldn't find anything relevant in the knowledge base."

ANSWER_SYSTEM_PROMPT = """\
You are a contract analysis assistant. Your role is to answer questions about \
contract content concisely and directly.

Guidelines:
- Provide SHORT, TO-THE-POINT answers (1-3 sentences maximum)
- Focus on the most relevant information only
- Use direct quotes from the contract when essential
- Be precise and avoid unnecessary explanations
- If the information is not in the contract, say "Not specified in the contract"
- Keep responses under 100 words

Original question: {original}
Enhanced question: {enhanced}
Key terms identified: {terms}
"""

KNOWLEDGE_BASE_SYSTEM_PROMPT = (
    "You are a contract-risk assistant. Use the provided context when helpful. "
    "Cite reference numbers like [#1], [#2] ..."
)


class AnswerGenerationError(Exception):
    """Raised when a non-streaming answer cannot be produced."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


def build_answer_messages(
    question_data: QuestionChainResult, contract_content: str | None
) -> llm.Prompt:
    """System instructions plus the enhanced question and the contract text."""
    system = ANSWER_SYSTEM_PROMPT.format(
        original=question_data.original_question,
        enhanced=question_data.enhanced_question,
        terms=", ".join(question_data.key_terms),
    )
    contract_text = contract_content or NO_CONTRACT_NOTICE
    user = (
        f"Question: {question_data.enhanced_question}\n\n"
        f"Contract Content:\n{contract_text}"
    )
    return llm.Prompt(system=system, user=user)


async def _stream_prompt(clients: RagClients, prompt: llm.Prompt) -> AsyncIterator[str]:
    async for delta in llm.stream(
        clients,
        prompt,
        temperature=clients.settings.chat_temperature,
        max_output_tokens=clients.settings.chat_max_output_tokens,
    ):
        yield delta


async def stream_answer(
    clients: RagClients, prompt: str, contract_content: str | None = None
) -> AsyncIterator[str]:
    """Yield answer deltas, then END_OF_STREAM.

    On any internal error a single ``Error: ...`` fragment is yielded, followed
    by END_OF_STREAM; consumers treat an error fragment as terminal.
    """
    logger.info(
        "Streaming answer: prompt=%r contract=%s",
        prompt[:100],
        "present" if contract_content else "not provided",
    )
    try:
        question_data = await create_question_chain(clients, prompt)
        messages = build_answer_messages(question_data, contract_content)
        async for delta in _stream_prompt(clients, messages):
            yield delta
    except Exception as e:
        logger.exception("Answer stream failed")
        yield f"{ERROR_PREFIX}{e}"
    yield END_OF_STREAM


async def stream_knowledge_base_answer(
    clients: RagClients, prompt: str
) -> AsyncIterator[str]:
    """Answer from retrieved knowledge base passages with [#n] citations.

    Same termination contract as ``stream_answer``.
    """
    logger.info("Streaming knowledge base answer: prompt=%r", prompt[:100])
    try:
        question_data = await create_question_chain(clients, prompt)
        matches = await fetch_relevant_docs(clients, question_data.search_query, k=6)
        if not matches:
            yield NO_CONTEXT_MESSAGE
        else:
            messages = llm.Prompt(
                system=KNOWLEDGE_BASE_SYSTEM_PROMPT,
                user=(
                    f"Question: {question_data.enhanced_question}\n\n"
                    f"Context:\n{format_chat_context(matches)}"
                ),
            )
            async for delta in _stream_prompt(clients, messages):
                yield delta
    except Exception as e:
        logger.exception("Knowledge base answer stream failed")
        yield f"{ERROR_PREFIX}{e}"
    yield END_OF_STREAM


async def generate_answer(
    clients: RagClients, prompt: str, contract_content: str | None = None
) -> tuple[str, QuestionChainResult]:
    """Non-streaming variant: return the full answer and the question chain data."""
    question_data = await create_question_chain(clients, prompt)
    messages = build_answer_messages(question_data, contract_content)
    try:
        answer = await llm.complete(
            clients,
            messages,
            temperature=clients.settings.chat_temperature,
            max_output_tokens=clients.settings.chat_max_output_tokens,
        )
    except Exception as e:
        raise AnswerGenerationError(
            code="ANSWER_ERROR", message=f"Failed to generate answer: {e}"
        ) from e
    logger.info("Answer generated (%d chars)", len(answer))
    return answer, question_data
