"""Contract risk analysis: key terms -> knowledge base context -> LLM -> validated report.

The pipeline is linear. Key term extraction falls back to no terms; every other
failure (retrieval, LLM call, JSON extraction, schema validation) is converted
into a ``FailedRiskReport`` so callers always receive a well-formed object.
"""

from __future__ import annotations

import datetime
import json
import logging
import math
from collections.abc import Sequence
from typing import Any, Literal

from contract_risk.clients import RagClients
from contract_risk.models.rag import RetrievedMatch
from contract_risk.models.schemas import (
    FailedRiskReport,
    OverallRisk,
    Risk,
    RiskReport,
)
from contract_risk.services import llm
from contract_risk.services.pipeline import run_stage
from contract_risk.services.question_chain import parse_terms
from contract_risk.services.rag_service import (
    fetch_relevant_docs,
    format_reference_context,
)

logger = logging.getLogger(__name__)

CONTEXT_MATCH_COUNT = 8

EnumKind = Literal["risk_level", "severity", "likelihood"]

# Substring checks run in this order; the first hit wins.
_RISK_LEVEL_ORDER = (
    ("low", "Low"),
    ("medium", "Medium"),
    ("high", "High"),
    ("critical", "Critical"),
)
_LEVEL_ORDER = (("high", "High"), ("medium", "Medium"), ("low", "Low"))

KEY_TERMS_SYSTEM_PROMPT = """\
Extract 10-15 key terms from the contract that would be useful for finding \
relevant risk analysis information in a knowledge base.

Focus on:
- Legal terms (liability, indemnification, breach, termination, etc.)
- Risk-related terms (mitigation, assessment, exposure, etc.)
- Contract-specific terms (clauses, terms, conditions, etc.)
- Industry-specific terms
- Financial terms (payment, penalty, damages, etc.)

Return only the terms separated by commas, no explanations.
"""

ANALYSIS_SYSTEM_PROMPT = """\
You are a professional contract risk analyst specializing in identifying and \
assessing risks in business contracts.

Your task is to:
1. Analyze the contract content thoroughly
2. Use the provided knowledge base context to enhance your analysis
3. Identify potential risks across different categories
4. Provide evidence from the contract text and knowledge base
5. Suggest mitigations and redline recommendations based on best practices
6. Calculate risk scores based on severity and likelihood

Risk Categories to focus on:
- Payment and Financial Risks
- Liability and Indemnification
- Termination and Breach
- Intellectual Property
- Confidentiality and Data Protection
- Force Majeure and Unforeseen Events
- Dispute Resolution
- Regulatory Compliance

For each risk identified:
- Provide specific quotes from the contract as evidence
- Reference relevant knowledge base information when applicable
- Assess severity (High/Medium/Low) and likelihood (High/Medium/Low)
- Calculate a risk score (0-100)
- Suggest practical mitigations based on best practices
- Provide redline suggestions for contract improvement

Use the knowledge base context to:
- Identify industry-specific risks
- Provide more accurate risk assessments
- Suggest proven mitigation strategies
- Reference relevant case studies or examples

Output must be valid JSON following the exact schema provided.
"""

NO_CONTEXT = "No relevant context found in knowledge base."


class ReportParseError(Exception):
    """Raised when no JSON object can be recovered from the model output."""


# --- Normalization ---


def normalize_enum(value: Any, kind: EnumKind = "risk_level") -> str:
    """Map free-text levels onto the canonical enum by substring containment.

    Case-insensitive. Empty or unrecognized values become "Medium".
    """
    if not value:
        return "Medium"
    text = str(value).lower()
    order = _RISK_LEVEL_ORDER if kind == "risk_level" else _LEVEL_ORDER
    for needle, canonical in order:
        if needle in text:
            return canonical
    return "Medium"


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first decodable JSON object embedded in ``text``."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        return obj
    raise ReportParseError("No valid JSON found in response")


def calculate_overall_risk(risks: Sequence[Risk]) -> OverallRisk:
    """Average risk score and the level band it falls in."""
    if not risks:
        return OverallRisk(overall_risk_score=0, risk_level="Low")
    average = sum(r.score for r in risks) / len(risks)
    if average >= 75:
        level = "Critical"
    elif average >= 50:
        level = "High"
    elif average >= 25:
        level = "Medium"
    else:
        level = "Low"
    return OverallRisk(overall_risk_score=math.floor(average + 0.5), risk_level=level)


def _prepare_report(
    data: dict[str, Any],
    *,
    contract_id: str,
    generated_at: str,
    context_used: int,
) -> dict[str, Any]:
    """Normalize enum fields and fill server-owned fields the model omitted."""
    risks = data.get("risks") or []
    if isinstance(risks, list):
        risks = [
            {
                **risk,
                "severity": normalize_enum(risk.get("severity"), "severity"),
                "likelihood": normalize_enum(risk.get("likelihood"), "likelihood"),
            }
            if isinstance(risk, dict)
            else risk
            for risk in risks
        ]
    data["risks"] = risks

    if data.get("overall_risk_score") is None:
        overall = calculate_overall_risk([Risk.model_validate(r) for r in risks])
        data["overall_risk_score"] = overall.overall_risk_score
        data.setdefault("risk_level", overall.risk_level)
    data["risk_level"] = normalize_enum(data.get("risk_level"), "risk_level")

    data.setdefault("contract_id", contract_id)
    data.setdefault("generated_at", generated_at)
    data.setdefault("context_used", context_used)
    return data


# --- Prompt assembly ---


async def extract_contract_key_terms(
    clients: RagClients, contract_content: str
) -> list[str]:
    """Ask the model for search terms from the start of the contract."""
    text = await llm.complete(
        clients,
        llm.Prompt(
            system=KEY_TERMS_SYSTEM_PROMPT,
            user=f"Contract content: {contract_content[:2000]}",
        ),
        temperature=clients.settings.analysis_temperature,
        max_output_tokens=clients.settings.key_terms_max_output_tokens,
    )
    return parse_terms(text)


def build_contract_search_query(contract_content: str, key_terms: list[str]) -> str:
    if key_terms:
        return f"{contract_content[:500]} {' '.join(key_terms)}"
    return contract_content[:1000]


def _schema_example(contract_id: str, generated_at: str, context_used: int) -> str:
    example = {
        "contract_id": contract_id,
        "generated_at": generated_at,
        "overall_summary": "Brief summary of the contract and overall risk assessment",
        "overall_risk_score": 75,
        "risk_level": "High",
        "context_used": context_used,
        "risks": [
            {
                "risk_id": "risk_001",
                "title": "Payment Delay Risk",
                "category": "Financial",
                "severity": "High",
                "likelihood": "Medium",
                "score": 75,
                "why_risky": "Explanation of why this is risky",
                "evidence": [
                    {
                        "section_ref": "Section 3.2",
                        "quote": "Exact quote from contract",
                        "confidence": 0.9,
                        "context_supported": True,
                    }
                ],
                "mitigations": ["Specific mitigation strategies"],
                "redline_suggestion": "Suggested contract language changes",
                "tags": ["payment", "financial"],
            }
        ],
    }
    return json.dumps(example, indent=2)


def build_analysis_prompt(
    contract_content: str,
    contract_id: str,
    generated_at: str,
    matches: list[RetrievedMatch],
) -> llm.Prompt:
    context = format_reference_context(matches) or NO_CONTEXT
    user = (
        f"Contract Content:\n{contract_content}\n\n"
        f"Knowledge Base Context (for enhanced analysis):\n{context}\n\n"
        "Please analyze this contract using both the contract content and the "
        "knowledge base context to provide a comprehensive risk assessment.\n\n"
        "Return the analysis in the following JSON format:\n"
        f"{_schema_example(contract_id, generated_at, len(matches))}\n\n"
        "Ensure all risk scores are between 0-100 and confidence levels between 0-1."
    )
    return llm.Prompt(system=ANALYSIS_SYSTEM_PROMPT, user=user)


# --- Pipeline ---


async def analyze_contract(
    clients: RagClients, contract_content: str, contract_id: str
) -> RiskReport | FailedRiskReport:
    """Run the full analysis. Never raises; failures yield a FailedRiskReport."""
    generated_at = datetime.datetime.now(datetime.UTC).isoformat()
    logger.info("Starting contract analysis for %s", contract_id)

    try:
        terms = await run_stage(
            "extract_contract_key_terms",
            lambda: extract_contract_key_terms(clients, contract_content),
            default=[],
        )
        logger.info("Extracted key terms (%s): %s", terms.status, terms.value)

        search_query = build_contract_search_query(contract_content, terms.value)
        matches = await fetch_relevant_docs(
            clients, search_query, k=CONTEXT_MATCH_COUNT
        )
        logger.info("Found %d knowledge base references", len(matches))

        prompt = build_analysis_prompt(
            contract_content, contract_id, generated_at, matches
        )
        raw = await llm.complete(
            clients,
            prompt,
            temperature=clients.settings.analysis_temperature,
            max_output_tokens=clients.settings.analysis_max_output_tokens,
        )
        logger.info("Received analysis response (%d chars), parsing JSON", len(raw))

        data = extract_json_object(raw)
        report = RiskReport.model_validate(
            _prepare_report(
                data,
                contract_id=contract_id,
                generated_at=generated_at,
                context_used=len(matches),
            )
        )
    except Exception as e:
        logger.exception("Contract analysis failed for %s", contract_id)
        return FailedRiskReport(
            contract_id=contract_id,
            generated_at=generated_at,
            error=str(e),
        )

    logger.info(
        "Contract analysis complete: score=%d level=%s risks=%d",
        report.overall_risk_score,
        report.risk_level,
        len(report.risks),
    )
    return report


# --- Rendering ---


def generate_risk_summary(report: RiskReport | FailedRiskReport) -> str:
    """Plain-text digest of a report for display."""
    if isinstance(report, FailedRiskReport):
        return f"Analysis Error: {report.error}"

    lines = [
        f"Overall Risk Score: {report.overall_risk_score}/100 "
        f"({report.risk_level} Risk Level)"
    ]
    if report.context_used:
        lines.append(
            f"Enhanced with {report.context_used} knowledge base references"
        )
    lines.append("")
    lines.append(f"Found {len(report.risks)} potential risks:")
    lines.append("")

    for index, risk in enumerate(report.risks, start=1):
        lines.append(f"{index}. {risk.title} ({risk.category})")
        lines.append(
            f"   Severity: {risk.severity} | Likelihood: {risk.likelihood} "
            f"| Score: {risk.score}/100"
        )
        lines.append(f"   Why Risky: {risk.why_risky}")
        lines.append(f"   Mitigations: {', '.join(risk.mitigations)}")
        if any(e.context_supported for e in risk.evidence):
            lines.append("   Knowledge base supported")
        lines.append("")

    return "\n".join(lines)
