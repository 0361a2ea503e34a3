"""Pydantic request/response/error schemas."""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Level = Literal["High", "Medium", "Low"]
RiskLevel = Literal["Low", "Medium", "High", "Critical"]


class CamelModel(BaseModel):
    """Base for payloads exchanged with the browser client in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Question answering ---


class AskRequest(CamelModel):
    prompt: str | None = None
    contract_content: str | None = None


class QuestionChainResult(CamelModel):
    original_question: str
    enhanced_question: str
    key_terms: list[str]
    search_query: str
    timestamp: datetime.datetime
    error: str | None = None


class AskResponse(CamelModel):
    answer: str
    question_data: QuestionChainResult


# --- Risk report (LLM output, validated) ---


class Evidence(BaseModel):
    section_ref: str
    quote: str
    confidence: float = Field(ge=0.0, le=1.0)
    context_supported: bool | None = None


class Risk(BaseModel):
    risk_id: str
    title: str
    category: str
    severity: Level
    likelihood: Level
    score: int = Field(ge=0, le=100)
    why_risky: str
    evidence: list[Evidence] = Field(min_length=1)
    mitigations: list[str] = Field(min_length=1)
    redline_suggestion: str
    tags: list[str] | None = None


class RiskReport(BaseModel):
    contract_id: str
    generated_at: str
    overall_summary: str
    overall_risk_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    context_used: int | None = None
    risks: list[Risk]


class FailedRiskReport(BaseModel):
    """Degraded report returned whenever analysis cannot produce a valid RiskReport."""

    contract_id: str
    generated_at: str
    overall_summary: str = "Analysis failed due to an error"
    overall_risk_score: Literal[0] = 0
    risk_level: Literal["Unknown"] = "Unknown"
    risks: list[Risk] = []
    error: str


class OverallRisk(BaseModel):
    overall_risk_score: int
    risk_level: RiskLevel


# --- Contract analysis API ---


class AnalyzeRequest(CamelModel):
    contract_content: str | None = None
    contract_id: str | None = None


class AnalyzeResponse(CamelModel):
    success: bool = True
    analysis: RiskReport | FailedRiskReport
    summary: str
    contract_id: str


# --- Ingestion API ---


class IngestRequest(BaseModel):
    path: str | None = None


class IngestResponse(BaseModel):
    inserted: int
    source_file: str


# --- LLM connectivity check ---


class LlmHealthResponse(BaseModel):
    success: bool
    message: str
    response: str
    model: str


# --- Error schema ---


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict = {}
