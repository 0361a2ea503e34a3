"""Contract analysis endpoint tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from contract_risk.clients import RagClients
from contract_risk.dependencies import get_clients
from contract_risk.main import app
from contract_risk.models.schemas import FailedRiskReport, RiskReport

MOCK_REPORT = RiskReport.model_validate(
    {
        "contract_id": "msa-001",
        "generated_at": "2025-01-01T00:00:00+00:00",
        "overall_summary": "Short-notice termination exposes the customer.",
        "overall_risk_score": 70,
        "risk_level": "High",
        "context_used": 0,
        "risks": [
            {
                "risk_id": "risk_001",
                "title": "Termination for convenience on short notice",
                "category": "Termination and Breach",
                "severity": "High",
                "likelihood": "Medium",
                "score": 70,
                "why_risky": "Services can end with only 30 days of warning.",
                "evidence": [
                    {
                        "section_ref": "Section 7.1",
                        "quote": "Either party may terminate with 30 days notice",
                        "confidence": 0.9,
                    }
                ],
                "mitigations": ["Extend notice to 90 days"],
                "redline_suggestion": "Replace '30 days' with '90 days'.",
            }
        ],
    }
)

BODY = {
    "contractContent": "Either party may terminate with 30 days notice.",
    "contractId": "msa-001",
}


async def test_analyze_success(client: AsyncClient, mocker) -> None:
    mocker.patch(
        "contract_risk.routers.analysis.analyze_contract",
        new_callable=AsyncMock,
        return_value=MOCK_REPORT,
    )
    response = await client.post("/api/v1/analyze-contract", json=BODY)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["contractId"] == "msa-001"
    assert data["analysis"]["risk_level"] == "High"
    assert data["analysis"]["risks"][0]["category"] == "Termination and Breach"
    assert data["summary"].startswith("Overall Risk Score: 70/100 (High Risk Level)")


async def test_analyze_degraded_report_is_still_success(
    client: AsyncClient, mocker
) -> None:
    mocker.patch(
        "contract_risk.routers.analysis.analyze_contract",
        new_callable=AsyncMock,
        return_value=FailedRiskReport(
            contract_id="msa-001",
            generated_at="2025-01-01T00:00:00+00:00",
            error="No valid JSON found in response",
        ),
    )
    response = await client.post("/api/v1/analyze-contract", json=BODY)
    assert response.status_code == 200
    data = response.json()
    assert data["analysis"]["risk_level"] == "Unknown"
    assert data["analysis"]["overall_risk_score"] == 0
    assert data["summary"] == "Analysis Error: No valid JSON found in response"


@pytest.mark.parametrize(
    "body",
    [
        {"contractId": "msa-001"},
        {"contractContent": "Some contract"},
        {"contractContent": "   ", "contractId": "msa-001"},
        {"contractContent": None, "contractId": "msa-001"},
        {"contractContent": "Some contract", "contractId": None},
        {},
    ],
)
async def test_analyze_missing_fields(client: AsyncClient, body: dict) -> None:
    response = await client.post("/api/v1/analyze-contract", json=body)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "MISSING_FIELDS"


async def test_analyze_without_credentials(
    client: AsyncClient, clients: RagClients, mocker
) -> None:
    analyze = mocker.patch(
        "contract_risk.routers.analysis.analyze_contract", new_callable=AsyncMock
    )
    settings = clients.settings.model_copy(
        update={"google_api_key": "", "use_vertexai": False}
    )
    app.dependency_overrides[get_clients] = lambda: RagClients(
        settings=settings, qdrant=clients.qdrant
    )
    response = await client.post("/api/v1/analyze-contract", json=BODY)
    assert response.status_code == 500
    assert response.json()["detail"]["code"] == "CONFIG_ERROR"
    analyze.assert_not_called()
