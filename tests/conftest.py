from __future__ import annotations

from datetime import date

import pytest

from contractpress.document import ContractDocument
from contractpress.pipeline.measure import default_typography


@pytest.fixture(autouse=True)
def typography():
    return default_typography().prepare()


@pytest.fixture
def sample_document() -> ContractDocument:
    return ContractDocument(
        title="Website Redesign Agreement",
        agreement_intro="This agreement covers the redesign of the client's marketing website.",
        effective_date=date(2025, 1, 5),
        provider={"name": "Asha Rao", "organization": "Rao Studio", "email": "asha@rao.example"},
        counterparty={"name": "Vikram Shah", "organization": "Acme Traders", "email": "vikram@acme.example"},
        services="Design and build of a responsive marketing website.",
        deliverables="Figma designs, production build, handover notes.",
        milestones=[
            {"title": "Discovery", "description": "Workshops and sitemap.", "amount": 15000},
            {"title": "Design", "due_date": date(2025, 2, 1)},
        ],
        total_amount=50000,
        payment_schedule=[
            {"description": "Advance", "percentage": 50},
            {"description": "On delivery", "percentage": 50},
        ],
        start_date=date(2025, 1, 6),
        end_date=date(2025, 3, 31),
        ip_ownership="client",
        usage_rights="full",
        include_nda=True,
        signed_date=date(2025, 1, 5),
    )


@pytest.fixture
def long_document(sample_document: ContractDocument) -> ContractDocument:
    milestones = [
        {
            "title": f"Milestone {i + 1}",
            "description": "Detailed work package covering research, drafts, reviews and a final round "
            "of revisions agreed with the client in writing.",
            "due_date": date(2025, 1 + i % 12, 10),
            "amount": 5000 + i * 250,
        }
        for i in range(14)
    ]
    return ContractDocument.model_validate({**sample_document.model_dump(), "milestones": milestones})
