from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union

from ..config import DEFAULT_SUBTITLE, DEFAULT_TITLE
from ..document import ContractDocument, Milestone, Party, PaymentScheduleEntry
from .formatting import (
    IP_OWNERSHIP_LABELS,
    RENEWAL_LABELS,
    USAGE_RIGHTS_LABELS,
    format_currency,
    format_date,
)


DEFAULT_CONFIDENTIALITY = (
    "Both parties agree to maintain confidentiality of all proprietary and sensitive "
    "information shared during the course of this agreement."
)
DEFAULT_TERMINATION = (
    "Either party may terminate this agreement with 30 days written notice. Upon termination, "
    "all outstanding payments for completed work shall be made within 15 days."
)
ARBITRATION_TEXT = "Any dispute arising from this agreement shall be settled through binding arbitration."


# -------------------- Block variants --------------------
@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    section_id: str
    key: str
    divider: bool = False


@dataclass(frozen=True)
class Paragraph:
    text: str
    section_id: str
    key: str
    label: str = ""
    emphasis: bool = False
    muted: bool = False


@dataclass(frozen=True)
class PartyPair:
    provider: Party
    counterparty: Party
    section_id: str = "parties"

    @property
    def key(self) -> str:
        return "parties.pair"


@dataclass(frozen=True)
class MilestoneItem:
    milestone: Milestone
    index: int
    section_id: str = "scope"

    @property
    def key(self) -> str:
        return f"scope.milestone.{self.index}"


@dataclass(frozen=True)
class PaymentRow:
    entry: PaymentScheduleEntry
    resolved_amount: Optional[float]
    index: int
    section_id: str = "payment"

    @property
    def key(self) -> str:
        return f"payment.row.{self.index}"


@dataclass(frozen=True)
class SignatureBlock:
    party: str
    name: str
    image_ref: Optional[str]
    date: Optional[date]
    section_id: str = "signatures"

    @property
    def key(self) -> str:
        return f"signatures.{self.party}"


ContentBlock = Union[Heading, Paragraph, PartyPair, MilestoneItem, PaymentRow, SignatureBlock]


# -------------------- Section predicates --------------------
def _text(value: Optional[str]) -> str:
    return (value or "").strip()


def has_agreement_intro(doc: ContractDocument) -> bool:
    return bool(_text(doc.agreement_intro))


def has_parties(doc: ContractDocument) -> bool:
    return not doc.provider.is_empty() or not doc.counterparty.is_empty()


def titled_milestones(doc: ContractDocument) -> List[tuple[int, Milestone]]:
    return [(i, m) for i, m in enumerate(doc.milestones) if _text(m.title)]


def has_scope(doc: ContractDocument) -> bool:
    return bool(_text(doc.services) or _text(doc.deliverables) or titled_milestones(doc))


def has_payment_terms(doc: ContractDocument) -> bool:
    return (
        doc.rate > 0
        or (doc.total_amount or 0) > 0
        or len(doc.payment_schedule) > 0
        or has_retainer(doc)
    )


def has_retainer(doc: ContractDocument) -> bool:
    return doc.retainer is not None and doc.retainer.amount > 0


def has_timeline(doc: ContractDocument) -> bool:
    return doc.start_date is not None or doc.end_date is not None


def has_sla(doc: ContractDocument) -> bool:
    return bool(_text(doc.response_time))


def has_ip(doc: ContractDocument) -> bool:
    return doc.ip_ownership is not None


def has_confidentiality(doc: ContractDocument) -> bool:
    return doc.include_nda


def resolve_amount(doc: ContractDocument, entry: PaymentScheduleEntry) -> Optional[float]:
    total = doc.total_amount or 0
    if total <= 0:
        return None
    return total * entry.percentage / 100


# -------------------- Builder --------------------
class _Section:
    def __init__(self, section_id: str, blocks: List[ContentBlock], divider: bool):
        self.section_id = section_id
        self._blocks = blocks
        self._divider = divider

    def heading(self, text: str) -> None:
        self._blocks.append(
            Heading(level=2, text=text, section_id=self.section_id, key=f"{self.section_id}.heading", divider=self._divider)
        )

    def subheading(self, text: str, name: str) -> None:
        self._blocks.append(Heading(level=3, text=text, section_id=self.section_id, key=f"{self.section_id}.{name}.heading"))

    def paragraph(self, text: str, name: str, label: str = "", emphasis: bool = False, muted: bool = False) -> None:
        self._blocks.append(
            Paragraph(
                text=text,
                section_id=self.section_id,
                key=f"{self.section_id}.{name}",
                label=label,
                emphasis=emphasis,
                muted=muted,
            )
        )

    def add(self, block: ContentBlock) -> None:
        self._blocks.append(block)


def build_blocks(document: ContractDocument) -> List[ContentBlock]:
    """
    Turn a contract into its ordered list of renderable blocks.

    Section order is fixed: header, introduction, parties, scope, payment,
    timeline, service levels, IP, confidentiality, termination, signatures.
    Sections whose data is empty are left out entirely.
    """
    blocks: List[ContentBlock] = [
        Heading(level=1, text=_text(document.title) or DEFAULT_TITLE, section_id="header", key="header.title"),
        Paragraph(
            text=_text(document.subtitle) or DEFAULT_SUBTITLE,
            section_id="header",
            key="header.subtitle",
            muted=True,
        ),
    ]

    sections_emitted = 0

    def section(section_id: str) -> _Section:
        nonlocal sections_emitted
        sections_emitted += 1
        return _Section(section_id, blocks, divider=sections_emitted > 1)

    if has_agreement_intro(document):
        s = section("introduction")
        s.heading("AGREEMENT INTRODUCTION")
        s.paragraph(_text(document.agreement_intro), "text")
        if document.effective_date:
            s.paragraph(format_date(document.effective_date), "effective_date", label="Effective Date", emphasis=True)

    if has_parties(document):
        s = section("parties")
        s.heading("PARTIES TO THE AGREEMENT")
        s.add(PartyPair(provider=document.provider, counterparty=document.counterparty))

    if has_scope(document):
        s = section("scope")
        s.heading("SCOPE OF WORK")
        if _text(document.services):
            s.subheading("SERVICES", "services")
            s.paragraph(_text(document.services), "services")
        if _text(document.deliverables):
            s.subheading("DELIVERABLES", "deliverables")
            s.paragraph(_text(document.deliverables), "deliverables")
        milestones = titled_milestones(document)
        if milestones:
            s.subheading("MILESTONES", "milestones")
            for index, milestone in milestones:
                s.add(MilestoneItem(milestone=milestone, index=index))

    if has_payment_terms(document):
        s = section("payment")
        s.heading("PAYMENT TERMS")
        total = document.total_amount or 0
        if document.payment_type == "hourly" and document.rate > 0:
            s.subheading("PAYMENT STRUCTURE", "structure")
            s.paragraph(f"{format_currency(document.rate)}/hour", "structure", label="Hourly Rate", emphasis=True)
        elif total > 0:
            s.subheading("PAYMENT STRUCTURE", "structure")
            s.paragraph(format_currency(total), "structure", label="Total Project Amount", emphasis=True)
        if document.payment_schedule:
            s.subheading("PAYMENT SCHEDULE", "schedule")
            for index, entry in enumerate(document.payment_schedule):
                s.add(PaymentRow(entry=entry, resolved_amount=resolve_amount(document, entry), index=index))
        if document.late_fee_enabled and document.late_fee_amount:
            s.paragraph(
                f"{format_currency(document.late_fee_amount)} per late payment", "late_fee", label="Late Fee"
            )
        if has_retainer(document):
            retainer = document.retainer
            s.subheading("RETAINER", "retainer")
            s.paragraph(format_currency(retainer.amount), "retainer.amount", label="Retainer Amount")
            if retainer.renewal_cycle:
                renewal = RENEWAL_LABELS[retainer.renewal_cycle]
                if retainer.auto_renew:
                    renewal += " (renews automatically)"
                s.paragraph(renewal, "retainer.cycle", label="Renewal Cycle")

    if has_timeline(document):
        s = section("timeline")
        s.heading("PROJECT TIMELINE")
        if document.start_date:
            s.paragraph(format_date(document.start_date), "start", label="Start Date")
        if document.end_date:
            s.paragraph(format_date(document.end_date), "end", label="End Date")

    if has_sla(document):
        s = section("sla")
        s.heading("SERVICE LEVEL AGREEMENT")
        s.paragraph(_text(document.response_time), "response_time", label="Response Time")
        if document.revision_limit is not None:
            s.paragraph(str(document.revision_limit), "revisions", label="Revision Limit")
        if _text(document.uptime_requirement):
            s.paragraph(_text(document.uptime_requirement), "uptime", label="Uptime")

    if has_ip(document):
        s = section("ip")
        s.heading("INTELLECTUAL PROPERTY")
        s.paragraph(IP_OWNERSHIP_LABELS[document.ip_ownership], "ownership", label="IP Ownership")
        if document.usage_rights:
            s.paragraph(USAGE_RIGHTS_LABELS[document.usage_rights], "usage", label="Usage Rights")

    if has_confidentiality(document):
        s = section("nda")
        s.heading("CONFIDENTIALITY")
        s.paragraph(DEFAULT_CONFIDENTIALITY, "text")
        if _text(document.confidentiality_scope):
            s.paragraph(_text(document.confidentiality_scope), "scope", label="Scope")
        if _text(document.confidentiality_duration):
            s.paragraph(_text(document.confidentiality_duration), "duration", label="Duration")

    s = section("termination")
    s.heading("TERMINATION")
    s.paragraph(_text(document.termination_conditions) or DEFAULT_TERMINATION, "text")
    if _text(document.notice_period):
        s.paragraph(_text(document.notice_period), "notice", label="Notice Period")
    if _text(document.jurisdiction):
        s.paragraph(_text(document.jurisdiction), "jurisdiction", label="Jurisdiction")
    if document.arbitration_clause:
        s.paragraph(ARBITRATION_TEXT, "arbitration")

    s = section("signatures")
    s.heading("DIGITAL SIGNATURES")
    s.add(
        SignatureBlock(
            party="provider",
            name=document.provider.name,
            image_ref=document.provider_signature,
            date=document.signed_date,
        )
    )
    s.add(
        SignatureBlock(
            party="counterparty",
            name=document.counterparty.name,
            image_ref=document.counterparty_signature,
            date=None,
        )
    )
    return blocks
