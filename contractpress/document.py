"""Contract document model.

The editor builds a fresh ``ContractDocument`` from its form state on every
edit; stored contracts and share links load back into the same shape. All
models are frozen so a document can be handed to a pagination run as an
immutable snapshot.
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union
import uuid

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _blank_to_none(value: Any) -> Any:
    # form inputs send "" for untouched fields
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _blank_to_zero(value: Any) -> Any:
    # cleared number inputs arrive as null or ""
    value = _blank_to_none(value)
    return 0 if value is None else value


OptionalDate = Annotated[Optional[date], BeforeValidator(_blank_to_none)]
OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
NonNegative = Annotated[float, Field(ge=0)]
ZeroIfBlank = Annotated[NonNegative, BeforeValidator(_blank_to_zero)]
OptionalAmount = Annotated[Optional[NonNegative], BeforeValidator(_blank_to_none)]
FontSize = Annotated[Optional[Union[float, str]], BeforeValidator(_blank_to_none)]
HeaderAlignment = Annotated[Optional[Literal["left", "center", "right"]], BeforeValidator(_blank_to_none)]
ContentAlignment = Annotated[
    Optional[Literal["left", "center", "right", "justify"]], BeforeValidator(_blank_to_none)
]


class _Frozen(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class Party(_Frozen):
    name: str = ""
    organization: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""

    def is_empty(self) -> bool:
        return not self.name.strip()


class Milestone(_Frozen):
    title: str = ""
    description: str = ""
    due_date: OptionalDate = None
    amount: OptionalAmount = None


class PaymentScheduleEntry(_Frozen):
    description: str = ""
    percentage: Annotated[float, Field(ge=0, le=100), BeforeValidator(_blank_to_zero)] = 0
    due_date: OptionalDate = None


class Retainer(_Frozen):
    amount: ZeroIfBlank = 0
    renewal_cycle: Annotated[
        Optional[Literal["monthly", "quarterly", "yearly"]], BeforeValidator(_blank_to_none)
    ] = None
    auto_renew: bool = False


class SectionStyleOverride(_Frozen):
    header_color: OptionalText = None
    header_alignment: HeaderAlignment = None
    header_font_size: FontSize = None
    content_color: OptionalText = None
    content_alignment: ContentAlignment = None
    content_font_size: FontSize = None


class StyleConfig(_Frozen):
    primary_color: OptionalText = None
    content_color: OptionalText = None
    font_family: OptionalText = None
    line_spacing: Optional[float] = Field(default=None, gt=0)
    header_font_size: FontSize = None
    section_header_font_size: FontSize = None
    sub_header_font_size: FontSize = None
    body_font_size: FontSize = None
    header_alignment: HeaderAlignment = None
    content_alignment: ContentAlignment = None
    section_styles: Dict[str, SectionStyleOverride] = Field(default_factory=dict)
    apply_global_styles: bool = False
    header_background: OptionalText = None
    header_background_color: OptionalText = None
    document_background: OptionalText = None
    document_background_color: OptionalText = None


class ContractDocument(_Frozen):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str = ""
    subtitle: str = ""

    agreement_intro: str = ""
    effective_date: OptionalDate = None

    provider: Party = Field(default_factory=Party)
    counterparty: Party = Field(default_factory=Party)

    services: str = ""
    deliverables: str = ""
    milestones: Tuple[Milestone, ...] = ()

    payment_type: Literal["fixed", "hourly"] = "fixed"
    rate: ZeroIfBlank = 0
    total_amount: OptionalAmount = None
    payment_schedule: Tuple[PaymentScheduleEntry, ...] = ()
    late_fee_enabled: bool = False
    late_fee_amount: OptionalAmount = None
    retainer: Optional[Retainer] = None

    start_date: OptionalDate = None
    end_date: OptionalDate = None

    response_time: str = ""
    revision_limit: Annotated[Optional[Annotated[int, Field(ge=0)]], BeforeValidator(_blank_to_none)] = None
    uptime_requirement: str = ""

    include_nda: bool = False
    confidentiality_scope: str = ""
    confidentiality_duration: str = ""

    ip_ownership: Annotated[
        Optional[Literal["freelancer", "client", "joint"]], BeforeValidator(_blank_to_none)
    ] = None
    usage_rights: Annotated[Optional[Literal["limited", "full"]], BeforeValidator(_blank_to_none)] = None

    termination_conditions: str = ""
    notice_period: str = ""
    jurisdiction: str = ""
    arbitration_clause: bool = False

    provider_signature: OptionalText = None
    counterparty_signature: OptionalText = None
    signed_date: OptionalDate = None

    style: StyleConfig = Field(default_factory=StyleConfig)

    @classmethod
    def from_form_state(cls, data: Dict[str, Any]) -> "ContractDocument":
        """Load the flat editor form state (``freelancerName``, ``clientEmail`` ...)."""
        provider = {
            "name": data.get("freelancerName", ""),
            "organization": data.get("freelancerBusinessName", ""),
            "address": data.get("freelancerAddress", ""),
            "email": data.get("freelancerEmail", ""),
            "phone": data.get("freelancerPhone", ""),
        }
        counterparty = {
            "name": data.get("clientName", ""),
            "organization": data.get("clientCompany", ""),
            "address": data.get("clientAddress", ""),
            "email": data.get("clientEmail", ""),
            "phone": data.get("clientPhone", ""),
        }
        retainer = None
        if data.get("isRetainer"):
            retainer = {
                "amount": data.get("retainerAmount") or 0,
                "renewalCycle": data.get("renewalCycle"),
                "autoRenew": bool(data.get("autoRenew")),
            }
        style_keys = set(StyleConfig.model_fields) | {to_camel(name) for name in StyleConfig.model_fields}
        style = {key: value for key, value in data.items() if key in style_keys}
        payload = {
            key: value
            for key, value in data.items()
            if key not in style_keys and not key.startswith(("freelancer", "client"))
        }
        payload.update(
            {
                "id": data.get("id") or uuid.uuid4().hex,
                "title": data.get("documentTitle", data.get("title", "")),
                "subtitle": data.get("documentSubtitle", data.get("subtitle", "")),
                "agreementIntro": data.get("agreementIntroText", data.get("agreementIntro", "")),
                "includeNda": data.get("includeNDA", data.get("includeNda", False)),
                "providerSignature": data.get("freelancerSignature"),
                "counterpartySignature": data.get("clientSignature"),
                "provider": provider,
                "counterparty": counterparty,
                "retainer": retainer,
                "style": style,
            }
        )
        return cls.model_validate(payload)
