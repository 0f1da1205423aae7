"""Lead CRUD and lead-form import.

WHAT:
    Create, list, read, update and delete leads; import submissions from
    Facebook/LinkedIn lead forms.

WHY:
    A lead may only point at a campaign the principal can access. The
    campaign's `leads` list is the set of leads whose `campaign_id` is that
    campaign, so adding, moving or deleting a lead updates both sides in the
    same transaction.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Tuple
from uuid import UUID

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models import Campaign, Lead, LeadSourcePlatformEnum, LeadStatusEnum, User
from ..schemas import LeadCreate, LeadImportRequest, LeadUpdate
from .access import get_accessible, owned_by
from .query_filters import (
    ALL_OPERATORS,
    FieldSpec,
    ListQuery,
    Page,
    ResourceFields,
    SortKey,
    as_datetime,
    as_enum,
    as_uuid,
    paginate,
)

logger = logging.getLogger(__name__)

LEAD_FIELDS = ResourceFields(
    filters={
        "firstName": FieldSpec(Lead.first_name),
        "lastName": FieldSpec(Lead.last_name),
        "email": FieldSpec(Lead.email),
        "phone": FieldSpec(Lead.phone),
        "status": FieldSpec(Lead.status, as_enum(LeadStatusEnum)),
        "source.platform": FieldSpec(Lead.source_platform, as_enum(LeadSourcePlatformEnum)),
        "source.campaign": FieldSpec(Lead.campaign_id, as_uuid, sortable=False),
        "assignedTo": FieldSpec(Lead.assigned_to_id, as_uuid, sortable=False),
        "createdAt": FieldSpec(Lead.created_at, as_datetime, ALL_OPERATORS),
        "updatedAt": FieldSpec(Lead.updated_at, as_datetime, ALL_OPERATORS),
    },
    selectable=frozenset({
        "firstName", "lastName", "email", "phone", "status", "source", "additionalInfo",
        "notes", "owner", "assignedTo", "tags", "createdAt", "updatedAt",
    }),
    default_limit=25,
    default_sort=(SortKey("createdAt", descending=True),),
)

# Columns that may not be cleared by an explicit null in an update body
_REQUIRED_ON_UPDATE = {"first_name", "email", "status", "tags"}

_EMAIL = TypeAdapter(EmailStr)


def _accessible_campaign(db: Session, principal: User, campaign_id: UUID) -> Campaign:
    """The campaign a lead will be attributed to; NotFound/Forbidden otherwise."""
    return get_accessible(db, Campaign, campaign_id, principal, label="campaign")


def create_lead(db: Session, principal: User, payload: LeadCreate) -> Lead:
    """Create a lead owned by `principal` and attach it to its campaign."""
    campaign = _accessible_campaign(db, principal, payload.source.campaign)
    lead = Lead(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=str(payload.email),
        phone=payload.phone,
        status=payload.status,
        source_platform=payload.source.platform,
        source_ad_creative=payload.source.ad_creative,
        source_landing_page=payload.source.landing_page,
        additional_info=payload.additional_info,
        notes=payload.notes,
        tags=payload.tags,
        assigned_to_id=payload.assigned_to,
        owner_id=principal.id,
    )
    lead.campaign = campaign
    db.add(lead)
    db.commit()
    db.refresh(lead)
    logger.info("[LEADS] Created %s on campaign %s", lead.id, campaign.id)
    return lead


def list_leads(db: Session, principal: User, list_query: ListQuery) -> Page:
    return paginate(owned_by(db, Lead, principal), list_query, LEAD_FIELDS)


def get_lead(db: Session, principal: User, lead_id: UUID) -> Lead:
    return get_accessible(db, Lead, lead_id, principal, label="lead")


def update_lead(db: Session, principal: User, lead_id: UUID, payload: LeadUpdate) -> Lead:
    """Partial update. Moving the lead to another campaign re-runs the create-time check."""
    lead = get_lead(db, principal, lead_id)
    changes = payload.model_dump(exclude_unset=True)

    for name in _REQUIRED_ON_UPDATE:
        if name in changes and changes[name] is None:
            raise ValidationError(f"{name} cannot be null")

    for name in ("first_name", "last_name", "phone", "status", "notes", "tags"):
        if name in changes:
            setattr(lead, name, changes[name])
    if "email" in changes:
        lead.email = str(payload.email)
    if "additional_info" in changes:
        lead.additional_info = payload.additional_info or {}
    if "assigned_to" in changes:
        lead.assigned_to_id = payload.assigned_to

    if payload.source is not None:
        source = payload.source.model_dump(exclude_unset=True)
        if "platform" in source:
            if source["platform"] is None:
                raise ValidationError("source.platform cannot be null")
            lead.source_platform = source["platform"]
        if "ad_creative" in source:
            lead.source_ad_creative = source["ad_creative"]
        if "landing_page" in source:
            lead.source_landing_page = source["landing_page"]
        if "campaign" in source:
            if source["campaign"] is None:
                raise ValidationError("source.campaign cannot be null")
            if source["campaign"] != lead.campaign_id:
                previous = lead.campaign_id
                lead.campaign = _accessible_campaign(db, principal, source["campaign"])
                logger.info("[LEADS] Moved %s from campaign %s to %s", lead.id, previous, source["campaign"])

    db.commit()
    db.refresh(lead)
    return lead


def delete_lead(db: Session, principal: User, lead_id: UUID) -> None:
    """Delete a lead; it drops out of its campaign's `leads` list with it."""
    lead = get_lead(db, principal, lead_id)
    campaign_id = lead.campaign_id
    db.delete(lead)
    db.commit()
    logger.info("[LEADS] Deleted %s (campaign %s)", lead_id, campaign_id)


def import_leads(
    db: Session,
    principal: User,
    payload: LeadImportRequest,
    fetch_submissions: Callable[[], Iterable[dict]],
) -> Tuple[List[Lead], int]:
    """Create leads from normalized lead-form submissions.

    `fetch_submissions` is only called after the campaign check passes. Each
    submission is a dict produced by a platform client's `get_leads`
    (`first_name`, `last_name`, `email`, `phone`, `additional_info`).
    Submissions without a valid email are skipped.

    Returns:
        (created leads, number of skipped submissions)
    """
    campaign = _accessible_campaign(db, principal, payload.campaign)
    platform = LeadSourcePlatformEnum(payload.platform)

    created: List[Lead] = []
    skipped = 0
    for submission in fetch_submissions():
        try:
            email = _EMAIL.validate_python((submission.get("email") or "").strip())
        except PydanticValidationError:
            skipped += 1
            continue
        lead = Lead(
            first_name=submission.get("first_name") or email.split("@")[0],
            last_name=submission.get("last_name"),
            email=email,
            phone=submission.get("phone"),
            source_platform=platform,
            additional_info=submission.get("additional_info") or {},
            owner_id=principal.id,
        )
        lead.campaign = campaign
        db.add(lead)
        created.append(lead)

    db.commit()
    for lead in created:
        db.refresh(lead)
    logger.info(
        "[LEADS] Imported %d leads from %s form %s (skipped=%d)",
        len(created), platform.value, payload.form_id, skipped,
    )
    return created, skipped

