"""
Unified Plan View
Folds the section payload (including older key spellings) and the plan record
tables into one canonical structure used by the summary page and the PDF.
"""

import logging
from typing import Any, Dict, List
import uuid

from finalwishes.services.plan_aggregator import PlanDataView
from finalwishes.utils.data_checks import (
    as_list,
    as_object,
    flatten_payload,
    has_meaningful_data,
    merge_objects,
    user_fields,
)

logger = logging.getLogger(__name__)

UNIFIED_SECTIONS = (
    "personal_profile",
    "family",
    "legacy",
    "contacts",
    "medical",
    "advance_directive",
    "funeral",
    "financial",
    "insurance",
    "property",
    "pets",
    "online_accounts",
    "messages_to_loved_ones",
    "travel",
    "notes",
)


def _normalize_contact(contact: Dict[str, Any], default_type: str) -> Dict[str, Any]:
    return {
        "id": str(contact.get("id") or uuid.uuid4()),
        "name": contact.get("name") or contact.get("full_name") or "",
        "contact_type": contact.get("contact_type") or default_type,
        "organization": contact.get("organization") or contact.get("company") or contact.get("firm") or "",
        "role": contact.get("role") or contact.get("type") or contact.get("relationship") or "",
        "phone": contact.get("phone") or contact.get("phone_number") or contact.get("contact") or "",
        "email": contact.get("email") or "",
        "notes": contact.get("notes") or contact.get("note") or "",
    }


def _unify_contacts(merged: Dict[str, Any], raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    contacts: List[Dict[str, Any]] = []
    seen = set()

    def add(contact: Dict[str, Any]) -> None:
        if contact["name"] and contact["id"] not in seen:
            contacts.append(contact)
            seen.add(contact["id"])

    # Already-normalized contacts saved by the current editor
    for contact in as_list(merged.get("contacts")):
        if isinstance(contact, dict) and contact.get("contact_type"):
            add({**contact, "id": str(contact.get("id") or uuid.uuid4()), "name": contact.get("name") or ""})

    nested = as_object(merged.get("contacts"))
    people = (
        as_list(nested.get("contacts"))
        + as_list(nested.get("importantPeople"))
        + as_list(merged.get("people_to_notify"))
        + as_list(raw.get("contacts"))
    )
    for contact in people:
        if isinstance(contact, dict):
            add(_normalize_contact(contact, "person"))

    for contact in as_list(raw.get("professional_contacts")):
        if isinstance(contact, dict):
            add(_normalize_contact(contact, "professional"))

    for contact in as_list(merged.get("service_providers")) + as_list(merged.get("vendors")):
        if isinstance(contact, dict):
            add(_normalize_contact(contact, "service"))

    return contacts


def _unify_messages(merged: Dict[str, Any], raw: Dict[str, Any]) -> Dict[str, Any]:
    letters = as_object(merged.get("messages_to_loved_ones"))
    unified = {
        "main_message": letters.get("main_message") or "",
        "individual": as_list(letters.get("individual")),
    }
    if not unified["individual"]:
        source = as_list(raw.get("messages")) or as_list(merged.get("messages"))
        unified["individual"] = [
            {
                "to": m.get("recipients") or m.get("to") or m.get("audience") or "",
                "message": m.get("text_message") or m.get("message") or m.get("body") or "",
                "audio_url": m.get("audio_url"),
                "video_url": m.get("video_url"),
            }
            for m in source if isinstance(m, dict)
        ]
    return unified


def build_unified_data(payload: Any, raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Canonical plan data.

    `payload` is the plan's section payload; `raw` is the aggregated view
    (`PlanDataView.as_dict()`). Sources are merged in order and a later
    non-blank value wins, so record table rows override payload values.
    """
    merged = flatten_payload(payload)
    plan = as_object(raw.get("plan"))

    personal_profile = merge_objects(
        merged.get("personal_profile"),
        merged.get("personal"),
        merged.get("about_you"),
        merged.get("personal_information"),
        merged.get("about"),
        user_fields(raw.get("personal_profile")),
    )

    family = merge_objects(
        merged.get("family"),
        {
            "partner_name": personal_profile.get("partner_name"),
            "child_names": personal_profile.get("child_names"),
            "father_name": personal_profile.get("father_name"),
            "mother_name": personal_profile.get("mother_name"),
        },
    )

    medical = merge_objects(
        merged.get("healthcare"),
        merged.get("health_care"),
        merged.get("medical"),
        {"care_preferences": merge_objects(merged.get("care_preferences"), merged.get("care"))},
    )

    financial = merge_objects(
        merged.get("financial"),
        merged.get("financial_life"),
        {
            "bank_accounts": as_list(raw.get("bank_accounts")),
            "investments": as_list(raw.get("investments")),
            "debts": as_list(raw.get("debts")),
            "businesses": as_list(raw.get("businesses")),
        },
    )

    funeral = merge_objects(
        merged.get("funeral"),
        merged.get("funeral_wishes"),
        merged.get("wishes"),
        {"funding": as_list(raw.get("funeral_funding"))},
    )

    table_pets = as_list(raw.get("pets"))

    return {
        "personal_profile": personal_profile,
        "family": family,
        "legacy": merge_objects(merged.get("legacy"), merged.get("life_story"), merged.get("lifeStory")),
        "contacts": _unify_contacts(merged, raw),
        "medical": medical,
        "advance_directive": merge_objects(merged.get("advance_directive"), merged.get("advanceDirective")),
        "funeral": funeral,
        "financial": financial,
        "insurance": merge_objects(
            merged.get("insurance"),
            merged.get("insurance_policies"),
            {"policies": as_list(raw.get("insurance"))},
        ),
        "property": merge_objects(
            merged.get("property"),
            merged.get("property_valuables"),
            merged.get("properties"),
            {"items": as_list(raw.get("properties"))},
        ),
        "pets": table_pets if table_pets else as_list(merged.get("pets")),
        "online_accounts": merge_objects(
            merged.get("online_accounts"),
            merged.get("digital"),
            merged.get("digital_accounts"),
            merged.get("digital_assets"),
        ),
        "messages_to_loved_ones": _unify_messages(merged, raw),
        "travel": merge_objects(merged.get("travel"), merged.get("travel_planning")),
        "notes": merge_objects(
            merged.get("notes"),
            merged.get("instructions"),
            {
                "instructions_notes": plan.get("instructions_notes"),
                "about_me_notes": plan.get("about_me_notes"),
                "checklist_notes": plan.get("checklist_notes"),
            },
        ),
        "revisions": merged.get("revisions") if isinstance(merged.get("revisions"), list) else as_list(plan.get("revisions")),
        "preparer_name": merged.get("preparer_name") or merged.get("prepared_by") or plan.get("preparer_name") or "",
    }


def build_unified_from_view(view: PlanDataView) -> Dict[str, Any]:
    raw = view.as_dict()
    payload = (view.plan or {}).get("plan_payload") or {}
    return build_unified_data(payload, raw)


def unified_completion(unified: Dict[str, Any]) -> Dict[str, bool]:
    """Which canonical sections hold any data"""
    letters = as_object(unified.get("messages_to_loved_ones"))
    main = letters.get("main_message")
    messages_complete = (isinstance(main, str) and bool(main.strip())) or any(
        has_meaningful_data(item.get("message"))
        for item in as_list(letters.get("individual"))
        if isinstance(item, dict)
    )

    completion = {
        name: has_meaningful_data(unified.get(name))
        for name in UNIFIED_SECTIONS
        if name not in ("messages_to_loved_ones", "notes")
    }
    completion["messages_to_loved_ones"] = messages_complete
    return completion
