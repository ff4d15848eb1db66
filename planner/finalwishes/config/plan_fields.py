"""
Plan Field Configuration
Which plan fields live in table columns and which live in the section payload
"""

from typing import FrozenSet, Tuple

# Free-text notes stored as plan columns
PLAN_NOTE_FIELDS: Tuple[str, ...] = (
    "instructions_notes",
    "about_me_notes",
    "checklist_notes",
    "funeral_wishes_notes",
    "financial_notes",
    "insurance_notes",
    "property_notes",
    "pets_notes",
    "digital_notes",
    "legal_notes",
    "messages_notes",
    "to_loved_ones_message",
)

# Every writable plan column
PLAN_TABLE_COLUMNS: FrozenSet[str] = frozenset(PLAN_NOTE_FIELDS) | {
    "title",
    "prepared_for",
    "preparer_name",
    "percent_complete",
    "revisions",
}

# Section keys stored inside plan_payload
SECTION_DATA_KEYS: FrozenSet[str] = frozenset({
    "funeral",
    "financial",
    "insurance",
    "property",
    "pets",
    "digital",
    "messages",
    "contacts",
    "healthcare",
    "care_preferences",
    "advance_directive",
    "travel",
    "preplanning",
    "personal",
    "personal_information",
    "about_you",
    "legal",
    "legacy",
    "signature",
    "online_accounts",
    "messages_to_loved_ones",
    "people_to_notify",
})
