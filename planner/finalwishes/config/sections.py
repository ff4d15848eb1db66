"""
Section Registry
Static table of planner sections. Drives navigation order, the summary list,
PDF section order and completion detection.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from finalwishes.utils.data_checks import as_list, as_object, flatten_payload, has_meaningful_data, user_fields

OVERVIEW_ROUTE = "/preplandashboard/overview"
SUMMARY_ROUTE = "/preplan-summary"
DASHBOARD_ROUTE = "/preplandashboard"
PREFERENCES_ROUTE = "/preplandashboard/preferences"

SECTION_GROUPS = ("top", "aboutyou", "yourwishes", "records", "help")


@dataclass(frozen=True)
class SectionDefinition:
    id: str
    label: str
    route: str
    data_key: str
    group: str
    show_completion_dot: bool
    # Extra payload keys holding the same section (older saves)
    aliases: Tuple[str, ...] = ()
    # Plan record collections that also count towards completion
    collections: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SectionNavigation:
    section_id: Optional[str]
    prev_route: str
    next_route: str
    is_first: bool
    is_last: bool
    is_registry_section: bool
    current_step: int
    total_steps: int


# Order matches the PDF table of contents
SECTION_REGISTRY: Tuple[SectionDefinition, ...] = (
    SectionDefinition("home", "Planning Menu", OVERVIEW_ROUTE, "", "top", False),
    SectionDefinition("plansummary", "Your Plan Summary", SUMMARY_ROUTE, "", "top", False),

    SectionDefinition(
        "personal_info", "Personal Information", "/preplandashboard/personal-info",
        "personal_information", "aboutyou", True,
        aliases=("personal", "personal_profile"), collections=("personal_profile",),
    ),
    SectionDefinition(
        "about_you", "About You", "/preplandashboard/about-you",
        "about_you", "aboutyou", True, aliases=("about", "family"),
    ),
    SectionDefinition(
        "legacy", "Life Story & Legacy", "/preplandashboard/life-story",
        "legacy", "aboutyou", True, aliases=("life_story", "lifeStory"),
    ),

    SectionDefinition(
        "contacts", "People to Notify", "/preplandashboard/contacts",
        "people_to_notify", "yourwishes", True,
        aliases=("contacts",), collections=("contacts", "professional_contacts"),
    ),
    SectionDefinition(
        "funeral", "Funeral Wishes", "/preplandashboard/funeral-wishes",
        "funeral", "yourwishes", True,
        aliases=("funeral_wishes", "wishes"), collections=("funeral_funding",),
    ),
    SectionDefinition(
        "messages", "Messages to Loved Ones", "/preplandashboard/messages",
        "messages", "yourwishes", True,
        aliases=("messages_to_loved_ones",), collections=("messages",),
    ),

    SectionDefinition(
        "financial", "Financial Life", "/preplandashboard/financial-life",
        "financial", "records", True,
        aliases=("financial_life",), collections=("bank_accounts", "investments", "debts", "businesses"),
    ),
    SectionDefinition(
        "insurance", "Insurance", "/preplandashboard/insurance",
        "insurance", "records", True,
        aliases=("insurance_policies",), collections=("insurance",),
    ),
    SectionDefinition(
        "property", "Property & Valuables", "/preplandashboard/property-valuables",
        "property", "records", True,
        aliases=("property_valuables", "properties"), collections=("properties",),
    ),
    SectionDefinition(
        "pets", "Pets", "/preplandashboard/pets",
        "pets", "records", True, collections=("pets",),
    ),
    SectionDefinition(
        "digital", "Online Accounts", "/preplandashboard/digital",
        "digital", "records", True,
        aliases=("online_accounts", "digital_accounts", "digital_assets"),
    ),
    SectionDefinition(
        "travel", "Travel & Away-From-Home", "/preplandashboard/travel-planning",
        "travel", "records", True, aliases=("travel_planning",),
    ),
    SectionDefinition(
        "signature", "Review & Signature", "/preplandashboard/signature",
        "signature", "records", True,
    ),

    SectionDefinition("resources", "Resources", "/resources", "", "help", False),
    SectionDefinition("faq", "FAQs", "/faq", "", "help", False),
)

_SECTIONS_BY_ID: Mapping[str, SectionDefinition] = MappingProxyType({s.id: s for s in SECTION_REGISTRY})
_SECTIONS_BY_ROUTE: Mapping[str, SectionDefinition] = MappingProxyType({s.route: s for s in SECTION_REGISTRY})


def get_section_by_id(section_id: str) -> Optional[SectionDefinition]:
    return _SECTIONS_BY_ID.get(section_id)


def get_section_by_route(route: str) -> Optional[SectionDefinition]:
    return _SECTIONS_BY_ROUTE.get(route)


def get_sections_by_group(group: str) -> Tuple[SectionDefinition, ...]:
    return tuple(s for s in SECTION_REGISTRY if s.group == group)


def get_completable_sections() -> Tuple[SectionDefinition, ...]:
    return tuple(s for s in SECTION_REGISTRY if s.data_key and s.show_completion_dot)


def get_navigable_sections() -> Tuple[SectionDefinition, ...]:
    """Sections walked by prev/next navigation, in order"""
    return tuple(
        s for s in SECTION_REGISTRY
        if s.group not in ("top", "help") and s.show_completion_dot
    )


def is_registry_route(route: str) -> bool:
    return route in _SECTIONS_BY_ROUTE


def get_section_route(section_id: str) -> str:
    section = get_section_by_id(section_id)
    return section.route if section else DASHBOARD_ROUTE


def get_section_label(section_id: str) -> str:
    section = get_section_by_id(section_id)
    return section.label if section else section_id


def get_section_data_key(section_id: str) -> str:
    section = get_section_by_id(section_id)
    return section.data_key if section and section.data_key else section_id


def get_section_navigation(section_id: str) -> SectionNavigation:
    """
    Prev/next routes and step position for a section.

    The first section steps back to the overview, the last one forward to
    the plan summary. Sections outside the navigable list get step 0.
    """
    navigable = get_navigable_sections()
    ids = [s.id for s in navigable]

    if section_id not in ids:
        return SectionNavigation(
            section_id=section_id,
            prev_route=OVERVIEW_ROUTE,
            next_route=SUMMARY_ROUTE,
            is_first=True,
            is_last=True,
            is_registry_section=section_id in _SECTIONS_BY_ID,
            current_step=0,
            total_steps=len(navigable),
        )

    index = ids.index(section_id)
    is_first = index == 0
    is_last = index == len(navigable) - 1

    return SectionNavigation(
        section_id=section_id,
        prev_route=OVERVIEW_ROUTE if is_first else navigable[index - 1].route,
        next_route=SUMMARY_ROUTE if is_last else navigable[index + 1].route,
        is_first=is_first,
        is_last=is_last,
        is_registry_section=True,
        current_step=index + 1,
        total_steps=len(navigable),
    )


def get_section_navigation_by_route(route: str) -> SectionNavigation:
    """Navigation for the page at `route`; unknown routes point back to the overview"""
    section = get_section_by_route(route)
    if section is None:
        return SectionNavigation(
            section_id=None,
            prev_route=OVERVIEW_ROUTE,
            next_route=OVERVIEW_ROUTE,
            is_first=True,
            is_last=True,
            is_registry_section=False,
            current_step=0,
            total_steps=len(get_navigable_sections()),
        )
    return get_section_navigation(section.id)


def _signature_complete(payload: Dict[str, Any], plan: Dict[str, Any]) -> bool:
    signature = as_object(payload.get("signature"))
    revisions = signature.get("revisions") or payload.get("revisions") or plan.get("revisions")
    for revision in as_list(revisions):
        revision = as_object(revision)
        image = revision.get("signature_image_png") or revision.get("signature_png")
        if isinstance(image, str) and image.strip():
            return True
    current = as_object(signature.get("current")).get("signature_png")
    return isinstance(current, str) and bool(current.strip())


def _messages_complete(payload: Dict[str, Any], plan_data: Mapping[str, Any]) -> bool:
    letters = payload.get("messages_to_loved_ones")
    if isinstance(letters, dict):
        main = letters.get("main_message")
        if isinstance(main, str) and main.strip():
            return True
        return any(
            isinstance(item, dict) and has_meaningful_data(item.get("message"))
            for item in as_list(letters.get("individual"))
        )
    return bool(as_list(plan_data.get("messages"))) or has_meaningful_data(payload.get("messages"))


def get_section_completion(plan_data: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
    """
    Completion flag for every completable section.

    `plan_data` is the aggregated plan view: `plan` (with `plan_payload`),
    `personal_profile` and one list per record collection.
    """
    if not plan_data:
        return {s.id: False for s in get_completable_sections()}

    plan = as_object(plan_data.get("plan"))
    payload = flatten_payload(plan.get("plan_payload"))

    completion: Dict[str, bool] = {}
    for section in get_completable_sections():
        if section.id == "signature":
            completion[section.id] = _signature_complete(payload, plan)
            continue
        if section.id == "messages":
            completion[section.id] = _messages_complete(payload, plan_data)
            continue

        keys = (section.data_key,) + section.aliases
        complete = any(has_meaningful_data(payload.get(key)) for key in keys)
        if not complete:
            complete = any(has_meaningful_data(user_fields(plan_data.get(name))) for name in section.collections)
        completion[section.id] = complete

    return completion


# Deep-link targets used by the summary page and readiness checks
SECTION_ROUTES: Mapping[str, str] = MappingProxyType({
    "personal": "/preplandashboard/personal-family",
    "contacts": "/preplandashboard/contacts",
    "funeral": "/preplandashboard/funeral-wishes",
    "legacy": "/preplandashboard/life-story",
    "legal": "/preplandashboard/legal-docs",
    "financial": "/preplandashboard/financial-life",
    "insurance": "/preplandashboard/insurance",
    "property": "/preplandashboard/property-valuables",
    "pets": "/preplandashboard/pets",
    "digital": "/preplandashboard/digital",
    "messages": "/preplandashboard/messages",
    "preferences": PREFERENCES_ROUTE,
    "overview": OVERVIEW_ROUTE,
    "checklist": "/preplandashboard/checklist",
    "legalresources": "/preplandashboard/legalresources",
    "willprep": "/preplandashboard/willprep",
    "providers": "/preplandashboard/providers",
    "instructions": "/preplandashboard/instructions",
    "healthcare": "/preplandashboard/health-care",
    "carepreferences": "/preplandashboard/care-preferences",
    "preplanning": "/preplandashboard/pre-planning",
})

SECTION_LABELS: Mapping[str, str] = MappingProxyType({
    "personal": "Personal & Family Details",
    "contacts": "Important Contacts",
    "funeral": "Funeral Wishes",
    "legacy": "Life Story & Legacy",
    "legal": "Legal Documents",
    "financial": "Financial Life",
    "insurance": "Insurance Overview",
    "property": "Property & Valuables",
    "pets": "Pet Care",
    "digital": "Digital Accounts",
    "messages": "Messages to Loved Ones",
    "preferences": "Preferences",
    "overview": "Overview",
    "checklist": "Checklist",
    "legalresources": "Legal Resources",
    "willprep": "Will Preparation",
    "providers": "Service Providers",
    "instructions": "Instructions",
    "healthcare": "Medical Information",
    "carepreferences": "Care Preferences",
    "preplanning": "Pre-Planning Checklist",
})


def get_deep_link_route(section_id: str, focus_field: Optional[str] = None) -> str:
    """Route for a deep link, optionally focusing one field on arrival"""
    route = SECTION_ROUTES.get(section_id, PREFERENCES_ROUTE)
    if focus_field:
        return f"{route}?focus={focus_field}"
    return route


def get_deep_link_label(section_id: str) -> str:
    return SECTION_LABELS.get(section_id, section_id)
