"""
Flow catalog for the parts assistant.

Flows are pure data: an ordered list of steps, each with a prompt and a
fixed set of options. Every option string the engine reacts to outside a
step (menu categories, restart tokens, summary actions) is resolved through
the lookup tables below rather than compared ad hoc.
"""

from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .models import FlowDefinition, FlowStep


class MenuAction(str, Enum):
    """What a menu-level selection does"""
    START_FLOW = "start_flow"
    SPEAK_TO_EXPERT = "speak_to_expert"
    RESTART = "restart"
    NEW_INQUIRY = "new_inquiry"


FIND_PARTS = "findParts"
TRADE_PRICING = "tradePricing"
TECHNICAL_SUPPORT = "technicalSupport"
ORDER_SUPPORT = "orderSupport"

SPEAK_TO_EXPERT = "Speak to Expert"
START_OVER = "Start Over"
MAIN_MENU = "Main Menu"
NEW_INQUIRY = "New Inquiry"

RESTART_TOKENS: Tuple[str, ...] = (START_OVER, MAIN_MENU)

# Trailing options of every completion summary
SUMMARY_ACTIONS: Dict[str, MenuAction] = {
    NEW_INQUIRY: MenuAction.NEW_INQUIRY,
    SPEAK_TO_EXPERT: MenuAction.SPEAK_TO_EXPERT,
    START_OVER: MenuAction.RESTART,
}

SUMMARY_OPTIONS: Tuple[str, ...] = tuple(SUMMARY_ACTIONS)


FLOW_DEFINITIONS: Tuple[FlowDefinition, ...] = (
    FlowDefinition(
        id=FIND_PARTS,
        title="Find Car Parts",
        reference_prefix="PAR",
        headline="Thanks! Here is a summary of your parts request:",
        next_steps="Our parts team will check stock and compatibility and get back to you within one business day.",
        steps=(
            FlowStep(
                key="vehicleType",
                label="Vehicle Type",
                prompt="Great, let's find the right part. What type of vehicle is it for?",
                options=("Car/Sedan", "Truck/SUV", "Van/Commercial", "Motorcycle"),
            ),
            FlowStep(
                key="vehicleDetails",
                label="Vehicle Make",
                prompt="Which make is your vehicle?",
                options=("Toyota", "Isuzu", "Ford", "Mitsubishi", "Nissan", "Mazda", "Other Make"),
            ),
            FlowStep(
                key="partCategory",
                label="Part Category",
                prompt="What category of part are you after?",
                options=("Engine Parts", "Brakes & Suspension", "Electrical & Lighting", "Body Parts", "Filters & Servicing"),
            ),
            FlowStep(
                key="specificPart",
                label="Part Type",
                prompt="Do you prefer genuine or aftermarket parts?",
                options=("Genuine OEM", "Aftermarket", "Used/Recycled", "Not Sure"),
            ),
        ),
    ),
    FlowDefinition(
        id=TRADE_PRICING,
        title="Trade Pricing",
        reference_prefix="TRD",
        headline="Thanks for your interest in trade pricing. Here is what you told us:",
        next_steps="A trade account manager will contact you with wholesale rates for your business.",
        steps=(
            FlowStep(
                key="businessType",
                label="Business Type",
                prompt="What kind of business are you?",
                options=("Mechanic Workshop", "Parts Retailer", "Fleet Operator", "Panel Shop"),
            ),
            FlowStep(
                key="orderVolume",
                label="Monthly Volume",
                prompt="Roughly how much do you spend on parts each month?",
                options=("Under $1,000", "$1,000 - $5,000", "$5,000 - $20,000", "Over $20,000"),
            ),
            FlowStep(
                key="accountStatus",
                label="Account",
                prompt="Do you already have a trade account with us?",
                options=("New Trade Account", "Existing Trade Account"),
            ),
        ),
    ),
    FlowDefinition(
        id=TECHNICAL_SUPPORT,
        title="Technical Support",
        reference_prefix="TEC",
        headline="Here is a summary of your technical support request:",
        next_steps="One of our technicians will review your request and reach out with guidance.",
        steps=(
            FlowStep(
                key="issueType",
                label="Issue",
                prompt="What do you need help with?",
                options=("Installation Help", "Part Compatibility", "Troubleshooting", "Maintenance Guidance"),
            ),
            FlowStep(
                key="vehicleDetails",
                label="Vehicle Type",
                prompt="What type of vehicle is it?",
                options=("Car/Sedan", "Truck/SUV", "Van/Commercial", "Motorcycle"),
            ),
            FlowStep(
                key="urgency",
                label="Urgency",
                prompt="How urgent is this?",
                options=("Vehicle off the road", "Within a few days", "Just researching"),
            ),
        ),
    ),
    FlowDefinition(
        id=ORDER_SUPPORT,
        title="Order Support",
        reference_prefix="ORD",
        headline="Here is a summary of your order enquiry:",
        next_steps="Our orders team will follow up using your preferred contact method.",
        steps=(
            FlowStep(
                key="orderTopic",
                label="Topic",
                prompt="What can we help you with regarding your order?",
                options=("Track My Order", "Modify Order", "Return/Exchange", "Invoice or Receipt"),
            ),
            FlowStep(
                key="orderAge",
                label="Order Placed",
                prompt="When did you place the order?",
                options=("Today", "Within the last week", "Over a week ago"),
            ),
            FlowStep(
                key="contactPreference",
                label="Contact Preference",
                prompt="How would you like us to contact you?",
                options=("Phone Call", "Email", "WhatsApp"),
            ),
        ),
    ),
)


class FlowCatalog:
    """Read-only registry of flow definitions"""

    def __init__(self, flows: Tuple[FlowDefinition, ...] = FLOW_DEFINITIONS):
        self._flows: Dict[str, FlowDefinition] = {}
        for flow in flows:
            if flow.id in self._flows:
                raise ValueError(f"Duplicate flow id: {flow.id}")
            self._flows[flow.id] = flow

        # Menu labels are the flow titles
        self._top_level: Dict[str, Tuple[MenuAction, Optional[str]]] = {
            flow.title: (MenuAction.START_FLOW, flow.id) for flow in flows
        }
        self._top_level[SPEAK_TO_EXPERT] = (MenuAction.SPEAK_TO_EXPERT, None)
        for token in RESTART_TOKENS:
            self._top_level[token] = (MenuAction.RESTART, None)

    def get_flow(self, flow_id: Optional[str]) -> Optional[FlowDefinition]:
        if flow_id is None:
            return None
        return self._flows.get(flow_id)

    def flow_ids(self) -> List[str]:
        return list(self._flows)

    def __contains__(self, flow_id: object) -> bool:
        return flow_id in self._flows

    def __iter__(self) -> Iterator[FlowDefinition]:
        return iter(self._flows.values())

    @property
    def top_level_actions(self) -> Mapping[str, Tuple[MenuAction, Optional[str]]]:
        return dict(self._top_level)

    def resolve_top_level(self, selection: str) -> Optional[Tuple[MenuAction, Optional[str]]]:
        """Map a main-menu selection to its action, None when unrecognized"""
        return self._top_level.get(selection)

    def resolve_summary(self, selection: str) -> Optional[MenuAction]:
        """Map a summary option to its action, None when unrecognized"""
        return SUMMARY_ACTIONS.get(selection)

    def main_menu_options(self) -> List[str]:
        """Buttons shown at the main menu"""
        return [flow.title for flow in self._flows.values()] + [SPEAK_TO_EXPERT]


DEFAULT_CATALOG = FlowCatalog()

TOP_LEVEL_ACTIONS = DEFAULT_CATALOG.top_level_actions
MAIN_MENU_OPTIONS: Tuple[str, ...] = tuple(DEFAULT_CATALOG.main_menu_options())


def get_flow(flow_id: Optional[str]) -> Optional[FlowDefinition]:
    """Look up a flow in the default catalog"""
    return DEFAULT_CATALOG.get_flow(flow_id)
