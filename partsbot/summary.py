"""
Completion summaries for finished flows.
"""

import logging
from datetime import datetime
from typing import Mapping, Optional

from .exceptions import UnknownFlowKind
from .flows import DEFAULT_CATALOG, SUMMARY_OPTIONS, FlowCatalog
from .models import ChatMessage, utc_now

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"


def generate_reference_code(prefix: str, now: Optional[datetime] = None) -> str:
    """
    Display-only reference code: prefix plus the last six digits of the
    current epoch milliseconds.
    """
    now = now or utc_now()
    millis = int(now.timestamp() * 1000)
    return f"{prefix}{millis % 1_000_000:06d}"


def summarize(
    flow_id: str,
    flow_answers: Mapping[str, str],
    now: Optional[datetime] = None,
    catalog: FlowCatalog = DEFAULT_CATALOG,
) -> ChatMessage:
    """
    Build the completion message for a flow

    Args:
        flow_id: Flow that was completed
        flow_answers: Step key to selected option
        now: Time used for the reference code and message timestamp
        catalog: Flow catalog to resolve the flow from

    Returns:
        Assistant message restating the answers, with the summary options

    Raises:
        UnknownFlowKind: If flow_id is not in the catalog
    """
    flow = catalog.get_flow(flow_id)
    if flow is None:
        raise UnknownFlowKind(flow_id)

    now = now or utc_now()
    reference = generate_reference_code(flow.reference_prefix, now)

    lines = [flow.headline, ""]
    for step in flow.steps:
        lines.append(f"- {step.label}: {flow_answers.get(step.key) or NOT_SPECIFIED}")
    lines.append("")
    lines.append(f"Reference: {reference}")
    lines.append(flow.next_steps)

    return ChatMessage(
        role="assistant",
        content="\n".join(lines),
        timestamp=now,
        options=list(SUMMARY_OPTIONS),
    )


def generic_completion_message(now: Optional[datetime] = None) -> ChatMessage:
    """Fallback used when a summary cannot be generated"""
    return ChatMessage(
        role="assistant",
        content=(
            "Thanks, we have everything we need. "
            "Our team will be in touch shortly. Is there anything else I can help with?"
        ),
        timestamp=now or utc_now(),
        options=list(SUMMARY_OPTIONS),
    )
