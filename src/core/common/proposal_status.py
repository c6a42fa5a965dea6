from typing import Literal, get_args

ProposalStatus = Literal["IN_REVIEW", "APPROVED", "REJECTED", "CONTRACTED"]

PROPOSAL_STATUSES: tuple[ProposalStatus, ...] = get_args(ProposalStatus)

INITIAL_STATUS: ProposalStatus = "IN_REVIEW"

TERMINAL_STATUSES: frozenset[ProposalStatus] = frozenset({"REJECTED", "CONTRACTED"})

# CONTRACTED is only reachable through the contracting workflow.
ALLOWED_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    "IN_REVIEW": frozenset({"APPROVED", "REJECTED"}),
    "APPROVED": frozenset({"CONTRACTED"}),
    "REJECTED": frozenset(),
    "CONTRACTED": frozenset(),
}


def is_allowed_transition(current: ProposalStatus, target: ProposalStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())
