"""
voting_node.voting_runtime

Program core: address derivation, records, account arena, funding,
signed envelopes and the instruction handlers.
"""

from .addresses import derive, config_address, proposal_address, vote_record_address
from .errors import ProgramError

__all__ = [
    "derive",
    "config_address",
    "proposal_address",
    "vote_record_address",
    "ProgramError",
]
