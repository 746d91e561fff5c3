"""
Membership Registry

Tracks which addresses have paid the membership stake. Membership is
acquired exactly once per address and never revoked; `total_members`
always equals the number of flagged addresses.
"""

from typing import Any, Dict, List

from ..address import normalize_address
from ..constants import MEMBERSHIP_STAKE_WEI
from ..exceptions import GovernanceError, InvalidAddressError
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class MembershipError(GovernanceError):
    """Base membership error."""


class InvalidStakeError(MembershipError):
    """Payment differs from the membership stake."""


class AlreadyMemberError(MembershipError):
    """Address already holds a membership."""


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY
# ══════════════════════════════════════════════════════════════════════

class MembershipRegistry:
    """
    Address → membership flag, plus the member counter.

    The registry does not lock; the governance engine serializes access.
    """

    def __init__(self, stake: int = MEMBERSHIP_STAKE_WEI):
        if stake <= 0:
            raise ValueError("Membership stake must be positive")
        self.stake = stake
        self._members: Dict[str, bool] = {}  # insertion order = join order
        self._total_members = 0

    @property
    def total_members(self) -> int:
        return self._total_members

    def is_member(self, address: str) -> bool:
        """Pure lookup; a malformed address is simply not a member."""
        try:
            member = normalize_address(address)
        except InvalidAddressError:
            return False
        return self._members.get(member, False)

    def join(self, address: str, paid_amount: int) -> str:
        """
        Register *address* as a member.

        Returns the normalised address. Raises AlreadyMemberError for a
        repeat join (whatever the amount) and InvalidStakeError unless
        *paid_amount* equals the stake exactly.
        """
        member = normalize_address(address)
        if self._members.get(member, False):
            raise AlreadyMemberError(f"CollectorDAO:: {member} is already a member")
        if isinstance(paid_amount, bool) or not isinstance(paid_amount, int) or paid_amount != self.stake:
            raise InvalidStakeError(
                f"CollectorDAO:: insufficient funds "
                f"(paid {paid_amount} wei, stake is exactly {self.stake} wei)"
            )
        self._members[member] = True
        self._total_members += 1
        logger.info(f"New member {member} (total={self._total_members})")
        return member

    def members(self) -> List[str]:
        return [a for a, flag in self._members.items() if flag]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stake": str(self.stake),
            "members": self.members(),
            "totalMembers": self._total_members,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MembershipRegistry":
        registry = cls(stake=int(data.get("stake", MEMBERSHIP_STAKE_WEI)))
        for address in data.get("members", []):
            registry._members[normalize_address(address)] = True
        registry._total_members = len(registry._members)
        if data.get("totalMembers", registry._total_members) != registry._total_members:
            raise ValueError(
                f"Member counter {data['totalMembers']} does not match "
                f"{registry._total_members} flagged addresses"
            )
        return registry

    def __len__(self) -> int:
        return self._total_members

    def __repr__(self) -> str:
        return f"<MembershipRegistry members={self._total_members}>"
