"""
Address helpers.

Every address entering the DAO (members, proposers, voters, action targets)
is normalised to its EIP-55 checksum form so that two spellings of the same
address can never hold two memberships or two receipts.
"""

from eth_utils import is_address, to_checksum_address

from .exceptions import InvalidAddressError


def normalize_address(address: str) -> str:
    """Return the checksum form of *address*, raising InvalidAddressError if malformed."""
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return to_checksum_address(address)
