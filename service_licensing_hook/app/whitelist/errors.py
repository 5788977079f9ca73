"""
Whitelist hook error taxonomy.
"""

from shared.errors import AuthorizationError, ConflictError, ValidationError


class PermissionDeniedError(AuthorizationError):
    """Caller holds no delegated permission over the IP asset."""

    def __init__(self, caller: str, asset_id: str):
        self.caller = caller
        self.asset_id = asset_id
        super().__init__(
            f"{caller} has no permission over IP asset {asset_id}",
            details={"caller": caller, "asset_id": asset_id},
            code="PERMISSION_DENIED"
        )


class AlreadyWhitelistedError(ConflictError):
    """Minter is already whitelisted for the target."""

    def __init__(self, minter_id: str):
        self.minter_id = minter_id
        super().__init__(
            "ALREADY_WHITELISTED",
            f"{minter_id} is already whitelisted",
            details={"minter_id": minter_id}
        )


class NotInWhitelistError(ConflictError):
    """Minter is not whitelisted for the target, so it cannot be removed."""

    def __init__(self, minter_id: str):
        self.minter_id = minter_id
        super().__init__(
            "NOT_IN_WHITELIST",
            f"{minter_id} is not in the whitelist",
            details={"minter_id": minter_id}
        )


class NotWhitelistedError(AuthorizationError):
    """Caller attempted to mint or register a derivative without being whitelisted."""

    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(
            f"{caller} is not whitelisted",
            details={"caller": caller},
            code="NOT_WHITELISTED"
        )


class FeeOverflowError(ValidationError):
    """Total minting fee does not fit in an unsigned 256-bit integer."""

    def __init__(self, per_unit_fee: int, amount: int):
        super().__init__(
            "minting fee overflows uint256",
            details={"per_unit_fee": str(per_unit_fee), "amount": str(amount)},
            code="FEE_OVERFLOW"
        )
