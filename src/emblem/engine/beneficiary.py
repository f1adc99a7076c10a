"""Resolve custodial lock wallets to the account that owns them."""

import logging

from ..store.backend import EntityStore, load_or_create
from .models import TokenLockWallet

logger = logging.getLogger(__name__)


class BeneficiaryResolver:
    """Maps raw account ids to canonical ones.

    Ids of registered lock wallets resolve to their beneficiary; every other
    id is already canonical and is returned unchanged.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def register_lock_wallet(self, wallet_id: str, beneficiary_id: str) -> TokenLockWallet:
        wallet, created = load_or_create(
            self.store,
            TokenLockWallet,
            wallet_id,
            lambda i: TokenLockWallet(id=i, beneficiary=beneficiary_id),
        )
        if created:
            logger.info(f"Lock wallet {wallet_id} -> {beneficiary_id}")
        return wallet

    def resolve(self, raw_id: str) -> str:
        wallet = self.store.load(TokenLockWallet, raw_id)
        return wallet.beneficiary if wallet is not None else raw_id
