# coincatcher/services/settings_service.py
from typing import List

from ..database.store import CONFIG, WALLET_CONFIG_ID, DocumentStore, StoreTransaction
from ..models.request import WithdrawalType
from ..models.wallet import Package, WalletConfig


async def load_wallet_config(tx: StoreTransaction) -> WalletConfig:
    """Wallet settings as seen by the running transaction"""
    document = await tx.get(CONFIG, WALLET_CONFIG_ID)
    return WalletConfig.model_validate(document) if document else WalletConfig()


def catalog_for(config: WalletConfig, request_type: WithdrawalType) -> List[Package]:
    if request_type == WithdrawalType.UC:
        return list(config.uc_packages)
    if request_type == WithdrawalType.DIAMOND:
        return list(config.diamond_packages)
    return []


class SettingsService:
    """Reads the process-wide wallet settings"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_wallet_config(self) -> WalletConfig:
        """Saved settings, or an empty config when none were saved yet"""
        document = await self.store.get(CONFIG, WALLET_CONFIG_ID)
        if document is None:
            return WalletConfig()
        return WalletConfig.model_validate(document)

    async def price_catalog(self, request_type: WithdrawalType) -> List[Package]:
        """Package tiers for a purchase type; empty means temporarily unavailable"""
        return catalog_for(await self.get_wallet_config(), request_type)
