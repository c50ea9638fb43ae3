"""
Asset Registry

Issues unique assets, transfers them, and reads their attributes.

Issuing requires the issuer record, which is created once by bootstrap() and
owned by the admin account. Whoever owns the record can issue.
"""

import logging

from ..chain.ledger import Ledger
from ..chain.primitives import BlockType
from ..chain.types import Asset, IssuerRecord


logger = logging.getLogger(__name__)


class AssetRegistry:
    """Issue, transfer and inspect assets on a ledger."""

    def __init__(self, ledger: Ledger, issuer_id: str):
        self.ledger = ledger
        self.issuer_id = issuer_id

    @classmethod
    def bootstrap(cls, ledger: Ledger, admin: str) -> 'AssetRegistry':
        """
        Create the issuer record, owned by `admin`.

        Called once by deployment tooling; each call creates an independent
        registry with its own counter.
        """
        with ledger.transaction(admin) as tx:
            issuer = IssuerRecord(issuer_id=tx.new_id(), admin=admin)
            ledger.transfer(tx, issuer, admin)
        logger.info("Bootstrapped issuer %s for %s", issuer.issuer_id, admin)
        return cls(ledger, issuer.issuer_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────────

    def issue(self, sender: str, magic: int, strength: int, recipient: str) -> str:
        """
        Create a new asset and deliver it to `recipient`.

        The count increment and the delivery commit together. Returns the
        new asset ID.
        """
        with self.ledger.transaction(sender) as tx:
            issuer = self.ledger.borrow(tx, self.issuer_id, IssuerRecord)
            asset = Asset(asset_id=tx.new_id(), magic=magic, strength=strength)
            self.ledger.update(tx, issuer.incremented())
            self.ledger.transfer(tx, asset, recipient)
            self.ledger.record(tx, BlockType.ASSET_ISSUED, {
                "asset_id": asset.asset_id,
                "recipient": recipient,
                "issued_count": issuer.issued_count + 1,
            })
        logger.info("Issued asset %s (magic=%d, strength=%d) to %s",
                    asset.asset_id, magic, strength, recipient)
        return asset.asset_id

    def transfer(self, sender: str, asset_id: str, recipient: str):
        """Hand an asset the sender owns to `recipient`."""
        with self.ledger.transaction(sender) as tx:
            asset = self.ledger.take(tx, asset_id, Asset)
            self.ledger.transfer(tx, asset, recipient)
        logger.info("Transferred asset %s from %s to %s", asset_id, sender, recipient)

    # ─────────────────────────────────────────────────────────────────────────
    # Accessors
    # ─────────────────────────────────────────────────────────────────────────

    def get_asset(self, asset_id: str) -> Asset:
        return self.ledger.get(asset_id, Asset)

    def magic(self, asset_id: str) -> int:
        return self.get_asset(asset_id).magic

    def strength(self, asset_id: str) -> int:
        return self.get_asset(asset_id).strength

    @property
    def issuer(self) -> IssuerRecord:
        return self.ledger.get(self.issuer_id, IssuerRecord)

    @property
    def issued_count(self) -> int:
        return self.issuer.issued_count
