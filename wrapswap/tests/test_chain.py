"""
Unit tests for the chain package (primitives, types, ledger).
"""

import threading

import pytest

from wrapswap.chain.primitives import (
    hash_data,
    sign,
    derive_id,
    Block,
    BlockType,
    Chain,
)
from wrapswap.chain.types import (
    UINT64_MAX,
    Asset,
    Fee,
    IssuerRecord,
    WrapperState,
    WrapperStateError,
    EscrowWrapper,
)
from wrapswap.chain.errors import (
    LedgerError,
    UnknownAccount,
    InvalidOwnership,
    ObjectNotFound,
    WrongObjectType,
)
from wrapswap.chain.ledger import Ledger, SYSTEM_ACCOUNT, address_for


# =============================================================================
# Hashing and Identifier Tests
# =============================================================================

class TestHashing:
    """Tests for hashing and ID functions."""

    def test_hash_data_deterministic(self):
        """hash_data returns same hash for same input."""
        data = {"foo": "bar", "num": 42}
        assert hash_data(data) == hash_data(data)

    def test_hash_data_order_independent(self):
        """hash_data is independent of key order."""
        assert hash_data({"a": 1, "b": 2}) == hash_data({"b": 2, "a": 1})

    def test_hash_data_length(self):
        """hash_data returns 16 character hex string."""
        h = hash_data({"test": "data"})
        assert len(h) == 16
        assert all(c in "0123456789abcdef" for c in h)

    def test_hash_data_handles_enums(self):
        """Enum values are hashed by name."""
        assert hash_data({"s": WrapperState.PENDING}) == hash_data({"s": "PENDING"})

    def test_sign_depends_on_key(self):
        """sign is deterministic per key."""
        assert sign("k", "data") == sign("k", "data")
        assert sign("k1", "data") != sign("k2", "data")
        assert len(sign("k", "data")) == 16

    def test_derive_id_deterministic_and_distinct(self):
        """derive_id depends on both the digest and the counter."""
        assert derive_id("tx1", 0) == derive_id("tx1", 0)
        assert derive_id("tx1", 0) != derive_id("tx1", 1)
        assert derive_id("tx1", 0) != derive_id("tx2", 0)


# =============================================================================
# Block and Chain Tests
# =============================================================================

class TestBlock:
    """Tests for Block class."""

    def _block(self, **overrides):
        fields = dict(
            owner="pk_test",
            sequence=0,
            previous_hash="0" * 16,
            block_type=BlockType.GENESIS,
            timestamp=1000.0,
            payload={"test": "data"},
        )
        fields.update(overrides)
        return Block(**fields)

    def test_block_hash_computed(self):
        """Block hash is computed on creation."""
        block = self._block()
        assert block.block_hash == block.compute_hash()
        assert len(block.block_hash) == 16

    def test_block_hash_depends_on_payload(self):
        """Different payloads produce different hashes."""
        assert self._block(payload={"a": 1}).block_hash != self._block(payload={"a": 2}).block_hash

    def test_block_round_trip(self):
        """to_dict/from_dict preserves every field."""
        block = self._block(block_type=BlockType.OBJECT_RECEIVED, payload={"object_id": "x"})
        block.signature = "sig"
        restored = Block.from_dict(block.to_dict())
        assert restored == block


class TestChain:
    """Tests for Chain class."""

    def test_chain_starts_with_genesis(self):
        chain = Chain("pk_a", "sk_a", 100.0)
        assert len(chain) == 1
        assert chain.head.block_type == BlockType.GENESIS
        assert chain.head.previous_hash == "0" * 16

    def test_append_links_blocks(self):
        chain = Chain("pk_a", "sk_a", 100.0)
        genesis_hash = chain.head_hash
        block = chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "x"}, 101.0)
        assert block.sequence == 1
        assert block.previous_hash == genesis_hash
        assert chain.verify_chain()

    def test_tampered_payload_fails_verification(self):
        chain = Chain("pk_a", "sk_a", 100.0)
        chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "x"}, 101.0)
        chain.blocks[1].payload["object_id"] = "y"
        assert not chain.verify_chain()

    def test_truncate_keeps_prefix(self):
        chain = Chain("pk_a", "sk_a", 100.0)
        chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "x"}, 101.0)
        chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "y"}, 102.0)
        chain.truncate(2)
        assert len(chain) == 2
        assert chain.verify_chain()

    def test_truncate_rejects_genesis(self):
        chain = Chain("pk_a", "sk_a", 100.0)
        with pytest.raises(ValueError):
            chain.truncate(0)

    def test_holdings_replay(self):
        """Received objects are held until released."""
        chain = Chain("pk_a", "sk_a", 100.0)
        chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "x"}, 101.0)
        chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "y"}, 102.0)
        chain.append(BlockType.OBJECT_RELEASED, {"object_id": "x"}, 103.0)
        assert chain.holdings() == {"y"}
        assert chain.holdings(before_time=103.0) == {"x", "y"}

    def test_blocks_by_type_and_tx(self):
        chain = Chain("pk_a", "sk_a", 100.0)
        chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "x", "tx": "t1"}, 101.0)
        chain.append(BlockType.ESCROW_DEPOSIT, {"wrapper_id": "w", "tx": "t2"}, 102.0)
        assert len(chain.get_blocks_by_type(BlockType.ESCROW_DEPOSIT)) == 1
        assert [b.sequence for b in chain.get_blocks_for_tx("t1")] == [1]

    def test_forged_signature_fails_verification(self):
        chain = Chain("pk_a", "sk_a", 100.0)
        chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "x"}, 101.0)
        chain.blocks[1].signature = sign("sk_mallory", chain.blocks[1].block_hash)
        assert not chain.verify_chain()

    def test_chain_export(self):
        chain = Chain("pk_a", "sk_a", 100.0)
        chain.append(BlockType.OBJECT_RECEIVED, {"object_id": "x"}, 101.0)
        exported = chain.to_dict()
        assert exported["address"] == "pk_a"
        assert exported["head"] == chain.head_hash
        assert [Block.from_dict(b) for b in exported["blocks"]] == chain.blocks


# =============================================================================
# Value Type Tests
# =============================================================================

class TestAsset:
    def test_asset_attributes(self):
        asset = Asset(asset_id="a1", magic=42, strength=7)
        assert asset.object_id == "a1"
        assert (asset.magic, asset.strength) == (42, 7)

    def test_asset_accepts_uint64_bounds(self):
        Asset(asset_id="a1", magic=0, strength=UINT64_MAX)

    @pytest.mark.parametrize("magic", [-1, UINT64_MAX + 1, 1.5, True, "3"])
    def test_asset_rejects_non_uint64(self, magic):
        with pytest.raises(ValueError):
            Asset(asset_id="a1", magic=magic, strength=1)

    def test_asset_is_frozen(self):
        asset = Asset(asset_id="a1", magic=1, strength=2)
        with pytest.raises(AttributeError):
            asset.magic = 5

    def test_asset_round_trip(self):
        asset = Asset(asset_id="a1", magic=1, strength=2)
        assert Asset.from_dict(asset.to_dict()) == asset


class TestFee:
    def test_join_sums_and_keeps_id(self):
        joined = Fee("f1", 1000).join(Fee("f2", 250))
        assert joined == Fee("f1", 1250)

    def test_join_is_commutative_in_amount(self):
        a, b = Fee("f1", 300), Fee("f2", 700)
        assert a.join(b).amount == b.join(a).amount == 1000

    def test_split_conserves_amount(self):
        remainder, piece = Fee("f1", 1500).split(1000, "f2")
        assert remainder == Fee("f1", 500)
        assert piece == Fee("f2", 1000)

    def test_split_too_much(self):
        with pytest.raises(ValueError):
            Fee("f1", 100).split(101, "f2")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            Fee("f1", -1)


class TestEscrowWrapper:
    def _wrapper(self):
        return EscrowWrapper.wrap("w1", "pk_alice", Asset("a1", 42, 7), Fee("f1", 1000))

    def test_new_wrapper_is_created(self):
        assert self._wrapper().state == WrapperState.CREATED

    def test_seal_then_unwrap(self):
        wrapper = self._wrapper().sealed()
        assert wrapper.state == WrapperState.PENDING
        owner, asset, fee, shell = wrapper.unwrap()
        assert owner == "pk_alice"
        assert asset == Asset("a1", 42, 7)
        assert fee == Fee("f1", 1000)
        assert shell.state == WrapperState.CONSUMED
        assert shell.wrapper_id == "w1"

    def test_unwrap_requires_pending(self):
        with pytest.raises(WrapperStateError):
            self._wrapper().unwrap()

    def test_consumed_shell_cannot_be_unwrapped_again(self):
        _, _, _, shell = self._wrapper().sealed().unwrap()
        with pytest.raises(WrapperStateError):
            shell.unwrap()

    def test_seal_only_once(self):
        with pytest.raises(WrapperStateError):
            self._wrapper().sealed().sealed()

    def test_contents_hidden_from_repr_and_dict(self):
        wrapper = self._wrapper().sealed()
        assert "a1" not in repr(wrapper)
        assert wrapper.to_dict() == {
            "wrapper_id": "w1",
            "original_owner": "pk_alice",
            "state": "pending",
        }


# =============================================================================
# Ledger Tests
# =============================================================================

def _give(ledger, sender, obj, recipient):
    with ledger.transaction(sender) as tx:
        ledger.transfer(tx, obj, recipient)


class TestLedgerAccounts:
    def test_system_account_exists(self):
        assert Ledger().has_account(SYSTEM_ACCOUNT)

    def test_create_account_idempotent(self, ledger):
        chain = ledger.get_chain("pk_alice")
        assert ledger.create_account("pk_alice") is chain

    def test_address_for(self):
        assert address_for("alice") == "pk_alice"

    def test_unknown_sender_rejected(self, ledger):
        with pytest.raises(UnknownAccount):
            with ledger.transaction("pk_nobody"):
                pass

    def test_advance_time(self, ledger):
        ledger.advance_time(5)
        assert ledger.current_time == 1005.0
        with pytest.raises(ValueError):
            ledger.advance_time(-1)


class TestLedgerOwnership:
    def test_transfer_assigns_owner(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        assert ledger.owner_of("a1") == "pk_alice"
        assert ledger.get("a1") == Asset("a1", 1, 2)

    def test_transfer_registers_unknown_recipient(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_carol")
        assert ledger.has_account("pk_carol")
        assert ledger.owner_of("a1") == "pk_carol"

    def test_take_by_non_owner_fails(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        with pytest.raises(InvalidOwnership) as exc:
            with ledger.transaction("pk_bob") as tx:
                ledger.take(tx, "a1", Asset)
        assert exc.value.owner == "pk_alice"
        assert ledger.owner_of("a1") == "pk_alice"

    def test_take_missing_object_fails(self, ledger):
        with pytest.raises(InvalidOwnership):
            with ledger.transaction("pk_alice") as tx:
                ledger.take(tx, "nope")

    def test_take_wrong_type_fails(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        with pytest.raises(WrongObjectType):
            with ledger.transaction("pk_alice") as tx:
                ledger.take(tx, "a1", Fee)

    def test_taken_object_can_be_moved(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        with ledger.transaction("pk_alice") as tx:
            asset = ledger.take(tx, "a1", Asset)
            assert not ledger.exists("a1")
            ledger.transfer(tx, asset, "pk_bob")
        assert ledger.owner_of("a1") == "pk_bob"

    def test_transfer_of_owned_object_rejected(self, ledger):
        """An object must be taken before it can be given away."""
        asset = Asset("a1", 1, 2)
        _give(ledger, "pk_alice", asset, "pk_alice")
        with pytest.raises(LedgerError):
            _give(ledger, "pk_alice", asset, "pk_bob")
        assert ledger.owner_of("a1") == "pk_alice"

    def test_borrow_does_not_consume(self, ledger):
        _give(ledger, "pk_alice", Fee("f1", 10), "pk_alice")
        with ledger.transaction("pk_alice") as tx:
            fee = ledger.borrow(tx, "f1", Fee)
            ledger.update(tx, fee.join(Fee("x", 5)))
        assert ledger.get("f1").amount == 15
        assert ledger.owner_of("f1") == "pk_alice"

    def test_destroy_keeps_tombstone(self, ledger):
        _give(ledger, "pk_alice", Fee("f1", 10), "pk_alice")
        with ledger.transaction("pk_alice") as tx:
            fee = ledger.take(tx, "f1", Fee)
            ledger.destroy(tx, fee)
        assert not ledger.exists("f1")
        assert ledger.tombstone("f1") == Fee("f1", 10)

    def test_get_unknown_object(self, ledger):
        with pytest.raises(ObjectNotFound):
            ledger.get("nope")

    def test_objects_owned_by_filters_type(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        _give(ledger, "pk_alice", Fee("f1", 10), "pk_alice")
        assert ledger.objects_owned_by("pk_alice", Asset) == [Asset("a1", 1, 2)]
        assert len(ledger.objects_owned_by("pk_alice")) == 2
        assert ledger.objects_owned_by("pk_bob") == []

    def test_chain_records_ownership(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        with ledger.transaction("pk_alice") as tx:
            ledger.transfer(tx, ledger.take(tx, "a1"), "pk_bob")
        assert ledger.get_chain("pk_alice").holdings() == set()
        assert ledger.get_chain("pk_bob").holdings() == {"a1"}


class TestLedgerTransactions:
    def test_commit_records_digest(self, ledger):
        with ledger.transaction("pk_alice") as tx:
            pass
        assert ledger.committed == [tx.digest]

    def test_new_ids_unique_within_and_across_transactions(self, ledger):
        with ledger.transaction("pk_alice") as tx1:
            ids = {tx1.new_id(), tx1.new_id()}
        with ledger.transaction("pk_alice") as tx2:
            ids.add(tx2.new_id())
        assert len(ids) == 3

    def test_rollback_restores_everything(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        alice_len = len(ledger.get_chain("pk_alice"))

        with pytest.raises(RuntimeError):
            with ledger.transaction("pk_alice") as tx:
                asset = ledger.take(tx, "a1", Asset)
                ledger.transfer(tx, asset, "pk_carol")
                raise RuntimeError("boom")

        assert ledger.owner_of("a1") == "pk_alice"
        assert len(ledger.get_chain("pk_alice")) == alice_len
        assert not ledger.has_account("pk_carol")
        assert len(ledger.committed) == 1

    def test_rollback_restores_updated_and_destroyed_objects(self, ledger):
        _give(ledger, "pk_alice", Fee("f1", 10), "pk_alice")
        _give(ledger, "pk_alice", Fee("f2", 20), "pk_alice")
        with pytest.raises(InvalidOwnership):
            with ledger.transaction("pk_alice") as tx:
                f1 = ledger.borrow(tx, "f1", Fee)
                f2 = ledger.take(tx, "f2", Fee)
                ledger.update(tx, f1.join(f2))
                ledger.destroy(tx, f2)
                ledger.take(tx, "f3")
        assert ledger.get("f1").amount == 10
        assert ledger.get("f2").amount == 20
        assert ledger.tombstone("f2") is None

    def test_nested_transaction_rejected(self, ledger):
        with ledger.transaction("pk_alice"):
            with pytest.raises(LedgerError):
                with ledger.transaction("pk_bob"):
                    pass

    def test_operations_outside_transaction_rejected(self, ledger):
        with ledger.transaction("pk_alice") as tx:
            pass
        with pytest.raises(LedgerError):
            ledger.transfer(tx, Asset("a1", 1, 2), "pk_alice")

    def test_concurrent_takes_serialized(self, ledger):
        """Only one of many threads racing to consume an object succeeds."""
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        outcomes = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            try:
                with ledger.transaction("pk_alice") as tx:
                    ledger.transfer(tx, ledger.take(tx, "a1", Asset), "pk_bob")
                outcomes.append("ok")
            except InvalidOwnership:
                outcomes.append("denied")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("denied") == 7
        assert ledger.owner_of("a1") == "pk_bob"

    def test_reader_waits_for_open_transaction(self, ledger):
        """A query from another thread never sees a transaction halfway through."""
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        midway = threading.Event()
        release = threading.Event()
        seen = {}

        def writer():
            with pytest.raises(RuntimeError):
                with ledger.transaction("pk_alice") as tx:
                    ledger.transfer(tx, ledger.take(tx, "a1", Asset), "pk_bob")
                    midway.set()
                    release.wait(timeout=5)
                    raise RuntimeError("abort after first delivery")

        def reader():
            seen["owner"] = ledger.owner_of("a1")
            seen["bob"] = [obj.object_id for obj in ledger.objects_owned_by("pk_bob")]

        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        assert midway.wait(timeout=5)

        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        reader_thread.join(timeout=0.2)
        assert reader_thread.is_alive()

        release.set()
        writer_thread.join()
        reader_thread.join()
        assert seen == {"owner": "pk_alice", "bob": []}

    def test_interrupt_rolls_back(self, ledger):
        """BaseExceptions such as KeyboardInterrupt still restore the ledger."""
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        alice_len = len(ledger.get_chain("pk_alice"))

        with pytest.raises(KeyboardInterrupt):
            with ledger.transaction("pk_alice") as tx:
                ledger.transfer(tx, ledger.take(tx, "a1", Asset), "pk_bob")
                raise KeyboardInterrupt

        assert ledger.owner_of("a1") == "pk_alice"
        assert len(ledger.get_chain("pk_alice")) == alice_len
        assert len(ledger.committed) == 1
        with ledger.transaction("pk_alice"):
            pass

    def test_summary(self, ledger):
        _give(ledger, "pk_alice", Asset("a1", 1, 2), "pk_alice")
        summary = ledger.summary()
        assert summary["objects"] == 1
        assert summary["transactions"] == 1
        assert summary["objects_per_account"] == {"pk_alice": 1}


class TestIssuerRecord:
    def test_incremented(self):
        record = IssuerRecord("i1", "pk_admin")
        assert record.incremented().issued_count == 1
        assert record.issued_count == 0
