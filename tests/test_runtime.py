"""
Signing and Local Runtime Tests

Signer flags come only from valid Ed25519 signatures, and a transaction is
all-or-nothing across its instructions.
"""

import time

import pytest

from janecek.clock import FixedClock, SystemClock
from janecek.errors import AlreadyInitialized, MissingSigner
from janecek.instruction import create_party, create_voter, initialize, vote_positive
from janecek.signing import (
    Keypair,
    SignatureError,
    Transaction,
    apply_signers,
    build_transaction,
    verify_signature,
)
from janecek.state import VoteBudget


class TestKeypair:

    def test_seed_is_deterministic(self):
        seed = bytes(range(32))
        assert Keypair.from_seed(seed).address == Keypair.from_seed(seed).address

    def test_bad_seed_length(self):
        with pytest.raises(ValueError):
            Keypair.from_seed(b"\x00" * 31)

    def test_sign_and_verify(self):
        keypair = Keypair.generate()
        signature = keypair.sign(b"ballot")
        assert len(signature) == 64
        assert verify_signature(keypair.address, b"ballot", signature)
        assert not verify_signature(keypair.address, b"ballot!", signature)
        assert not verify_signature(Keypair.generate().address, b"ballot", signature)

    def test_jwk_round_trip(self):
        keypair = Keypair.generate()
        assert Keypair.from_jwk(keypair.to_jwk()).address == keypair.address

    def test_jwk_mismatch(self):
        jwk = Keypair.generate().to_jwk()
        jwk["x"] = Keypair.generate().to_jwk()["x"]
        with pytest.raises(ValueError):
            Keypair.from_jwk(jwk)

    def test_jwk_wrong_curve(self):
        with pytest.raises(ValueError):
            Keypair.from_jwk({"kty": "EC", "crv": "P-256", "d": "AA"})


class TestTransaction:

    def test_verified_signers(self, program_id):
        a, b = Keypair.generate(), Keypair.generate()
        tx = build_transaction([initialize(a.address, program_id)], [a, b])
        assert tx.verify() == {a.address, b.address}

    def test_tampered_message(self, program_id):
        a = Keypair.generate()
        tx = build_transaction([initialize(a.address, program_id)], [a])
        tx.nonce += 1
        with pytest.raises(SignatureError):
            tx.verify()

    def test_forged_signature(self, program_id):
        a, b = Keypair.generate(), Keypair.generate()
        tx = Transaction([initialize(a.address, program_id)])
        tx.add_signature(a.address, b.sign(tx.message()))
        with pytest.raises(SignatureError):
            tx.verify()

    def test_malformed_signature(self, program_id):
        tx = Transaction([initialize(Keypair.generate().address, program_id)])
        with pytest.raises(SignatureError):
            tx.add_signature(Keypair.generate().address, b"\x00" * 10)

    def test_signer_flags_come_from_signatures(self, program_id):
        a, b = Keypair.generate(), Keypair.generate()
        ix = create_party(a.address, b.address, "Alpha", program_id)
        metas = apply_signers(ix, {a.address})
        assert metas[0].is_signer
        assert not metas[1].is_signer
        assert [m.is_writable for m in metas] == [m.is_writable for m in ix.accounts]

    def test_unmarked_account_becomes_signer_when_signed(self, program_id):
        voter, owner = Keypair.generate(), Keypair.generate()
        ix = create_voter(voter.address, owner.address, program_id)
        assert apply_signers(ix, {voter.address, owner.address})[1].is_signer


class TestLocalRuntime:

    def test_execute_returns_handler_result(self, runtime):
        owner = runtime.new_identity()
        campaign = runtime.execute(initialize(owner.address, runtime.program_id), owner)
        assert campaign.owner.author == owner.address

    def test_new_identity_is_funded(self, runtime):
        assert runtime.balance(runtime.new_identity(lamports=42).address) == 42

    def test_multi_instruction_transaction(self, runtime):
        owner = runtime.new_identity()
        voter = runtime.new_identity()
        pid = runtime.program_id
        tx = build_transaction(
            [
                initialize(owner.address, pid),
                create_party(owner.address, owner.address, "Alpha", pid),
                create_voter(voter.address, owner.address, pid),
                vote_positive(voter.address, owner.address, "Alpha", pid),
            ],
            [owner, voter],
            nonce=1,
        )
        receipt = runtime.send_transaction(tx)
        assert len(receipt.invocation_ids) == 4
        assert len(set(receipt.invocation_ids)) == 4
        voter_record, party = receipt.results[3]
        assert voter_record.budget is VoteBudget.ONE_SPENT
        assert party.tally == 1

    def test_failing_instruction_rolls_back_transaction(self, runtime):
        owner = runtime.new_identity()
        pid = runtime.program_id
        before = runtime.ledger.snapshot()
        tx = build_transaction(
            [
                initialize(owner.address, pid),
                create_party(owner.address, owner.address, "Alpha", pid),
                initialize(owner.address, pid),
            ],
            [owner],
        )
        with pytest.raises(AlreadyInitialized):
            runtime.send_transaction(tx)
        assert runtime.ledger.snapshot() == before
        assert runtime.ledger.write_log == []

    def test_unsigned_transaction_has_no_signers(self, runtime):
        owner = runtime.new_identity()
        tx = Transaction([initialize(owner.address, runtime.program_id)])
        with pytest.raises(MissingSigner):
            runtime.send_transaction(tx)

    def test_bad_signature_rejected_before_execution(self, runtime):
        owner, other = runtime.new_identity(), runtime.new_identity()
        tx = Transaction([initialize(owner.address, runtime.program_id)])
        tx.add_signature(owner.address, other.sign(tx.message()))
        before = runtime.ledger.snapshot()
        with pytest.raises(SignatureError):
            runtime.send_transaction(tx)
        assert runtime.ledger.snapshot() == before


class TestClocks:

    def test_system_clock_is_unix_seconds(self):
        before = int(time.time())
        now = SystemClock().now()
        assert before <= now <= int(time.time())

    def test_fixed_clock(self):
        clock = FixedClock(5)
        assert clock.advance(10) == 15
        clock.set(3)
        assert clock.now() == 3
