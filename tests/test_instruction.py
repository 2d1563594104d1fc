"""
Instruction Wire Format Tests

Tag/payload decoding, party name handling and the client builders.
"""

import pytest

from janecek.address import Address
from janecek.errors import InvalidInstruction, InvalidInstructionData, NameTooLong
from janecek.instruction import (
    ACCOUNT_COUNTS,
    CreatePartyArgs,
    CreateVoterArgs,
    InitializeArgs,
    InstructionTag,
    VoteArgs,
    create_party,
    create_voter,
    decode_instruction,
    encode_instruction,
    get_owner_address,
    get_party_address,
    get_state_address,
    get_voter_address,
    initialize,
    name_from_bytes,
    name_to_bytes,
    vote_negative,
    vote_positive,
)


OWNER = Address(b"\x05" * 32)
VOTER = Address(b"\x06" * 32)


class TestTags:

    def test_labels(self):
        assert InstructionTag.INITIALIZE.label == "Initialize"
        assert InstructionTag.CREATE_PARTY.label == "CreateParty"
        assert InstructionTag.VOTE_NEGATIVE.label == "VoteNegative"

    def test_account_counts(self):
        assert [ACCOUNT_COUNTS[t] for t in InstructionTag] == [3, 5, 5, 6, 6]


class TestNames:

    def test_padding(self):
        assert name_to_bytes("Alpha") == b"Alpha" + b"\x00" * 27

    def test_utf8(self):
        encoded = name_to_bytes("Čeština")
        assert name_from_bytes(encoded) == "Čeština".encode("utf-8")

    def test_exactly_capacity(self):
        assert name_to_bytes("x" * 32) == b"x" * 32

    def test_too_long(self):
        with pytest.raises(NameTooLong):
            name_to_bytes("x" * 33)

    def test_multibyte_counts_bytes(self):
        with pytest.raises(NameTooLong):
            name_to_bytes("č" * 17)

    def test_empty(self):
        with pytest.raises(InvalidInstructionData):
            name_to_bytes("")
        with pytest.raises(InvalidInstructionData):
            name_from_bytes(b"\x00" * 32)

    def test_interior_nul(self):
        with pytest.raises(InvalidInstructionData):
            name_to_bytes(b"a\x00b")
        with pytest.raises(InvalidInstructionData):
            name_from_bytes(b"a\x00b" + b"\x00" * 29)

    def test_invalid_utf8(self):
        with pytest.raises(InvalidInstructionData):
            name_from_bytes(b"\xff\xfe" + b"\x00" * 30)


class TestDecode:

    def test_empty_data(self):
        with pytest.raises(InvalidInstruction):
            decode_instruction(b"")

    def test_unknown_tag(self):
        with pytest.raises(InvalidInstruction):
            decode_instruction(b"\x05\x00\x00")

    @pytest.mark.parametrize("data", [
        b"\x00\x01",
        b"\x00\x01\x02\x03",
        b"\x01" + b"\x01" * 3 + b"a" * 31,
        b"\x02\x01\x01",
        b"\x03" + b"\x01" * 4 + b"a" * 33,
    ])
    def test_wrong_payload_length(self, data):
        with pytest.raises(InvalidInstructionData):
            decode_instruction(data)

    def test_initialize(self):
        tag, args = decode_instruction(b"\x00\xfe\xfd")
        assert tag is InstructionTag.INITIALIZE
        assert args == InitializeArgs(254, 253)

    def test_create_party(self):
        data = b"\x01\x01\x02\x03" + name_to_bytes("Alpha")
        tag, args = decode_instruction(data)
        assert tag is InstructionTag.CREATE_PARTY
        assert args == CreatePartyArgs(1, 2, 3, b"Alpha")

    def test_create_voter(self):
        assert decode_instruction(b"\x02\x09\x08\x07") == (
            InstructionTag.CREATE_VOTER, CreateVoterArgs(9, 8, 7)
        )

    def test_vote_tags_share_payload(self):
        payload = b"\x01\x02\x03\x04" + name_to_bytes("Beta")
        assert decode_instruction(b"\x03" + payload)[1] == decode_instruction(b"\x04" + payload)[1]
        assert decode_instruction(b"\x04" + payload)[1] == VoteArgs(1, 2, 3, 4, b"Beta")

    def test_encode_rejects_mismatched_payload(self):
        with pytest.raises(InvalidInstructionData):
            encode_instruction(InstructionTag.CREATE_VOTER, InitializeArgs(1, 2))


class TestBuilders:

    def test_initialize_accounts(self, program_id):
        ix = initialize(OWNER, program_id)
        owner_addr, owner_bump = get_owner_address(OWNER, program_id)
        state_addr, state_bump = get_state_address(owner_addr, program_id)

        assert ix.program_id == program_id
        assert [m.address for m in ix.accounts] == [OWNER, owner_addr, state_addr]
        assert ix.accounts[0].is_signer and ix.accounts[0].is_writable
        assert ix.accounts[1].is_writable and ix.accounts[2].is_writable
        assert ix.data == bytes([0, owner_bump, state_bump])

    def test_create_party_accounts(self, program_id):
        author = Address(b"\x07" * 32)
        ix = create_party(author, OWNER, "Alpha", program_id)
        owner_addr, _ = get_owner_address(OWNER, program_id)
        state_addr, _ = get_state_address(owner_addr, program_id)
        party_addr, party_bump = get_party_address("Alpha", state_addr, program_id)

        assert [m.address for m in ix.accounts] == [author, OWNER, owner_addr, state_addr, party_addr]
        assert ix.accounts[1].is_signer
        assert ix.accounts[4].is_writable
        assert ix.tag is InstructionTag.CREATE_PARTY
        assert ix.data[3] == party_bump
        assert ix.data[4:] == name_to_bytes("Alpha")

    def test_create_voter_owner_not_signer(self, program_id):
        ix = create_voter(VOTER, OWNER, program_id)
        assert ix.accounts[0].is_signer
        assert not ix.accounts[1].is_signer
        assert len(ix.data) == 4

    def test_vote_builders(self, program_id):
        pos = vote_positive(VOTER, OWNER, "Alpha", program_id)
        neg = vote_negative(VOTER, OWNER, "Alpha", program_id)
        assert pos.data[0] == InstructionTag.VOTE_POSITIVE
        assert neg.data[0] == InstructionTag.VOTE_NEGATIVE
        assert pos.data[1:] == neg.data[1:]
        assert pos.accounts == neg.accounts
        assert len(pos.accounts) == 6
        assert not pos.accounts[0].is_writable
        assert pos.accounts[4].is_writable and pos.accounts[5].is_writable

    def test_voter_address_is_per_campaign(self, program_id):
        a = get_voter_address(VOTER, Address(b"\x01" * 32), program_id)
        b = get_voter_address(VOTER, Address(b"\x02" * 32), program_id)
        assert a != b

    def test_party_name_bytes_and_str_agree(self, program_id):
        state = Address(b"\x01" * 32)
        assert get_party_address("Alpha", state, program_id) == get_party_address(b"Alpha", state, program_id)
