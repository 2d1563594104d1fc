"""
Record Codec Tests

Fixed layouts, the Fresh variant and rejection of malformed buffers.
"""

import struct

import pytest

from janecek.address import SYSTEM_ID, Address
from janecek.codec import (
    PARTY_LAYOUT,
    RECORD_LENGTHS,
    check_codec_table,
    decode,
    decode_as,
    encode,
    is_fresh,
    record_length,
)
from janecek.errors import InvalidRecordData, LengthMismatch, NameTooLong, TypeTagMismatch
from janecek.state import (
    FRESH,
    CampaignOwner,
    CampaignState,
    Party,
    RecordKind,
    VoteBudget,
    Voter,
)


A = Address(b"\xaa" * 32)
B = Address(b"\xbb" * 32)
C = Address(b"\xcc" * 32)


def _party(**overrides) -> Party:
    fields = dict(
        author=A, campaign_state=B, created_at=1000, name=b"Alpha", tally=-3, disambig=254,
    )
    fields.update(overrides)
    return Party(**fields)


class TestLayouts:

    def test_record_lengths(self):
        assert record_length(RecordKind.CAMPAIGN_OWNER) == 67
        assert record_length(RecordKind.CAMPAIGN_STATE) == 51
        assert record_length(RecordKind.PARTY) == 119
        assert record_length(RecordKind.VOTER) == 164

    def test_every_kind_except_fresh_has_a_layout(self):
        assert set(RECORD_LENGTHS) == set(RecordKind) - {RecordKind.FRESH}

    def test_incomplete_codec_table_fails_loudly(self):
        table = {RecordKind.PARTY: (PARTY_LAYOUT, encode, decode)}
        with pytest.raises(RuntimeError, match="CampaignOwner, CampaignState, Voter"):
            check_codec_table(table)

    def test_fresh_has_no_codec(self):
        table = {kind: (PARTY_LAYOUT, encode, decode) for kind in RecordKind}
        with pytest.raises(RuntimeError):
            check_codec_table(table)

    def test_owner_layout(self):
        data = encode(CampaignOwner(author=A, campaign_state=B, disambig=251))
        assert len(data) == 67
        assert data[0] == RecordKind.CAMPAIGN_OWNER
        assert data[1] == 1
        assert data[2:34] == A.data
        assert data[34:66] == B.data
        assert data[66] == 251

    def test_state_layout_is_little_endian(self):
        data = encode(CampaignState(owner=A, started_at=1000, ends_at=605800, disambig=7))
        assert data[0] == RecordKind.CAMPAIGN_STATE
        assert struct.unpack_from("<q", data, 34)[0] == 1000
        assert struct.unpack_from("<q", data, 42)[0] == 605800
        assert data[-1] == 7

    def test_party_name_is_zero_padded(self):
        data = encode(_party())
        fields = PARTY_LAYOUT.unpack(data)
        assert fields[5] == 5
        assert fields[6] == b"Alpha" + b"\x00" * 27
        assert fields[7] == -3

    def test_voter_defaults_to_null_targets(self):
        data = encode(Voter(author=A, campaign_state=B, disambig=1))
        assert data[66] == VoteBudget.FULL
        assert data[67:163] == b"\x00" * 96


class TestDecode:

    @pytest.mark.parametrize("record", [
        CampaignOwner(author=A, campaign_state=B, disambig=255),
        CampaignState(owner=A, started_at=-5, ends_at=604795, disambig=0),
        Party(author=A, campaign_state=B, created_at=1, name=b"x" * 32, tally=2 ** 63 - 1, disambig=9),
        Voter(author=A, campaign_state=B, disambig=3, budget=VoteBudget.NO_MORE_POSITIVE, pos1=B, pos2=C),
    ])
    def test_decode_inverts_encode(self, record):
        assert decode(encode(record)) == record

    def test_zero_buffer_is_fresh(self):
        for size in (0, 51, 67, 119, 164, 200):
            assert decode(b"\x00" * size) is FRESH
            assert is_fresh(b"\x00" * size)

    def test_fresh_is_not_initialized(self):
        assert FRESH.initialized is False
        assert FRESH.kind == RecordKind.FRESH

    def test_unknown_tag_rejected(self):
        with pytest.raises(TypeTagMismatch):
            decode(bytes([9]) + b"\x01" * 66)

    def test_fresh_tag_with_payload_rejected(self):
        with pytest.raises(TypeTagMismatch):
            decode(b"\x00\x01" + b"\x00" * 65)

    def test_truncated_buffer_rejected(self):
        data = encode(CampaignOwner(author=A, campaign_state=B, disambig=1))
        with pytest.raises(LengthMismatch):
            decode(data[:-1])

    def test_oversized_buffer_rejected(self):
        data = encode(CampaignOwner(author=A, campaign_state=B, disambig=1))
        with pytest.raises(LengthMismatch):
            decode(data + b"\x00")

    def test_bad_initialized_flag(self):
        data = bytearray(encode(CampaignOwner(author=A, campaign_state=B, disambig=1)))
        data[1] = 2
        with pytest.raises(InvalidRecordData):
            decode(bytes(data))

    def test_bad_budget_byte(self):
        data = bytearray(encode(Voter(author=A, campaign_state=B, disambig=1)))
        data[66] = 4
        with pytest.raises(InvalidRecordData):
            decode(bytes(data))

    def test_embedded_name_length_too_large(self):
        data = bytearray(encode(_party()))
        struct.pack_into("<I", data, 74, 33)
        with pytest.raises(NameTooLong):
            decode(bytes(data))

    def test_dirty_name_padding(self):
        data = bytearray(encode(_party()))
        data[78 + 10] = 0x41
        with pytest.raises(InvalidRecordData):
            decode(bytes(data))

    def test_decode_as_rejects_other_kind(self):
        data = encode(CampaignOwner(author=A, campaign_state=B, disambig=1))
        with pytest.raises(TypeTagMismatch):
            decode_as(data, RecordKind.CAMPAIGN_STATE)

    def test_decode_as_accepts_fresh(self):
        assert decode_as(b"\x00" * 164, RecordKind.VOTER) is FRESH


class TestEncode:

    def test_name_over_capacity_rejected(self):
        with pytest.raises(NameTooLong):
            encode(_party(name=b"n" * 33))

    def test_fresh_cannot_be_encoded(self):
        with pytest.raises(TypeTagMismatch):
            encode(FRESH)  # type: ignore[arg-type]

    def test_null_target_is_system_id(self):
        voter = decode(encode(Voter(author=A, campaign_state=B, disambig=1)))
        assert voter.pos1 == voter.pos2 == voter.neg1 == SYSTEM_ID
