from __future__ import annotations

from core.identity_map import ConversationState, IdentityMap, RegistrationOutcome

LID = "123456789@lid"
PHONE = "972500000001@s.whatsapp.net"
OTHER_PHONE = "972500000002@s.whatsapp.net"
NEW_LID = "987654321@lid"


def test_register_is_idempotent() -> None:
    identity = IdentityMap()
    assert identity.register(LID, PHONE) is RegistrationOutcome.NEW
    assert identity.register(LID, PHONE) is RegistrationOutcome.UNCHANGED
    assert len(identity) == 1
    assert identity.resolve(LID) == PHONE
    assert identity.lid_for(PHONE) == LID


def test_malformed_pairs_are_rejected() -> None:
    identity = IdentityMap()
    assert identity.register(PHONE, LID) is RegistrationOutcome.REJECTED
    assert identity.register(LID, None) is RegistrationOutcome.REJECTED
    assert identity.register("", PHONE) is RegistrationOutcome.REJECTED
    assert identity.register(LID, "120363000000000000@g.us") is RegistrationOutcome.REJECTED
    assert len(identity) == 0


def test_lid_remap_drops_old_reverse_entry() -> None:
    identity = IdentityMap()
    identity.register(LID, PHONE)
    assert identity.register(LID, OTHER_PHONE) is RegistrationOutcome.REMAPPED

    assert identity.resolve(LID) == OTHER_PHONE
    assert identity.lid_for(OTHER_PHONE) == LID
    assert identity.lid_for(PHONE) is None
    data = identity.as_dict()
    assert data["lidToPhone"] == {LID: OTHER_PHONE}
    assert data["phoneToLid"] == {OTHER_PHONE: LID}


def test_phone_moving_to_new_lid_keeps_old_lid_resolved() -> None:
    identity = IdentityMap()
    identity.register(LID, PHONE)
    assert identity.register(NEW_LID, PHONE) is RegistrationOutcome.REMAPPED

    assert identity.resolve(LID) == PHONE
    assert identity.resolve(NEW_LID) == PHONE
    assert identity.lid_for(PHONE) == NEW_LID
    assert identity.state_of(LID) is ConversationState.RESOLVED
    assert identity.as_dict() == {
        "lidToPhone": {LID: PHONE, NEW_LID: PHONE},
        "phoneToLid": {PHONE: NEW_LID},
    }


def test_load_keeps_every_lid_of_a_phone() -> None:
    identity = IdentityMap()
    identity.load({"lidToPhone": {NEW_LID: PHONE, LID: PHONE}, "phoneToLid": {PHONE: NEW_LID}})

    assert len(identity) == 2
    assert identity.resolve(LID) == PHONE
    assert identity.lid_for(PHONE) == NEW_LID


def test_resolve_passes_through_non_lid_keys() -> None:
    identity = IdentityMap()
    assert identity.resolve(PHONE) == PHONE
    assert identity.resolve("120363000000000000@g.us") == "120363000000000000@g.us"
    assert identity.resolve(LID) == LID


def test_state_of() -> None:
    identity = IdentityMap()
    assert identity.state_of(PHONE) is ConversationState.STABLE
    assert identity.state_of(LID) is ConversationState.UNRESOLVED
    identity.register(LID, PHONE)
    assert identity.state_of(LID) is ConversationState.RESOLVED
    assert identity.is_resolved(LID)


def test_load_repairs_half_written_snapshot() -> None:
    identity = IdentityMap()
    loaded = identity.load(
        {
            "lidToPhone": {LID: PHONE, "bad": PHONE},
            "phoneToLid": {OTHER_PHONE: "555@lid"},
        }
    )
    assert loaded == 2
    assert identity.resolve("555@lid") == OTHER_PHONE
    assert identity.lid_for(OTHER_PHONE) == "555@lid"
    assert identity.lid_for(PHONE) == LID
