from __future__ import annotations

from typing import Any, Optional

from core.context import IDENTITY_BLOB, NAMES_BLOB, STORE_BLOB, BridgeContext, write_snapshot

LID = "123456789@lid"
PHONE = "972500000001@s.whatsapp.net"


class FakeSnapshots:
    def __init__(self, blobs: Optional[dict[str, Any]] = None, failing: tuple[str, ...] = ()) -> None:
        self.blobs = dict(blobs or {})
        self.failing = failing

    def load(self, name: str) -> Optional[Any]:
        return self.blobs.get(name)

    def save(self, name: str, payload: Any) -> None:
        if name in self.failing:
            raise OSError("disk full")
        self.blobs[name] = payload


def test_restore_migrates_and_backfills_names() -> None:
    snapshots = FakeSnapshots(
        {
            IDENTITY_BLOB: {"lidToPhone": {LID: PHONE}, "phoneToLid": {PHONE: LID}},
            STORE_BLOB: {
                LID: [{"key": {"id": "A", "remoteJid": LID}, "pushName": "Dana", "messageTimestamp": 5}],
                PHONE: [{"key": {"id": "B", "remoteJid": PHONE}, "messageTimestamp": 6}],
            },
        }
    )
    context = BridgeContext()
    context.restore(snapshots)

    assert context.store.keys() == [PHONE]
    assert len(context.store.messages_for(PHONE)) == 2
    assert context.names.get(PHONE).name == "Dana"


def test_restore_with_nothing_on_disk() -> None:
    context = BridgeContext()
    context.restore(FakeSnapshots())
    assert context.store.counts() == (0, 0)
    assert len(context.identity) == 0


def test_write_snapshot_skips_failed_blobs() -> None:
    context = BridgeContext()
    context.identity.register(LID, PHONE)
    snapshots = FakeSnapshots(failing=(STORE_BLOB,))

    written = write_snapshot(snapshots, context.snapshot())

    assert written == 2
    assert snapshots.blobs[IDENTITY_BLOB]["lidToPhone"] == {LID: PHONE}
    assert NAMES_BLOB in snapshots.blobs
    assert STORE_BLOB not in snapshots.blobs
