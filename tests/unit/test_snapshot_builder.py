from datetime import datetime, timedelta, timezone

from discord_exporter.models.schemas import PhotoRecord, ReactionCount, UserCount
from discord_exporter.services.reconciliation.snapshot_builder import SnapshotBuilder

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_build_groups_reactions_by_emoji():
    builder = SnapshotBuilder()
    builder.add_reaction("fire", "alice")
    builder.add_reaction("heart", "bob")
    builder.add_reaction("fire", "bob")
    builder.add_reaction("fire", "alice")

    snapshot = builder.build()

    assert snapshot.reactions == [
        ReactionCount(user="alice", emoji="fire", count=2),
        ReactionCount(user="bob", emoji="fire", count=1),
        ReactionCount(user="bob", emoji="heart", count=1),
    ]


def test_messages_and_photos_accumulate():
    builder = SnapshotBuilder()
    builder.add_message("alice")
    builder.add_message("alice")
    builder.add_message("bob")
    builder.add_photos("bob", 2)
    builder.add_photos("bob", 1)

    snapshot = builder.build()

    assert builder.messages_seen == 3
    assert snapshot.messages == [
        UserCount(user="alice", count=2),
        UserCount(user="bob", count=1),
    ]
    assert snapshot.photos == [UserCount(user="bob", count=3)]


def test_photo_records_oldest_first():
    builder = SnapshotBuilder()
    for id, minutes in (("late", 5), ("early", 1), ("mid", 3)):
        builder.add_photo_record(
            PhotoRecord(
                id=id,
                title=id,
                url=f"https://cdn.example/{id}.jpg",
                created_at=BASE + timedelta(minutes=minutes),
            )
        )

    assert [r.id for r in builder.photo_records()] == ["early", "mid", "late"]
