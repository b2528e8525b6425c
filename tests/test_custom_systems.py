"""Tests for user-defined grade systems."""

# pylint: disable=redefined-outer-name  # standard pytest fixture pattern

import logging
from typing import Any

import pytest

from climb_grades.conversion import GradeConverter
from climb_grades.custom_systems import (
    CustomGradeSystemManager,
    slugify,
    to_definition,
    validate_custom_system,
)
from climb_grades.database.local_store import CustomGradeSystemStore, InMemoryKeyValueStore
from climb_grades.exceptions import GradeSystemValidationError, RemoteStoreError
from climb_grades.models import Attempt, CustomGradeSystem
from climb_grades.registry import GradeSystemRegistry
from climb_grades.snapshot import GradeSnapshotBuilder

from conftest import FakeGradeSystemFeed


class _ReadOnlyKeyValueStore(InMemoryKeyValueStore):
    def set_item(self, key: str, value: str) -> None:
        raise OSError("read-only file system")


class TestSlugify:
    """Tests for slugify."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Gym Colors", "gym-colors"),
            ("  --My  Gym!!-- ", "my-gym"),
            ("V-Scale 2.0", "v-scale-2-0"),
            ("!!!", ""),
        ],
    )
    def test_slugify(self, value: str, expected: str) -> None:
        """Non-alphanumeric runs collapse to single hyphens."""
        assert slugify(value) == expected


class TestValidateCustomSystem:
    """Tests for validate_custom_system."""

    def test_valid_input(self, gym_colors: dict[str, Any]) -> None:
        """Well-formed input should validate."""
        custom = validate_custom_system(gym_colors)
        assert custom.name == "Gym Colors"
        assert [g.name for g in custom.grades] == ["Pink", "Blue", "Black"]

    def test_missing_name(self) -> None:
        """A mapping without a name should be rejected."""
        with pytest.raises(GradeSystemValidationError) as exc_info:
            validate_custom_system({"grades": [{"name": "A"}]})
        assert any("name" in error for error in exc_info.value.errors)

    def test_collects_every_error(self) -> None:
        """All problems should be reported together."""
        with pytest.raises(GradeSystemValidationError) as exc_info:
            validate_custom_system({"name": "  ", "grades": []})
        assert exc_info.value.errors == [
            "System name cannot be empty",
            "System must define at least one grade",
        ]

    def test_blank_and_duplicate_grades(self) -> None:
        """Blank and case-insensitive duplicate grade names should be rejected."""
        with pytest.raises(GradeSystemValidationError) as exc_info:
            validate_custom_system(
                {"name": "Gym", "grades": [{"name": "Red"}, {"name": " "}, {"name": "red"}]}
            )
        assert exc_info.value.errors == [
            "Grade 2 has an empty name",
            "Grade 3 duplicates the name 'red'",
        ]
        assert "Invalid custom grade system" in exc_info.value.message

    def test_unsluggable_name_without_id(self) -> None:
        """A name with no letters or digits needs an explicit id."""
        with pytest.raises(GradeSystemValidationError):
            validate_custom_system({"name": "!!!", "grades": [{"name": "A"}]})
        custom = validate_custom_system({"id": "user-x", "name": "!!!", "grades": [{"name": "A"}]})
        assert custom.id == "user-x"

    @pytest.mark.parametrize("system_id", ["vscale", "V", "Font", " font ", "Fontainebleau"])
    def test_builtin_ids_are_reserved(self, system_id: str) -> None:
        """An explicit id naming a builtin system or legacy code should be rejected."""
        with pytest.raises(GradeSystemValidationError) as exc_info:
            validate_custom_system({"id": system_id, "name": "Mine", "grades": [{"name": "Pink"}]})
        assert exc_info.value.errors == [
            f"System id '{system_id}' is reserved for a builtin system"
        ]


class TestToDefinition:
    """Tests for deriving registry definitions from custom systems."""

    def test_gym_colors_definition(self, gym_colors: dict[str, Any]) -> None:
        """Grades should get positional canonical values under a user- id."""
        definition = to_definition(CustomGradeSystem.model_validate(gym_colors))
        assert definition.id == "user-gym-colors"
        assert definition.scope == "user"
        assert definition.version == 1
        assert definition.active is True
        assert [e.canonical_value for e in definition.grades] == [0, 1, 2]
        assert [e.display_order for e in definition.grades] == [0, 1, 2]
        assert [e.id for e in definition.grades] == [
            "user-gym-colors-pink",
            "user-gym-colors-blue",
            "user-gym-colors-black",
        ]
        assert all(e.approximate for e in definition.grades)
        assert definition.grades[0].color == "#ff69b4"

    def test_explicit_id_and_blank_color(self) -> None:
        """An explicit id is kept and an empty colour becomes None."""
        definition = to_definition(
            CustomGradeSystem(id="user-board", name="Board", grades=[{"name": "?!"}])
        )
        assert definition.id == "user-board"
        assert definition.grades[0].id == "user-board-0"
        assert definition.grades[0].color is None


class TestCustomGradeSystemManager:
    """Tests for CustomGradeSystemManager local and remote coordination."""

    def test_upsert_registers_and_persists(
        self,
        manager: CustomGradeSystemManager,
        custom_store: CustomGradeSystemStore,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
    ) -> None:
        """Saving should store locally, register and mirror remotely."""
        system_id = manager.upsert_custom_system(gym_colors)

        assert system_id == "user-gym-colors"
        assert manager.is_user_system(system_id)
        stored = custom_store.get_custom_grade_systems()
        assert [s.id for s in stored] == ["user-gym-colors"]
        assert fake_feed.upserts == [
            (
                "climber-1",
                {
                    "id": "user-gym-colors",
                    "name": "Gym Colors",
                    "version": 1,
                    "grades": [
                        {"name": "Pink", "color": "#ff69b4"},
                        {"name": "Blue", "color": "#0000ff"},
                        {"name": "Black", "color": "#000000"},
                    ],
                },
            )
        ]

    def test_upsert_replaces_existing(
        self, manager: CustomGradeSystemManager, gym_colors: dict[str, Any]
    ) -> None:
        """Saving the same system twice should replace it."""
        manager.upsert_custom_system(gym_colors)
        manager.upsert_custom_system({**gym_colors, "grades": [{"name": "Green"}]})

        systems = manager.list_custom_systems()
        assert len(systems) == 1
        assert [g.name for g in systems[0].grades] == ["Green"]
        definition = manager.registry.get_system("user-gym-colors")
        assert definition is not None
        assert [e.label for e in definition.grades] == ["Green"]

    def test_upsert_rejects_invalid(self, manager: CustomGradeSystemManager) -> None:
        """Invalid input should raise and leave nothing behind."""
        with pytest.raises(GradeSystemValidationError):
            manager.upsert_custom_system({"name": "Empty", "grades": []})
        assert manager.list_custom_systems() == []
        assert manager.registry.user_systems() == []

    def test_remote_failure_is_swallowed(
        self,
        manager: CustomGradeSystemManager,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A remote write failure should not fail the local save."""
        fake_feed.fail_writes = True

        with caplog.at_level(logging.WARNING, logger="climb_grades.custom_systems"):
            system_id = manager.upsert_custom_system(gym_colors)

        assert manager.is_user_system(system_id)
        assert len(manager.list_custom_systems()) == 1
        assert "Remote grade system sync failed" in caplog.text

    def test_signed_out_skips_remote(
        self,
        registry: GradeSystemRegistry,
        custom_store: CustomGradeSystemStore,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
    ) -> None:
        """Without an identity nothing should be sent remotely."""
        manager = CustomGradeSystemManager(registry, custom_store, feed=fake_feed)
        manager.upsert_custom_system(gym_colors)
        assert fake_feed.upserts == []
        assert manager.push_local_custom_systems_to_cloud() == 0

    def test_remove_custom_system(
        self,
        manager: CustomGradeSystemManager,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
    ) -> None:
        """Removing should clear the store, the registry and the remote copy."""
        system_id = manager.upsert_custom_system(gym_colors)
        manager.remove_custom_system(system_id)

        assert manager.list_custom_systems() == []
        assert manager.registry.get_system(system_id) is None
        assert fake_feed.deletes == [("climber-1", system_id)]

    def test_builtin_id_cannot_replace_builtin(
        self, manager: CustomGradeSystemManager, converter: GradeConverter
    ) -> None:
        """Saving under a builtin id should fail and leave the builtin in place."""
        with pytest.raises(GradeSystemValidationError):
            manager.upsert_custom_system(
                {"id": "vscale", "name": "Mine", "grades": [{"name": "Pink"}]}
            )

        vscale = manager.registry.get_system("vscale")
        assert vscale is not None
        assert vscale.scope == "builtin"
        assert converter.to_canonical_value("V", "V5") == 6
        assert manager.list_custom_systems() == []

    def test_remove_builtin_is_ignored(self, manager: CustomGradeSystemManager) -> None:
        """Removing a builtin id should not unregister the builtin system."""
        manager.remove_custom_system("vscale")
        assert manager.registry.get_system("vscale") is not None
        assert manager.registry.get_default_system().id == "vscale"

    def test_new_system_starts_at_version_one(
        self, manager: CustomGradeSystemManager, gym_colors: dict[str, Any]
    ) -> None:
        """A first save should record version 1."""
        system_id = manager.upsert_custom_system(gym_colors)
        definition = manager.registry.get_system(system_id)
        assert definition is not None
        assert definition.version == 1
        assert manager.list_custom_systems()[0].version == 1

    def test_editing_grades_bumps_version(
        self,
        manager: CustomGradeSystemManager,
        snapshot_builder: GradeSnapshotBuilder,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
    ) -> None:
        """Changing grade names or order should bump the version seen by snapshots."""
        system_id = manager.upsert_custom_system(gym_colors)
        before = snapshot_builder.build_grade_snapshot("Blue", system_id)

        manager.upsert_custom_system(
            {**gym_colors, "grades": [{"name": "Blue"}, {"name": "Pink"}, {"name": "Black"}]}
        )
        after = snapshot_builder.build_grade_snapshot("Blue", system_id)

        assert before is not None and after is not None
        assert before.original_system_version == 1
        assert after.original_system_version == 2
        assert after.canonical_value == 0
        assert manager.list_custom_systems()[0].version == 2
        assert fake_feed.upserts[-1][1]["version"] == 2

    def test_resaving_same_grades_keeps_version(
        self, manager: CustomGradeSystemManager, gym_colors: dict[str, Any]
    ) -> None:
        """Renaming or recolouring without touching grade names keeps the version."""
        system_id = manager.upsert_custom_system(gym_colors)
        recoloured = {
            "id": system_id,
            "name": "Gym Colours",
            "grades": [{"name": g["name"], "color": "#123456"} for g in gym_colors["grades"]],
        }
        manager.upsert_custom_system(recoloured)
        manager.upsert_custom_system(recoloured)

        definition = manager.registry.get_system(system_id)
        assert definition is not None
        assert definition.version == 1
        assert definition.name == "Gym Colours"

    def test_version_in_input_is_ignored(
        self, manager: CustomGradeSystemManager, gym_colors: dict[str, Any]
    ) -> None:
        """The stored version is assigned on save, not taken from input."""
        manager.upsert_custom_system({**gym_colors, "version": 7})
        assert manager.list_custom_systems()[0].version == 1

    def test_load_and_register_all(
        self,
        registry: GradeSystemRegistry,
        custom_store: CustomGradeSystemStore,
        gym_colors: dict[str, Any],
    ) -> None:
        """Persisted systems should be registered on load, skipping invalid ones."""
        custom_store.save_custom_grade_systems(
            [
                CustomGradeSystem.model_validate(gym_colors),
                CustomGradeSystem(id="user-empty", name="Empty", grades=[]),
            ]
        )
        manager = CustomGradeSystemManager(registry, custom_store)

        assert manager.load_and_register_all_custom_systems() == 1
        assert registry.is_user_system("user-gym-colors")
        assert registry.get_system("user-empty") is None

    def test_push_local_to_cloud(
        self,
        manager: CustomGradeSystemManager,
        custom_store: CustomGradeSystemStore,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
    ) -> None:
        """Every stored system should be uploaded with its derived id."""
        custom_store.save_custom_grade_systems(
            [
                CustomGradeSystem.model_validate(gym_colors),
                CustomGradeSystem(name="Board", grades=[{"name": "1"}]),
            ]
        )
        assert manager.push_local_custom_systems_to_cloud() == 2
        assert [doc["id"] for _, doc in fake_feed.upserts] == [
            "user-gym-colors",
            "user-board",
        ]

    def test_push_counts_only_successes(
        self,
        manager: CustomGradeSystemManager,
        custom_store: CustomGradeSystemStore,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
    ) -> None:
        """Failed uploads should be skipped."""
        custom_store.save_custom_grade_systems([CustomGradeSystem.model_validate(gym_colors)])
        fake_feed.fail_writes = True
        assert manager.push_local_custom_systems_to_cloud() == 0

    def test_set_identity_reloads(
        self,
        manager: CustomGradeSystemManager,
        registry: GradeSystemRegistry,
        gym_colors: dict[str, Any],
    ) -> None:
        """Switching identity should reload user systems from the local store."""
        manager.upsert_custom_system(gym_colors)
        registry.unregister_system("user-gym-colors")

        manager.set_identity("climber-2")

        assert manager.user_id == "climber-2"
        assert registry.is_user_system("user-gym-colors")


class TestSubscription:
    """Tests for following the remote set of custom systems."""

    def test_signed_out_returns_noop(
        self,
        registry: GradeSystemRegistry,
        custom_store: CustomGradeSystemStore,
        fake_feed: FakeGradeSystemFeed,
    ) -> None:
        """Without an identity the unsubscribe should be a no-op."""
        manager = CustomGradeSystemManager(registry, custom_store, feed=fake_feed)
        unsubscribe = manager.subscribe_custom_grade_systems()
        assert fake_feed.subscriber_count == 0
        unsubscribe()

    def test_without_feed_returns_noop(
        self, registry: GradeSystemRegistry, custom_store: CustomGradeSystemStore
    ) -> None:
        """Without a remote store the unsubscribe should be a no-op."""
        manager = CustomGradeSystemManager(registry, custom_store, user_id="climber-1")
        manager.subscribe_custom_grade_systems()()

    def test_delivery_replaces_user_systems(
        self,
        manager: CustomGradeSystemManager,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
    ) -> None:
        """Each delivery should replace all user systems and persist them."""
        received: list[list[CustomGradeSystem]] = []
        manager.upsert_custom_system(gym_colors)
        manager.subscribe_custom_grade_systems(received.append)

        fake_feed.push(
            "climber-1",
            [{"id": "user-board", "name": "Board", "grades": [{"name": "1"}, {"name": "2"}]}],
        )

        registry = manager.registry
        assert registry.get_system("user-gym-colors") is None
        assert registry.is_user_system("user-board")
        assert [s.id for s in manager.list_custom_systems()] == ["user-board"]
        assert len(received) == 1
        assert received[0][0].name == "Board"

    def test_delivery_skips_malformed_documents(
        self, manager: CustomGradeSystemManager, fake_feed: FakeGradeSystemFeed
    ) -> None:
        """Malformed remote documents should be ignored."""
        manager.subscribe_custom_grade_systems()
        fake_feed.push(
            "climber-1",
            [
                {"id": "user-ok", "name": "Ok", "grades": [{"name": "A"}]},
                {"id": "user-bad", "grades": "nope"},
            ],
        )
        assert manager.registry.is_user_system("user-ok")
        assert manager.registry.get_system("user-bad") is None

    def test_delivery_registers_when_local_write_fails(
        self,
        registry: GradeSystemRegistry,
        fake_feed: FakeGradeSystemFeed,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A local write error should be logged and the delivery still applied."""
        manager = CustomGradeSystemManager(
            registry,
            CustomGradeSystemStore(_ReadOnlyKeyValueStore()),
            feed=fake_feed,
            user_id="climber-1",
        )
        received: list[list[CustomGradeSystem]] = []
        manager.subscribe_custom_grade_systems(received.append)

        with caplog.at_level(logging.WARNING, logger="climb_grades.custom_systems"):
            fake_feed.push(
                "climber-1", [{"id": "user-board", "name": "Board", "grades": [{"name": "1"}]}]
            )

        assert registry.is_user_system("user-board")
        assert len(received) == 1
        assert "Could not persist remote grade systems locally" in caplog.text

    def test_feed_error_leaves_registry(
        self,
        manager: CustomGradeSystemManager,
        fake_feed: FakeGradeSystemFeed,
        gym_colors: dict[str, Any],
    ) -> None:
        """A feed error should not touch registered systems."""
        manager.upsert_custom_system(gym_colors)
        manager.subscribe_custom_grade_systems()
        fake_feed.fail("climber-1", RemoteStoreError("permission denied"))
        assert manager.registry.is_user_system("user-gym-colors")

    def test_unsubscribe_stops_deliveries(
        self, manager: CustomGradeSystemManager, fake_feed: FakeGradeSystemFeed
    ) -> None:
        """After unsubscribing no further deliveries should apply."""
        unsubscribe = manager.subscribe_custom_grade_systems()
        unsubscribe()
        fake_feed.push("climber-1", [{"id": "user-late", "name": "Late", "grades": [{"name": "A"}]}])
        assert manager.registry.get_system("user-late") is None


class TestRemovedSystemHistory:
    """Attempts logged in a custom system after the system is deleted."""

    def test_removed_system_formats_raw_label(
        self,
        manager: CustomGradeSystemManager,
        converter: GradeConverter,
        snapshot_builder: GradeSnapshotBuilder,
        gym_colors: dict[str, Any],
    ) -> None:
        """Deleting a system should keep snapshots and show the raw grade."""
        system_id = manager.upsert_custom_system(gym_colors)
        attempt = snapshot_builder.enrich_boulder(Attempt(grade="Blue"), system_id)
        assert attempt.grade_snapshot is not None
        assert attempt.canonical_value == 1

        own = converter.format_grade(attempt, system_id)
        assert (own.label, own.approximate) == ("Blue", False)
        as_v = converter.format_grade(attempt, "V")
        assert (as_v.label, as_v.approximate) == ("V0", True)

        manager.remove_custom_system(system_id)

        result = converter.format_grade(attempt, "vscale")
        assert result.label == "Blue"
        assert result.approximate is True
        assert attempt.grade_snapshot.original_system_id == system_id
        assert attempt.canonical_value == 1
