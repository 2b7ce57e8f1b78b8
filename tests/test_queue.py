"""Tests for queue reconciliation functions."""

import re

import pytest

from offline_sync.sync.errors import UnknownMutationTypeError
from offline_sync.sync.queue import (
    add_to_queue,
    create_item,
    find_item,
    generate_item_id,
    get_mutation_config,
    get_pending_items,
    remove_from_queue,
    update_item,
    update_item_status,
)
from offline_sync.sync.types import ItemStatus, MutationType, QueueItem, Strategy


def make_item(**overrides) -> QueueItem:
    fields = {
        "id": generate_item_id(),
        "type": MutationType.APPLY_FOR_EXCHANGE,
        "entity_id": "exchange-123",
        "payload": {},
        "display_label": "Take over game",
    }
    fields.update(overrides)
    return QueueItem(**fields)


class TestDeduplicateStrategy:
    """Tests for same-intent operations on the same entity."""

    def test_keeps_first_item_for_same_entity(self):
        """Test that a duplicate apply is ignored and the first id kept."""
        existing = make_item(id="item-1", entity_id="ex-1")
        duplicate = make_item(id="item-2", entity_id="ex-1")

        result = add_to_queue(duplicate, [existing])

        assert len(result) == 1
        assert result[0].id == "item-1"

    def test_allows_different_entities(self):
        existing = make_item(id="item-1", entity_id="ex-1")
        different = make_item(id="item-2", entity_id="ex-2")

        result = add_to_queue(different, [existing])

        assert [i.id for i in result] == ["item-1", "item-2"]

    def test_deduplicates_withdraw(self):
        existing = make_item(
            id="item-1", type=MutationType.WITHDRAW_FROM_EXCHANGE, entity_id="ex-1"
        )
        duplicate = make_item(
            id="item-2", type=MutationType.WITHDRAW_FROM_EXCHANGE, entity_id="ex-1"
        )

        result = add_to_queue(duplicate, [existing])

        assert len(result) == 1
        assert result[0].id == "item-1"


class TestReplaceStrategy:
    """Tests for data-carrying operations."""

    def test_replaces_payload_with_newest(self):
        """Test that the newest updateCompensation wins."""
        existing = make_item(
            id="item-1",
            type=MutationType.UPDATE_COMPENSATION,
            entity_id="comp-1",
            payload={"kilometers": 50},
        )
        newer = make_item(
            id="item-2",
            type=MutationType.UPDATE_COMPENSATION,
            entity_id="comp-1",
            payload={"kilometers": 60},
        )

        result = add_to_queue(newer, [existing])

        assert len(result) == 1
        assert result[0].id == "item-2"
        assert result[0].payload == {"kilometers": 60}

    def test_replacement_keeps_position(self):
        """Test that a replaced item stays where the original was queued."""
        first = make_item(
            id="item-1", type=MutationType.ADD_TO_EXCHANGE, entity_id="assign-1"
        )
        second = make_item(id="item-2", entity_id="ex-9")
        newer = make_item(
            id="item-3",
            type=MutationType.ADD_TO_EXCHANGE,
            entity_id="assign-1",
            payload={"reason": "New reason"},
        )

        result = add_to_queue(newer, [first, second])

        assert [i.id for i in result] == ["item-3", "item-2"]


class TestOpposingOperations:
    """Tests for apply/withdraw cancellation."""

    def test_withdraw_cancels_apply(self):
        apply = make_item(id="item-1", entity_id="ex-1")
        withdraw = make_item(
            id="item-2", type=MutationType.WITHDRAW_FROM_EXCHANGE, entity_id="ex-1"
        )

        result = add_to_queue(withdraw, [apply])

        assert result == []

    def test_apply_cancels_withdraw(self):
        withdraw = make_item(
            id="item-1", type=MutationType.WITHDRAW_FROM_EXCHANGE, entity_id="ex-1"
        )
        apply = make_item(id="item-2", entity_id="ex-1")

        result = add_to_queue(apply, [withdraw])

        assert result == []

    def test_does_not_cancel_across_entities(self):
        apply = make_item(id="item-1", entity_id="ex-1")
        withdraw = make_item(
            id="item-2", type=MutationType.WITHDRAW_FROM_EXCHANGE, entity_id="ex-2"
        )

        result = add_to_queue(withdraw, [apply])

        assert len(result) == 2

    def test_cancellation_keeps_other_items(self):
        other = make_item(id="item-0", entity_id="ex-0")
        apply = make_item(id="item-1", entity_id="ex-1")
        tail = make_item(id="item-2", entity_id="ex-2")
        withdraw = make_item(
            id="item-3", type=MutationType.WITHDRAW_FROM_EXCHANGE, entity_id="ex-1"
        )

        result = add_to_queue(withdraw, [other, apply, tail])

        assert [i.id for i in result] == ["item-0", "item-2"]

    def test_apply_withdraw_apply_sequence(self):
        """Test that re-applying after a cancel starts fresh."""
        queue: list[QueueItem] = []

        queue = add_to_queue(make_item(id="item-1", entity_id="ex-1"), queue)
        assert len(queue) == 1

        queue = add_to_queue(
            make_item(
                id="item-2", type=MutationType.WITHDRAW_FROM_EXCHANGE, entity_id="ex-1"
            ),
            queue,
        )
        assert queue == []

        queue = add_to_queue(make_item(id="item-3", entity_id="ex-1"), queue)
        assert [i.id for i in queue] == ["item-3"]


class TestAddToQueue:
    """Tests for plain appends and input handling."""

    def test_adds_to_empty_queue(self):
        item = make_item()

        result = add_to_queue(item, [])

        assert result == [item]
        assert result[0] is item

    def test_appends_to_end(self):
        existing = make_item(id="item-1", entity_id="ex-1")
        new_item = make_item(id="item-2", entity_id="ex-2")

        result = add_to_queue(new_item, [existing])

        assert result[1] is new_item

    def test_does_not_mutate_input(self):
        existing = make_item(id="item-1", entity_id="ex-1")
        queue = [existing]

        add_to_queue(make_item(id="item-2", entity_id="ex-2"), queue)

        assert queue == [existing]

    def test_rejects_unregistered_type(self):
        item = make_item()
        item.type = "deleteEverything"

        with pytest.raises(UnknownMutationTypeError):
            add_to_queue(item, [])


class TestRemoveAndUpdate:
    """Tests for remove_from_queue and update_item_status."""

    def test_remove_by_id(self):
        items = [make_item(id="item-1"), make_item(id="item-2")]

        result = remove_from_queue("item-1", items)

        assert [i.id for i in result] == ["item-2"]

    def test_remove_missing_id_is_noop(self):
        items = [make_item(id="item-1")]

        result = remove_from_queue("nonexistent", items)

        assert result == items

    def test_update_status(self):
        items = [make_item(id="item-1"), make_item(id="item-2")]

        result = update_item_status("item-1", ItemStatus.SYNCING, items)

        assert result[0].status == ItemStatus.SYNCING
        assert result[1].status == ItemStatus.PENDING
        # Original item is untouched
        assert items[0].status == ItemStatus.PENDING

    def test_update_status_only_changes_status(self):
        items = [make_item(id="item-1", retry_count=2, payload={"a": 1})]

        result = update_item_status("item-1", ItemStatus.ERROR, items)

        assert result[0].retry_count == 2
        assert result[0].payload == {"a": 1}

    def test_update_missing_id_is_noop(self):
        items = [make_item(id="item-1")]

        result = update_item_status("nonexistent", ItemStatus.SYNCING, items)

        assert result[0].status == ItemStatus.PENDING

    def test_update_item_changes_several_fields(self):
        items = [make_item(id="item-1")]

        result = update_item("item-1", items, status=ItemStatus.PENDING, retry_count=2)

        assert result[0].retry_count == 2
        assert find_item("item-1", result).retry_count == 2
        assert find_item("missing", result) is None


class TestGetPendingItems:
    def test_returns_only_pending_in_order(self):
        items = [
            make_item(id="item-1", status=ItemStatus.PENDING),
            make_item(id="item-2", status=ItemStatus.SYNCING),
            make_item(id="item-3", status=ItemStatus.PENDING),
            make_item(id="item-4", status=ItemStatus.SUCCESS),
            make_item(id="item-5", status=ItemStatus.ERROR),
        ]

        result = get_pending_items(items)

        assert [i.id for i in result] == ["item-1", "item-3"]

    def test_empty_when_nothing_pending(self):
        assert get_pending_items([make_item(status=ItemStatus.SUCCESS)]) == []


class TestItemIds:
    def test_ids_are_unique(self):
        ids = {generate_item_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_id_format(self):
        assert re.match(r"^sync_\d+_[a-z0-9]+$", generate_item_id())

    def test_ids_sort_by_creation_millisecond(self):
        first = generate_item_id()
        second = generate_item_id()
        assert int(first.split("_")[1]) <= int(second.split("_")[1])

    def test_create_item_defaults(self):
        item = create_item("updateCompensation", "comp-1", {"kilometers": 12})

        assert item.type == MutationType.UPDATE_COMPENSATION
        assert item.status == ItemStatus.PENDING
        assert item.retry_count == 0
        assert item.timestamp > 0
        assert item.id.startswith("sync_")


class TestGetMutationConfig:
    def test_apply_for_exchange(self):
        config = get_mutation_config(MutationType.APPLY_FOR_EXCHANGE)

        assert config.strategy == Strategy.DEDUPLICATE
        assert config.opposing_type == MutationType.WITHDRAW_FROM_EXCHANGE

    def test_withdraw_from_exchange(self):
        config = get_mutation_config("withdrawFromExchange")

        assert config.strategy == Strategy.DEDUPLICATE
        assert config.opposing_type == MutationType.APPLY_FOR_EXCHANGE

    def test_update_compensation(self):
        config = get_mutation_config(MutationType.UPDATE_COMPENSATION)

        assert config.strategy == Strategy.REPLACE
        assert config.opposing_type is None

    def test_add_to_exchange(self):
        config = get_mutation_config(MutationType.ADD_TO_EXCHANGE)

        assert config.strategy == Strategy.REPLACE
        assert config.opposing_type is None

    def test_every_type_has_config(self):
        for mutation_type in MutationType:
            assert get_mutation_config(mutation_type) is not None

    def test_unknown_type_raises(self):
        with pytest.raises(UnknownMutationTypeError):
            get_mutation_config("bogus")
