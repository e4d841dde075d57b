"""
Tests for RecordSet

Покрытие:
- Запрет прямой мутации (set/delete/clear/attributes)
- filter/where/where_not/find/every/some + аргументы callbacks
- map/reduce
- Стабильная сортировка
- select/pluck/group_by
- merge/append/only/except_
- slice/limit/offset/batch_iterator
- Сериализация и snapshot-изоляция производных коллекций
"""

import json

import pytest

import recordstore.record
from recordstore import CallbackTypeError, DuplicationError, Model, RecordSet, UsageError


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def task_model():
    """Модель Task с пятью записями в порядке вставки 1..5."""
    model = Model(
        "Task",
        key={"name": "id", "type": "number"},
        fields={"title": "string", "status": "string", "priority": "number"},
    )
    for key, status, priority in [
        (1, "open", 2),
        (2, "closed", 1),
        (3, "open", 2),
        (4, "open", 1),
        (5, "closed", 3),
    ]:
        model.create_record(
            {"id": key, "title": f"task {key}", "status": status, "priority": priority}
        )
    return model


@pytest.fixture
def records(task_model):
    return task_model.records


@pytest.fixture
def other_model():
    """Вторая модель с пересекающимися ключами."""
    model = Model("Note", key={"name": "id", "type": "number"}, fields={"text": "string"})
    model.create_record({"id": 1, "text": "one"})
    model.create_record({"id": 9, "text": "nine"})
    return model


# =============================================================================
# TESTS - MUTATION IS BLOCKED
# =============================================================================


class TestMutationBlocked:
    """Прямая мутация RecordSet запрещена."""

    def test_set_raises_usage_error(self, records, task_model):
        with pytest.raises(UsageError):
            records.set(6, task_model.records[1])
        assert records.ids == [1, 2, 3, 4, 5]

    def test_delete_raises_usage_error(self, records):
        with pytest.raises(UsageError):
            records.delete(1)
        assert 1 in records

    def test_clear_raises_usage_error(self, records):
        with pytest.raises(UsageError):
            records.clear()
        assert len(records) == 5

    def test_item_assignment_raises_usage_error(self, records):
        with pytest.raises(UsageError):
            records[7] = records[1]
        with pytest.raises(UsageError):
            del records[1]
        assert len(records) == 5

    def test_attribute_assignment_raises_usage_error(self, records):
        with pytest.raises(UsageError):
            records.anything = 1
        with pytest.raises(UsageError):
            del records.anything

    def test_derived_sets_are_also_read_only(self, records):
        derived = records.filter(lambda task: task.status == "open")
        with pytest.raises(UsageError):
            derived.clear()
        assert derived.ids == [1, 3, 4]

    def test_writer_is_not_exported(self):
        """Мутирующий writer не входит в публичный API пакета."""
        assert "RecordSetWriter" not in recordstore.record.__all__
        assert not hasattr(recordstore, "RecordSetWriter")


# =============================================================================
# TESTS - QUERIES
# =============================================================================


class TestQueries:
    """filter/where/find/every/some."""

    def test_filter_keeps_matching_keys_in_order(self, records):
        result = records.filter(lambda task: task.status == "open")
        assert isinstance(result, RecordSet)
        assert result.ids == [1, 3, 4]

    def test_filter_flat_returns_list_of_records(self, records):
        result = records.filter(lambda task: task.priority == 2, flat=True)
        assert result == [records[1], records[3]]

    def test_callbacks_receive_value_key_and_collection(self, records):
        seen = []

        def matcher(value, key, collection):
            seen.append((value.id, key, collection is records))
            return key % 2 == 0

        assert records.where(matcher).ids == [2, 4]
        assert seen == [(k, k, True) for k in [1, 2, 3, 4, 5]]

    def test_where_not(self, records):
        assert records.where_not(lambda task: task.status == "open").ids == [2, 5]

    def test_find_and_find_id(self, records):
        assert records.find(lambda task: task.priority == 1) is records[2]
        assert records.find_id(lambda task, key: key > 3) == 4
        assert records.find(lambda task: task.priority == 99) is None
        assert records.find_id(lambda task: task.priority == 99) is None

    def test_every_and_some(self, records):
        assert records.every(lambda task: task.priority >= 1)
        assert not records.every(lambda task: task.status == "open")
        assert records.some(lambda task: task.priority == 3)
        assert not records.some(lambda task: task.priority > 3)

    def test_non_callable_callback_raises(self, records):
        with pytest.raises(CallbackTypeError):
            records.filter("status")
        with pytest.raises(TypeError):
            records.map(None)

    def test_map_returns_dict_or_list(self, records):
        assert records.map(lambda task: task.priority) == {1: 2, 2: 1, 3: 2, 4: 1, 5: 3}
        assert records.map(lambda task, key: key * 10, flat=True) == [10, 20, 30, 40, 50]

    def test_reduce(self, records):
        total = records.reduce(lambda acc, task: acc + task.priority, 0)
        assert total == 9
        keys = records.reduce(lambda acc, task, key: acc + [key], [])
        assert keys == [1, 2, 3, 4, 5]


# =============================================================================
# TESTS - SORT
# =============================================================================


class TestSort:
    """sort стабилен."""

    def test_sort_by_comparator_is_stable(self, records):
        result = records.sort(lambda a, b: a.priority - b.priority)
        # priority 1: [2, 4], priority 2: [1, 3], priority 3: [5]
        assert result.ids == [2, 4, 1, 3, 5]

    def test_comparator_receives_keys(self, records):
        result = records.sort(lambda a, b, key_a, key_b: key_b - key_a)
        assert result.ids == [5, 4, 3, 2, 1]

    def test_sort_by_key_function(self, records):
        assert records.sort(key=lambda task: task.priority).ids == [2, 4, 1, 3, 5]

    def test_reverse_sort_keeps_equal_elements_in_order(self, records):
        assert records.sort(key=lambda task: task.priority, reverse=True).ids == [5, 1, 3, 2, 4]

    def test_sort_requires_exactly_one_ordering(self, records):
        with pytest.raises(UsageError):
            records.sort()
        with pytest.raises(UsageError):
            records.sort(lambda a, b: 0, key=lambda task: 0)

    def test_sort_does_not_touch_source(self, records):
        records.sort(lambda a, b: b.priority - a.priority)
        assert records.ids == [1, 2, 3, 4, 5]


# =============================================================================
# TESTS - PROJECTION / GROUPING
# =============================================================================


class TestProjection:
    """select/pluck/group_by."""

    def test_select(self, records):
        selected = records.only(1, 2).select("title", "status")
        assert selected == [
            {"title": "task 1", "status": "open"},
            {"title": "task 2", "status": "closed"},
        ]

    def test_pluck_single_field(self, records):
        assert records.pluck("priority") == [2, 1, 2, 1, 3]

    def test_pluck_id_returns_keys(self, records):
        assert records.pluck("id") == [1, 2, 3, 4, 5]

    def test_pluck_multiple_fields_returns_tuples(self, records):
        assert records.only(1, 5).pluck("status", "priority") == [("open", 2), ("closed", 3)]

    def test_group_by_status(self, task_model):
        """group_by над [open, open, closed]: группы размером 2 и 1 со scopes."""
        task_model.add_scope("urgent", lambda task: task.priority >= 2)
        subset = task_model.records.only(1, 3, 2)

        groups = subset.group_by("status")

        assert set(groups) == {"open", "closed"}
        assert len(groups["open"]) == 2
        assert len(groups["closed"]) == 1
        for group in groups.values():
            assert group.scope_names == ("urgent",)
        assert groups["open"].urgent.ids == [1, 3]

    def test_group_by_array_field(self):
        """Списки группируются по tuple значений."""
        model = Model("Task", fields={"tags": "string_array"})
        model.create_record({"id": "a", "tags": ["x"]})
        model.create_record({"id": "b", "tags": ["x"]})
        model.create_record({"id": "c", "tags": ["x", "y"]})
        model.create_record({"id": "d"})

        groups = model.records.group_by("tags")

        assert set(groups) == {("x",), ("x", "y"), None}
        assert groups[("x",)].ids == ["a", "b"]
        assert groups[("x", "y")].ids == ["c"]
        assert groups[None].ids == ["d"]

    def test_group_by_object_field(self):
        model = Model("Event", fields={"meta": "object"})
        model.create_record({"id": "a", "meta": {"source": "api", "tags": ["x"]}})
        model.create_record({"id": "b", "meta": {"source": "api", "tags": ["x"]}})
        model.create_record({"id": "c", "meta": {"source": "cli"}})

        groups = model.records.group_by("meta")

        assert len(groups) == 2
        assert groups[(("source", "api"), ("tags", ("x",)))].ids == ["a", "b"]
        assert groups[(("source", "cli"),)].ids == ["c"]


# =============================================================================
# TESTS - COMBINATION
# =============================================================================


class TestCombination:
    """merge/append/only/except_/duplicate."""

    def test_merge_disjoint_sets(self, records):
        left = records.only(1, 2)
        right = records.only(3, 4, 5)
        merged = left.merge(right)
        assert len(merged) == len(left) + len(right)
        assert merged.ids == [1, 2, 3, 4, 5]

    def test_merge_overlap_raises_duplication_error(self, records):
        left = records.only(1, 2)
        with pytest.raises(DuplicationError):
            left.merge(records.only(3), records.only(2))
        assert left.ids == [1, 2]

    def test_append_overwrites_last_wins(self, records, other_model):
        note = other_model.records[1]
        result = records.only(1, 2).append(note)
        assert result.ids == [1, 2]
        assert result[1] is note

    def test_append_new_record(self, records, other_model):
        result = records.only(1).append(other_model.records[9])
        assert result.ids == [1, 9]

    def test_append_rejects_non_records(self, records):
        with pytest.raises(UsageError):
            records.append({"id": 10})

    def test_only_preserves_argument_order(self, records):
        assert records.only(4, 1, 3).ids == [4, 1, 3]
        assert records.only(2, 42).ids == [2]

    def test_except(self, records):
        assert records.except_(2, 4).ids == [1, 3, 5]

    def test_duplicate_is_independent_copy(self, records, task_model):
        copy = records.duplicate()
        task_model.remove_record(1)
        assert copy.ids == [1, 2, 3, 4, 5]
        assert records.ids == [2, 3, 4, 5]


# =============================================================================
# TESTS - POSITIONAL VIEWS
# =============================================================================


class TestPositional:
    """slice/limit/offset/batch_iterator."""

    def test_limit_offset_slice_scenario(self, records):
        assert records.limit(2).ids == [1, 2]
        assert records.offset(2).ids == [3, 4, 5]
        assert records.slice(1, 3).ids == [2, 3]

    def test_limit_larger_than_size(self, records):
        assert records.limit(10).ids == [1, 2, 3, 4, 5]
        assert records.offset(10).ids == []

    def test_negative_limit_and_offset_raise(self, records):
        with pytest.raises(ValueError):
            records.limit(-1)
        with pytest.raises(ValueError):
            records.offset(-1)

    @pytest.mark.parametrize("batch_size,expected", [(1, 5), (2, 3), (5, 1), (7, 1)])
    def test_batch_count(self, records, batch_size, expected):
        batches = list(records.batch_iterator(batch_size))
        assert len(batches) == expected
        assert all(len(batch) == batch_size for batch in batches[:-1])
        assert 0 < len(batches[-1]) <= batch_size

    def test_batches_preserve_order(self, records):
        batches = list(records.batch_iterator(2))
        assert [batch.ids for batch in batches] == [[1, 2], [3, 4], [5]]
        assert all(isinstance(batch, RecordSet) for batch in batches)

    def test_flat_batches(self, records):
        batches = list(records.batch_iterator(3, flat=True))
        assert batches == [[records[1], records[2], records[3]], [records[4], records[5]]]

    def test_batch_iterator_is_one_shot(self, records):
        iterator = records.batch_iterator(4)
        assert len(list(iterator)) == 2
        assert list(iterator) == []

    def test_batch_size_must_be_positive(self, records):
        with pytest.raises(ValueError):
            records.batch_iterator(0)


# =============================================================================
# TESTS - ACCESSORS / SERIALIZATION
# =============================================================================


class TestAccessors:
    """first/last/count/length/ids + сериализация."""

    def test_accessors(self, records):
        assert records.first is records[1]
        assert records.last is records[5]
        assert records.count == 5
        assert records.length == 5
        assert records.ids == [1, 2, 3, 4, 5]

    def test_empty_accessors(self, records):
        empty = records.filter(lambda task: False)
        assert empty.first is None
        assert empty.last is None
        assert empty.count == 0

    def test_to_list_and_to_dict(self, records):
        subset = records.only(1, 2)
        assert subset.to_list() == [records[1], records[2]]
        assert subset.to_dict() == {1: records[1], 2: records[2]}
        assert subset.to_list(flat=True)[0] == {
            "id": 1,
            "title": "task 1",
            "status": "open",
            "priority": 2,
        }
        assert subset.to_dict(flat=True)[2]["status"] == "closed"

    def test_to_json(self, records):
        data = json.loads(records.only(5).to_json())
        assert data == {"5": {"id": 5, "title": "task 5", "status": "closed", "priority": 3}}

    def test_repr_contains_model_name(self, records):
        assert repr(records.only(1)) == "<RecordSet[Task] [1]>"


# =============================================================================
# TESTS - SNAPSHOT ISOLATION
# =============================================================================


class TestSnapshotIsolation:
    """Производные коллекции не являются live view."""

    def test_derived_set_unaffected_by_create(self, task_model):
        derived = task_model.records.filter(lambda task: task.status == "open")
        task_model.create_record({"id": 6, "title": "new", "status": "open", "priority": 1})
        assert derived.ids == [1, 3, 4]
        assert task_model.records.filter(lambda task: task.status == "open").ids == [1, 3, 4, 6]

    def test_derived_set_unaffected_by_remove(self, task_model):
        derived = task_model.records.limit(3)
        task_model.remove_record(2)
        assert derived.ids == [1, 2, 3]
        assert 2 not in task_model.records
