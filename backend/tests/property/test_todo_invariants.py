"""Property-based tests for to-do list invariants."""

from datetime import datetime, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from lms_todo.cache.helpers import context_ids_digest, params_digest
from lms_todo.db.shards import SHARD_ID_RANGE, global_id_for, partition_by_shard, relative_id_for
from lms_todo.schemas.todo import AssignmentItem
from lms_todo.todo.presenter import ToDoListPresenter
from lms_todo.todo.scope_resolver import ResolvedScope

BASE_TIME = datetime(2024, 1, 1)

shard_ids = st.integers(min_value=1, max_value=5)
local_ids = st.integers(min_value=1, max_value=SHARD_ID_RANGE - 1)


@st.composite
def assignment_items(draw):
    shard_id = draw(shard_ids)
    due_hours = draw(st.one_of(st.none(), st.integers(min_value=-500, max_value=500)))
    return AssignmentItem(
        id=global_id_for(draw(st.integers(min_value=1, max_value=10_000)), shard_id),
        title="Item",
        context_id=global_id_for(1, shard_id),
        context_name="Course",
        due_at=None if due_hours is None else BASE_TIME + timedelta(hours=due_hours),
        updated_at=BASE_TIME + timedelta(hours=draw(st.integers(min_value=-500, max_value=500))),
    )


@settings(max_examples=100, deadline=None)
@given(
    per_shard=st.lists(st.lists(assignment_items(), max_size=8), min_size=1, max_size=4),
    limit=st.integers(min_value=0, max_value=10),
)
def test_fan_in_matches_single_sorted_list(per_shard: list[list[AssignmentItem]], limit: int) -> None:
    """
    Property: merging per-shard results then truncating equals sorting everything.

    Invariants:
    - Each shard contributes at most ``limit`` items in its own order
    - The merged list is ordered by (due date or last update, id) and has ``limit`` items at most
    """
    shard_results = [sorted(items, key=lambda i: i.sort_key)[:limit] for items in per_shard]
    merged = sorted((item for items in shard_results for item in items), key=lambda i: i.sort_key)[:limit]

    everything = sorted((item for items in per_shard for item in items), key=lambda i: i.sort_key)[:limit]

    assert [i.sort_key for i in merged] == [i.sort_key for i in everything]
    assert len(merged) <= limit


@settings(max_examples=100, deadline=None)
@given(
    sizes=st.lists(st.integers(min_value=0, max_value=50), min_size=4, max_size=4),
    visible_limit=st.integers(min_value=0, max_value=20),
)
def test_hidden_count_is_overflow_past_visible_limit(sizes: list[int], visible_limit: int) -> None:
    """
    Property: hidden_count == sum(max(0, len(list) - visible_limit)) over the four lists.
    """

    class Presenter(ToDoListPresenter):
        VISIBLE_LIMIT = visible_limit

    presenter = Presenter(shards=None, user=None)
    presenter.needs_grading, presenter.needs_moderation, presenter.needs_submitting, presenter.needs_reviewing = (
        [object()] * size for size in sizes
    )

    assert presenter.hidden_count == sum(max(0, size - visible_limit) for size in sizes)
    assert presenter.hidden_count >= 0


@settings(max_examples=100, deadline=None)
@given(
    id_=local_ids,
    source=shard_ids,
    target=shard_ids,
)
def test_relative_ids_denote_the_same_record(id_: int, source: int, target: int) -> None:
    """Property: an id re-expressed for another shard still maps to the same global id."""
    relative = relative_id_for(id_, source, target)

    assert global_id_for(relative, target) == global_id_for(id_, source)
    assert (relative < SHARD_ID_RANGE) == (source == target)


@settings(max_examples=100, deadline=None)
@given(
    home=shard_ids,
    ids=st.lists(st.tuples(shard_ids, local_ids), max_size=20),
)
def test_partitions_cover_every_id_once(home: int, ids: list[tuple[int, int]]) -> None:
    """
    Property: partitioning by shard loses nothing and adds nothing.

    Invariants:
    - Shards come out in ascending order
    - Re-globalizing the partitions gives back the input multiset
    """
    global_ids = [global_id_for(local, shard) for shard, local in ids]
    partitions = partition_by_shard(global_ids, home)

    assert list(partitions) == sorted(partitions)
    rebuilt = [global_id_for(local, shard) for shard, locals_ in partitions.items() for local in locals_]
    assert sorted(rebuilt) == sorted(global_ids)


@settings(max_examples=100, deadline=None)
@given(
    home=shard_ids,
    course_ids=st.sets(st.tuples(shard_ids, local_ids), max_size=10),
)
def test_resolved_scope_by_shard_is_lossless(home: int, course_ids: set[tuple[int, int]]) -> None:
    scope = ResolvedScope(home_shard_id=home, course_ids=sorted(global_id_for(local, shard) for shard, local in course_ids))

    by_shard = scope.by_shard()

    assert {global_id_for(local, shard) for shard, part in by_shard.items() for local in part.course_ids} == set(scope.course_ids)
    assert all(part.group_ids == [] for part in by_shard.values())


@settings(max_examples=100, deadline=None)
@given(
    context_ids=st.lists(st.integers(min_value=1, max_value=10**14), max_size=10),
    params=st.dictionaries(st.sampled_from(["limit", "scope_only", "due_after"]), st.integers(), max_size=3),
    seed=st.randoms(),
)
def test_cache_key_digests_ignore_ordering(context_ids: list[int], params: dict, seed) -> None:
    """Property: reordering context ids or parameters never changes the cache key."""
    shuffled_ids = list(context_ids)
    seed.shuffle(shuffled_ids)
    shuffled_params = dict(reversed(list(params.items())))

    assert context_ids_digest(shuffled_ids) == context_ids_digest(context_ids)
    assert params_digest(shuffled_params) == params_digest(params)
