import re

import pytest

from foundation.tree import Step, Visit, grep, grep_nodes, is_branch, visit, walk

TEST_DATA = {"a": {"a": 1, "b": 2, "c": {"aa": 3, "bb": 4, "cc": {"aaa": [1, 2, 3, 4, 5], "bbb": "blah!"}}}}


def find(node):
    return next(current for current in walk(TEST_DATA) if current.node == node)


class TestWalk:
    def test_root_comes_first_at_depth_zero(self):
        root = next(walk(TEST_DATA))

        assert root.node is TEST_DATA
        assert root.depth == 0
        assert root.is_root

    def test_paths_and_depths(self):
        assert find(2).path == ("a", "b")
        assert find(2).depth == 2
        assert find(5).path == ("a", "c", "cc", "aaa", 4)
        assert find(5).depth == 5
        assert find("blah!").depth == 4

    def test_parent_is_the_enclosing_container(self):
        assert find(5).parent == [1, 2, 3, 4, 5]
        assert find(3).parent is TEST_DATA["a"]["c"]

    def test_parents_come_before_children(self):
        paths = [current.path for current in walk(TEST_DATA)]

        assert paths[:4] == [(), ("a",), ("a", "a"), ("a", "b")]

    def test_strings_are_leaves(self):
        assert not is_branch("abc")
        assert [current.node for current in walk("abc")] == ["abc"]


class TestVisit:
    def test_state_is_threaded_through_visitors(self):
        def count_leaves(current, state):
            if not is_branch(current.node):
                return Step(state=state + 1)

        _, state = visit(TEST_DATA, [count_leaves], 0)

        assert state == 10

    def test_replaced_nodes_rebuild_the_tree(self):
        def double(current, state):
            if isinstance(current.node, int):
                return Step(node=current.node * 2)

        root, _ = visit({"x": [1, 2], "y": ("z", 3)}, [double])

        assert root == {"x": [2, 4], "y": ("z", 6)}

    def test_unchanged_trees_are_returned_as_is(self):
        root, _ = visit(TEST_DATA, [lambda current, state: None])

        assert root is TEST_DATA

    def test_stop_ends_the_traversal(self):
        seen = []

        def record(current, state):
            seen.append(current.node)

            if current.node == 2:
                return Step(node=20, stop=True)

        root, _ = visit([[1, 2], [3]], [record])

        assert root == [[1, 20], [3]]
        assert 3 not in seen

    def test_skip_passes_over_later_visitors(self):
        later = []

        def first(current, state):
            return Step(skip=True)

        def second(current, state):
            later.append(current)

        visit([1, 2], [first, second])

        assert later == []

    def test_visitors_see_the_replaced_node(self):
        def to_upper(current, state):
            if isinstance(current.node, str):
                return Step(node=current.node.upper())

        def collect(current, state):
            if isinstance(current.node, str):
                return Step(state=state + [current.node])

        _, state = visit(["a", ["b"]], [to_upper, collect], [])

        assert state == ["A", "B"]


class TestGrep:
    def test_literal_matches_return_the_container(self):
        assert grep(42, {"1": {"a": 11}, "2": {"b": 42}}) == [(("2", "b"), {"b": 42})]

    def test_regex_patterns(self):
        data = [{"a": "42"}, {"b": "Hello, world"}]

        assert grep(re.compile(r"[0-9]"), data) == [((0, "a"), {"a": "42"})]

    def test_substring_patterns(self):
        data = [{"1": "Hello"}, {"1": "Hello, world"}]

        assert grep("world", data) == [((1, "1"), {"1": "Hello, world"})]

    def test_predicate_patterns(self):
        data = [[1, 2, 3], [4, 5, 6], [7, 8, 9], [0, 1, 2]]

        assert grep(lambda node: node == 0, data) == [((3, 0), [0, 1, 2])]

    def test_transforms_apply_before_matching(self):
        data = {"greeting": "Hello", "other": "bye"}

        assert grep("HELLO", data, str.upper) == [(("greeting",), data)]

    def test_every_matching_leaf_is_reported(self):
        matches = grep_nodes(lambda node: node % 2 == 0, [1, 2, [3, 4]])

        assert [current.path for current in matches] == [(1,), (2, 1)]
        assert all(isinstance(current, Visit) for current in matches)

    def test_none_and_branches_never_match(self):
        assert grep(None, [None, [None]]) == []
        assert grep(lambda node: True, []) == []

    def test_a_matching_root_leaf_is_its_own_container(self):
        assert grep(7, 7) == [((), 7)]

    @pytest.mark.parametrize("pattern", ["x", re.compile("x"), "y"])
    def test_no_match(self, pattern):
        assert grep(pattern, {"a": "b"}) == []
