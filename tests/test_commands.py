"""Tests for the command grammar: classification, targets, and rule precedence."""

import pytest

from taleloop.core.commands import (
    GRAMMAR,
    find_shadowed_rules,
    match_rule,
    parse_command,
    resolve_direction,
    _rule,
)
from taleloop.enums import CommandType, Direction


class TestGrammarPrecedence:
    def test_no_rule_is_shadowed(self):
        """Every rule's own example must reach that rule."""
        assert find_shadowed_rules() == []

    def test_every_example_classifies_to_its_rule(self):
        for rule in GRAMMAR:
            assert match_rule(rule.example) is rule, rule.name

    def test_detects_a_shadowed_rule(self):
        grammar = (
            _rule("get", r"^get\s+(.+)$", CommandType.TAKE, "get lamp", target=1),
            _rule("get_in", r"^get\s+in\s+(.+)$", CommandType.BOARD, "get in the boat", target=1),
        )
        shadowed = find_shadowed_rules(grammar)
        assert [(r.name, by.name) for r, by in shadowed] == [("get_in", "get")]


class TestParseCommand:
    @pytest.mark.parametrize("text,expected_type,target", [
        ("go north", CommandType.GO, "north"),
        ("N", CommandType.GO, "n"),
        ("go back", CommandType.GO_BACK, None),
        ("look", CommandType.LOOK, None),
        ("look at the old lamp", CommandType.EXAMINE, "the old lamp"),
        ("x lamp", CommandType.EXAMINE, "lamp"),
        ("get in the boat", CommandType.BOARD, "the boat"),
        ("get lamp", CommandType.TAKE, "lamp"),
        ("put down lamp", CommandType.DROP, "lamp"),
        ("i", CommandType.INVENTORY, None),
        ("talk to the keeper", CommandType.TALK, "the keeper"),
        ("enter portal", CommandType.PORTAL, None),
        ("enter carriage", CommandType.BOARD, "carriage"),
        ("launch to harbor", CommandType.LAUNCH, "harbor"),
        ("?", CommandType.HELP, None),
    ])
    def test_classification(self, text, expected_type, target):
        command = parse_command(text)
        assert command.type == expected_type
        assert command.target == target

    def test_use_on_carries_modifier(self):
        command = parse_command("use brass key on iron door")
        assert command.type == CommandType.USE
        assert command.target == "brass key"
        assert command.modifier == "iron door"

    def test_put_in_carries_container(self):
        command = parse_command("put coin into box")
        assert command.type == CommandType.USE
        assert (command.target, command.modifier) == ("coin", "box")

    def test_whitespace_is_collapsed(self):
        command = parse_command("   take    the   lamp  ")
        assert command.target == "the lamp"
        assert command.raw == "take the lamp"

    def test_unmatched_is_unclassified(self):
        command = parse_command("climb the lighthouse stairs")
        assert command.is_unclassified
        assert command.raw == "climb the lighthouse stairs"

    def test_case_insensitive(self):
        assert parse_command("LOOK AROUND").type == CommandType.LOOK


class TestResolveDirection:
    @pytest.mark.parametrize("word,expected", [
        ("n", Direction.NORTH),
        ("the north", Direction.NORTH),
        ("upstairs", Direction.UP),
        ("D", Direction.DOWN),
        ("sideways", None),
        (None, None),
    ])
    def test_aliases(self, word, expected):
        assert resolve_direction(word) == expected
