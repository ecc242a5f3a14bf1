"""Command interpreter: raw player text -> structured Command.

GRAMMAR is evaluated top-down and the first matching rule wins, so a
specific pattern ("go back", "get in X") must sit above the general one
that would otherwise swallow it ("go X", "get X"). Every rule carries an
example input; find_shadowed_rules() reports any rule whose example is
captured by an earlier rule, and the test suite keeps that list empty.
"""

import re
from dataclasses import dataclass

from ..enums import CommandType, Direction

DIRECTION_ALIASES: dict[str, Direction] = {
    "n": Direction.NORTH,
    "s": Direction.SOUTH,
    "e": Direction.EAST,
    "w": Direction.WEST,
    "u": Direction.UP,
    "d": Direction.DOWN,
    "north": Direction.NORTH,
    "south": Direction.SOUTH,
    "east": Direction.EAST,
    "west": Direction.WEST,
    "up": Direction.UP,
    "down": Direction.DOWN,
    "upstairs": Direction.UP,
    "downstairs": Direction.DOWN,
}

HELP_TEXT = """AVAILABLE COMMANDS:
  Movement:    GO [direction], NORTH, SOUTH, EAST, WEST, UP, DOWN (or N, S, E, W, U, D)
  Looking:     LOOK, LOOK AT [object], EXAMINE [object] (or X)
  Objects:     TAKE [object], DROP [object], USE [object], USE [object] ON [target]
  Inventory:   INVENTORY (or I)
  Characters:  TALK TO [character]
  Vehicles:    BOARD [vehicle], DISEMBARK, LAUNCH TO [destination], GO BACK
  Portals:     ENTER PORTAL
  Help:        HELP (or ?)

You can also try other actions - Anything goes. There are no limits in this realm."""


@dataclass(frozen=True)
class GrammarRule:
    """One pattern -> command-type rule."""
    name: str
    pattern: re.Pattern
    command_type: CommandType
    target_group: int | None = None
    modifier_group: int | None = None
    example: str = ""


@dataclass
class Command:
    """A classified player input."""
    type: CommandType
    target: str | None = None
    modifier: str | None = None
    raw: str = ""

    @property
    def is_unclassified(self) -> bool:
        return self.type == CommandType.UNCLASSIFIED


def _rule(name: str, pattern: str, command_type: CommandType, example: str,
          target: int | None = None, modifier: int | None = None) -> GrammarRule:
    return GrammarRule(
        name=name,
        pattern=re.compile(pattern, re.IGNORECASE),
        command_type=command_type,
        target_group=target,
        modifier_group=modifier,
        example=example,
    )


_DIRECTION_WORDS = "|".join(sorted(DIRECTION_ALIASES, key=len, reverse=True))

GRAMMAR: tuple[GrammarRule, ...] = (
    # Portals and vehicle travel, above the generic "go X" / "enter X"
    _rule("enter_portal", r"^(?:enter|use)\s+(?:the\s+)?portal$", CommandType.PORTAL, "enter portal"),
    _rule("through_portal", r"^(?:go|step|walk)\s+through\s+(?:the\s+)?portal$", CommandType.PORTAL,
          "go through portal"),
    _rule("go_back", r"^go\s+back$", CommandType.GO_BACK, "go back"),

    # Movement
    _rule("go", r"^go\s+(.+)$", CommandType.GO, "go north", target=1),
    _rule("bare_direction", rf"^({_DIRECTION_WORDS})$", CommandType.GO, "n", target=1),
    _rule("walk", r"^walk\s+(.+)$", CommandType.GO, "walk east", target=1),
    _rule("move", r"^move\s+(.+)$", CommandType.GO, "move up", target=1),

    # Looking
    _rule("look", r"^look$", CommandType.LOOK, "look"),
    _rule("look_around", r"^look\s+around$", CommandType.LOOK, "look around"),
    _rule("l", r"^l$", CommandType.LOOK, "l"),
    _rule("look_at", r"^look\s+at\s+(.+)$", CommandType.EXAMINE, "look at the lamp", target=1),
    _rule("look_target", r"^look\s+(.+)$", CommandType.EXAMINE, "look lamp", target=1),
    _rule("examine", r"^examine\s+(.+)$", CommandType.EXAMINE, "examine lamp", target=1),
    _rule("x", r"^x\s+(.+)$", CommandType.EXAMINE, "x lamp", target=1),
    _rule("inspect", r"^inspect\s+(.+)$", CommandType.EXAMINE, "inspect lamp", target=1),
    _rule("search", r"^search\s+(.+)$", CommandType.EXAMINE, "search desk", target=1),

    # Vehicles: "get in/into/out/off" and "leave vehicle" must beat "get X" / "leave X"
    _rule("get_in", r"^get\s+in\s+(.+)$", CommandType.BOARD, "get in the boat", target=1),
    _rule("get_into", r"^get\s+into\s+(.+)$", CommandType.BOARD, "get into the car", target=1),
    _rule("get_out", r"^get\s+out$", CommandType.DISEMBARK, "get out"),
    _rule("get_off", r"^get\s+off$", CommandType.DISEMBARK, "get off"),
    _rule("leave_vehicle", r"^leave\s+vehicle$", CommandType.DISEMBARK, "leave vehicle"),

    # Taking/Dropping
    _rule("take", r"^take\s+(.+)$", CommandType.TAKE, "take lamp", target=1),
    _rule("get", r"^get\s+(.+)$", CommandType.TAKE, "get lamp", target=1),
    _rule("pick_up", r"^pick\s+up\s+(.+)$", CommandType.TAKE, "pick up lamp", target=1),
    _rule("grab", r"^grab\s+(.+)$", CommandType.TAKE, "grab lamp", target=1),
    _rule("drop", r"^drop\s+(.+)$", CommandType.DROP, "drop lamp", target=1),
    _rule("put_down", r"^put\s+down\s+(.+)$", CommandType.DROP, "put down lamp", target=1),
    _rule("leave", r"^leave\s+(.+)$", CommandType.DROP, "leave lamp", target=1),

    # Using items
    _rule("put_in", r"^put\s+(.+?)\s+in(?:to|side)?\s+(.+)$", CommandType.USE, "put coin in box",
          target=1, modifier=2),
    _rule("use_on", r"^use\s+(.+?)\s+on\s+(.+)$", CommandType.USE, "use key on door", target=1, modifier=2),
    _rule("use_with", r"^use\s+(.+?)\s+with\s+(.+)$", CommandType.USE, "use rope with hook", target=1,
          modifier=2),
    _rule("use", r"^use\s+(.+)$", CommandType.USE, "use lamp", target=1),
    _rule("open", r"^open\s+(.+)$", CommandType.USE, "open chest", target=1),
    _rule("close", r"^close\s+(.+)$", CommandType.USE, "close chest", target=1),
    _rule("unlock", r"^unlock\s+(.+)$", CommandType.USE, "unlock door", target=1),
    _rule("wear", r"^wear\s+(.+)$", CommandType.USE, "wear cloak", target=1),
    _rule("put_on", r"^put\s+on\s+(.+)$", CommandType.USE, "put on cloak", target=1),
    _rule("equip", r"^equip\s+(.+)$", CommandType.USE, "equip sword", target=1),
    _rule("activate", r"^activate\s+(.+)$", CommandType.USE, "activate lever", target=1),
    _rule("read", r"^read\s+(.+)$", CommandType.USE, "read letter", target=1),
    _rule("eat", r"^eat\s+(.+)$", CommandType.USE, "eat bread", target=1),
    _rule("drink", r"^drink\s+(.+)$", CommandType.USE, "drink potion", target=1),

    # Inventory
    _rule("inventory", r"^inventory$", CommandType.INVENTORY, "inventory"),
    _rule("inv", r"^inv$", CommandType.INVENTORY, "inv"),
    _rule("i", r"^i$", CommandType.INVENTORY, "i"),

    # Talking
    _rule("talk_to", r"^talk\s+to\s+(.+)$", CommandType.TALK, "talk to keeper", target=1),
    _rule("talk", r"^talk\s+(.+)$", CommandType.TALK, "talk keeper", target=1),
    _rule("speak_to", r"^speak\s+to\s+(.+)$", CommandType.TALK, "speak to keeper", target=1),
    _rule("speak_with", r"^speak\s+with\s+(.+)$", CommandType.TALK, "speak with keeper", target=1),
    _rule("ask", r"^ask\s+(.+)$", CommandType.TALK, "ask keeper", target=1),

    # Vehicle - Boarding
    _rule("board", r"^board\s+(.+)$", CommandType.BOARD, "board ship", target=1),
    _rule("board_bare", r"^board$", CommandType.BOARD, "board"),
    _rule("enter", r"^enter\s+(.+)$", CommandType.BOARD, "enter carriage", target=1),
    _rule("climb_into", r"^climb\s+into\s+(.+)$", CommandType.BOARD, "climb into cart", target=1),
    _rule("climb_aboard", r"^climb\s+aboard\s+(.+)$", CommandType.BOARD, "climb aboard ship", target=1),

    # Vehicle - Disembarking
    _rule("disembark", r"^disembark$", CommandType.DISEMBARK, "disembark"),
    _rule("exit", r"^exit$", CommandType.DISEMBARK, "exit"),
    _rule("climb_out", r"^climb\s+out$", CommandType.DISEMBARK, "climb out"),

    # Vehicle - Launching/Traveling
    _rule("launch", r"^launch$", CommandType.LAUNCH, "launch"),
    _rule("launch_to", r"^launch\s+to\s+(.+)$", CommandType.LAUNCH, "launch to harbor", target=1),
    _rule("sail_to", r"^sail\s+to\s+(.+)$", CommandType.LAUNCH, "sail to harbor", target=1),
    _rule("drive_to", r"^drive\s+to\s+(.+)$", CommandType.LAUNCH, "drive to town", target=1),
    _rule("fly_to", r"^fly\s+to\s+(.+)$", CommandType.LAUNCH, "fly to the moon", target=1),
    _rule("travel_to", r"^travel\s+to\s+(.+)$", CommandType.LAUNCH, "travel to town", target=1),

    # Help
    _rule("help", r"^help$", CommandType.HELP, "help"),
    _rule("question_mark", r"^\?$", CommandType.HELP, "?"),
)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def parse_command(text: str, grammar: tuple[GrammarRule, ...] = GRAMMAR) -> Command:
    """Classify raw input; unmatched text comes back UNCLASSIFIED."""
    trimmed = " ".join(text.split())

    for rule in grammar:
        match = rule.pattern.match(trimmed)
        if match:
            return Command(
                type=rule.command_type,
                target=_clean(match.group(rule.target_group)) if rule.target_group else None,
                modifier=_clean(match.group(rule.modifier_group)) if rule.modifier_group else None,
                raw=trimmed,
            )

    return Command(type=CommandType.UNCLASSIFIED, raw=trimmed)


def match_rule(text: str, grammar: tuple[GrammarRule, ...] = GRAMMAR) -> GrammarRule | None:
    """The rule that would classify ``text``, if any."""
    trimmed = " ".join(text.split())
    for rule in grammar:
        if rule.pattern.match(trimmed):
            return rule
    return None


def find_shadowed_rules(grammar: tuple[GrammarRule, ...] = GRAMMAR) -> list[tuple[GrammarRule, GrammarRule]]:
    """Pairs of (shadowed rule, earlier rule that captures its example)."""
    shadowed = []
    for index, rule in enumerate(grammar):
        for earlier in grammar[:index]:
            if earlier.pattern.match(rule.example):
                shadowed.append((rule, earlier))
                break
    return shadowed


def resolve_direction(word: str | None) -> Direction | None:
    """Map a GO target ("n", "upstairs", "the north") onto a Direction."""
    if not word:
        return None
    word = word.lower().strip()
    if word.startswith("the "):
        word = word[4:]
    return DIRECTION_ALIASES.get(word)
