"""Turn pipeline mixin: the main process_turn method.

Split from orchestrator.py for maintainability.
Contains the full turn flow: parse → execute → bookkeeping → assemble.
"""

import inspect
import logging
import time

from ..enums import MessageType, Speaker
from ..errors import WorldStateError
from .commands import parse_command
from .locks import story_lock
from .personality import PersonalityModel
from .timed_events import check_game_over, format_tick_results
from .turn import DilemmaPayload, GameOver, TimedEventSummary, TurnProgress, TurnResult
from .world import format_revealed_exits

logger = logging.getLogger(__name__)

GAME_OVER_REASON = "timed_event"
GAME_OVER_FALLBACK = "Time ran out."


class TurnPipelineMixin:
    """The main ``process_turn`` pipeline.

    Relies on instance attributes set by ``Orchestrator.__init__``.
    """

    async def _emit(self, stage: str, detail: str = "") -> None:
        """Send a progress notification; callback errors never break the turn."""
        if self.progress is None:
            return
        try:
            outcome = self.progress(TurnProgress(stage=stage, detail=detail))
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning(f"Progress callback failed at '{stage}': {e}")

    def _require_position(self):
        """PlayerState plus the room it points at; both must exist."""
        player = self.state.get_player_state()
        if player is None:
            logger.error(f"Story {self.story_id}: no player state")
            raise WorldStateError(f"Story {self.story_id} has no player state")
        room = self.world.require_room(player.current_room_id)
        return player, room

    async def process_turn(self, player_input: str) -> TurnResult:
        """Process a single turn.

        Args:
            player_input: Raw text typed by the player

        Returns:
            TurnResult with the assembled narrative and turn side effects

        Raises:
            WorldStateError: the player state or current room is missing
        """
        async with story_lock(self.story_id):
            return await self._run_turn(player_input)

    async def _run_turn(self, player_input: str) -> TurnResult:
        start = time.time()
        text = player_input.strip()
        _, room = self._require_position()

        # 1. Log the input
        self.state.log_transcript(Speaker.PLAYER, text, MessageType.COMMAND, room_id=room.id)

        # 2. Parse
        command = parse_command(text)
        logger.info(f"Story {self.story_id} turn: {command.type} target={command.target!r}")
        await self._emit("parsed", str(command.type))

        # 3. Execute
        result = await self._execute(command, room)
        await self._emit("executed", "success" if result.success else "failure")

        # 4. Searching toward a hidden exit reveals it
        if not result.room_changed:
            revealed = self.world.discover_from_action(room, text)
            if revealed:
                result.response = f"{result.response}\n\n{format_revealed_exits(revealed)}"

        # 5. Re-read position; the handler may have moved the player
        player, room = self._require_position()

        # 6. Log the narrator's response
        self.state.log_transcript(Speaker.NARRATOR, result.response, MessageType.NARRATIVE, room_id=room.id)

        # 7. Personality
        if result.personality_signal is not None:
            self.personality.record_signal(result.personality_signal, source="command", context=text)

        # 8. Puzzles
        inventory_names = [obj.name for obj in self.state.get_inventory()]
        puzzle_progress = self.puzzles.check_step_completion(text, room, inventory_names)

        # 9. Timed events
        ticks = self.events.tick(room.id)
        tick_narrative = format_tick_results(ticks)
        if tick_narrative:
            self.state.log_transcript(Speaker.SYSTEM, tick_narrative, MessageType.SYSTEM, room_id=room.id)
        await self._emit("ticked", f"{len(ticks)} event(s)")

        # 10. Game over
        game_over = None
        ended = check_game_over(ticks)
        if ended is not None:
            game_over = GameOver(reason=GAME_OVER_REASON, narrative=ended.narrative or GAME_OVER_FALLBACK)
            logger.info(f"Story {self.story_id}: game over ('{ended.name}')")

        # 11. Dilemma
        dilemma = None
        triggered = self.personality.check_dilemma_trigger(room.id)
        if triggered is not None:
            options = {key: opt.description for key, opt in PersonalityModel.options(triggered).items()}
            dilemma = DilemmaPayload(id=triggered.id, description=triggered.description, options=options)
            self.state.log_transcript(
                Speaker.SYSTEM,
                f"[DILEMMA] {triggered.description}",
                MessageType.SYSTEM,
                room_id=room.id,
                meta={"dilemma_id": triggered.id},
            )

        # 12. Assemble
        parts = [result.response, *puzzle_progress.narratives]
        if tick_narrative:
            parts.append(tick_narrative)
        narrative = "\n\n".join(p for p in parts if p)

        active = [
            {"name": event.name, "turnsRemaining": event.turns_remaining}
            for event in self.events.get_active(room.id)
        ]
        timed_events = None
        if ticks or active:
            timed_events = TimedEventSummary(
                active=active,
                triggered=[t.name for t in ticks if t.triggered],
            )

        turn = TurnResult(
            success=result.success,
            narrative=narrative,
            room_changed=result.room_changed,
            new_room_id=result.new_room_id,
            room_name=room.name,
            turn_count=player.turn_count or 0,
            score=player.score or 0,
            dilemma=dilemma,
            timed_events=timed_events,
            game_over=game_over,
            menu_options=result.menu_options,
        )
        await self._emit("complete")
        logger.info(f"Story {self.story_id}: turn done in {int((time.time() - start) * 1000)}ms")
        return turn

