"""Puzzle trigger interface: step completion, rewards, sequential unlocks."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..db.models import Puzzle, PuzzleStep, Room
from ..db.schemas import PuzzleReward, StepRequirements, load_blob
from ..db.state_manager import StateManager
from ..enums import PuzzleStatus, RewardType
from .skills import SkillEngine

logger = logging.getLogger(__name__)


@dataclass
class PuzzleProgress:
    """Everything one action did to the puzzle state."""
    completed_steps: list[int] = field(default_factory=list)
    completed_puzzles: list[int] = field(default_factory=list)
    activated_puzzles: list[int] = field(default_factory=list)
    narratives: list[str] = field(default_factory=list)


def step_requirements_met(requirements: StepRequirements, action: str, room_name: str,
                          inventory_names: list[str]) -> bool:
    """Room equality, every item by inventory substring, any action by substring."""
    if requirements.required_room and requirements.required_room.lower() != room_name.lower():
        return False

    carried = [name.lower() for name in inventory_names]
    for item in requirements.required_items:
        if not any(item.lower() in name for name in carried):
            return False

    if requirements.required_actions:
        lowered = action.lower()
        if not any(a.lower() in lowered for a in requirements.required_actions):
            return False

    return True


class PuzzleTracker:
    """Puzzle progress for one story."""

    def __init__(self, state: StateManager, skills: SkillEngine):
        self.state = state
        self.skills = skills

    def check_step_completion(self, action: str, room: Room, inventory_names: list[str]) -> PuzzleProgress:
        """Complete the next step of every active puzzle whose requirements hold."""
        progress = PuzzleProgress()

        for puzzle in self.state.get_puzzles(PuzzleStatus.ACTIVE):
            step = next((s for s in puzzle.steps if not s.is_completed), None)
            if step is None:
                continue

            requirements = load_blob(StepRequirements, step.requirements)
            if not step_requirements_met(requirements, action, room.name, inventory_names):
                continue

            step.is_completed = True
            step.completed_at = datetime.utcnow()
            self.state.save(step)
            progress.completed_steps.append(step.id)
            progress.narratives.append(f"[Objective progress: {step.description}]")

            if any(not s.is_completed for s in puzzle.steps):
                continue

            self._complete(puzzle, progress)

        return progress

    def _complete(self, puzzle: Puzzle, progress: PuzzleProgress) -> None:
        puzzle.status = PuzzleStatus.COMPLETED.value
        puzzle.completed_at = datetime.utcnow()
        self.state.save(puzzle)
        progress.completed_puzzles.append(puzzle.id)
        progress.narratives.append(f"[Objective complete: {puzzle.name}]")
        logger.info(f"Puzzle '{puzzle.name}' completed")

        self.apply_reward(puzzle)

        for target in self.state.get_linked_targets(puzzle):
            if target.status != PuzzleStatus.PENDING.value:
                continue
            self.activate(target)
            progress.activated_puzzles.append(target.id)
            progress.narratives.append(f"[New objective: {target.name}]")

    def activate(self, puzzle: Puzzle) -> Puzzle:
        puzzle.status = PuzzleStatus.ACTIVE.value
        puzzle.started_at = datetime.utcnow()
        self.state.save(puzzle)
        return puzzle

    def apply_reward(self, puzzle: Puzzle) -> None:
        reward = load_blob(PuzzleReward, puzzle.reward)

        if reward.type == RewardType.ITEM and reward.item_name:
            self.state.add_object(
                reward.item_name,
                description=reward.description or "",
                is_takeable=True,
            )
            logger.info(f"Reward item '{reward.item_name}' added to inventory")
        elif reward.type == RewardType.SKILL_BOOST and reward.skill_name:
            self.skills.adjust_level(reward.skill_name, reward.amount or 1.0,
                                     reason=f"completed {puzzle.name}")

    def objectives(self) -> list[dict[str, Any]]:
        """Active and pending puzzles for a status sidebar."""
        shown = []
        for puzzle in self.state.get_puzzles():
            if puzzle.status == PuzzleStatus.COMPLETED.value:
                continue
            shown.append({
                "id": puzzle.id,
                "name": puzzle.name,
                "description": puzzle.description or "",
                "isActive": puzzle.status == PuzzleStatus.ACTIVE.value,
                "steps": [self._step_view(s) for s in puzzle.steps],
            })
        return shown

    @staticmethod
    def _step_view(step: PuzzleStep) -> dict[str, Any]:
        view = {
            "stepNumber": step.step_number,
            "description": step.description,
            "isCompleted": bool(step.is_completed),
        }
        if step.hint:
            view["hint"] = step.hint
        return view
