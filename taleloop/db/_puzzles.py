"""Puzzles mixin: puzzles, their ordered steps, and sequential links."""

from ..enums import PuzzleStatus
from .models import Puzzle, PuzzleLink, PuzzleStep


class PuzzlesMixin:

    def add_puzzle(self, name: str, steps: list[dict] | None = None, **fields) -> Puzzle:
        """Create a puzzle and its steps (numbered in list order from 1)."""
        db = self._get_db()
        fields.setdefault("reward", {})
        puzzle = Puzzle(story_id=self.story_id, name=name, **fields)
        for number, step in enumerate(steps or [], start=1):
            puzzle.steps.append(PuzzleStep(step_number=step.pop("step_number", number), **step))
        db.add(puzzle)
        self._maybe_commit()
        return puzzle

    def get_puzzle(self, puzzle_id: int) -> Puzzle | None:
        db = self._get_db()
        return (
            db.query(Puzzle)
            .filter(Puzzle.story_id == self.story_id)
            .filter(Puzzle.id == puzzle_id)
            .first()
        )

    def get_puzzles(self, status: PuzzleStatus | None = None) -> list[Puzzle]:
        db = self._get_db()
        query = db.query(Puzzle).filter(Puzzle.story_id == self.story_id)
        if status is not None:
            query = query.filter(Puzzle.status == str(status))
        return query.order_by(Puzzle.display_order, Puzzle.id).all()

    def add_puzzle_link(self, source: Puzzle, target: Puzzle, link_type: str = "sequential") -> PuzzleLink:
        db = self._get_db()
        link = PuzzleLink(source_puzzle_id=source.id, target_puzzle_id=target.id, link_type=link_type)
        db.add(link)
        self._maybe_commit()
        return link

    def get_linked_targets(self, puzzle: Puzzle, link_type: str = "sequential") -> list[Puzzle]:
        db = self._get_db()
        return (
            db.query(Puzzle)
            .join(PuzzleLink, PuzzleLink.target_puzzle_id == Puzzle.id)
            .filter(PuzzleLink.source_puzzle_id == puzzle.id)
            .filter(PuzzleLink.link_type == link_type)
            .order_by(Puzzle.id)
            .all()
        )
