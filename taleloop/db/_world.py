"""World mixin: rooms and vehicle rooms.

Graph rules (reciprocal edges, expansion, portals) live in
core/world.py; this layer only reads and writes rows.
"""

import logging

from ..errors import RoomOccupiedError
from .models import Room

logger = logging.getLogger(__name__)


class WorldMixin:
    """Room rows for one story."""

    def add_room(self, name: str, x: int, y: int, z: int = 0, **fields) -> Room:
        """Insert a room; the (story, x, y, z) slot must be free."""
        if self.get_room_at(x, y, z) is not None:
            raise RoomOccupiedError(self.story_id, x, y, z)

        db = self._get_db()
        fields.setdefault("hidden_exits", [])
        fields.setdefault("discovered_exits", [])
        fields.setdefault("atmosphere", {})
        room = Room(story_id=self.story_id, name=name, x=x, y=y, z=z, **fields)
        db.add(room)
        self._maybe_commit()
        logger.info(f"Created room '{name}' at ({x}, {y}, {z})")
        return room

    def get_room(self, room_id: int | None) -> Room | None:
        if room_id is None:
            return None
        db = self._get_db()
        return (
            db.query(Room)
            .filter(Room.story_id == self.story_id)
            .filter(Room.id == room_id)
            .first()
        )

    def get_room_at(self, x: int, y: int, z: int = 0) -> Room | None:
        db = self._get_db()
        return (
            db.query(Room)
            .filter(Room.story_id == self.story_id)
            .filter(Room.x == x, Room.y == y, Room.z == z)
            .first()
        )

    def get_room_by_name(self, name: str) -> Room | None:
        db = self._get_db()
        return (
            db.query(Room)
            .filter(Room.story_id == self.story_id)
            .filter(Room.name.ilike(name))
            .first()
        )

    def get_rooms(self) -> list[Room]:
        db = self._get_db()
        return db.query(Room).filter(Room.story_id == self.story_id).order_by(Room.id).all()

    def get_vehicles_docked_at(self, room_id: int) -> list[Room]:
        db = self._get_db()
        return (
            db.query(Room)
            .filter(Room.story_id == self.story_id)
            .filter(Room.is_vehicle.is_(True))
            .filter(Room.docked_at_room_id == room_id)
            .order_by(Room.id)
            .all()
        )
