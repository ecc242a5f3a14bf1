"""Objects mixin: game objects and characters."""

import logging

from .models import Character, GameObject

logger = logging.getLogger(__name__)


class ObjectsMixin:
    """GameObject and Character rows for one story."""

    def add_object(self, name: str, **fields) -> GameObject:
        db = self._get_db()
        fields.setdefault("synonyms", [])
        fields.setdefault("state", {})
        obj = GameObject(story_id=self.story_id, name=name, **fields)
        db.add(obj)
        self._maybe_commit()
        logger.info(f"Created object '{name}' (room={obj.room_id}, container={obj.contained_in_id})")
        return obj

    def get_object(self, object_id: int | None) -> GameObject | None:
        if object_id is None:
            return None
        db = self._get_db()
        return (
            db.query(GameObject)
            .filter(GameObject.story_id == self.story_id)
            .filter(GameObject.id == object_id)
            .first()
        )

    def get_objects_in_room(self, room_id: int) -> list[GameObject]:
        db = self._get_db()
        return (
            db.query(GameObject)
            .filter(GameObject.story_id == self.story_id)
            .filter(GameObject.room_id == room_id)
            .order_by(GameObject.id)
            .all()
        )

    def get_inventory(self) -> list[GameObject]:
        """Objects with neither a room nor a container."""
        db = self._get_db()
        return (
            db.query(GameObject)
            .filter(GameObject.story_id == self.story_id)
            .filter(GameObject.room_id.is_(None))
            .filter(GameObject.contained_in_id.is_(None))
            .order_by(GameObject.id)
            .all()
        )

    def get_contents(self, container_id: int) -> list[GameObject]:
        db = self._get_db()
        return (
            db.query(GameObject)
            .filter(GameObject.story_id == self.story_id)
            .filter(GameObject.contained_in_id == container_id)
            .order_by(GameObject.id)
            .all()
        )

    # ==== Characters ====

    def add_character(self, name: str, current_room_id: int | None = None,
                      description: str | None = None) -> Character:
        db = self._get_db()
        character = Character(
            story_id=self.story_id,
            name=name,
            description=description,
            current_room_id=current_room_id,
        )
        db.add(character)
        self._maybe_commit()
        return character

    def get_characters_in_room(self, room_id: int) -> list[Character]:
        db = self._get_db()
        return (
            db.query(Character)
            .filter(Character.story_id == self.story_id)
            .filter(Character.current_room_id == room_id)
            .order_by(Character.id)
            .all()
        )

    def get_characters(self) -> list[Character]:
        db = self._get_db()
        return (
            db.query(Character)
            .filter(Character.story_id == self.story_id)
            .order_by(Character.id)
            .all()
        )
