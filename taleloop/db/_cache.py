"""Cache mixin: interaction cache rows."""

from .models import InteractionCache


class CacheMixin:

    def get_cache_entry(self, command_hash: str) -> InteractionCache | None:
        db = self._get_db()
        return (
            db.query(InteractionCache)
            .filter(InteractionCache.story_id == self.story_id)
            .filter(InteractionCache.command_hash == command_hash)
            .first()
        )

    def put_cache_entry(self, command_hash: str, room_id: int, command_type: str,
                        command_target: str, response: str) -> InteractionCache:
        """Insert, or overwrite the response of an existing entry."""
        db = self._get_db()
        entry = self.get_cache_entry(command_hash)
        if entry is None:
            entry = InteractionCache(
                story_id=self.story_id,
                room_id=room_id,
                command_type=command_type,
                command_target=command_target,
                command_hash=command_hash,
                response=response,
                hit_count=0,
            )
            db.add(entry)
        else:
            entry.response = response
        self._maybe_commit()
        return entry

    def delete_cache_for_room(self, room_id: int) -> int:
        db = self._get_db()
        deleted = (
            db.query(InteractionCache)
            .filter(InteractionCache.story_id == self.story_id)
            .filter(InteractionCache.room_id == room_id)
            .delete(synchronize_session=False)
        )
        self._maybe_commit()
        return deleted
