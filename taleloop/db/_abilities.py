"""Abilities mixin: player abilities and the skill-check audit trail."""

from sqlalchemy import func

from .models import PlayerAbility, SkillCheck


class AbilitiesMixin:

    def get_ability(self, name: str) -> PlayerAbility | None:
        """Case-insensitive lookup by name."""
        db = self._get_db()
        return (
            db.query(PlayerAbility)
            .filter(PlayerAbility.story_id == self.story_id)
            .filter(func.lower(PlayerAbility.name) == name.lower())
            .first()
        )

    def get_abilities(self) -> list[PlayerAbility]:
        db = self._get_db()
        return (
            db.query(PlayerAbility)
            .filter(PlayerAbility.story_id == self.story_id)
            .order_by(PlayerAbility.id)
            .all()
        )

    def add_ability(self, name: str, **fields) -> PlayerAbility:
        db = self._get_db()
        fields.setdefault("trigger_verbs", [])
        fields.setdefault("trigger_nouns", [])
        ability = PlayerAbility(story_id=self.story_id, name=name, **fields)
        db.add(ability)
        self._maybe_commit()
        return ability

    def add_skill_check(self, ability: PlayerAbility, **fields) -> SkillCheck:
        db = self._get_db()
        check = SkillCheck(story_id=self.story_id, ability_id=ability.id, **fields)
        db.add(check)
        self._maybe_commit()
        return check

    def get_skill_checks(self, ability: PlayerAbility | None = None) -> list[SkillCheck]:
        db = self._get_db()
        query = db.query(SkillCheck).filter(SkillCheck.story_id == self.story_id)
        if ability is not None:
            query = query.filter(SkillCheck.ability_id == ability.id)
        return query.order_by(SkillCheck.id).all()
