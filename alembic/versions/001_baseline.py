"""baseline: create all tables

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ─── Stories and the world graph ─────────────────────────────────

    op.create_table(
        "stories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("genre_tags", sa.JSON(), nullable=True),
        sa.Column("story_seed", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("short_description", sa.Text(), nullable=True),
        sa.Column("x", sa.Integer(), nullable=False),
        sa.Column("y", sa.Integer(), nullable=False),
        sa.Column("z", sa.Integer(), nullable=False),
        sa.Column("north_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("south_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("east_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("west_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("up_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("down_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("hidden_exits", sa.JSON(), nullable=True),
        sa.Column("discovered_exits", sa.JSON(), nullable=True),
        sa.Column("atmosphere", sa.JSON(), nullable=True),
        sa.Column("is_story_critical", sa.Boolean(), nullable=True),
        sa.Column("is_generated", sa.Boolean(), nullable=True),
        sa.Column("visit_count", sa.Integer(), nullable=True),
        sa.Column("first_visited_at", sa.DateTime(), nullable=True),
        sa.Column("is_vehicle", sa.Boolean(), nullable=True),
        sa.Column("vehicle_type", sa.String(50), nullable=True),
        sa.Column("docked_at_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("previous_docked_at_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("known_destinations", sa.JSON(), nullable=True),
        sa.Column("boarding_keywords", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("story_id", "x", "y", "z", name="uq_room_story_coords"),
    )

    op.create_table(
        "player_states",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, unique=True),
        sa.Column("current_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("turn_count", sa.Integer(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    # ─── Objects and characters ──────────────────────────────────────

    op.create_table(
        "game_objects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("contained_in_id", sa.Integer(), sa.ForeignKey("game_objects.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("synonyms", sa.JSON(), nullable=True),
        sa.Column("is_takeable", sa.Boolean(), nullable=True),
        sa.Column("is_story_critical", sa.Boolean(), nullable=True),
        sa.Column("is_container", sa.Boolean(), nullable=True),
        sa.Column("is_open", sa.Boolean(), nullable=True),
        sa.Column("is_locked", sa.Boolean(), nullable=True),
        sa.Column("key_object_id", sa.Integer(), sa.ForeignKey("game_objects.id"), nullable=True),
        sa.Column("state", sa.JSON(), nullable=True),
        sa.Column("first_examined_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("room_id IS NULL OR contained_in_id IS NULL", name="ck_object_single_location"),
    )

    op.create_table(
        "characters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("current_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
    )

    # ─── Abilities ───────────────────────────────────────────────────

    op.create_table(
        "player_abilities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("level", sa.Float(), nullable=True),
        sa.Column("origin", sa.String(50), nullable=True),
        sa.Column("times_used", sa.Integer(), nullable=True),
        sa.Column("times_succeeded", sa.Integer(), nullable=True),
        sa.Column("trigger_verbs", sa.JSON(), nullable=True),
        sa.Column("trigger_nouns", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("story_id", "name", name="uq_ability_story_name"),
    )

    op.create_table(
        "skill_checks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("ability_id", sa.Integer(), sa.ForeignKey("player_abilities.id"), nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("difficulty", sa.Integer(), nullable=False),
        sa.Column("roll", sa.Integer(), nullable=False),
        sa.Column("total", sa.Float(), nullable=False),
        sa.Column("margin", sa.Float(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("level_before", sa.Float(), nullable=False),
        sa.Column("level_after", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    # ─── Timed events ────────────────────────────────────────────────

    op.create_table(
        "timed_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("total_turns", sa.Integer(), nullable=False),
        sa.Column("turns_remaining", sa.Integer(), nullable=False),
        sa.Column("progress_narratives", sa.JSON(), nullable=True),
        sa.Column("trigger_narrative", sa.Text(), nullable=False),
        sa.Column("consequence", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("is_triggered", sa.Boolean(), nullable=True),
        sa.Column("can_be_prevented", sa.Boolean(), nullable=True),
        sa.Column("prevention_hint", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("triggered_at", sa.DateTime(), nullable=True),
    )

    # ─── Personality ─────────────────────────────────────────────────

    op.create_table(
        "personality_scores",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, unique=True),
        sa.Column("openness", sa.Float(), nullable=True),
        sa.Column("conscientiousness", sa.Float(), nullable=True),
        sa.Column("extraversion", sa.Float(), nullable=True),
        sa.Column("agreeableness", sa.Float(), nullable=True),
        sa.Column("neuroticism", sa.Float(), nullable=True),
        sa.Column("openness_confidence", sa.Integer(), nullable=True),
        sa.Column("conscientiousness_confidence", sa.Integer(), nullable=True),
        sa.Column("extraversion_confidence", sa.Integer(), nullable=True),
        sa.Column("agreeableness_confidence", sa.Integer(), nullable=True),
        sa.Column("neuroticism_confidence", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "personality_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("dimension", sa.String(1), nullable=False),
        sa.Column("delta", sa.Float(), nullable=False),
        sa.Column("adjusted_delta", sa.Float(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("source", sa.String(50), nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("reasoning", sa.Text(), nullable=True),
        sa.Column("is_key_moment", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "dilemma_points",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("option_a", sa.JSON(), nullable=False),
        sa.Column("option_b", sa.JSON(), nullable=False),
        sa.Column("option_c", sa.JSON(), nullable=True),
        sa.Column("primary_dimension", sa.String(1), nullable=False),
        sa.Column("secondary_dimension", sa.String(1), nullable=True),
        sa.Column("is_triggered", sa.Boolean(), nullable=True),
        sa.Column("triggered_at", sa.DateTime(), nullable=True),
        sa.Column("chosen_option", sa.String(10), nullable=True),
        sa.Column("player_response", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
    )

    # ─── Cache, transcript, facts ────────────────────────────────────

    op.create_table(
        "interaction_cache",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("command_type", sa.String(50), nullable=False),
        sa.Column("command_target", sa.String(255), nullable=True),
        sa.Column("command_hash", sa.String(32), nullable=False, unique=True, index=True),
        sa.Column("response", sa.Text(), nullable=False),
        sa.Column("hit_count", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "game_transcripts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("turn_number", sa.Integer(), nullable=False),
        sa.Column("speaker", sa.String(50), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(20), nullable=True),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "story_facts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("fact_type", sa.String(50), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("source", sa.String(100), nullable=True),
        sa.Column("importance", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    # ─── Puzzles ─────────────────────────────────────────────────────

    op.create_table(
        "puzzles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("story_id", sa.Integer(), sa.ForeignKey("stories.id"), nullable=False, index=True),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=True),
        sa.Column("reward", sa.JSON(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "puzzle_steps",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("puzzle_id", sa.Integer(), sa.ForeignKey("puzzles.id"), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("hint", sa.Text(), nullable=True),
        sa.Column("requirements", sa.JSON(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "puzzle_links",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("source_puzzle_id", sa.Integer(), sa.ForeignKey("puzzles.id"), nullable=False),
        sa.Column("target_puzzle_id", sa.Integer(), sa.ForeignKey("puzzles.id"), nullable=False),
        sa.Column("link_type", sa.String(20), nullable=True),
    )


def downgrade() -> None:
    for table in (
        "puzzle_links",
        "puzzle_steps",
        "puzzles",
        "story_facts",
        "game_transcripts",
        "interaction_cache",
        "dilemma_points",
        "personality_events",
        "personality_scores",
        "timed_events",
        "skill_checks",
        "player_abilities",
        "characters",
        "game_objects",
        "player_states",
        "rooms",
        "stories",
    ):
        op.drop_table(table)
