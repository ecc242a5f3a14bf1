"""SQLAlchemy database models for taleloop."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from ..enums import Direction, MessageType, PuzzleStatus

Base = declarative_base()


class Story(Base):
    """A story is one generated world plus the player's run through it."""

    __tablename__ = "stories"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False, default="Untitled")
    genre_tags = Column(JSON, default=list)   # ["noir", "fantasy"]
    story_seed = Column(JSON, default=dict)   # StorySeed blob (theme, tone, starting room)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    player_state = relationship("PlayerState", back_populates="story", uselist=False, cascade="all, delete-orphan")
    facts = relationship("StoryFact", back_populates="story", cascade="all, delete-orphan")


class PlayerState(Base):
    """Where the player is and the running counters. One row per story."""

    __tablename__ = "player_states"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, unique=True)
    current_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    turn_count = Column(Integer, default=0)
    score = Column(Integer, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    story = relationship("Story", back_populates="player_state")


class Room(Base):
    """A node in the world graph.

    Physical rooms sit on an integer grid; the portal and vehicle bands
    live at high z so they never collide with it.
    """

    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("story_id", "x", "y", "z", name="uq_room_story_coords"),
    )

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    short_description = Column(Text, nullable=True)  # Shown on revisits

    x = Column(Integer, nullable=False)
    y = Column(Integer, nullable=False)
    z = Column(Integer, nullable=False, default=0)

    # Directional edges
    north_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    south_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    east_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    west_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    up_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    down_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)

    hidden_exits = Column(JSON, default=list)      # ["north"]
    discovered_exits = Column(JSON, default=list)  # subset of hidden_exits the player found
    atmosphere = Column(JSON, default=dict)        # RoomAtmosphere blob

    is_story_critical = Column(Boolean, default=False)
    is_generated = Column(Boolean, default=False)
    visit_count = Column(Integer, default=0)
    first_visited_at = Column(DateTime, nullable=True)

    # Vehicle rooms
    is_vehicle = Column(Boolean, default=False)
    vehicle_type = Column(String(50), nullable=True)  # ship, car, airship...
    docked_at_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    previous_docked_at_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    known_destinations = Column(JSON, default=list)  # room ids
    boarding_keywords = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)

    def neighbor_id(self, direction: Direction) -> int | None:
        return getattr(self, f"{Direction(direction).value}_room_id")

    def set_neighbor(self, direction: Direction, room_id: int | None) -> None:
        setattr(self, f"{Direction(direction).value}_room_id", room_id)

    @property
    def exits(self) -> dict[str, bool]:
        """Direction -> whether an edge exists (hidden or not)."""
        return {d.value: self.neighbor_id(d) is not None for d in Direction}


class GameObject(Base):
    """An item. Lives in exactly one of: a room, the inventory, a container."""

    __tablename__ = "game_objects"
    __table_args__ = (
        CheckConstraint(
            "room_id IS NULL OR contained_in_id IS NULL",
            name="ck_object_single_location",
        ),
    )

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)  # NULL + no container = inventory
    contained_in_id = Column(Integer, ForeignKey("game_objects.id"), nullable=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    synonyms = Column(JSON, default=list)

    is_takeable = Column(Boolean, default=True)
    is_story_critical = Column(Boolean, default=False)
    is_container = Column(Boolean, default=False)
    is_open = Column(Boolean, default=True)
    is_locked = Column(Boolean, default=False)
    key_object_id = Column(Integer, ForeignKey("game_objects.id"), nullable=True)

    state = Column(JSON, default=dict)  # ObjectState blob
    first_examined_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def in_inventory(self) -> bool:
        return self.room_id is None and self.contained_in_id is None


class Character(Base):
    """A non-player character placed in the world."""

    __tablename__ = "characters"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    current_room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)


class PlayerAbility(Base):
    """A continuously-growing skill. Names are case-normalized per story."""

    __tablename__ = "player_abilities"
    __table_args__ = (
        UniqueConstraint("story_id", "name", name="uq_ability_story_name"),
    )

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    level = Column(Float, default=1.0)
    origin = Column(String(50), default="attempted")  # AbilityOrigin
    times_used = Column(Integer, default=0)
    times_succeeded = Column(Integer, default=0)
    trigger_verbs = Column(JSON, default=list)
    trigger_nouns = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)


class SkillCheck(Base):
    """Audit row for one resolved check."""

    __tablename__ = "skill_checks"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    ability_id = Column(Integer, ForeignKey("player_abilities.id"), nullable=False)
    context = Column(Text, nullable=True)  # raw player input
    difficulty = Column(Integer, nullable=False)
    roll = Column(Integer, nullable=False)
    total = Column(Float, nullable=False)
    margin = Column(Float, nullable=False)
    success = Column(Boolean, nullable=False)
    level_before = Column(Float, nullable=False)
    level_after = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class TimedEvent(Base):
    """A countdown that fires a narrative and consequence at zero."""

    __tablename__ = "timed_events"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)  # NULL = global
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    total_turns = Column(Integer, nullable=False)
    turns_remaining = Column(Integer, nullable=False)
    progress_narratives = Column(JSON, default=list)  # [ProgressNarrative]
    trigger_narrative = Column(Text, nullable=False, default="")
    consequence = Column(JSON, default=dict)          # EventConsequence blob

    is_active = Column(Boolean, default=True)
    is_triggered = Column(Boolean, default=False)
    can_be_prevented = Column(Boolean, default=True)
    prevention_hint = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    triggered_at = Column(DateTime, nullable=True)


class PersonalityScores(Base):
    """Five running trait scores (0-100) with independent confidence counters."""

    __tablename__ = "personality_scores"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, unique=True)

    openness = Column(Float, default=50.0)
    conscientiousness = Column(Float, default=50.0)
    extraversion = Column(Float, default=50.0)
    agreeableness = Column(Float, default=50.0)
    neuroticism = Column(Float, default=50.0)

    openness_confidence = Column(Integer, default=0)
    conscientiousness_confidence = Column(Integer, default=0)
    extraversion_confidence = Column(Integer, default=0)
    agreeableness_confidence = Column(Integer, default=0)
    neuroticism_confidence = Column(Integer, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PersonalityEvent(Base):
    """One recorded signal, kept for later analysis."""

    __tablename__ = "personality_events"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    dimension = Column(String(1), nullable=False)  # O/C/E/A/N
    delta = Column(Float, nullable=False)
    adjusted_delta = Column(Float, nullable=False)
    confidence = Column(Float, nullable=False)
    source = Column(String(50), nullable=False)  # command, skill_check, dilemma, object
    context = Column(Text, nullable=True)
    reasoning = Column(Text, nullable=True)
    is_key_moment = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class DilemmaPoint(Base):
    """A one-shot, room-bound branching choice."""

    __tablename__ = "dilemma_points"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    description = Column(Text, nullable=False)

    option_a = Column(JSON, nullable=False)  # DilemmaOption
    option_b = Column(JSON, nullable=False)
    option_c = Column(JSON, nullable=True)

    primary_dimension = Column(String(1), nullable=False)
    secondary_dimension = Column(String(1), nullable=True)

    is_triggered = Column(Boolean, default=False)
    triggered_at = Column(DateTime, nullable=True)
    chosen_option = Column(String(10), nullable=True)
    player_response = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


class InteractionCache(Base):
    """Memoized generator response, keyed by exact or semantic signature."""

    __tablename__ = "interaction_cache"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    command_type = Column(String(50), nullable=False)   # CommandType or "SEMANTIC"
    command_target = Column(String(255), default="")    # target, or joined topics
    command_hash = Column(String(32), nullable=False, unique=True, index=True)
    response = Column(Text, nullable=False)
    hit_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)


class GameTranscript(Base):
    """Ordered log of everything said during a story."""

    __tablename__ = "game_transcripts"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    turn_number = Column(Integer, nullable=False)
    speaker = Column(String(50), nullable=False)   # Speaker
    content = Column(Text, nullable=False)
    message_type = Column(String(20), default=MessageType.NARRATIVE.value)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)


class StoryFact(Base):
    """Established world fact, fed to the generator for consistency."""

    __tablename__ = "story_facts"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    fact_type = Column(String(50), default="WORLD")  # WORLD, CHARACTER, PLAYER_ACTION, STORY_EVENT
    content = Column(Text, nullable=False)
    source = Column(String(100), nullable=True)
    importance = Column(Integer, default=5)
    created_at = Column(DateTime, default=datetime.utcnow)

    story = relationship("Story", back_populates="facts")


class Puzzle(Base):
    """An objective made of ordered steps."""

    __tablename__ = "puzzles"

    id = Column(Integer, primary_key=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default=PuzzleStatus.PENDING.value)
    reward = Column(JSON, default=dict)  # PuzzleReward blob
    display_order = Column(Integer, default=0)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    steps = relationship(
        "PuzzleStep",
        back_populates="puzzle",
        cascade="all, delete-orphan",
        order_by="PuzzleStep.step_number",
    )


class PuzzleStep(Base):
    __tablename__ = "puzzle_steps"

    id = Column(Integer, primary_key=True)
    puzzle_id = Column(Integer, ForeignKey("puzzles.id"), nullable=False)
    step_number = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    hint = Column(Text, nullable=True)
    requirements = Column(JSON, default=dict)  # StepRequirements blob
    is_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)

    puzzle = relationship("Puzzle", back_populates="steps")


class PuzzleLink(Base):
    """Sequential dependency: completing source activates target."""

    __tablename__ = "puzzle_links"

    id = Column(Integer, primary_key=True)
    source_puzzle_id = Column(Integer, ForeignKey("puzzles.id"), nullable=False)
    target_puzzle_id = Column(Integer, ForeignKey("puzzles.id"), nullable=False)
    link_type = Column(String(20), default="sequential")
