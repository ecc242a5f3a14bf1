"""taleloop CLI entry point.

Usage:
    taleloop                       # Play story 1 (a default seed if it is new)
    taleloop --story 7             # Play or resume story 7
    taleloop --world world.json    # Import an authored world into a new story
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import Config
from .core.orchestrator import Orchestrator
from .core.turn import TurnProgress
from .db.schemas import StorySeed, WorldImport
from .db.session import init_db
from .errors import DilemmaError, TaleLoopError
from .llm import get_llm_manager
from .logging_config import setup_logging

console = Console()

DEFAULT_SEED = StorySeed.model_validate({
    "title": "The Lighthouse",
    "genre": "fantasy",
    "theme": "discovery",
    "tone": "mysterious",
    "startingRoom": {
        "name": "Lighthouse Keeper's Cottage",
        "description": (
            "Salt crusts the single window of this cramped cottage. A cold hearth, a narrow bed "
            "and a table scattered with charts are all that remain of the last keeper."
        ),
    },
    "initialObjects": [
        {"name": "brass lantern", "description": "Dented, but the wick is fresh.", "synonyms": ["lantern", "lamp"]},
        {"name": "tide chart", "description": "Someone has circled tonight's date in red ink.",
         "isStoryCritical": True, "synonyms": ["chart", "map"]},
    ],
})


def print_banner():
    """Print the taleloop banner."""
    banner = Text()
    banner.append("taleloop", style="bold cyan")
    banner.append(" - interactive fiction turn engine\n", style="cyan")
    banner.append("Type HELP in game, :quit to exit", style="dim")

    console.print(Panel(
        banner,
        border_style="cyan",
        padding=(0, 2)
    ))


def print_provider_info() -> bool:
    """Show which backend narrates; False when it cannot be built."""
    manager = get_llm_manager()
    try:
        provider = manager.primary_provider
    except ValueError as e:
        console.print(f"[red]Narrator backend unavailable: {e}[/red]")
        return False

    console.print(f"[dim]Narrator: [green]{provider.name}[/green] | "
                  f"rooms: {manager.get_fast_model()} | turns: {manager.get_creative_model()}[/dim]")
    standby = [name for name in Config.get_available_providers() if name != provider.name]
    if standby:
        console.print(f"[dim]Routing may also use: {', '.join(standby)}[/dim]")
    return True


def print_help():
    """Print console meta commands (game commands come from HELP)."""
    console.print("\n[dim]Console commands:[/dim]")
    console.print("  [yellow]:quit[/yellow]     - Exit the game")
    console.print("  [yellow]:debug[/yellow]    - Toggle turn progress output")
    console.print("  [yellow]:status[/yellow]   - Show room, counters and inventory")
    console.print("  [yellow]:help[/yellow]     - Show this help\n")


def print_status(orchestrator: Orchestrator):
    state = orchestrator.get_game_state()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_row("Room", state.room_name)
    table.add_row("Exits", ", ".join(state.exits) or "none")
    table.add_row("Turns", str(state.turn_count))
    table.add_row("Score", str(state.score))
    table.add_row("Inventory", ", ".join(state.inventory) or "nothing")
    if state.in_vehicle:
        table.add_row("Aboard", state.in_vehicle)
    for objective in state.objectives:
        if objective["isActive"]:
            table.add_row("Objective", objective["name"])
    console.print(Panel(table, title="[dim]Status[/dim]", border_style="dim"))


async def resolve_dilemma(orchestrator: Orchestrator, dilemma) -> None:
    """Prompt until the player picks one of the offered options."""
    lines = [dilemma.description, ""]
    lines.extend(f"  [bold]{key}[/bold]. {text}" for key, text in dilemma.options.items())
    console.print(Panel("\n".join(lines), title="[magenta]A choice[/magenta]", border_style="magenta"))

    while True:
        choice = console.input("[bold magenta]choose> [/bold magenta]").strip()
        if not choice:
            continue
        option, _, text = choice.partition(" ")
        try:
            outcome = await orchestrator.handle_dilemma_response(dilemma.id, option, text.strip())
        except DilemmaError:
            console.print(f"[red]Pick one of: {', '.join(dilemma.options)}[/red]")
            continue
        console.print(f"\n{outcome.outcome_narrative}\n")
        return


async def game_loop(orchestrator: Orchestrator, debug_mode: bool = False):
    """Main game loop."""
    console.print(f"\n{orchestrator.get_opening_narrative()}\n")

    debug = {"on": debug_mode}

    async def show_progress(progress: TurnProgress):
        if debug["on"]:
            console.print(f"[dim]  · {progress.stage} {progress.detail}[/dim]")

    orchestrator.progress = show_progress

    while True:
        try:
            player_input = console.input("[bold yellow]> [/bold yellow]")
            command = player_input.strip().lower()

            if command in (":quit", ":q"):
                break
            if command == ":debug":
                debug["on"] = not debug["on"]
                console.print(f"[dim]Debug mode: {'ON' if debug['on'] else 'OFF'}[/dim]")
                continue
            if command == ":help":
                print_help()
                continue
            if command == ":status":
                print_status(orchestrator)
                continue
            if not command:
                continue

            result = await orchestrator.process_turn(player_input)
            console.print(f"\n{result.narrative}\n")

            if result.dilemma is not None:
                await resolve_dilemma(orchestrator, result.dilemma)

            if result.game_over is not None:
                console.print(Panel(result.game_over.narrative, title="[red]GAME OVER[/red]", border_style="red"))
                break

        except (KeyboardInterrupt, EOFError):
            break
        except TaleLoopError as e:
            console.print(f"[red]Error: {e}[/red]")
            if debug["on"]:
                console.print_exception()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="taleloop", description="Play a taleloop story in the terminal.")
    parser.add_argument("--story", type=int, default=1, help="story id to play or resume (default: 1)")
    parser.add_argument("--world", type=Path, help="authored world JSON to import into a new story")
    parser.add_argument("--seed", type=Path, help="story seed JSON for a new story")
    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None):
    """Async main function."""
    args = parse_args(argv)
    setup_logging(Config.LOG_LEVEL if Config.DEBUG else "WARNING")
    print_banner()

    # Validate configuration
    issues = Config.validate()
    if issues:
        console.print("[red]Configuration issues:[/red]")
        for issue in issues:
            console.print(f"  [red]• {issue}[/red]")
        console.print("\n[dim]Set the missing values in .env or the environment.[/dim]")
        sys.exit(1)

    console.print()
    if not print_provider_info():
        sys.exit(1)
    console.print()

    console.print("[dim]Initializing database...[/dim]")
    init_db()

    orchestrator = Orchestrator(args.story)
    try:
        if orchestrator.state.get_player_state() is None:
            if args.world:
                world = WorldImport.model_validate(json.loads(args.world.read_text(encoding="utf-8")))
                orchestrator.import_world(world)
            if orchestrator.state.get_player_state() is None:
                seed = DEFAULT_SEED
                if args.seed:
                    seed = StorySeed.model_validate(json.loads(args.seed.read_text(encoding="utf-8")))
                orchestrator.initialize_game(seed)

        await game_loop(orchestrator, debug_mode=Config.DEBUG)
    finally:
        orchestrator.close()

    console.print("\n[cyan]Session ended. Thanks for playing![/cyan]")


def main():
    """Entry point for the CLI."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
