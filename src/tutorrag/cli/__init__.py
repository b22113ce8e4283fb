"""Command-line interface for TutorRAG."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Callable
from pathlib import Path

import questionary
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from tutorrag import RollingContext, TutorRAGConfig, TutorRAGPipeline
from tutorrag.core.doctor import check_dependencies
from tutorrag.core.exceptions import TutorRAGError
from tutorrag.core.models import IngestionResult, QueryResult

TUTORRAG_THEME = Theme(
    {
        "info": "bold cyan",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "highlight": "bold magenta",
        "dim": "grey50",
    }
)

QUESTIONARY_STYLE = questionary.Style(
    [
        ("qmark", "fg:#00ffff bold"),
        ("question", "bold"),
        ("answer", "fg:#00ff00 bold"),
        ("pointer", "fg:#00ffff bold"),
        ("highlighted", "fg:#00ffff bold bg:default noreverse"),
        ("selected", "fg:default bg:default noreverse"),
        ("choice", "fg:default bg:default noreverse"),
    ]
)

console = Console(theme=TUTORRAG_THEME)

_KEY_VARS = {
    "openai": "TUTORRAG_OPENAI_API_KEY",
    "gemini": "TUTORRAG_GOOGLE_API_KEY",
    "pinecone": "TUTORRAG_PINECONE_API_KEY",
}


def validate_api_key(provider: str) -> Callable[[str], bool | str]:
    """Return a validation function for a specific provider."""
    prefixes = {
        "openai": "sk-",
        "gemini": "AIza",
        "pinecone": "pcsk_",
    }

    def validator(text: str) -> bool | str:
        if not text:
            return f"{provider.upper()} API key cannot be empty"
        prefix = prefixes.get(provider.lower())
        if prefix and not text.startswith(prefix):
            return f"{provider.upper()} keys must start with '{prefix}'"
        if len(text) < 20:
            return f"{provider.upper()} key is too short"
        return True

    return validator


async def _get_provider_config(
    category: str, choices: list[str], env_key: str, keys: dict[str, str]
) -> dict[str, str] | None:
    """Prompt for a provider and, once per provider, its API key."""
    provider = await questionary.select(
        f"Select {category} Provider:",
        choices=choices,
        style=QUESTIONARY_STYLE,
    ).ask_async()
    if provider is None:
        return None

    values = {f"TUTORRAG_{env_key}_PROVIDER": provider}
    key_var = _KEY_VARS.get(provider)
    if key_var is None or key_var in keys:
        return values

    key = await questionary.password(
        f"Enter {provider.upper()} API Key:",
        validate=validate_api_key(provider),
        style=QUESTIONARY_STYLE,
    ).ask_async()
    if key is None:
        return None
    keys[key_var] = key
    return values


def write_env_file(values: dict[str, str], env_path: Path = Path(".env")) -> Path:
    """Merge ``values`` into ``env_path``, replacing earlier TUTORRAG_ settings."""
    final_lines: list[str] = []
    if env_path.exists():
        for line in env_path.read_text().splitlines(keepends=True):
            if not line.strip().startswith("TUTORRAG_"):
                final_lines.append(line)
        if final_lines and not final_lines[-1].endswith("\n"):
            final_lines.append("\n")
        final_lines.append("\n# Updated TutorRAG Configuration\n")
    else:
        final_lines.append("# TutorRAG Configuration\n")

    final_lines.extend(f"{key}={val}\n" for key, val in values.items())
    env_path.write_text("".join(final_lines))
    return env_path


async def setup_cmd() -> None:
    """Run interactive setup to create the .env file."""
    console.print(Panel("TutorRAG Configuration Setup", style="info", expand=False))
    console.print("This utility will generate a .env file for your providers.\n", style="dim")

    configs = [
        ("Speech-to-Text (STT)", ["openai", "whisper_cli"], "STT"),
        ("Embedding", ["gemini", "openai"], "EMBEDDING"),
        ("Vector Store", ["pinecone", "chromadb"], "VECTOR_STORE"),
        ("Generation", ["gemini", "openai"], "GENERATION"),
    ]

    values: dict[str, str] = {}
    keys: dict[str, str] = {}
    for category, choices, env_key in configs:
        res = await _get_provider_config(category, choices, env_key, keys)
        if res is None:
            return
        values.update(res)
    values.update(keys)

    write_env_file(values)
    console.print("\n[success]Configuration updated in .env[/]")


def doctor_cmd() -> None:
    """Report external binaries needed for ingestion."""
    result = check_dependencies(TutorRAGConfig())

    table = Table(box=None, show_header=True, header_style="highlight", pad_edge=False)
    table.add_column("Dependency")
    table.add_column("Status")
    table.add_column("Path", style="dim")
    for check in result.checks:
        if check.available:
            status = "[success]found[/]"
        elif check.required:
            status = "[error]missing[/]"
        else:
            status = "[warning]missing (optional)[/]"
        table.add_row(check.name, status, check.path or "")
    console.print(table)

    if not result.all_ok:
        console.print(f"\n[error]Missing required dependencies:[/] {', '.join(result.missing)}")
        sys.exit(1)
    console.print("\n[success]All required dependencies are available.[/]")


def _print_ingestion(result: IngestionResult) -> None:
    console.print(
        f"[success]Ingested[/] {result.videos_transcribed}/{result.videos_listed} videos "
        f"into [highlight]{result.namespace}[/] ({result.chunks_indexed} chunks)"
    )
    for failure in result.failures:
        console.print(
            f"[warning]Skipped[/] {failure.title} "
            f"[dim]({failure.stage}: {failure.error_message})[/]"
        )


async def ingest_cmd(channel: str, max_videos: int | None, replace: bool) -> None:
    async with TutorRAGPipeline(TutorRAGConfig()) as pipeline:
        try:
            with console.status(f"[info]Ingesting {channel}...", spinner="dots"):
                result = await pipeline.ingest(
                    channel,
                    max_videos,
                    mode="replace" if replace else None,
                )
        except TutorRAGError as e:
            console.print(f"[error]Ingestion failed:[/] {e}")
            sys.exit(1)
    _print_ingestion(result)


def _print_answer(result: QueryResult) -> None:
    answer = result.answer
    console.print(
        Panel(
            answer.answer,
            title="TutorRAG Answer",
            title_align="left",
            border_style="success",
            padding=(1, 2),
        )
    )
    if answer.is_cited:
        table = Table(box=None, show_header=False, pad_edge=False, title_style="dim")
        table.add_column("Field", style="dim")
        table.add_column("Value")
        table.add_row("Video", answer.title or "")
        table.add_row("Time", f"{answer.start_time} - {answer.end_time}")
        table.add_row("URL", answer.video_url or "")
        console.print(table)


async def ask_cmd(channel: str, question: str) -> None:
    """Answer a single question and display the structured answer."""
    async with TutorRAGPipeline(TutorRAGConfig()) as pipeline:
        try:
            with console.status("[info]Searching knowledge base...", spinner="dots"):
                result = await pipeline.ask(channel, question)
        except TutorRAGError as e:
            console.print(f"[error]Query failed:[/] {e}")
            sys.exit(1)
    _print_answer(result)


async def chat_cmd(channel: str) -> None:
    """Interactive session that keeps the last exchange as context."""
    context = RollingContext()
    console.print(Panel(f"Chatting with {channel}", style="info", expand=False))
    console.print("Leave the question empty to quit.\n", style="dim")

    async with TutorRAGPipeline(TutorRAGConfig()) as pipeline:
        while True:
            question = await questionary.text("You:", style=QUESTIONARY_STYLE).ask_async()
            if not question or not question.strip():
                return
            try:
                with console.status("[info]Thinking...", spinner="dots"):
                    result = await pipeline.ask(channel, question, context)
            except TutorRAGError as e:
                console.print(f"[error]Query failed:[/] {e}")
                continue
            _print_answer(result)


def main() -> None:
    """Entry point with clean help documentation."""
    parser = argparse.ArgumentParser(
        description="TutorRAG: question answering over a YouTube channel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tutorrag setup
  tutorrag doctor
  tutorrag ingest @somechannel --max-videos 5
  tutorrag ask @somechannel "What is the deadline?"
  tutorrag chat @somechannel

Note: Use "tutorrag [command] --help" for more details on a specific command.
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("setup", help="Initialize provider configuration")
    subparsers.add_parser("doctor", help="Check external dependencies")

    ingest_parser = subparsers.add_parser("ingest", help="Build a channel's knowledge base")
    ingest_parser.add_argument("channel", help="Channel handle (@name) or channel URL")
    ingest_parser.add_argument(
        "--max-videos", type=int, default=None, help="Number of recent videos (max 10)"
    )
    ingest_parser.add_argument(
        "--replace", action="store_true", help="Clear the channel's index before writing"
    )

    ask_parser = subparsers.add_parser("ask", help="Ask one question")
    ask_parser.add_argument("channel", help="Channel handle (@name) or channel URL")
    ask_parser.add_argument("question", help="The question to ask")

    chat_parser = subparsers.add_parser("chat", help="Interactive question session")
    chat_parser.add_argument("channel", help="Channel handle (@name) or channel URL")

    args = parser.parse_args()

    try:
        if args.command == "setup":
            asyncio.run(setup_cmd())
        elif args.command == "doctor":
            doctor_cmd()
        elif args.command == "ingest":
            asyncio.run(ingest_cmd(args.channel, args.max_videos, args.replace))
        elif args.command == "ask":
            asyncio.run(ask_cmd(args.channel, args.question))
        elif args.command == "chat":
            asyncio.run(chat_cmd(args.channel))
        else:
            parser.print_help()
    except KeyboardInterrupt:
        console.print("\n[warning]Operation cancelled by user.[/]")
        sys.exit(0)


if __name__ == "__main__":
    main()
