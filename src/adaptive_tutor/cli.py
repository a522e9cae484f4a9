from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from adaptive_tutor.learning.models import ContentType
from adaptive_tutor.system import TutorSystem

app = typer.Typer(help="Adaptive tutor engine: lesson plans, content and progress criteria.")
console = Console()

load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)


def _load_system(config: Optional[Path], api_key: Optional[str]) -> TutorSystem:
    """Instantiate `TutorSystem` with optional config overrides and API key."""
    return TutorSystem.from_config(config, api_key=api_key)


@app.command()
def plan(
    subject: str = typer.Argument(..., help="Subject to plan, e.g. 'Algebra'."),
    config: Optional[Path] = typer.Option(None, help="Path to configuration YAML."),
    api_key: Optional[str] = typer.Option(None, help="Model API key."),
):
    """Generate a lesson plan and show its lessons."""
    system = _load_system(config, api_key)
    lesson_plan = asyncio.run(system.service.create_learning_plan(subject))

    table = Table(title=f"Learning plan: {lesson_plan.subject}")
    table.add_column("#", justify="right")
    table.add_column("Lesson")
    table.add_column("Description")
    for index, lesson in enumerate(lesson_plan.lessons, start=1):
        table.add_row(str(index), lesson.title, lesson.description)
    console.print(table)


@app.command()
def content(
    subject: str = typer.Argument(...),
    content_type: str = typer.Option(
        ContentType.CONCEPT_CARD.value, "--type", help="Content kind, e.g. multiple-choice or quiz."
    ),
    config: Optional[Path] = typer.Option(None),
    api_key: Optional[str] = typer.Option(None),
):
    """Plan the subject, then generate content for its first lesson."""
    system = _load_system(config, api_key)

    async def run():
        lesson_plan = await system.service.create_learning_plan(subject)
        return await system.service.generate_lesson_content(
            subject, lesson_plan.current_lesson, content_type
        )

    try:
        item = asyncio.run(run())
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    console.print(f"[bold]{item.type.value}[/bold]")
    console.print_json(json.dumps(item.data))


@app.command()
def ask(
    question: str = typer.Argument(...),
    subject: Optional[str] = typer.Option(None, help="Subject the question belongs to."),
    config: Optional[Path] = typer.Option(None),
    api_key: Optional[str] = typer.Option(None),
):
    """Answer a free-form question directly."""
    system = _load_system(config, api_key)
    answer = asyncio.run(system.service.generate_direct_educational_response(question, subject))
    console.print("[bold]Answer[/bold]")
    console.print(answer)


@app.command()
def criteria(
    subject: str = typer.Argument(...),
    config: Optional[Path] = typer.Option(None),
    api_key: Optional[str] = typer.Option(None),
):
    """Show the mastery criteria applied to a subject after planning it."""
    system = _load_system(config, api_key)
    asyncio.run(system.service.create_learning_plan(subject))
    subject_criteria = system.service.engine.get_criteria(subject)
    factors = subject_criteria.adaptive_factors

    table = Table(title=f"Progress criteria: {subject}")
    table.add_column("Criterion")
    table.add_column("Value", justify="right")
    table.add_row("Min correct answers", str(subject_criteria.min_correct_answers))
    table.add_row("Min total attempts", str(subject_criteria.min_total_attempts))
    table.add_row("Min accuracy", f"{subject_criteria.min_accuracy:.2f}")
    table.add_row("Difficulty adjustment", f"{factors.difficulty_adjustment:.2f}")
    table.add_row("Engagement weight", f"{factors.engagement_weight:.2f}")
    table.add_row("Retention factor", f"{factors.retention_factor:.2f}")
    console.print(table)
    if subject_criteria.reasoning:
        console.print(subject_criteria.reasoning)


if __name__ == "__main__":
    app()
