#!/usr/bin/env python3
"""
drawagent CLI - Main entry point for the drawagent command
"""

import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__, get_data_dir
from .errors import ConfigurationError, TransportError

console = Console()


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def _print_commands(commands):
    table = Table(title="Draw commands")
    table.add_column("#", justify="right")
    table.add_column("Shape")
    table.add_column("Parameters")
    for index, command in enumerate(commands, 1):
        params = ", ".join(f"{k}={v}" for k, v in command.params.items())
        table.add_row(str(index), command.shape, params)
    console.print(table)


@click.group(invoke_without_command=True)
@click.option('--version', '-v', is_flag=True, help='Show version')
@click.pass_context
def main(ctx, version):
    """
    drawagent - Describe a picture, get it broken into shapes.

    \b
    Examples:
        drawagent draw "a house with a sun"
        drawagent draw --provider anthropic --stream "a snowman"
        drawagent tools
    """
    if version:
        click.echo(f"drawagent v{__version__}")
        return

    # Credentials from ./.env, then ~/.drawagent/.env
    load_dotenv()
    load_dotenv(get_data_dir() / ".env")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument('request')
@click.option('--provider', '-p', default=None, help='Provider name (anthropic, openai)')
@click.option('--model', '-m', default=None, help='Model name')
@click.option('--stream/--no-stream', default=None, help='Stream model output as it is generated')
@click.option('--max-iterations', type=int, default=None, help='Maximum agent iterations')
@click.option('--config', 'config_path', type=click.Path(path_type=Path), default=None, help='Path to settings.yaml')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.option('--verbose', is_flag=True, help='Enable debug logging')
def draw(request, provider, model, stream, max_iterations, config_path, as_json, verbose):
    """Break a drawing REQUEST into shapes."""
    from .assistant import DrawingAssistant
    from .config import load_settings

    _setup_logging(verbose)

    def on_token(delta):
        console.print(delta, end="", markup=False, highlight=False)

    try:
        settings = load_settings(
            config_path,
            provider=provider,
            model=model,
            stream=stream,
            max_iterations=max_iterations,
        )
        assistant = DrawingAssistant(settings, on_token=None if as_json else on_token)
        result = assistant.draw(request)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(2)
    except TransportError as e:
        console.print(f"[red]Model call failed:[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "output": result.output,
            "outcome": result.outcome.value,
            "steps": [
                {"action": s.action, "action_input": s.action_input, "observation": s.observation}
                for s in result.steps
            ],
            "commands": assistant.canvas.to_list(),
        }, indent=2))
        return

    if settings.stream:
        console.print()
    for step in result.steps:
        console.print(f"[cyan]{escape(step.action)}[/cyan]({escape(step.action_input)}) → {escape(step.observation)}")

    _print_commands(assistant.canvas.commands)
    style = "green" if result.finished else "yellow"
    console.print(Panel(escape(result.output), title=result.outcome.value, border_style=style))


@main.command()
def tools():
    """List the drawing tools."""
    from .skills.shapes import CommandCanvas, build_drawing_tools

    for tool in build_drawing_tools(CommandCanvas()):
        console.print(f"[bold]{tool.name}[/bold]: {tool.description}")


@main.command()
@click.option('--provider', '-p', type=click.Choice(["anthropic", "openai"]), default="openai")
def init(provider):
    """Write a default settings.yaml."""
    from .config import Settings, get_config_path, save_config

    config_path = get_config_path()
    if config_path.exists():
        click.echo(f"Config already exists: {config_path}")
        return

    defaults = Settings(provider=provider)
    save_config({
        "provider": defaults.provider,
        "temperature": defaults.temperature,
        "max_tokens": defaults.max_tokens,
        "max_iterations": defaults.max_iterations,
        "stream": defaults.stream,
        "timeout": defaults.timeout,
        "max_retries": defaults.max_retries,
    })
    click.echo(f"Wrote {config_path}")


if __name__ == "__main__":
    main()
