import asyncio
import json
import sys
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table

from imagegen.config.settings import ServiceConfig
from imagegen.image.errors import ImageGenError
from imagegen.image.sd_webui_client import SDWebUIClient
from imagegen.tools.image_tools import GENERATE_IMAGE, ImageTools, format_tool_result

console = Console(stderr=True)


@click.group()
def cli():
    """image-gen CLI - Generate images through a Stable Diffusion WebUI server."""
    pass


@cli.command("mcp")
def mcp():
    """Start the image-gen MCP server on stdio."""
    from imagegen.api.mcp_server import run_server

    run_server()


@cli.command("config")
def show_config():
    """Show the effective configuration."""
    config = ServiceConfig.from_environment()
    table = Table(title="image-gen configuration")
    table.add_column("Variable", style="cyan")
    table.add_column("Value")
    for key, value in config.describe().items():
        table.add_row(key, value)
    console.print(table)


@cli.command("tools")
def list_tools():
    """Print the tool definitions (name, description, input schema) as JSON."""
    click.echo(json.dumps(ImageTools.list_tools(), indent=2))


async def _call(name: str, arguments: Any, config: ServiceConfig) -> list[dict[str, str]]:
    async with SDWebUIClient(config) as client:
        return await ImageTools.call_tool(name, arguments, client, config)


async def _generate(arguments: dict[str, Any], config: ServiceConfig) -> list[dict[str, str]]:
    return await _call(GENERATE_IMAGE, arguments, config)


@cli.command("call")
@click.argument("name")
@click.argument("arguments", default="{}")
def call(name: str, arguments: str):
    """Invoke tool NAME with a JSON ARGUMENTS object and print the tool result.

    Failures are printed as a JSON error object and exit with status 1.
    """
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"ARGUMENTS is not valid JSON: {e}") from e

    config = ServiceConfig.from_environment()
    try:
        artifacts = asyncio.run(_call(name, parsed, config))
    except ImageGenError as e:
        click.echo(json.dumps(e.to_dict()))
        sys.exit(1)
    click.echo(json.dumps(format_tool_result(artifacts)))


@cli.command("generate")
@click.argument("prompt")
@click.option("--negative-prompt", default=None, help="Things to exclude from the image.")
@click.option("--steps", type=int, default=None, help="Sampling steps (1-150, default: 4).")
@click.option("--width", type=int, default=None, help="Image width (default: 1024).")
@click.option("--height", type=int, default=None, help="Image height (default: 1024).")
@click.option("--cfg-scale", type=float, default=None, help="CFG scale (default: 1).")
@click.option(
    "--distilled-cfg-scale", type=float, default=None, help="Distilled CFG scale (default: 3.5)."
)
@click.option("--sampler", "sampler_name", default=None, help="Sampler (default: Euler).")
@click.option("--scheduler", "scheduler_name", default=None, help="Scheduler (default: Simple).")
@click.option("--seed", type=int, default=None, help="Random seed (-1 for random).")
@click.option("--batch-size", type=int, default=None, help="Images to generate (1-4, default: 1).")
@click.option("--restore-faces", is_flag=True, default=False, help="Enable face restoration.")
@click.option("--tiling", is_flag=True, default=False, help="Generate tileable images.")
@click.option(
    "--output-path", "-o", default=None, help="Directory to write images to (default: SD_OUTPUT_DIR)."
)
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON result on stdout.")
def generate(prompt: str, as_json: bool, **options: Optional[Any]):
    """Generate images for PROMPT and save them to disk."""
    arguments: dict[str, Any] = {"prompt": prompt}
    arguments.update({key: value for key, value in options.items() if value is not None})
    config = ServiceConfig.from_environment()

    try:
        artifacts = asyncio.run(_generate(arguments, config))
    except ImageGenError as e:
        console.print(f"[red]{e.kind}[/red]: {e.message}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(artifacts, indent=2))
        return

    table = Table(title=f"Generated {len(artifacts)} image(s)")
    table.add_column("Path", style="green")
    table.add_column("Parameters", overflow="fold")
    for artifact in artifacts:
        table.add_row(artifact["path"], artifact["parameters"])
    console.print(table)


if __name__ == "__main__":
    cli()
