"""CLI interface for nextcloud-slideshow."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import CONFIG_FILE_PATH, SlideshowConfig
from .errors import ConfigurationError, SlideshowError
from .fetcher import FetchLayer
from .geocoding import GeocodingResolver
from .presenter import ConsolePresenter
from .repository import RepositoryClient, create_http_client
from .slideshow import Slideshow

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="nextcloud-slideshow")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug mode.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Configuration file (default: {CONFIG_FILE_PATH}).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool, config_path: Optional[Path]) -> None:
    """nextcloud-slideshow - rotating photo slideshow from a Nextcloud/WebDAV folder."""
    if ctx.obj is None:
        ctx.obj = {}

    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path

    if debug:
        logger.debug("Debug mode enabled")


def load_config(ctx: click.Context) -> SlideshowConfig:
    """Load and validate the configuration, exiting with status 1 on failure."""
    try:
        return SlideshowConfig.load_from_file(ctx.obj.get("config_path")).validate()
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(1)


@cli.command("list")
@click.option("--output-format", type=click.Choice(["text", "json"]), default="text", help="Output format")
@click.pass_context
def list_command(ctx: click.Context, output_format: str) -> None:
    """List the images the slideshow would rotate through."""
    config = load_config(ctx)

    async def _list():
        async with create_http_client(config.repository) as client:
            return await RepositoryClient(config.repository, client).list_images()

    try:
        images = asyncio.run(_list())
    except SlideshowError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if output_format == "json":
        click.echo(json.dumps(images, indent=2))
        return

    if not images:
        click.echo("No images found.")
        return
    click.echo(f"Found {len(images)} images:")
    for identifier in images:
        click.echo(f"  {identifier}")


@cli.command()
@click.argument("identifier")
@click.option("--save", "save_path", type=click.Path(dir_okay=False, path_type=Path), help="Write the image bytes here")
@click.pass_context
def fetch(ctx: click.Context, identifier: str, save_path: Optional[Path]) -> None:
    """Fetch one image and print its metadata as JSON."""
    config = load_config(ctx)

    async def _fetch():
        async with create_http_client(config.repository) as client:
            repository = RepositoryClient(config.repository, client)
            geocoder = GeocodingResolver() if config.enable_geocoding else None
            fetcher = FetchLayer(config, repository, client, geocoder=geocoder)
            try:
                entry = await fetcher.get_image(identifier, config.show_width, config.show_height)
                # Place names arrive asynchronously; give them a chance here
                await fetcher.wait_for_background()
                return entry
            finally:
                await fetcher.close()

    try:
        entry = asyncio.run(_fetch())
    except SlideshowError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if save_path is not None:
        save_path.write_bytes(entry.raw_bytes)
        if ctx.obj.get("verbose"):
            click.echo(f"Saved {entry.size} bytes to {save_path}", err=True)
    click.echo(json.dumps(entry.to_dict(), indent=2))


@cli.command()
@click.option("--port", type=int, default=None, help="Serve the HTTP remote control on this port.")
@click.option("--host", default="127.0.0.1", help="Remote control bind address.")
@click.option(
    "--save-current",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write each shown image to this file.",
)
@click.pass_context
def run(ctx: click.Context, port: Optional[int], host: str, save_current: Optional[Path]) -> None:
    """Run the slideshow until interrupted."""
    config = load_config(ctx)
    presenter = ConsolePresenter(
        animation_speed=config.animation_speed,
        save_path=save_current,
        show_attribution=config.enable_geocoding,
    )

    try:
        asyncio.run(_run_slideshow(config, presenter, host, port))
    except KeyboardInterrupt:
        click.echo("\nSlideshow stopped by user")
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(1)


async def _run_slideshow(
    config: SlideshowConfig,
    presenter: ConsolePresenter,
    host: str,
    port: Optional[int],
) -> None:
    slideshow = Slideshow.create(config, presenter=presenter)
    try:
        await slideshow.start()
        if port:
            import uvicorn
            from .web import create_app

            server = uvicorn.Server(
                uvicorn.Config(create_app(slideshow), host=host, port=port, log_level="info")
            )
            await server.serve()
        else:
            await asyncio.Event().wait()
    finally:
        await slideshow.shutdown()


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Display version and the effective configuration."""
    import platform

    click.echo(f"nextcloud-slideshow v{__version__}")
    click.echo(f"Python {platform.python_version()} on {platform.system()} {platform.release()}")

    config = load_config(ctx)
    click.echo(json.dumps(config.to_dict(), indent=2))


def main() -> None:
    """Entry point for the CLI."""
    try:
        cli(obj={})
    except Exception as e:
        click.echo(f"Fatal error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
