"""
Command-line entry point.

    generate-tiles <input-image> [output-dir]
    generate-tiles --batch <input-dir> [output-dir]
"""

from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.panel import Panel
import typer

from utils.validation import ConfigurationError, TilerConfig, load_config, make_config
from .batch import run_batch
from .deadline import Deadline
from .generate import TileResult, generate_tiles_for_image, format_duration

console = Console()
app = typer.Typer(help="Panorama Tile Generator", add_completion=False)


def default_output_dir(input_path: Path, batch: bool) -> Path:
    if batch:
        return input_path / "tiles"
    return input_path.parent / "tiles" / input_path.stem


def print_viewer_config(result: TileResult) -> None:
    """Print the tile adapter settings for the highest generated level."""
    manifest = result.manifest
    top = manifest.levels[-1]
    base = result.output_dir.as_posix()
    tile_url = f"{base}/level-{top.level}/row-${{row}}/tile-${{col}}.{manifest.format}"

    console.print("\nViewer tile configuration (highest level):")
    console.print(f"  baseUrl: {base}/{manifest.preview}", highlight=False)
    console.print(f"  width:   {top.width}")
    console.print(f"  cols:    {top.cols}")
    console.print(f"  rows:    {top.rows}")
    console.print(f"  tileUrl: {tile_url}", highlight=False, markup=False)


@app.command()
def main(
    input_path: Path = typer.Argument(..., help="Panorama image, or a directory with --batch"),
    output_dir: Optional[Path] = typer.Argument(None, help="Output directory"),
    batch: bool = typer.Option(False, "--batch", help="Process all images in a directory"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="JSON file with tiler settings"),
    tile_size: Optional[int] = typer.Option(None, help="Tile size in pixels (default: 512)"),
    quality: Optional[int] = typer.Option(None, help="Tile WebP quality 0-100 (default: 85)"),
    preview_width: Optional[int] = typer.Option(None, help="Preview width in pixels (default: 256)"),
    preview_quality: Optional[int] = typer.Option(None, help="Preview WebP quality (default: 60)"),
    tile_workers: Optional[int] = typer.Option(None, help="Parallel tile encoders per image (default: 4)"),
    workers: Optional[int] = typer.Option(None, help="Parallel images in batch mode (default: CPU count)"),
    timeout: Optional[float] = typer.Option(None, help="Per-image timeout in seconds"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print the summary"),
):
    """
    Generate multi-resolution tiles from equirectangular panoramas.

    Levels are chosen from the source width: a level is kept when its width is
    at most 110% of the source, and at least two levels are always produced.
    """
    overrides = dict(
        tile_size=tile_size,
        quality=quality,
        preview_width=preview_width,
        preview_quality=preview_quality,
        tile_workers=tile_workers,
        image_workers=workers,
        image_timeout=timeout,
    )
    try:
        if config_path:
            config = load_config(config_path, **overrides)
        else:
            config = make_config(**overrides)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(1)

    output_dir = output_dir or default_output_dir(input_path, batch)

    if batch:
        if not input_path.is_dir():
            console.print(f"[bold red]Error:[/bold red] Input directory not found: {input_path}")
            raise typer.Exit(1)
        run_batch_command(input_path, output_dir, config, quiet)
    else:
        if not input_path.is_file():
            console.print(f"[bold red]Error:[/bold red] Input file not found: {input_path}")
            raise typer.Exit(1)
        run_single_command(input_path, output_dir, config, quiet)


def run_single_command(input_path: Path, output_dir: Path, config: TilerConfig, quiet: bool) -> None:
    console.print(Panel.fit(
        "[bold blue]Panorama Tile Generator[/bold blue]\n"
        f"Input: {input_path}\n"
        f"Output: {output_dir}",
        border_style="blue"
    ))

    try:
        result = generate_tiles_for_image(
            input_path,
            output_dir,
            config,
            deadline=Deadline(config.image_timeout, label=input_path.name),
            quiet=quiet,
        )
    except Exception as e:
        console.print(f"[bold red]Tile generation failed:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]Tile generation complete![/bold green]\n\n"
        f"Levels: {len(result.manifest.levels)}\n"
        f"Tiles: {result.total_tiles}\n"
        f"Time: {format_duration(result.duration)}\n"
        f"Manifest: {result.manifest_path}",
        border_style="green"
    ))
    if not quiet:
        print_viewer_config(result)


def run_batch_command(input_dir: Path, output_dir: Path, config: TilerConfig, quiet: bool) -> None:
    console.print(Panel.fit(
        "[bold blue]Panorama Tile Generator - Batch Mode[/bold blue]\n"
        f"Input: {input_dir}\n"
        f"Output: {output_dir}",
        border_style="blue"
    ))

    try:
        batch = run_batch(input_dir, output_dir, config, quiet=quiet)
    except Exception as e:
        console.print(f"[bold red]Batch processing failed:[/bold red] {e}")
        raise typer.Exit(1)

    if batch.results and not batch.succeeded:
        raise typer.Exit(1)


def run():
    app()


if __name__ == "__main__":
    run()
