"""
Batch Orchestrator

Tiles every supported panorama in a directory. Each image is isolated: a
failure is recorded and the batch moves on. Successful images are indexed in
batch-manifest.json.
"""

import os
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from utils.validation import TilerConfig
from .deadline import Deadline
from .generate import TileResult, generate_tiles_for_image, format_duration
from .manifest import BatchManifest, build_batch_manifest, write_batch_manifest
from .source import SUPPORTED_EXTENSIONS, discover_images

console = Console()

SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass
class ImageResult:
    """Terminal state of one image in a batch."""
    input_path: Path
    output_dir: Path
    status: str
    result: Optional[TileResult] = None
    error: Optional[str] = None
    image_id: str = ""

    def __post_init__(self):
        if not self.image_id:
            self.image_id = self.output_dir.name

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED

    @property
    def total_tiles(self) -> int:
        return self.result.total_tiles if self.result else 0


@dataclass
class BatchResult:
    """Aggregate outcome of a batch run."""
    input_dir: Path
    output_dir: Path
    results: List[ImageResult] = field(default_factory=list)
    batch_manifest: Optional[BatchManifest] = None
    batch_manifest_path: Optional[Path] = None
    duration: float = 0

    @property
    def succeeded(self) -> List[ImageResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> List[ImageResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def total_tiles(self) -> int:
        return sum(r.total_tiles for r in self.results)


def default_workers() -> int:
    return os.cpu_count() or 1


def assign_image_ids(image_files: List[Path]) -> List[str]:
    """
    Pick a unique output directory name for each input.

    The stem is used where it is unique. Inputs sharing a stem (a.jpg, a.png)
    get their extension appended (a-jpg, a-png). Comparison ignores case so
    ids stay distinct on case-insensitive filesystems.
    """
    stem_counts = Counter(p.stem.lower() for p in image_files)
    taken = set()
    ids = []
    for path in image_files:
        image_id = path.stem
        if stem_counts[path.stem.lower()] > 1:
            image_id = f"{path.stem}-{path.suffix[1:].lower()}"
        base, n = image_id, 2
        while image_id.lower() in taken:
            image_id = f"{base}-{n}"
            n += 1
        taken.add(image_id.lower())
        ids.append(image_id)
    return ids


def process_image(
    input_path: Path,
    output_dir: Path,
    config: TilerConfig,
    quiet: bool = False,
    prefix: str = "",
) -> ImageResult:
    """
    Run one image and convert any failure into a result record.

    Returns:
        ImageResult in state succeeded or failed
    """
    deadline = Deadline(config.image_timeout, label=input_path.name)
    try:
        result = generate_tiles_for_image(
            input_path,
            output_dir,
            config,
            deadline=deadline,
            quiet=quiet,
            prefix=prefix,
        )
    except Exception as e:
        console.print(f"[red]  Error processing {input_path.name}: {e}[/red]")
        return ImageResult(input_path, output_dir, FAILED, error=f"{type(e).__name__}: {e}")

    return ImageResult(input_path, output_dir, SUCCEEDED, result=result)


def run_batch(
    input_dir: Path,
    output_dir: Path,
    config: Optional[TilerConfig] = None,
    quiet: bool = False,
) -> BatchResult:
    """
    Tile all supported panoramas in a directory.

    Args:
        input_dir: Directory containing panoramas (not searched recursively)
        output_dir: Output root; each image goes to <output_dir>/<id>/, where
            the id is the file stem unless another input shares it
        config: Tiler configuration
        quiet: Suppress per-image progress output

    Returns:
        BatchResult with per-image results and the batch manifest
    """
    config = config or TilerConfig()
    batch = BatchResult(input_dir=input_dir, output_dir=output_dir)

    image_files = discover_images(input_dir)
    if not image_files:
        console.print(f"[yellow]No supported images found in {input_dir}[/yellow]")
        console.print(f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}")
        return batch

    console.print(f"Found {len(image_files)} image(s) to process:")
    for f in image_files:
        console.print(f"  - {f.name}")

    start_time = time.time()
    output_dir.mkdir(parents=True, exist_ok=True)

    image_ids = assign_image_ids(image_files)
    workers = min(config.image_workers or default_workers(), len(image_files))
    total = len(image_files)

    def run(indexed):
        index, (input_path, image_id) = indexed
        prefix = f"[{index + 1}/{total}] " if total > 1 else ""
        result = process_image(
            input_path,
            output_dir / image_id,
            config,
            # Interleaved per-level output from parallel images is unreadable
            quiet=quiet or workers > 1,
            prefix=prefix,
        )
        if workers > 1 and not quiet:
            if result.succeeded:
                console.print(f"[green]{prefix}{input_path.name}: {result.total_tiles} tiles "
                              f"in {format_duration(result.result.duration)}[/green]")
            else:
                console.print(f"[red]{prefix}{input_path.name}: failed[/red]")
        return result

    # Bounded pool: every in-flight image holds a full decoded raster
    with ThreadPoolExecutor(max_workers=workers) as executor:
        batch.results = list(executor.map(run, enumerate(zip(image_files, image_ids))))

    batch.batch_manifest = build_batch_manifest(
        [(r.image_id, r.result.manifest) for r in batch.succeeded]
    )
    batch.batch_manifest_path = write_batch_manifest(batch.batch_manifest, output_dir)
    batch.duration = time.time() - start_time

    print_summary(batch)
    return batch


def print_summary(batch: BatchResult) -> None:
    total = len(batch.results)
    color = "green" if not batch.failed else ("yellow" if batch.succeeded else "red")

    console.print(Panel.fit(
        f"[bold {color}]Batch complete: {len(batch.succeeded)}/{total} images[/bold {color}]\n\n"
        f"Total tiles: {batch.total_tiles}\n"
        f"Total time:  {format_duration(batch.duration)}\n"
        f"Batch manifest: {batch.batch_manifest_path}",
        border_style=color
    ))

    if batch.failed:
        table = Table(title="Failed images", title_style="bold red")
        table.add_column("File")
        table.add_column("Error", style="red")
        for r in batch.failed:
            table.add_row(r.input_path.name, r.error or "unknown error")
        console.print(table)
