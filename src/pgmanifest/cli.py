from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt
from ruamel.yaml import YAML

from .cluster import init_users, parse_cluster
from .config import load_operator_config
from .errors import ManifestError
from .fetch import load_document
from .kustomize import write_kustomization
from .models import ClusterSpec
from .naming import DEFAULT_NAMING
from .render import render_all

app = typer.Typer(add_completion=False, invoke_without_command=True)
console = Console()
logger = logging.getLogger("pgmanifest")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level="INFO",
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_level=False, show_path=False)],
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _write_yaml(path: Path, data: dict) -> None:
    yaml = YAML()
    yaml.default_flow_style = False
    yaml.indent(mapping=2, sequence=4, offset=2)
    with path.open("w", encoding="utf-8") as handle:
        yaml.dump(data, handle)


def _ensure_output_dir(out_dir: Path) -> None:
    if not out_dir.exists():
        raise typer.BadParameter("Output directory does not exist. Create it first.")
    if not out_dir.is_dir():
        raise typer.BadParameter("Output path must be a directory.")


def _prompt_overwrite(existing: list[Path]) -> bool:
    if not existing:
        return True
    console.print("The following files already exist:")
    for path in existing:
        console.print(f"  - {path.name}")
    choice = Prompt.ask("overwrite or abort", choices=["overwrite", "abort"], default="abort")
    return choice.strip().lower() == "overwrite"


def _write_outputs(out_dir: Path, manifests: dict[str, dict], extra_files: list[str], force: bool) -> list[str]:
    filenames = list(manifests.keys())
    to_check = filenames + extra_files
    existing = [out_dir / name for name in to_check if (out_dir / name).exists()]
    if existing and not force:
        if not _prompt_overwrite(existing):
            raise typer.Exit(code=1)
    for name, data in manifests.items():
        try:
            _write_yaml(out_dir / name, data)
        except OSError as exc:
            console.print(f"[red]Unable to write {name}: {exc}[/red]")
            raise typer.Exit(code=1) from exc
    return filenames


def _summarize_cluster(spec: ClusterSpec) -> None:
    console.print("\nSummary:")
    console.print(f"Cluster: {spec.name}")
    console.print(f"Namespace: {spec.namespace}")
    console.print(f"PostgreSQL: {spec.postgres_version}")
    console.print(f"Instances: {spec.number_of_instances}")


@app.callback()
def main(
    cluster: str = typer.Argument(..., help="Path or URL to the Postgresql cluster manifest"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Operator configuration YAML"),
    out: Path = typer.Option(Path("."), "--out", "-o", help="Output directory"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    _configure_logging(verbose)
    try:
        _ensure_output_dir(out)
    except typer.BadParameter as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    try:
        result = load_document(cluster)
    except RuntimeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    try:
        operator_config = load_operator_config(config_file)
        spec = init_users(parse_cluster(result.data), operator_config)
        manifests = render_all(spec, operator_config)
    except ManifestError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    logger.debug("Loaded cluster %s from %s", spec.name, result.resolved_source)
    _summarize_cluster(spec)

    written = _write_outputs(out, manifests, ["kustomization.yaml"], force)
    write_kustomization(
        out / "kustomization.yaml",
        written,
        spec.namespace,
        DEFAULT_NAMING.labels(spec.name, operator_config),
    )

    console.print("\nGenerated:")
    for name in ["kustomization.yaml"] + written:
        console.print(f"  - {name}")


if __name__ == "__main__":
    app()
