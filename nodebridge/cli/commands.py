"""CLI commands for nodebridge.

`doctor` reports whether a runtime can be provisioned on this machine;
`run` installs a module directory and executes one call against an input tree.
"""

import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from nodebridge import __logo__, __version__
from nodebridge.config.access import get_config
from nodebridge.config.loader import get_config_path, load_config
from nodebridge.config.schema import BridgeConfig, TransportMode
from nodebridge.runtime.executor import NodeJsExecutor
from nodebridge.runtime.provisioner import runtime_report
from nodebridge.runtime.resolvers import DirectoryResolver
from nodebridge.runtime.resources import ResourceLocator
from nodebridge.utils.exceptions import NodeJsError, classify_exception
from nodebridge.utils.logging_utils import configure_logging
from nodebridge.vfs import MemoryVFS

app = typer.Typer(
    name="nodebridge",
    help=f"{__logo__} nodebridge - run node.js extension modules from Python",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} nodebridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """nodebridge - run node.js extension modules from Python."""
    pass


def _load(config_file: str) -> BridgeConfig:
    try:
        if config_file:
            return load_config(Path(config_file).expanduser())
        return get_config()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)


def parse_options(pairs: list[str]) -> dict[str, Any]:
    """`key=value` pairs; values that parse as JSON keep their type, others stay strings."""
    options: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {pair!r}", param_hint="--option")
        try:
            options[key] = json.loads(value)
        except json.JSONDecodeError:
            options[key] = value
    return options


@app.command("doctor")
def doctor(
    config_file: str = typer.Option("", "--config", "-c", help="Config file path"),
    transport: Optional[TransportMode] = typer.Option(None, "--transport", help="Transport to check"),
) -> None:
    """Check that a node.js runtime can be provisioned on this machine."""
    config = _load(config_file)
    runtime_cfg = config.runtime
    mode = transport or config.transport.mode
    report = runtime_report(
        runtime_cfg.version,
        mode,
        ResourceLocator(runtime_cfg.resource_root),
        node_path=runtime_cfg.node_path,
        system_fallback=runtime_cfg.system_fallback,
    )
    checks = report["checks"]
    paths = report["paths"]

    table = Table(title=f"Runtime Report (node.js v{report['version']}, {report['transport']})")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    table.add_row("config file", "ok" if get_config_path().exists() else "warn", config_file or str(get_config_path()))
    table.add_row("platform", "ok" if checks["platformSupported"] else "fail", report["platform"] or "unsupported")
    table.add_row("packaged node", "ok" if checks["packagedExecutableExists"] else "warn", paths["executable"])
    if runtime_cfg.node_path:
        table.add_row("node_path", "ok" if checks["nodePathExists"] else "fail", paths["nodePath"])
    table.add_row(
        "system node",
        "ok" if checks["systemNodeAvailable"] else "warn",
        paths["systemNode"] or "not found",
    )
    table.add_row("bootstrap", "ok" if checks["bootstrapExists"] else "fail", paths["bootstrap"])
    table.add_row("executable", "ok" if checks["executableAvailable"] else "fail", "available" if checks["executableAvailable"] else "missing")
    console.print(table)

    for hint in report["suggestions"]:
        console.print(f"[yellow]•[/yellow] {hint}")
    if not (checks["executableAvailable"] and checks["bootstrapExists"]):
        raise typer.Exit(1)


@app.command("run")
def run(
    module: Path = typer.Argument(..., help="Module directory (contains index.js)"),
    input_dir: Path = typer.Argument(..., help="Directory loaded as the call's input tree"),
    file: str = typer.Option("", "--file", "-f", help="Target file inside the input tree"),
    option: list[str] = typer.Option([], "--option", "-o", help="Module option as key=value (repeatable)"),
    output: str = typer.Option("", "--output", help="Write the resulting tree to this directory"),
    script: str = typer.Option("", "--script", help="Entry script inside MODULE, installed as index.js"),
    config_file: str = typer.Option("", "--config", "-c", help="Config file path"),
) -> None:
    """Install MODULE and run it once against INPUT_DIR."""
    config = _load(config_file)
    configure_logging(config.logging.level, config.logging.file)
    options = parse_options(option)
    if not module.is_dir():
        console.print(f"[red]Module directory not found:[/red] {module}")
        raise typer.Exit(2)
    if not input_dir.is_dir():
        console.print(f"[red]Input directory not found:[/red] {input_dir}")
        raise typer.Exit(2)

    try:
        vfs = MemoryVFS.from_directory(input_dir)
        with NodeJsExecutor(config) as executor:
            executor.set_module(DirectoryResolver(module), "", script or None)
            result = executor.run(vfs, file or None, options)
        if output:
            target = Path(output).expanduser()
            vfs.export_fs(target)
    except (NodeJsError, OSError) as e:
        code, category = classify_exception(e)
        console.print(f"[red]✗[/red] {code} ({category.value}): {e}")
        raise typer.Exit(1)

    if output:
        console.print(f"[green]✓[/green] Wrote {len(vfs.list_files())} file(s) to {target}")
    console.print(f"[green]✓[/green] Result: {result if result is not None else '(none)'}")
