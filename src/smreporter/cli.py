from typing import Optional
import pathlib, typer
from .config import ConfigError, ReporterConfig, load_config
from .runners.runner import TestRunner, iter_leaves

app = typer.Typer(add_completion=False, help="smreporter - stream unittest results as TeamCity service messages")

def _load(config: Optional[str]) -> ReporterConfig:
    try:
        return load_config(config)
    except ConfigError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)

def _default_root(start_dir: str) -> str:
    return pathlib.Path(start_dir).resolve().name or "tests"

@app.command()
def run(
    start_dir: str = typer.Argument(".", help="Directory to load tests from"),
    pattern: str = typer.Option("test*.py", "--pattern", "-p", help="Test module file pattern"),
    top_level_dir: Optional[str] = typer.Option(None, "--top-level-dir", "-t", help="Project top level directory"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    root_name: Optional[str] = typer.Option(None, "--root-name", help="Name reported for the run root"),
):
    cfg = _load(config)
    runner = TestRunner(cfg)
    suite = runner.discover(start_dir, pattern, top_level_dir)
    result = runner.run(suite, root_name or cfg.root_name or _default_root(start_dir))
    raise typer.Exit(code=0 if result.successful else 1)

@app.command()
def tree(
    start_dir: str = typer.Argument(".", help="Directory to load tests from"),
    pattern: str = typer.Option("test*.py", "--pattern", "-p"),
    top_level_dir: Optional[str] = typer.Option(None, "--top-level-dir", "-t"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    list_tests: bool = typer.Option(False, "--list", help="List test ids instead of sending the tree"),
):
    cfg = _load(config)
    runner = TestRunner(cfg)
    suite = runner.discover(start_dir, pattern, top_level_dir)
    _, root = runner.tree(suite, cfg.root_name or _default_root(start_dir))
    if list_tests:
        for leaf in iter_leaves(root):
            typer.echo(leaf.node_id)
        raise typer.Exit(code=0)
    runner.sender.send_tree(root)

def main():
    app()

if __name__ == "__main__":
    main()
