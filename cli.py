"""casesmith CLI — turn branchy functions into pytest cases."""
import json
import logging
from pathlib import Path

import typer

from casesmith import analyze_source, generate_test_file, scan_path

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="casesmith",
    help="⚒ casesmith — synthesize pytest cases from if/in/match branches",
)


def _setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _load(src: Path):
    if src.is_file():
        if src.suffix != ".py":
            typer.echo(f"Error: {src} is not a Python file", err=True)
            raise typer.Exit(1)
        try:
            return [analyze_source(src.read_text("utf-8"), str(src))]
        except SyntaxError as exc:
            typer.echo(f"Error: cannot parse {src}: {exc}", err=True)
            raise typer.Exit(1)
    if src.is_dir():
        return scan_path(src)
    typer.echo(f"Error: {src} not found", err=True)
    raise typer.Exit(1)


@app.command()
def scan(
    src: Path = typer.Argument(..., help="Source directory or .py file to analyze"),
    as_json: bool = typer.Option(False, "--json", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Print the test cases synthesized for every function."""
    _setup_logging(verbose)
    reports = _load(src)

    if as_json:
        data = [{"file": r.file, "function": fn.name, "line": fn.line,
                 "cases": [{"args": c.args,
                            "expected": c.expected if c.has_expected else None,
                            "extractable": c.has_expected,
                            "shape": c.shape, "line": c.line}
                           for c in fn.cases]}
                for r in reports for fn in r.functions]
        typer.echo(json.dumps(data, indent=2))
        return

    total = sum(len(fn.cases) for r in reports for fn in r.functions)
    typer.echo(f"⚒ casesmith: {total} cases\n")
    for r in reports:
        for fn in r.functions:
            typer.echo(f"  {r.file}:{fn.line}  {fn.name}({', '.join(fn.params)})")
            if not fn.cases:
                typer.echo("     (no cases)")
            for c in fn.cases:
                expected = repr(c.expected) if c.has_expected else "?"
                typer.echo(f"     {c.args} → {expected}")
            typer.echo("")


@app.command()
def generate(
    src: Path = typer.Argument(..., help="Source directory or .py file to analyze"),
    output: Path = typer.Option(None, "--output", "-o",
                                help="Test file to write (single-file SRC only)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Write a pytest module for each analyzed source module."""
    _setup_logging(verbose)
    reports = _load(src)
    if output and not src.is_file():
        typer.echo("Error: --output needs a single source file", err=True)
        raise typer.Exit(1)

    for r in reports:
        source = Path(r.file)
        target = output or source.with_name(f"test_{source.stem}.py")
        if target.exists():
            logger.warning("overwriting existing %s", target)
        target.write_text(generate_test_file(r, source.stem), encoding="utf-8")
        count = sum(len(fn.cases) for fn in r.functions)
        typer.echo(f"✅ Generated {count} cases → {target}")


if __name__ == "__main__":
    app()
